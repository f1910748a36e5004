"""Core sync engine for clone and pull sessions."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional, Union

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
)

from ..api import GitHubClient
from ..exceptions import LedgerMissingError, ZiphyrError
from ..models import ContentIndex, RepositoryRef
from ..output import OutputFormatter
from ..utils import DEFAULT_MAX_DEPTH, DEFAULT_MAX_WORKERS, format_size
from .differ import Differ, DownloadQueue
from .ledger import LedgerManager, SyncLedger
from .mirror import MirrorDirectory
from .operations import SyncOperations
from .session import SyncResult, SyncSession, SyncState
from .tree_walker import TreeWalker

logger = logging.getLogger(__name__)

# Errors reported to the user instead of propagating
_SYNC_ERRORS = (ZiphyrError, ValueError, OSError)


class SyncEngine:
    """Core sync engine that mirrors a remote repository into a directory.

    A clone walks the remote tree and downloads every file. A pull walks the
    tree again, diffs it against the ledger of the last sync and the files
    on disk, and downloads only what changed. The ledger is rewritten only
    after all downloads have finished.
    """

    def __init__(
        self,
        client: GitHubClient,
        output: Optional[OutputFormatter] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize sync engine.

        Args:
            client: GitHub API client
            output: Output formatter for displaying progress/status
            max_workers: Number of parallel workers for tree listing and
                         downloads (default: 1, sequential)
            max_depth: Maximum directory nesting of the remote tree
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.max_workers = max(1, max_workers)
        self.max_depth = max_depth
        self.operations = SyncOperations(client)
        self.differ = Differ()

    @property
    def _show_progress(self) -> bool:
        return not self.output.quiet and not self.output.json_output

    def clone(
        self,
        repo_name: str,
        directory: Optional[Union[str, Path]] = None,
        version: Optional[str] = None,
    ) -> SyncResult:
        """Clone a repository into a mirror directory.

        Args:
            repo_name: Repository identifier (owner/name)
            directory: Mirror root (defaults to ``<cwd>/<name>``)
            version: Branch, tag or commit to check out (defaults to the
                     repository's default branch)

        Returns:
            SyncResult of the session

        Examples:
            >>> engine = SyncEngine(client)
            >>> result = engine.clone("octocat/Hello-World", version="v1.0")
            >>> result.downloaded
            ['README']
        """
        mirror = MirrorDirectory.for_repository(repo_name, directory)
        session = SyncSession(mirror=mirror)
        ledger_manager = LedgerManager(mirror)

        self.output.info(f"Cloning {repo_name} into {mirror.root}")
        try:
            session.transition(SyncState.RESOLVE_REPO)
            session.repository = self._resolve_repository(repo_name, version)
            self._check_existing_identity(ledger_manager, session.repository)

            session.transition(SyncState.PREPARE_MIRROR)
            mirror.prepare()

            session.transition(SyncState.WALK_TREE)
            session.index = self._walk(session)

            session.transition(SyncState.QUEUE_ALL)
            session.queue = DownloadQueue.from_index(session.index)
        except _SYNC_ERRORS as e:
            return self._abort(session, e)

        return self._download_and_persist(session, ledger_manager)

    def pull(
        self,
        directory: Optional[Union[str, Path]] = None,
        dry_run: bool = False,
    ) -> SyncResult:
        """Bring an existing mirror up to date.

        The repository and version are read from the mirror's metadata, so a
        version pinned at clone time is kept.

        Args:
            directory: Mirror root (defaults to the current directory)
            dry_run: Only show what would be downloaded

        Returns:
            SyncResult of the session
        """
        mirror = MirrorDirectory(Path(directory) if directory else Path.cwd())
        session = SyncSession(mirror=mirror, dry_run=dry_run)
        ledger_manager = LedgerManager(mirror)

        try:
            session.transition(SyncState.RESOLVE_REPO)
            pinned = ledger_manager.load_repository()
            if pinned is None:
                raise LedgerMissingError(str(mirror.root))
            self.output.info(
                f"Pulling {pinned.name}@{pinned.version} into {mirror.root}"
            )
            if dry_run:
                self.output.info("Dry run: No changes will be made")
            session.repository = self._resolve_repository(pinned.name, pinned.version)

            session.transition(SyncState.PREPARE_MIRROR)
            if not dry_run:
                mirror.prepare()

            session.transition(SyncState.WALK_TREE)
            session.index = self._walk(session)

            session.transition(SyncState.LOAD_LEDGER)
            ledger = ledger_manager.load()
            if ledger is None:
                self.output.warning(
                    f"Sync ledger in {mirror.meta_dir} is incomplete; "
                    "every file will be downloaded"
                )
                ledger = SyncLedger()

            session.transition(SyncState.DIFF)
            session.queue = self.differ.compute_download_set(
                session.index, ledger, mirror.root
            )
        except _SYNC_ERRORS as e:
            return self._abort(session, e)

        if dry_run:
            self._display_plan(session, list_paths=True)
            session.transition(SyncState.DONE)
            result = SyncResult.from_session(session)
            self._display_summary(result)
            return result

        return self._download_and_persist(session, ledger_manager)

    def _resolve_repository(
        self, repo_name: str, version: Optional[str]
    ) -> RepositoryRef:
        """Fetch repository metadata and pick the version to sync."""
        data = self.client.get_repository(repo_name)
        repository = RepositoryRef.from_api_response(data, version=version)
        logger.debug(
            f"Resolved {repository.name}@{repository.version} "
            f"(default branch {repository.default_branch}, "
            f"private={repository.private})"
        )
        return repository

    def _check_existing_identity(
        self, ledger_manager: LedgerManager, repository: RepositoryRef
    ) -> None:
        existing = ledger_manager.load_repository()
        if existing is None:
            return
        if (existing.name, existing.version) != (repository.name, repository.version):
            self.output.warning(
                f"{ledger_manager.mirror.root} already tracks "
                f"{existing.name}@{existing.version}; keeping that record"
            )

    def _walk(self, session: SyncSession) -> ContentIndex:
        """Walk the remote tree of the session's repository.

        Local directories are created on the way unless this is a dry run.
        """
        assert session.repository is not None
        walker = TreeWalker(
            self.client,
            mirror_root=None if session.dry_run else session.mirror.root,
            max_workers=self.max_workers,
            max_depth=self.max_depth,
        )

        if not self._show_progress:
            return walker.walk(session.repository)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.output.console,
            transient=True,
        ) as progress:
            task = progress.add_task("Indexing remote tree...", total=None)
            index = walker.walk(session.repository)
            progress.update(task, description=f"Found {len(index)} remote file(s)")
        return index

    def _download_and_persist(
        self, session: SyncSession, ledger_manager: LedgerManager
    ) -> SyncResult:
        """Run the download step and write the ledger."""
        assert session.repository is not None
        self._display_plan(session)

        session.transition(SyncState.DOWNLOAD)
        start_time = time.time()
        downloaded, failed = self._download_queue(session)
        logger.debug(
            f"Downloaded {len(downloaded)} file(s) in {time.time() - start_time:.2f}s"
        )

        try:
            session.transition(SyncState.PERSIST_LEDGER)
            ledger_manager.store(
                session.index, session.repository, exclude=failed.keys()
            )
        except OSError as e:
            result = self._abort(session, e)
            result.downloaded = downloaded
            result.failed = failed
            return result

        session.transition(SyncState.DONE)
        result = SyncResult.from_session(session)
        result.downloaded = downloaded
        result.failed = failed
        self._display_summary(result)
        return result

    def _download_queue(
        self, session: SyncSession
    ) -> tuple[list[str], dict[str, str]]:
        """Download every queued path.

        Each download is independent: a failure is recorded and the
        remaining paths are still processed.

        Returns:
            Tuple of (downloaded paths, failed path -> error message)
        """
        paths = session.queue.paths
        downloaded: list[str] = []
        failed: dict[str, str] = {}
        if not paths:
            return downloaded, failed

        def on_complete(path: str, error: Optional[str]) -> None:
            if error is None:
                downloaded.append(path)
            else:
                failed[path] = error
                if not self.output.quiet:
                    self.output.error(f"Error downloading {path}: {error}")

        if not self._show_progress:
            self._execute_downloads(session, paths, on_complete)
            return downloaded, failed

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=self.output.console,
            transient=True,
        ) as progress:
            task = progress.add_task("Downloading files...", total=len(paths))

            def advance(path: str, error: Optional[str]) -> None:
                on_complete(path, error)
                progress.advance(task)

            self._execute_downloads(session, paths, advance)

        return downloaded, failed

    def _execute_downloads(
        self,
        session: SyncSession,
        paths: list[str],
        on_complete: Callable[[str, Optional[str]], None],
    ) -> None:
        """Download paths sequentially or with a bounded worker pool.

        ``on_complete`` is always called on the calling thread.
        """
        if self.max_workers > 1 and len(paths) > 1:
            logger.debug(
                f"Downloading {len(paths)} file(s) with {self.max_workers} workers"
            )
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._download_single, session, path): path
                    for path in paths
                }
                for future in as_completed(futures):
                    on_complete(futures[future], future.result())
        else:
            for path in paths:
                on_complete(path, self._download_single(session, path))

    def _download_single(self, session: SyncSession, path: str) -> Optional[str]:
        """Download one file.

        Returns:
            None on success, the error message on failure
        """
        assert session.repository is not None
        start = time.time()
        try:
            size = self.operations.download_file(
                session.repository, session.mirror, path
            )
        except _SYNC_ERRORS as e:
            logger.debug(f"Failed {path} in {time.time() - start:.2f}s: {e}")
            return str(e)
        logger.debug(
            f"Completed {path} ({format_size(size)}) in {time.time() - start:.2f}s"
        )
        return None

    def _abort(self, session: SyncSession, error: Exception) -> SyncResult:
        """End the session without touching the ledger."""
        logger.debug(
            f"Session for {session.mirror.root} aborted in state "
            f"{session.state.value}",
            exc_info=True,
        )
        session.transition(SyncState.ABORTED)
        self.output.error(str(error))
        result = SyncResult.from_session(session)
        result.aborted_reason = str(error)
        return result

    def _display_plan(self, session: SyncSession, list_paths: bool = False) -> None:
        """Display download plan to user."""
        if not self._show_progress or not session.queue:
            return

        self.output.info("Download plan:")
        for reason, count in session.queue.count_by_reason().items():
            self.output.info(f"  ↓ {reason.replace('_', ' ')}: {count} file(s)")
        if list_paths:
            self.output.print("")
            for decision in session.queue.decisions():
                self.output.info(f"  {decision.path} ({decision.description})")
        self.output.print("")

    def _display_summary(self, result: SyncResult) -> None:
        """Display sync summary.

        Args:
            result: Result of the finished session
        """
        if not self._show_progress:
            return

        self.output.print("")
        if result.dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync complete!")

        if result.queued:
            self.output.info(f"Total files queued: {len(result.queued)}")
            if result.downloaded:
                self.output.info(f"  Downloaded: {len(result.downloaded)}")
            if result.failed:
                self.output.info(f"  Failed: {len(result.failed)}")
        else:
            self.output.info("No changes needed - everything is in sync!")
