"""Recursive traversal of a remote repository tree."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from ..api import GitHubClient
from ..exceptions import RemoteTraversalError, ZiphyrAPIError
from ..models import ContentIndex, EntryKind, RepositoryRef, TreeListing
from ..utils import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_WORKERS,
    METADATA_DIR_NAME,
    join_tree_path,
)
from .fingerprint import remote_fingerprint

logger = logging.getLogger(__name__)

# (tree_id, path_prefix, depth)
_WorkItem = tuple[str, str, int]


class TreeWalker:
    """Walks a remote tree and builds the content index.

    Each directory level is one API call. Directories are expanded via an
    explicit worklist; files end up in a flat ``ContentIndex``. Local
    directories mirroring the remote structure are created on the way.

    Examples:
        >>> walker = TreeWalker(client, mirror_root=Path("./Hello-World"))
        >>> index = walker.walk(repository)
        >>> index.paths()
        ['README', 'src/main.go']
    """

    def __init__(
        self,
        client: GitHubClient,
        mirror_root: Optional[Path] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize the tree walker.

        Args:
            client: GitHub API client
            mirror_root: Local root where directories are created. None
                         disables directory creation (dry runs).
            max_workers: Number of sibling subtrees fetched in parallel
            max_depth: Maximum directory nesting before the walk is aborted
        """
        self.client = client
        self.mirror_root = mirror_root
        self.max_workers = max(1, max_workers)
        self.max_depth = max_depth

    def walk(
        self, repository: RepositoryRef, tree_id: Optional[str] = None
    ) -> ContentIndex:
        """Walk the tree and return the content index.

        Args:
            repository: Repository being mirrored
            tree_id: Tree to start from (defaults to the resolved version)

        Returns:
            ContentIndex with one entry per reachable file

        Raises:
            RemoteTraversalError: If any level cannot be fetched or decoded,
                or the tree is nested deeper than ``max_depth``
        """
        start = time.time()
        index = ContentIndex()
        frontier: list[_WorkItem] = [(tree_id or repository.version, "", 0)]
        levels = 0

        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                while frontier:
                    listings = list(
                        executor.map(
                            lambda item: self._fetch_level(repository, item), frontier
                        )
                    )
                    frontier = self._expand(frontier, listings, index)
                    levels += 1
        else:
            while frontier:
                item = frontier.pop()
                listing = self._fetch_level(repository, item)
                frontier.extend(self._expand([item], [listing], index))
                levels += 1

        logger.debug(
            "Walked %s@%s: %d file(s) in %.2fs",
            repository.name,
            repository.version,
            len(index),
            time.time() - start,
        )
        return index

    def _fetch_level(
        self, repository: RepositoryRef, item: _WorkItem
    ) -> TreeListing:
        """Fetch and decode one tree level."""
        tree_id, prefix, depth = item
        if depth > self.max_depth:
            raise RemoteTraversalError(
                prefix,
                ValueError(f"tree nested deeper than {self.max_depth} levels"),
            )

        logger.debug("Indexing: %s", prefix or "/")
        try:
            data = self.client.get_tree(repository.name, tree_id)
            listing = TreeListing.from_api_response(data)
        except ZiphyrAPIError as e:
            raise RemoteTraversalError(prefix, e) from e

        if listing.truncated:
            logger.warning(
                "Tree listing for '%s' was truncated by the API; "
                "some files may be missing",
                prefix or "/",
            )
        return listing

    def _expand(
        self,
        items: list[_WorkItem],
        listings: list[TreeListing],
        index: ContentIndex,
    ) -> list[_WorkItem]:
        """Record files from fetched levels and return the next subtrees."""
        next_items: list[_WorkItem] = []

        for (_, prefix, depth), listing in zip(items, listings):
            for entry in listing.entries:
                entry_path = join_tree_path(prefix, entry.name)

                if entry.kind == EntryKind.FILE:
                    index.add(remote_fingerprint(entry), entry_path)
                elif entry.kind == EntryKind.DIRECTORY:
                    logger.debug("Traversing to %s", entry_path)
                    self._ensure_directory(entry_path)
                    next_items.append((entry.sha, entry_path, depth + 1))
                else:
                    logger.warning("Skipping submodule: %s", entry_path)

        return next_items

    def _ensure_directory(self, relative_path: str) -> None:
        """Create the local counterpart of a remote directory (idempotent).

        A local file or symlink in the way is removed: the remote tree wins.
        """
        if self.mirror_root is None:
            return
        if relative_path.split("/", 1)[0] == METADATA_DIR_NAME:
            logger.warning(
                "Not creating %s inside the metadata directory", relative_path
            )
            return
        target = self.mirror_root / relative_path
        if target.is_symlink() or (target.exists() and not target.is_dir()):
            logger.warning(
                "Replacing local file with remote directory: %s", relative_path
            )
            target.unlink()
        target.mkdir(parents=True, exist_ok=True)
