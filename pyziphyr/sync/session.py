"""Per-session state of a clone or pull."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..models import ContentIndex, RepositoryRef
from .differ import DownloadQueue
from .mirror import MirrorDirectory

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Steps of a sync session."""

    INIT = "init"
    RESOLVE_REPO = "resolve_repo"
    PREPARE_MIRROR = "prepare_mirror"
    WALK_TREE = "walk_tree"
    QUEUE_ALL = "queue_all"
    """Clone only: every indexed path is queued"""
    LOAD_LEDGER = "load_ledger"
    """Pull only"""
    DIFF = "diff"
    """Pull only"""
    DOWNLOAD = "download"
    PERSIST_LEDGER = "persist_ledger"
    DONE = "done"
    ABORTED = "aborted"


_TERMINAL_STATES = (SyncState.DONE, SyncState.ABORTED)


@dataclass
class SyncSession:
    """Context threaded through all steps of one clone or pull.

    Everything here is recomputed on each run; only the ledger in the
    mirror's metadata directory persists between sessions.
    """

    mirror: MirrorDirectory
    repository: Optional[RepositoryRef] = None
    index: ContentIndex = field(default_factory=ContentIndex)
    queue: DownloadQueue = field(default_factory=DownloadQueue)
    state: SyncState = SyncState.INIT
    dry_run: bool = False

    def transition(self, state: SyncState) -> None:
        """Move to the next state.

        Raises:
            RuntimeError: If the session already finished
        """
        if self.state in _TERMINAL_STATES:
            raise RuntimeError(
                f"Session for {self.mirror.root} already {self.state.value}"
            )
        logger.debug(f"{self.mirror.root}: {self.state.value} -> {state.value}")
        self.state = state

    @property
    def repo_name(self) -> str:
        return self.repository.name if self.repository else ""


@dataclass
class SyncResult:
    """Outcome of one clone or pull."""

    repo_name: str
    mirror_root: Path
    state: SyncState
    version: Optional[str] = None
    queued: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    """Relative path -> error message"""
    aborted_reason: Optional[str] = None
    dry_run: bool = False

    @property
    def aborted(self) -> bool:
        return self.state == SyncState.ABORTED

    @property
    def is_successful(self) -> bool:
        return not self.aborted and not self.failed

    @classmethod
    def from_session(cls, session: SyncSession) -> "SyncResult":
        return cls(
            repo_name=session.repo_name,
            mirror_root=session.mirror.root,
            state=session.state,
            version=session.repository.version if session.repository else None,
            queued=session.queue.paths,
            dry_run=session.dry_run,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable summary."""
        return {
            "repository": self.repo_name,
            "version": self.version,
            "mirror": str(self.mirror_root),
            "state": self.state.value,
            "dry_run": self.dry_run,
            "queued": self.queued,
            "downloaded": self.downloaded,
            "failed": self.failed,
            "aborted_reason": self.aborted_reason,
        }
