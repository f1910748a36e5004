"""Decide which files a pull must download."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..models import ContentIndex
from .fingerprint import local_fingerprint
from .ledger import SyncLedger

logger = logging.getLogger(__name__)


class DownloadReason(str, Enum):
    """Why a path was queued for download."""

    CLONE = "clone"
    """Full download of a fresh mirror"""

    NEW = "new"
    """File did not exist at the last sync"""

    UPDATED = "updated"
    """Remote content changed since the last sync"""

    LOCAL_DRIFT = "local_drift"
    """Local copy was modified since the last sync"""

    LOCAL_MISSING = "local_missing"
    """Local copy was deleted since the last sync"""


@dataclass
class DownloadDecision:
    """A queued path with the reason it was queued."""

    path: str
    """Relative path of the file"""

    reason: DownloadReason

    description: str
    """Human-readable reason for this decision"""


class DownloadQueue:
    """Deduplicated, insertion-ordered set of paths to download."""

    def __init__(self) -> None:
        self._decisions: dict[str, DownloadDecision] = {}

    @classmethod
    def from_index(cls, index: ContentIndex) -> "DownloadQueue":
        """Queue every path of an index (clone)."""
        queue = cls()
        for path in index.paths():
            queue.add(path, DownloadReason.CLONE, "Initial clone")
        return queue

    def add(self, path: str, reason: DownloadReason, description: str) -> bool:
        """Queue a path.

        Returns:
            True if the path was added, False if it was already queued
        """
        if path in self._decisions:
            return False
        self._decisions[path] = DownloadDecision(path, reason, description)
        return True

    def get(self, path: str) -> Optional[DownloadDecision]:
        return self._decisions.get(path)

    @property
    def paths(self) -> list[str]:
        return list(self._decisions)

    def decisions(self) -> list[DownloadDecision]:
        return list(self._decisions.values())

    def count_by_reason(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for decision in self._decisions.values():
            counts[decision.reason.value] = counts.get(decision.reason.value, 0) + 1
        return counts

    def __contains__(self, path: object) -> bool:
        return path in self._decisions

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._decisions)


class Differ:
    """Compares a fresh content index with the ledger and the disk."""

    def compute_download_set(
        self,
        fresh_index: ContentIndex,
        ledger: SyncLedger,
        mirror_root: Path,
    ) -> DownloadQueue:
        """Compute the minimal set of paths to download.

        Runs two passes: remote changes first, then local drift. A path
        flagged by both passes is queued once. Remote files without a
        recorded local fingerprint are treated as drifted.

        Args:
            fresh_index: Content index walked in this session
            ledger: Fingerprints from the last successful sync
            mirror_root: Root of the mirror directory

        Returns:
            DownloadQueue
        """
        queue = DownloadQueue()
        self._check_upstream(fresh_index, ledger, queue)
        self._check_local_drift(fresh_index, ledger, mirror_root, queue)
        self._check_untracked(fresh_index, ledger, mirror_root, queue)
        logger.debug(
            f"Download set: {len(queue)} of {len(fresh_index)} file(s) "
            f"{queue.count_by_reason()}"
        )
        return queue

    def _check_upstream(
        self, fresh_index: ContentIndex, ledger: SyncLedger, queue: DownloadQueue
    ) -> None:
        """Queue files that are new or whose remote content changed."""
        logger.debug("Checking remote fingerprints...")
        for fingerprint, path in fresh_index.items():
            stored = ledger.global_hashes.get(path)
            if stored == fingerprint:
                continue
            if stored is None:
                logger.debug(f"New file update: {path}")
                queue.add(path, DownloadReason.NEW, "New remote file")
            else:
                logger.debug(f"Remote file changed: {path}")
                queue.add(path, DownloadReason.UPDATED, "Remote content changed")

    def _check_local_drift(
        self,
        fresh_index: ContentIndex,
        ledger: SyncLedger,
        mirror_root: Path,
        queue: DownloadQueue,
    ) -> None:
        """Queue files whose local copy was edited or deleted.

        Paths no longer present upstream are not queued: there is nothing
        left to download for them.
        """
        logger.debug("Checking local fingerprints...")
        for path, stored in ledger.local_hashes.items():
            if path in queue:
                continue
            if path not in fresh_index:
                logger.debug(f"Removed upstream, not restoring: {path}")
                continue

            try:
                current = local_fingerprint(mirror_root, path)
            except FileNotFoundError:
                logger.debug(f"File missing locally: {path}")
                queue.add(path, DownloadReason.LOCAL_MISSING, "Deleted locally")
                continue

            if current != stored:
                logger.debug(f"File out of date: {path}")
                queue.add(path, DownloadReason.LOCAL_DRIFT, "Modified locally")

    def _check_untracked(
        self,
        fresh_index: ContentIndex,
        ledger: SyncLedger,
        mirror_root: Path,
        queue: DownloadQueue,
    ) -> None:
        """Queue files the local table has no fingerprint for.

        This happens when a file was missing while the ledger was written or
        its line was unreadable; its local state is unknown.
        """
        for path in fresh_index:
            if path in queue or path in ledger.local_hashes:
                continue
            if (mirror_root / path).is_file():
                logger.debug(f"No local fingerprint recorded: {path}")
                queue.add(path, DownloadReason.LOCAL_DRIFT, "Untracked local copy")
            else:
                logger.debug(f"File missing locally: {path}")
                queue.add(path, DownloadReason.LOCAL_MISSING, "Deleted locally")
