"""Persisted fingerprints from the last successful sync.

The ledger lives in the mirror's metadata directory as three text files:

- ``hashes``: ``<remote fingerprint> <path>`` per line
- ``local_hashes``: ``<local fingerprint> <path>`` per line
- ``repository_info``: owner/name on line 1, resolved version on line 2

Fingerprints never contain whitespace, so each line is split on its first
space only and paths with spaces survive a round trip.
"""

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..models import ContentIndex, RepositoryRef
from .fingerprint import local_fingerprint
from .mirror import MirrorDirectory

logger = logging.getLogger(__name__)

HASHES_FILE = "hashes"
LOCAL_HASHES_FILE = "local_hashes"
REPOSITORY_INFO_FILE = "repository_info"


@dataclass
class SyncLedger:
    """Fingerprint tables as of the last successful sync.

    Both tables are keyed by relative path.
    """

    global_hashes: dict[str, str] = field(default_factory=dict)
    """Remote fingerprint per path (snapshot of the content index)"""

    local_hashes: dict[str, str] = field(default_factory=dict)
    """On-disk fingerprint per path at the end of the sync"""


def _read_table(table_file: Path) -> dict[str, str]:
    """Read a ``<fingerprint> <path>`` table into a path-keyed dict."""
    table: dict[str, str] = {}
    with open(table_file, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.rstrip("\r\n")
            if not line:
                continue
            fingerprint, sep, path = line.partition(" ")
            if not sep or not fingerprint or not path:
                logger.warning(
                    f"Skipping malformed line {line_number} in {table_file}"
                )
                continue
            table[path] = fingerprint
    return table


def _write_table(table_file: Path, table: dict[str, str]) -> None:
    with open(table_file, "w", encoding="utf-8") as f:
        for path in sorted(table):
            f.write(f"{table[path]} {path}\n")


class LedgerManager:
    """Loads and stores the ledger of one mirror directory."""

    def __init__(self, mirror: MirrorDirectory):
        """Initialize ledger manager.

        Args:
            mirror: Mirror directory whose metadata directory holds the ledger
        """
        self.mirror = mirror

    @property
    def hashes_file(self) -> Path:
        return self.mirror.meta_dir / HASHES_FILE

    @property
    def local_hashes_file(self) -> Path:
        return self.mirror.meta_dir / LOCAL_HASHES_FILE

    @property
    def repository_info_file(self) -> Path:
        return self.mirror.meta_dir / REPOSITORY_INFO_FILE

    def load(self) -> Optional[SyncLedger]:
        """Load both fingerprint tables.

        Returns:
            SyncLedger if both tables exist, None otherwise
        """
        if not self.hashes_file.exists() or not self.local_hashes_file.exists():
            logger.debug(f"No ledger found in {self.mirror.meta_dir}")
            return None

        ledger = SyncLedger(
            global_hashes=_read_table(self.hashes_file),
            local_hashes=_read_table(self.local_hashes_file),
        )
        logger.debug(
            f"Loaded ledger with {len(ledger.global_hashes)} remote and "
            f"{len(ledger.local_hashes)} local fingerprint(s)"
        )
        return ledger

    def store(
        self,
        index: ContentIndex,
        repository: RepositoryRef,
        exclude: Collection[str] = (),
    ) -> SyncLedger:
        """Persist the fingerprints of a completed sync.

        Every path of the index gets its remote fingerprint and its current
        on-disk fingerprint recorded. Files that are not on disk are left
        out of the local table; a pull queues remote files that have no
        local fingerprint.

        Args:
            index: Freshly walked content index
            repository: Repository identity, written only if no record exists
            exclude: Paths to leave out of both tables (failed downloads)

        Returns:
            The ledger that was written
        """
        ledger = SyncLedger()

        for fingerprint, path in index.items():
            if path in exclude:
                logger.debug(f"Not recording {path} (download failed)")
                continue
            ledger.global_hashes[path] = fingerprint
            try:
                ledger.local_hashes[path] = local_fingerprint(self.mirror.root, path)
            except FileNotFoundError:
                logger.warning(f"File missing after sync, not recorded: {path}")

        self.mirror.meta_dir.mkdir(parents=True, exist_ok=True)
        _write_table(self.hashes_file, ledger.global_hashes)
        _write_table(self.local_hashes_file, ledger.local_hashes)
        self.store_repository(repository)

        logger.debug(
            f"Stored ledger with {len(ledger.global_hashes)} file(s) "
            f"in {self.mirror.meta_dir}"
        )
        return ledger

    def load_repository(self) -> Optional[RepositoryRef]:
        """Load the pinned repository identity.

        Returns:
            RepositoryRef with name and version, or None if no valid record
            exists
        """
        if not self.repository_info_file.exists():
            return None

        with open(self.repository_info_file, encoding="utf-8") as f:
            lines = [line.strip() for line in f.read().splitlines()]

        if len(lines) < 2 or not lines[0] or not lines[1]:
            logger.warning(
                f"Ignoring incomplete repository info in {self.repository_info_file}"
            )
            return None
        return RepositoryRef(name=lines[0], version=lines[1])

    def store_repository(self, repository: RepositoryRef) -> bool:
        """Write the repository identity unless a record already exists.

        Keeping the first record pins the version for later pulls.

        Returns:
            True if the record was written, False if it already existed
        """
        if self.repository_info_file.exists():
            return False
        self.mirror.meta_dir.mkdir(parents=True, exist_ok=True)
        with open(self.repository_info_file, "w", encoding="utf-8") as f:
            f.write(f"{repository.name}\n{repository.version}\n")
        return True
