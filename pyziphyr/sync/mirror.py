"""Local mirror directory layout."""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from ..utils import METADATA_DIR_NAME

logger = logging.getLogger(__name__)


@dataclass
class MirrorDirectory:
    """Local root of a mirrored repository plus its metadata subdirectory.

    Only one sync session may use a mirror at a time; no locking is done.
    """

    root: Path
    """Absolute path of the mirror root"""

    def __post_init__(self) -> None:
        if isinstance(self.root, str):
            self.root = Path(self.root)
        self.root = self.root.expanduser().resolve()

    @classmethod
    def for_repository(
        cls, repo_name: str, directory: Optional[Union[str, Path]] = None
    ) -> "MirrorDirectory":
        """Choose the mirror root for a repository.

        Args:
            repo_name: Repository identifier (owner/name)
            directory: Explicit target directory; defaults to
                       ``<cwd>/<name>``

        Returns:
            MirrorDirectory instance
        """
        if directory is not None:
            return cls(Path(directory))
        return cls(Path.cwd() / repo_name.split("/", 1)[-1])

    @property
    def meta_dir(self) -> Path:
        """Hidden directory holding the ledger and repository info."""
        return self.root / METADATA_DIR_NAME

    def prepare(self) -> None:
        """Create the mirror root and metadata directory (idempotent)."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.meta_dir.mkdir(exist_ok=True)
        logger.debug("Prepared mirror directory %s", self.root)

    def path_for(self, relative_path: str) -> Path:
        """Resolve a relative remote path inside the mirror.

        Raises:
            ValueError: If the path is absolute, escapes the root, or points
                into the metadata directory
        """
        pure = PurePosixPath(relative_path)
        if pure.is_absolute() or ".." in pure.parts or not pure.parts:
            raise ValueError(f"Unsafe path in remote tree: {relative_path!r}")
        if pure.parts[0] == METADATA_DIR_NAME:
            raise ValueError(
                f"Remote path collides with metadata directory: {relative_path!r}"
            )
        return self.root.joinpath(*pure.parts)
