"""Data models for GitHub API responses and the content index."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .exceptions import ZiphyrInvalidResponseError

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kind of an entry in a remote tree listing."""

    FILE = "file"
    """Blob; kept in the content index"""

    DIRECTORY = "directory"
    """Subtree; expanded recursively, never kept in the index"""

    SUBMODULE = "submodule"
    """Commit pointer into another repository; not mirrored"""

    @classmethod
    def from_api_type(cls, api_type: str) -> "EntryKind":
        """Map the API's type names (trees and contents endpoints) to a kind."""
        if api_type in ("blob", "file", "symlink"):
            return cls.FILE
        if api_type in ("tree", "dir"):
            return cls.DIRECTORY
        if api_type in ("commit", "submodule"):
            return cls.SUBMODULE
        raise ZiphyrInvalidResponseError(f"Unknown tree entry type: {api_type!r}")


@dataclass(frozen=True)
class RepositoryRef:
    """Repository identity for one sync session."""

    name: str
    """owner/name identifier"""

    version: str
    """Resolved branch name, tag, or commit id"""

    private: bool = False

    default_branch: Optional[str] = None

    @classmethod
    def from_api_response(
        cls, data: Any, version: Optional[str] = None
    ) -> "RepositoryRef":
        """Create a RepositoryRef from the repository-metadata endpoint.

        Args:
            data: Decoded JSON of ``GET /repos/{owner}/{name}``
            version: Explicit version; the default branch is used if None

        Returns:
            RepositoryRef instance

        Raises:
            ZiphyrInvalidResponseError: If required fields are missing
        """
        if not isinstance(data, dict):
            raise ZiphyrInvalidResponseError(
                "Repository metadata is not a JSON object"
            )
        full_name = data.get("full_name")
        default_branch = data.get("default_branch")
        if not full_name or not default_branch:
            raise ZiphyrInvalidResponseError(
                "Repository metadata lacks 'full_name' or 'default_branch'"
            )
        return cls(
            name=full_name,
            version=version or default_branch,
            private=bool(data.get("private", False)),
            default_branch=default_branch,
        )


@dataclass
class TreeEntry:
    """One entry of a remote tree listing."""

    name: str
    """Entry name within its parent tree"""

    sha: str
    """Content hash (blobs) or subtree id (trees)"""

    kind: EntryKind

    @classmethod
    def from_dict(cls, data: Any) -> "TreeEntry":
        """Create a TreeEntry from one item of a tree listing.

        The git trees endpoint reports the entry name in ``path``; the
        contents endpoint reports it in ``name`` and the full path in
        ``path``. Both shapes are accepted.

        Raises:
            ZiphyrInvalidResponseError: If a field is missing or the name is
                empty, ``.``, ``..`` or contains a slash
        """
        if not isinstance(data, dict):
            raise ZiphyrInvalidResponseError("Tree entry is not a JSON object")
        try:
            api_type = data["type"]
            sha = data["sha"]
        except KeyError as e:
            raise ZiphyrInvalidResponseError(
                f"Tree entry missing field {e.args[0]!r}"
            ) from e
        name = data.get("name") or data.get("path", "")
        if not name:
            raise ZiphyrInvalidResponseError("Tree entry has no name")
        if "/" in name or name in (".", ".."):
            raise ZiphyrInvalidResponseError(f"Invalid tree entry name: {name!r}")
        return cls(
            name=name,
            sha=sha,
            kind=EntryKind.from_api_type(api_type),
        )


@dataclass
class TreeListing:
    """Decoded response for one tree id."""

    entries: list[TreeEntry]

    truncated: bool = False

    @classmethod
    def from_api_response(cls, data: Any) -> "TreeListing":
        """Parse a tree listing.

        Accepts the git trees shape (``{"tree": [...], "truncated": bool}``)
        and the contents shape (a bare list).
        """
        if isinstance(data, list):
            items = data
            truncated = False
        elif isinstance(data, dict) and isinstance(data.get("tree"), list):
            items = data["tree"]
            truncated = bool(data.get("truncated", False))
        else:
            raise ZiphyrInvalidResponseError("Unexpected tree listing shape")
        return cls(
            entries=[TreeEntry.from_dict(item) for item in items],
            truncated=truncated,
        )


@dataclass
class ContentIndex:
    """Remote fingerprints of every file reachable from a version.

    Paths are relative to the mirror root, use forward slashes and are
    stored unescaped. Entries are held per path so that two files with
    identical content both survive.
    """

    entries: dict[str, str] = field(default_factory=dict)
    """Mapping of relative path to remote fingerprint"""

    def add(self, fingerprint: str, path: str) -> None:
        self.entries[path] = fingerprint

    def items(self) -> Iterator[tuple[str, str]]:
        """Iterate (fingerprint, path) pairs in path order."""
        for path in sorted(self.entries):
            yield self.entries[path], path

    def paths(self) -> list[str]:
        return sorted(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())
