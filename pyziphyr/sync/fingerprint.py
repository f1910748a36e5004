"""Content fingerprints for local and remote files.

Remote fingerprints are the content hashes reported by the API and are
trusted verbatim. Local fingerprints are not content hashes: they are
derived from the modification time and the relative path, so any touch of
a file changes its fingerprint while an untouched file keeps it across runs.
"""

import hashlib
from pathlib import Path

from ..models import TreeEntry


def local_fingerprint(mirror_root: Path, relative_path: str) -> str:
    """Compute the local fingerprint of a mirrored file.

    Args:
        mirror_root: Root of the mirror directory
        relative_path: Path relative to the root (forward slashes)

    Returns:
        Hex digest of ``"<mtime_ns>:<relative_path>"``

    Raises:
        FileNotFoundError: If the file does not exist. Callers treat this
            as "locally absent", not as a sync failure.

    Examples:
        >>> fp = local_fingerprint(Path("/mirror"), "README.md")
        >>> len(fp)
        40
    """
    mtime_ns = (mirror_root / relative_path).stat().st_mtime_ns
    return hashlib.sha1(f"{mtime_ns}:{relative_path}".encode("utf-8")).hexdigest()


def remote_fingerprint(entry: TreeEntry) -> str:
    """Return the API-supplied content hash of a blob."""
    return entry.sha
