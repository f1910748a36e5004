"""Utility functions for pyziphyr."""

from typing import Optional
from urllib.parse import quote, urlencode

# =============================================================================
# Constants
# =============================================================================

DEFAULT_API_URL: str = "https://api.github.com"
DEFAULT_RAW_URL: str = "https://raw.githubusercontent.com"

# Upper bound for a single remote call (seconds)
DEFAULT_TIMEOUT: float = 20.0

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Sequential by default, like a plain script run
DEFAULT_MAX_WORKERS: int = 1

# Guard against pathological trees
DEFAULT_MAX_DEPTH: int = 256

# Hidden metadata subdirectory inside a mirror
METADATA_DIR_NAME: str = ".ziphyr"

# Chunk size for streamed downloads
DOWNLOAD_CHUNK_SIZE: int = 8192


# =============================================================================
# Repository name utilities
# =============================================================================


def split_repository_name(repo_name: str) -> tuple[str, str]:
    """Split an ``owner/name`` identifier into its two parts.

    Args:
        repo_name: Repository identifier such as "octocat/Hello-World"

    Returns:
        Tuple of (owner, name)

    Raises:
        ValueError: If the identifier is not exactly two non-empty parts

    Examples:
        >>> split_repository_name("octocat/Hello-World")
        ('octocat', 'Hello-World')
    """
    parts = repo_name.strip().strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(
            f"Invalid repository name '{repo_name}', expected OWNER/NAME"
        )
    return parts[0], parts[1]


def is_repository_name(value: str) -> bool:
    """Check if a value looks like an ``owner/name`` identifier."""
    try:
        split_repository_name(value)
    except ValueError:
        return False
    return True


# =============================================================================
# URL utilities
# =============================================================================


def quote_path(path: str) -> str:
    """Percent-escape a relative path for use in a URL.

    Separators are kept; every other reserved character (spaces, ``#``,
    ``?``, ``%``...) is escaped. Stored paths are never escaped, only the
    URL built from them.

    Examples:
        >>> quote_path("docs/my file.txt")
        'docs/my%20file.txt'
        >>> quote_path("a#b/c?.md")
        'a%23b/c%3F.md'
    """
    return quote(path, safe="/")


def build_raw_url(
    raw_base_url: str,
    repo_name: str,
    version: str,
    path: str,
    token: Optional[str] = None,
) -> str:
    """Build the raw-content URL for a file at a given version.

    Args:
        raw_base_url: Base URL of the raw-content host
        repo_name: Repository identifier (owner/name)
        version: Branch, tag or commit id
        path: Relative path of the file (unescaped)
        token: Optional short-lived clone token for private repositories

    Returns:
        Fully escaped URL

    Examples:
        >>> build_raw_url("https://raw.example.com", "me/repo", "main", "a b.txt")
        'https://raw.example.com/me/repo/main/a%20b.txt'
    """
    url = (
        f"{raw_base_url.rstrip('/')}/{repo_name}/"
        f"{quote_path(version)}/{quote_path(path)}"
    )
    if token:
        url = f"{url}?{urlencode({'token': token})}"
    return url


def join_tree_path(prefix: str, name: str) -> str:
    """Join a path prefix and an entry name with a forward slash."""
    return f"{prefix}/{name}" if prefix else name


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
