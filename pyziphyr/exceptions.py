"""Exception types raised by pyziphyr."""

from typing import Optional


class ZiphyrError(Exception):
    """Base exception for all pyziphyr errors."""


class ZiphyrConfigError(ZiphyrError):
    """Raised when the configuration is invalid."""


class ZiphyrAPIError(ZiphyrError):
    """Raised when a request to the GitHub API fails."""


class ZiphyrAuthenticationError(ZiphyrAPIError):
    """Raised when the token is rejected (HTTP 401)."""


class ZiphyrPermissionError(ZiphyrAPIError):
    """Raised when access to a resource is forbidden (HTTP 403)."""


class ZiphyrNotFoundError(ZiphyrAPIError):
    """Raised when a repository, tree or file does not exist (HTTP 404).

    GitHub also answers 404 for private repositories the token cannot see.
    """


class ZiphyrRateLimitError(ZiphyrAPIError):
    """Raised when the API rate limit is exhausted."""


class ZiphyrNetworkError(ZiphyrAPIError):
    """Raised on connection failures and timeouts."""


class ZiphyrInvalidResponseError(ZiphyrAPIError):
    """Raised when the API returns a payload that cannot be decoded."""


class ZiphyrDownloadError(ZiphyrAPIError):
    """Raised when a raw file download fails."""


class RemoteTraversalError(ZiphyrError):
    """Raised when walking the remote tree fails.

    The walk is all-or-nothing: no partial index is returned.

    Attributes:
        path: Relative path of the directory being listed ("" for the root)
        original_error: The underlying transport or decode error
    """

    def __init__(self, path: str, original_error: Optional[Exception] = None):
        self.path = path
        self.original_error = original_error
        location = path or "/"
        message = f"Failed to traverse remote tree at '{location}'"
        if original_error is not None:
            message = f"{message}: {original_error}"
        super().__init__(message)


class LedgerMissingError(ZiphyrError):
    """Raised when a pull is requested on a directory that was never cloned."""

    def __init__(self, mirror_root: str):
        self.mirror_root = mirror_root
        super().__init__(
            f"No sync metadata found in {mirror_root}. "
            "Clone the repository first with 'ziphyr clone OWNER/NAME'."
        )
