"""pyziphyr - mirror GitHub repositories into local directories over the REST API."""

from .api import GitHubClient
from .exceptions import (
    LedgerMissingError,
    RemoteTraversalError,
    ZiphyrAPIError,
    ZiphyrAuthenticationError,
    ZiphyrConfigError,
    ZiphyrDownloadError,
    ZiphyrError,
    ZiphyrInvalidResponseError,
    ZiphyrNetworkError,
    ZiphyrNotFoundError,
    ZiphyrPermissionError,
    ZiphyrRateLimitError,
)

__version__ = "0.1.0"

__all__ = [
    "GitHubClient",
    "LedgerMissingError",
    "RemoteTraversalError",
    "ZiphyrAPIError",
    "ZiphyrAuthenticationError",
    "ZiphyrConfigError",
    "ZiphyrDownloadError",
    "ZiphyrError",
    "ZiphyrInvalidResponseError",
    "ZiphyrNetworkError",
    "ZiphyrNotFoundError",
    "ZiphyrPermissionError",
    "ZiphyrRateLimitError",
    "__version__",
]
