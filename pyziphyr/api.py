"""API client for GitHub repository content."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import httpx

from .config import config
from .exceptions import (
    ZiphyrAPIError,
    ZiphyrAuthenticationError,
    ZiphyrDownloadError,
    ZiphyrInvalidResponseError,
    ZiphyrNetworkError,
    ZiphyrNotFoundError,
    ZiphyrPermissionError,
    ZiphyrRateLimitError,
)
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DOWNLOAD_CHUNK_SIZE,
    build_raw_url,
    quote_path,
    split_repository_name,
)

logger = logging.getLogger(__name__)


class GitHubClient:
    """Client for the GitHub REST API and raw-content host.

    Only read operations are implemented. A token is optional; without
    one only public repositories are reachable.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        raw_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float | None = None,
    ):
        """Initialize GitHub API client.

        Args:
            token: Optional bearer token (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            raw_url: Optional raw-content URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (uses config if not provided)
        """
        self.token = token or config.token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.raw_url = (raw_url or config.raw_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout if timeout is not None else config.timeout

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        """Authorization header, sent only when a token is configured."""
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        if isinstance(exception, (ZiphyrNetworkError, ZiphyrRateLimitError)):
            return True

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Map an HTTP error to a pyziphyr exception.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        response = e.response
        status_code = response.status_code

        if status_code == 401:
            raise ZiphyrAuthenticationError(
                "Bad credentials - check your token"
            ) from e
        elif status_code == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                error = ZiphyrRateLimitError(
                    "API rate limit exceeded - set a token or try again later"
                )
                return (error, attempt < self.max_retries)
            raise ZiphyrPermissionError(
                "Access forbidden - check your token permissions"
            ) from e
        elif status_code == 404:
            raise ZiphyrNotFoundError(
                f"Resource not found: {response.request.url}"
            ) from e
        elif status_code == 429:
            error = ZiphyrRateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)
        else:
            error_msg = f"API request failed with status {status_code}"
            try:
                if response.content:
                    error_data = response.json()
                    if isinstance(error_data, dict) and error_data.get("message"):
                        error_msg = f"{error_msg}: {error_data['message']}"
            except ValueError:
                pass

            error = ZiphyrAPIError(error_msg)
            should_retry = 500 <= status_code < 600 and attempt < self.max_retries
            return (error, should_retry)

    def _retry_delay_for(
        self, error: Exception, response: httpx.Response, attempt: int
    ) -> float:
        """Delay before retrying, honouring Retry-After on rate limits."""
        if isinstance(error, ZiphyrRateLimitError):
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                return float(retry_after)
        return self._calculate_retry_delay(attempt)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            ZiphyrAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug("%s %s (attempt %d)", method, url, attempt + 1)
                response = client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()

                if not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError as e:
                    raise ZiphyrInvalidResponseError(
                        f"Invalid JSON response from {url}"
                    ) from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error
                if should_retry:
                    delay = self._retry_delay_for(error, e.response, attempt)
                    logger.debug("Retrying %s in %.1fs: %s", url, delay, error)
                    time.sleep(delay)
                    continue
                raise error from e
            except ZiphyrAPIError:
                raise
            except httpx.RequestError as e:
                error = ZiphyrNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug("Retrying %s in %.1fs: %s", url, delay, error)
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise ZiphyrAPIError("Request failed after all retry attempts")

    # =========================
    # Repository Operations
    # =========================

    def get_repository(self, repo_name: str) -> dict[str, Any]:
        """Get repository metadata.

        Args:
            repo_name: Repository identifier (owner/name)

        Returns:
            Metadata containing at least ``full_name``, ``default_branch``
            and ``private``

        Raises:
            ZiphyrNotFoundError: If the repository does not exist or is not
                visible with the current token
        """
        owner, name = split_repository_name(repo_name)
        result = self._request("GET", f"/repos/{owner}/{name}")
        if not isinstance(result, dict):
            raise ZiphyrInvalidResponseError(
                "Repository metadata is not a JSON object"
            )
        return result

    def get_tree(self, repo_name: str, tree_id: str) -> Any:
        """Get one level of a tree.

        Args:
            repo_name: Repository identifier (owner/name)
            tree_id: Tree sha, or a branch/tag/commit for the root tree

        Returns:
            Decoded JSON with a ``tree`` list of entries
            ``{path, type, sha, size}``
        """
        owner, name = split_repository_name(repo_name)
        return self._request(
            "GET", f"/repos/{owner}/{name}/git/trees/{quote_path(tree_id)}"
        )

    def get_clone_token(self, repo_name: str) -> str | None:
        """Get a short-lived clone token for raw downloads of a private repo.

        The token is only reported for authenticated requests with access
        to the repository. It is not cached.

        Args:
            repo_name: Repository identifier (owner/name)

        Returns:
            Token string, or None if the API did not provide one
        """
        token = self.get_repository(repo_name).get("temp_clone_token")
        if not token:
            logger.debug("No temp_clone_token returned for %s", repo_name)
            return None
        return str(token)

    # =========================
    # Download Operations
    # =========================

    def build_raw_url(
        self, repo_name: str, version: str, path: str, token: str | None = None
    ) -> str:
        """Build the raw-content URL of a file (see ``utils.build_raw_url``)."""
        return build_raw_url(self.raw_url, repo_name, version, path, token)

    def download_raw(self, url: str, authenticated: bool = False) -> bytes:
        """Download raw file content.

        Args:
            url: Raw-content URL (already escaped)
            authenticated: Send the bearer token (private repositories only)

        Returns:
            File content as bytes

        Raises:
            ZiphyrDownloadError: If the server answers with an error status
            ZiphyrNetworkError: On connection failures and timeouts
        """
        client = self._get_client()
        headers = self._auth_headers() if authenticated else {}

        try:
            with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()

                chunks = [
                    chunk
                    for chunk in response.iter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE)
                    if chunk
                ]
                return b"".join(chunks)

        except httpx.HTTPStatusError as e:
            raise ZiphyrDownloadError(
                f"Download failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ZiphyrNetworkError(f"Network error during download: {e}") from e
