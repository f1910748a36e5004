"""Shared fixtures: an in-memory GitHub serving one repository."""

import hashlib
import threading
from typing import Optional
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from pyziphyr.api import GitHubClient
from pyziphyr.exceptions import (
    ZiphyrDownloadError,
    ZiphyrNetworkError,
    ZiphyrNotFoundError,
)


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(content) + content).hexdigest()


class FakeGitHubClient(GitHubClient):
    """GitHubClient answering from in-memory file trees instead of HTTP.

    Files are kept per version as ``{path: bytes}``. Subtree ids encode the
    version and the directory path so that every level is listed lazily,
    the way the git trees endpoint behaves.
    """

    def __init__(
        self,
        repo_name: str = "octocat/Hello-World",
        files: Optional[dict[str, bytes]] = None,
        default_branch: str = "main",
        private: bool = False,
    ):
        super().__init__(
            token="test-token",
            api_url="https://api.test",
            raw_url="https://raw.test",
            max_retries=0,
            retry_delay=0,
            timeout=5,
        )
        self.repo_name = repo_name
        self.default_branch = default_branch
        self.private = private
        self.versions: dict[str, dict[str, bytes]] = {default_branch: dict(files or {})}
        self.failing_paths: set[str] = set()
        self.failing_trees: set[str] = set()
        self.tree_calls: list[str] = []
        self.downloads: list[tuple[str, bool]] = []
        self.issued_tokens: list[str] = []
        self._lock = threading.Lock()

    def set_file(
        self, path: str, content: bytes, version: Optional[str] = None
    ) -> None:
        self.versions.setdefault(version or self.default_branch, {})[path] = content

    def remove_file(self, path: str, version: Optional[str] = None) -> None:
        del self.versions[version or self.default_branch][path]

    def get_repository(self, repo_name):
        if repo_name != self.repo_name:
            raise ZiphyrNotFoundError(f"Resource not found: /repos/{repo_name}")
        data = {
            "full_name": self.repo_name,
            "default_branch": self.default_branch,
            "private": self.private,
        }
        if self.private:
            with self._lock:
                token = f"clone-token-{len(self.issued_tokens) + 1}"
                self.issued_tokens.append(token)
            data["temp_clone_token"] = token
        return data

    def get_tree(self, repo_name, tree_id):
        with self._lock:
            self.tree_calls.append(tree_id)
        if tree_id.startswith("tree:"):
            _, version, prefix = tree_id.split(":", 2)
        else:
            version, prefix = tree_id, ""
        if prefix in self.failing_trees:
            raise ZiphyrNetworkError(f"Network error: listing {prefix or '/'} failed")
        if version not in self.versions:
            raise ZiphyrNotFoundError(f"Resource not found: tree {tree_id}")

        children = {}
        for path, content in self.versions[version].items():
            if prefix:
                if not path.startswith(prefix + "/"):
                    continue
                rest = path[len(prefix) + 1 :]
            else:
                rest = path
            head, sep, _ = rest.partition("/")
            if sep:
                subtree = f"{prefix}/{head}" if prefix else head
                children[head] = {
                    "path": head,
                    "type": "tree",
                    "sha": f"tree:{version}:{subtree}",
                }
            else:
                children[head] = {
                    "path": head,
                    "type": "blob",
                    "sha": blob_sha(content),
                    "size": len(content),
                }
        return {
            "sha": tree_id,
            "tree": [children[name] for name in sorted(children)],
            "truncated": False,
        }

    def download_raw(self, url, authenticated=False):
        with self._lock:
            self.downloads.append((url, authenticated))
        parts = urlsplit(url)
        _, _, version, path = unquote(parts.path).lstrip("/").split("/", 3)
        if self.private:
            token = parse_qs(parts.query).get("token", [None])[0]
            if token not in self.issued_tokens:
                raise ZiphyrDownloadError("Download failed with status 404")
        if path in self.failing_paths:
            raise ZiphyrDownloadError("Download failed with status 500")
        return self.versions[version][path]

    @property
    def downloaded_paths(self) -> list[str]:
        return sorted(
            unquote(urlsplit(url).path).lstrip("/").split("/", 3)[3]
            for url, _ in self.downloads
        )


@pytest.fixture
def fake_client():
    """Public repository with a nested source directory."""
    return FakeGitHubClient(
        files={
            "README.md": b"# Hello\n",
            "src/main.go": b"package main\n",
        }
    )


@pytest.fixture
def private_client():
    """Private repository; every metadata request issues a new clone token."""
    return FakeGitHubClient(
        repo_name="me/secret",
        files={"a.txt": b"a", "b/c.txt": b"c"},
        private=True,
    )
