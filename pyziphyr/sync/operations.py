"""Download step of a sync session."""

import logging
import shutil

from ..api import GitHubClient
from ..models import RepositoryRef
from .mirror import MirrorDirectory

logger = logging.getLogger(__name__)


class SyncOperations:
    """Fetches single files from the raw-content host into a mirror."""

    def __init__(self, client: GitHubClient):
        """Initialize sync operations.

        Args:
            client: GitHub API client
        """
        self.client = client

    def build_download_url(self, repository: RepositoryRef, path: str) -> str:
        """Build the raw-content URL of one file.

        For private repositories a fresh clone token is requested for every
        call and appended as a query credential.
        """
        token = None
        if repository.private:
            token = self.client.get_clone_token(repository.name)
        return self.client.build_raw_url(
            repository.name, repository.version, path, token=token
        )

    def download_file(
        self,
        repository: RepositoryRef,
        mirror: MirrorDirectory,
        path: str,
    ) -> int:
        """Download a remote file into the mirror, overwriting any local copy.

        The parent directory must already exist; it was created while
        walking the tree. A local directory standing where the remote file
        belongs is removed once the content has been fetched.

        Args:
            repository: Repository being synced
            mirror: Target mirror directory
            path: Relative path of the file (unescaped)

        Returns:
            Number of bytes written

        Raises:
            ZiphyrAPIError: If the download fails
            ValueError: If the path is unsafe for the mirror
            OSError: If the file cannot be written
        """
        local_path = mirror.path_for(path)
        url = self.build_download_url(repository, path)
        logger.debug(f"Downloading: {path}")

        content = self.client.download_raw(url, authenticated=repository.private)
        if local_path.is_dir() and not local_path.is_symlink():
            logger.warning(f"Replacing local directory with remote file: {path}")
            shutil.rmtree(local_path)
        local_path.write_bytes(content)
        return len(content)
