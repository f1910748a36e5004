"""Tests for sync session state."""

import pytest

from pyziphyr.models import RepositoryRef
from pyziphyr.sync.differ import DownloadReason
from pyziphyr.sync.mirror import MirrorDirectory
from pyziphyr.sync.session import SyncResult, SyncSession, SyncState


class TestSyncSession:
    """Tests for SyncSession."""

    def test_initial_state(self, tmp_path):
        session = SyncSession(mirror=MirrorDirectory(tmp_path))
        assert session.state == SyncState.INIT
        assert session.repo_name == ""
        assert len(session.index) == 0
        assert len(session.queue) == 0

    def test_transition(self, tmp_path):
        """Test moving through the clone states."""
        session = SyncSession(mirror=MirrorDirectory(tmp_path))
        for state in (
            SyncState.RESOLVE_REPO,
            SyncState.PREPARE_MIRROR,
            SyncState.WALK_TREE,
            SyncState.QUEUE_ALL,
            SyncState.DOWNLOAD,
            SyncState.PERSIST_LEDGER,
            SyncState.DONE,
        ):
            session.transition(state)
        assert session.state == SyncState.DONE

    @pytest.mark.parametrize("terminal", [SyncState.DONE, SyncState.ABORTED])
    def test_no_transition_after_terminal_state(self, tmp_path, terminal):
        """Test that a finished session cannot be resumed."""
        session = SyncSession(mirror=MirrorDirectory(tmp_path))
        session.transition(terminal)
        with pytest.raises(RuntimeError):
            session.transition(SyncState.DOWNLOAD)


class TestSyncResult:
    """Tests for SyncResult."""

    def test_from_session(self, tmp_path):
        """Test building a result from a finished session."""
        session = SyncSession(
            mirror=MirrorDirectory(tmp_path),
            repository=RepositoryRef(name="me/repo", version="v1"),
        )
        session.queue.add("a.txt", DownloadReason.NEW, "New remote file")
        session.transition(SyncState.DONE)

        result = SyncResult.from_session(session)

        assert result.repo_name == "me/repo"
        assert result.version == "v1"
        assert result.queued == ["a.txt"]
        assert result.is_successful
        assert not result.aborted

    def test_failures_are_unsuccessful(self, tmp_path):
        result = SyncResult(
            repo_name="me/repo",
            mirror_root=tmp_path,
            state=SyncState.DONE,
            failed={"a.txt": "Download failed with status 500"},
        )
        assert not result.is_successful
        assert result.to_dict()["failed"] == {
            "a.txt": "Download failed with status 500"
        }

    def test_aborted_is_unsuccessful(self, tmp_path):
        result = SyncResult(repo_name="", mirror_root=tmp_path, state=SyncState.ABORTED)
        assert result.aborted
        assert not result.is_successful
