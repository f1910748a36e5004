"""Tests for the persisted sync ledger."""

import tempfile
from pathlib import Path

import pytest

from pyziphyr.models import ContentIndex, RepositoryRef
from pyziphyr.sync.fingerprint import local_fingerprint
from pyziphyr.sync.ledger import LedgerManager
from pyziphyr.sync.mirror import MirrorDirectory


class TestLedgerManager:
    """Tests for LedgerManager."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def mirror(self, temp_dir):
        mirror = MirrorDirectory(temp_dir)
        mirror.prepare()
        return mirror

    @pytest.fixture
    def manager(self, mirror):
        return LedgerManager(mirror)

    @pytest.fixture
    def repository(self):
        return RepositoryRef(name="octocat/Hello-World", version="v1.0")

    def write_files(self, mirror, *paths):
        for path in paths:
            target = mirror.root / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(path)

    def test_load_without_ledger(self, manager):
        """Test that a missing ledger loads as None."""
        assert manager.load() is None
        assert manager.load_repository() is None

    def test_store_and_load(self, mirror, manager, repository):
        """Test that stored tables load back unchanged."""
        self.write_files(mirror, "README.md", "src/main.go")
        index = ContentIndex({"README.md": "aaa", "src/main.go": "bbb"})

        stored = manager.store(index, repository)
        loaded = manager.load()

        assert loaded == stored
        assert loaded.global_hashes == {"README.md": "aaa", "src/main.go": "bbb"}
        assert loaded.local_hashes["src/main.go"] == local_fingerprint(
            mirror.root, "src/main.go"
        )

    def test_file_format(self, mirror, manager, repository):
        """Test the on-disk line format."""
        self.write_files(mirror, "a.txt")
        manager.store(ContentIndex({"a.txt": "abc123"}), repository)

        assert manager.hashes_file.read_text() == "abc123 a.txt\n"
        assert manager.repository_info_file.read_text() == (
            "octocat/Hello-World\nv1.0\n"
        )

    def test_paths_with_spaces_round_trip(self, mirror, manager, repository):
        """Test that paths containing spaces survive a store/load cycle."""
        self.write_files(mirror, "my docs/read me.txt")
        index = ContentIndex({"my docs/read me.txt": "fff"})

        manager.store(index, repository)
        loaded = manager.load()

        assert loaded.global_hashes == {"my docs/read me.txt": "fff"}
        assert list(loaded.local_hashes) == ["my docs/read me.txt"]

    def test_identical_content_at_two_paths(self, mirror, manager, repository):
        """Test that both paths of duplicated content are recorded."""
        self.write_files(mirror, "a/LICENSE", "b/LICENSE")
        manager.store(ContentIndex({"a/LICENSE": "x", "b/LICENSE": "x"}), repository)
        assert set(manager.load().global_hashes) == {"a/LICENSE", "b/LICENSE"}

    def test_store_excludes_failed_paths(self, mirror, manager, repository):
        """Test that excluded paths are left out of both tables."""
        self.write_files(mirror, "ok.txt", "failed.txt")
        index = ContentIndex({"ok.txt": "1", "failed.txt": "2"})

        ledger = manager.store(index, repository, exclude={"failed.txt"})

        assert set(ledger.global_hashes) == {"ok.txt"}
        assert set(ledger.local_hashes) == {"ok.txt"}

    def test_store_skips_missing_local_file(self, mirror, manager, repository):
        """Test that a file missing on disk gets no local fingerprint."""
        self.write_files(mirror, "present.txt")
        index = ContentIndex({"present.txt": "1", "missing.txt": "2"})

        ledger = manager.store(index, repository)

        assert set(ledger.global_hashes) == {"present.txt", "missing.txt"}
        assert set(ledger.local_hashes) == {"present.txt"}

    def test_repository_info_written_once(self, mirror, manager, repository):
        """Test that an existing repository record is never overwritten."""
        assert manager.store_repository(repository) is True
        other = RepositoryRef(name="octocat/Hello-World", version="main")
        assert manager.store_repository(other) is False

        manager.store(ContentIndex(), other)
        assert manager.load_repository() == repository

    def test_load_repository_incomplete(self, mirror, manager):
        """Test that a truncated repository record is ignored."""
        manager.repository_info_file.write_text("octocat/Hello-World\n")
        assert manager.load_repository() is None

    def test_load_requires_both_tables(self, mirror, manager):
        """Test that a missing local table makes the ledger unusable."""
        manager.hashes_file.write_text("abc a.txt\n")
        assert manager.load() is None

    def test_malformed_lines_skipped(self, mirror, manager, caplog):
        """Test that blank and malformed lines are skipped with a warning."""
        manager.hashes_file.write_text("abc a.txt\n\nnospace\nxyz b c.txt\n")
        manager.local_hashes_file.write_text("")

        with caplog.at_level("WARNING"):
            ledger = manager.load()

        assert ledger.global_hashes == {"a.txt": "abc", "b c.txt": "xyz"}
        assert ledger.local_hashes == {}
        assert "malformed line 3" in caplog.text
