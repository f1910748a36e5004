"""Tests for local and remote fingerprints."""

import os
import tempfile
from pathlib import Path

import pytest

from pyziphyr.models import EntryKind, TreeEntry
from pyziphyr.sync.fingerprint import local_fingerprint, remote_fingerprint


class TestLocalFingerprint:
    """Tests for local_fingerprint."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_stable_for_untouched_file(self, temp_dir):
        """Test that an untouched file reproduces its fingerprint."""
        (temp_dir / "a.txt").write_text("hello")
        assert local_fingerprint(temp_dir, "a.txt") == local_fingerprint(
            temp_dir, "a.txt"
        )

    def test_changes_with_modification_time(self, temp_dir):
        """Test that touching a file changes its fingerprint."""
        file_path = temp_dir / "a.txt"
        file_path.write_text("hello")
        os.utime(file_path, ns=(1_000_000_000, 1_000_000_000))
        before = local_fingerprint(temp_dir, "a.txt")

        os.utime(file_path, ns=(2_000_000_000, 2_000_000_000))
        assert local_fingerprint(temp_dir, "a.txt") != before

    def test_depends_on_path(self, temp_dir):
        """Test that two files with the same mtime differ by path."""
        for name in ("a.txt", "b.txt"):
            (temp_dir / name).write_text("same")
            os.utime(temp_dir / name, ns=(1_000_000_000, 1_000_000_000))
        assert local_fingerprint(temp_dir, "a.txt") != local_fingerprint(
            temp_dir, "b.txt"
        )

    def test_nested_path(self, temp_dir):
        """Test a file in a subdirectory."""
        (temp_dir / "src").mkdir()
        (temp_dir / "src" / "main.go").write_text("package main")
        fingerprint = local_fingerprint(temp_dir, "src/main.go")
        assert len(fingerprint) == 40

    def test_missing_file_raises(self, temp_dir):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            local_fingerprint(temp_dir, "gone.txt")


class TestRemoteFingerprint:
    """Tests for remote_fingerprint."""

    def test_uses_api_hash_verbatim(self):
        """Test that the API content hash is trusted as is."""
        entry = TreeEntry(name="a.txt", sha="deadbeef", kind=EntryKind.FILE)
        assert remote_fingerprint(entry) == "deadbeef"
