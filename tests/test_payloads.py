"""Tests for payload file helpers."""

import hashlib

from s3grants.payloads import create_test_file, sha256_bytes, sha256_file


class TestCreateTestFile:
    """Tests for create_test_file."""

    def test_creates_file_of_requested_size(self, tmp_path):
        path = create_test_file(3 * 1024 * 1024 + 17, directory=str(tmp_path))

        assert path.exists()
        assert path.parent == tmp_path
        assert path.stat().st_size == 3 * 1024 * 1024 + 17

    def test_zero_size(self, tmp_path):
        path = create_test_file(0, directory=str(tmp_path))
        assert path.stat().st_size == 0

    def test_suffix(self, tmp_path):
        path = create_test_file(10, directory=str(tmp_path), suffix=".txt")
        assert path.name.endswith(".txt")

    def test_content_is_random(self, tmp_path):
        first = create_test_file(1024, directory=str(tmp_path))
        second = create_test_file(1024, directory=str(tmp_path))
        assert first.read_bytes() != second.read_bytes()


class TestChecksums:
    """Tests for the SHA-256 helpers."""

    def test_file_and_bytes_agree(self, tmp_path):
        path = create_test_file(2 * 1024 * 1024 + 5, directory=str(tmp_path))
        assert sha256_file(path) == sha256_bytes(path.read_bytes())

    def test_known_digest(self):
        assert sha256_bytes(b"abc") == hashlib.sha256(b"abc").hexdigest()
