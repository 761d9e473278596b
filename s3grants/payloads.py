"""Random payload files used as upload sources."""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

# Write random data in 1 MiB chunks
WRITE_CHUNK_SIZE = 1024 * 1024


def create_test_file(size: int, directory: Optional[str] = None, suffix: str = ".bin") -> Path:
    """Create a temporary file filled with random data.

    Args:
        size: Size of the file in bytes.
        directory: Directory to create the file in (system temp by default).
        suffix: File name suffix, which also drives content-type guessing.

    Returns:
        Path to the created file.
    """
    fd, file_path = tempfile.mkstemp(suffix=suffix, prefix="grant-test-", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            remaining = size
            while remaining > 0:
                write_size = min(WRITE_CHUNK_SIZE, remaining)
                f.write(os.urandom(write_size))
                remaining -= write_size
    except Exception:
        if os.path.exists(file_path):
            os.remove(file_path)
        raise
    return Path(file_path)


def sha256_file(path: Union[str, Path]) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(WRITE_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
