"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import BinaryIO

import pytest

from whitelabel.storage.local import LocalStorageBackend
from whitelabel.uploads.service import UploadService

MIB = 1024 * 1024


async def byte_stream(data: bytes, chunk_size: int = 65536):
    """Yield ``data`` in chunks, like a transport delivering a request body."""
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    """Empty upload root for each test."""
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def backend(upload_root):
    """Local backend writing below the temporary upload root."""
    return LocalStorageBackend(base_path=upload_root, chunk_size=64 * 1024)


@pytest.fixture
def upload_service(backend):
    return UploadService(backend)


@pytest.fixture
def make_stream():
    """Factory for async byte streams."""
    return byte_stream


async def file_stream(file_data: BinaryIO, chunk_size: int = 65536):
    """Read a file object in chunks, like a spooled multipart upload."""
    while chunk := file_data.read(chunk_size):
        yield chunk


@pytest.fixture
def make_file_stream():
    """Factory for async byte streams backed by file objects."""
    return file_stream
