"""Storage backend selection."""

from whitelabel.core.config import settings
from whitelabel.storage.base import StorageBackend
from whitelabel.storage.local import local_backend


def get_storage_backend() -> StorageBackend:
    """Return the backend configured by STORAGE_BACKEND.

    Raises:
        ValueError: If the configured backend is not supported
    """
    if settings.STORAGE_BACKEND == "local":
        return local_backend
    raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
