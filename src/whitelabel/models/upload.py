"""Upload API models."""

from pydantic import BaseModel

from whitelabel.uploads.models import StoredFileDescriptor


class UploadResponse(BaseModel):
    """Response model for a stored upload."""

    file_name: str
    destination: str
    storage_subdirectory: str
    storage_path: str
    size_bytes: int
    storage_backend: str

    @classmethod
    def from_descriptor(cls, descriptor: StoredFileDescriptor, backend_name: str) -> "UploadResponse":
        return cls(
            file_name=descriptor.file_name,
            destination=descriptor.destination.value,
            storage_subdirectory=descriptor.storage_subdirectory,
            storage_path=descriptor.relative_path,
            size_bytes=descriptor.size_bytes,
            storage_backend=backend_name,
        )
