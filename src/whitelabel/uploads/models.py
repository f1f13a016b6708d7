"""Value objects passed through the upload pipeline."""

from dataclasses import dataclass, field
from typing import AsyncIterable, Optional

from whitelabel.uploads.destinations import Destination


@dataclass
class UploadRequest:
    """One upload attempt, consumed exactly once by the pipeline."""

    destination: Destination
    content_type: str
    file_name: str
    stream: AsyncIterable[bytes]
    permissions: frozenset[str] = field(default_factory=frozenset)
    declared_size: Optional[int] = None
    rename_target: Optional[str] = None
    # None lets the destination decide: renaming destinations overwrite
    overwrite: Optional[bool] = None


@dataclass(frozen=True)
class StoredFileDescriptor:
    """A file that was fully written to storage."""

    file_name: str
    destination: Destination
    size_bytes: int
    storage_subdirectory: str

    @property
    def relative_path(self) -> str:
        """Path below the upload root, as recorded against domain entities."""
        return f"{self.storage_subdirectory}/{self.file_name}"


@dataclass(frozen=True)
class UploadProgress:
    """Running byte count for an in-flight upload."""

    bytes_written: int
    total_expected: Optional[int] = None

    @property
    def fraction(self) -> Optional[float]:
        """Completed share in [0, 1], or None when the total is unknown."""
        if not self.total_expected:
            return None
        return min(self.bytes_written / self.total_expected, 1.0)
