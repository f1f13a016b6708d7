"""Abstract storage backend interface."""

from abc import ABC, abstractmethod
from typing import AsyncIterable, Optional

from whitelabel.uploads.destinations import Destination
from whitelabel.uploads.models import StoredFileDescriptor
from whitelabel.uploads.progress import ProgressSink


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def get_target_path(self, subdirectory: str, file_name: str) -> str:
        """Generate target storage path.

        Args:
            subdirectory: Destination directory below the upload root
            file_name: Final, already resolved file name

        Returns:
            Target path for the file
        """
        pass

    @abstractmethod
    def list_names(self, subdirectory: str) -> set[str]:
        """Return the file names currently stored in a destination directory."""
        pass

    @abstractmethod
    async def persist(
        self,
        stream: AsyncIterable[bytes],
        destination: Destination,
        subdirectory: str,
        file_name: str,
        max_size_bytes: int,
        progress_sink: Optional[ProgressSink] = None,
        total_expected: Optional[int] = None,
        overwrite: bool = False,
    ) -> StoredFileDescriptor:
        """Stream an upload into storage.

        Args:
            stream: Upload content as byte chunks
            destination: Destination the file belongs to
            subdirectory: Destination directory below the upload root
            file_name: Final, already resolved file name
            max_size_bytes: Inclusive limit enforced on the streamed bytes
            progress_sink: Receiver of progress notifications
            total_expected: Declared size, echoed in progress notifications
            overwrite: Replace an existing file instead of failing

        Returns:
            Descriptor of the stored file

        Raises:
            PayloadTooLargeError: Stream exceeded max_size_bytes
            AlreadyExistsError: Target exists and overwrite is False
            StorageIOError: Stream or storage failed
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
