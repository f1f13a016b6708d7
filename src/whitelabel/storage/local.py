"""Local filesystem storage backend."""

import asyncio
import logging
import os
from pathlib import Path
from typing import AsyncIterable, Iterator, Optional
from uuid import uuid4

import aiofiles

from whitelabel.core.config import settings
from whitelabel.storage.base import StorageBackend
from whitelabel.uploads.destinations import Destination
from whitelabel.uploads.exceptions import (
    AlreadyExistsError,
    PayloadTooLargeError,
    StorageIOError,
    UploadError,
)
from whitelabel.uploads.models import StoredFileDescriptor, UploadProgress
from whitelabel.uploads.naming import list_existing_names
from whitelabel.uploads.progress import NullProgressSink, ProgressSink

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend.

    Files land at ``{base_path}/{subdirectory}/{file_name}``. A failed or
    cancelled write never leaves a file behind at that path.
    """

    def __init__(self, base_path: Optional[Path] = None, chunk_size: Optional[int] = None):
        self.base_path = Path(base_path) if base_path is not None else settings.upload_root
        self.chunk_size = chunk_size or settings.chunk_size_bytes

    def get_target_path(self, subdirectory: str, file_name: str) -> str:
        """Join the upload root, destination directory and file name."""
        if not file_name or "/" in file_name or "\\" in file_name or file_name in (".", ".."):
            raise ValueError(f"Invalid stored file name: {file_name!r}")
        return str(self.base_path / subdirectory / file_name)

    def list_names(self, subdirectory: str) -> set[str]:
        return list_existing_names(self.base_path / subdirectory)

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
        """Write the stream chunk by chunk, enforcing the size limit as it goes.

        Without overwrite the target is created exclusively. With overwrite
        the bytes go to a hidden part-file that replaces the target only
        once the write is complete, so the previous file survives a failure.
        """
        target_path = Path(self.get_target_path(subdirectory, file_name))
        sink = progress_sink or NullProgressSink()
        write_path = (
            target_path.with_name(f".{file_name}.{uuid4().hex}.part") if overwrite else target_path
        )

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            f = await self._open_exclusive(write_path)
        except FileExistsError as e:
            logger.warning(
                "Upload target already exists",
                extra={"destination": destination.value, "target_path": str(target_path)},
            )
            raise AlreadyExistsError(f"File {file_name} already exists in {subdirectory}") from e
        except OSError as e:
            logger.error(
                "Failed to open upload target",
                extra={"target_path": str(write_path), "error": str(e)},
            )
            raise StorageIOError(f"Failed to open {file_name} for writing: {e}") from e

        total = 0
        stored = False
        try:
            try:
                async for chunk in stream:
                    for piece in self._bounded(chunk):
                        total += len(piece)
                        if total > max_size_bytes:
                            logger.warning(
                                "Upload exceeded size limit mid-stream",
                                extra={
                                    "destination": destination.value,
                                    "file_name": file_name,
                                    "bytes_received": total,
                                    "max_size_bytes": max_size_bytes,
                                },
                            )
                            raise PayloadTooLargeError(
                                f"File exceeds maximum allowed size of {max_size_bytes} bytes"
                            )
                        await f.write(piece)
                        self._notify(sink, UploadProgress(total, total_expected))
            finally:
                await f.close()

            written = os.path.getsize(write_path)
            if written != total:
                raise StorageIOError(
                    f"Stored size {written} does not match {total} bytes received"
                )
            if overwrite:
                os.replace(write_path, target_path)
            stored = True
        except UploadError:
            raise
        except asyncio.CancelledError:
            logger.warning(
                "Upload cancelled mid-stream",
                extra={"destination": destination.value, "file_name": file_name, "bytes_received": total},
            )
            raise
        except Exception as e:
            logger.error(
                "Failed to store upload",
                extra={
                    "destination": destination.value,
                    "file_name": file_name,
                    "bytes_received": total,
                    "error": str(e),
                },
                exc_info=True,
            )
            raise StorageIOError(f"Failed to store file: {e}") from e
        finally:
            if not stored:
                self._remove_partial(write_path)

        logger.info(
            "Upload stored",
            extra={
                "destination": destination.value,
                "storage_path": str(target_path),
                "size_bytes": total,
            },
        )
        return StoredFileDescriptor(
            file_name=file_name,
            destination=destination,
            size_bytes=total,
            storage_subdirectory=subdirectory,
        )

    def get_backend_name(self) -> str:
        return "local"

    def _bounded(self, chunk: bytes) -> Iterator[memoryview]:
        """Split a transport chunk into pieces of at most chunk_size bytes."""
        view = memoryview(chunk)
        for start in range(0, len(view), self.chunk_size):
            yield view[start:start + self.chunk_size]

    async def _open_exclusive(self, path: Path):
        """Create ``path`` exclusively, undoing the create if cancelled meanwhile.

        The open runs in a worker thread that finishes even when the awaiting
        task is cancelled, so cancellation waits for it and removes the file
        it created.
        """
        opening = asyncio.ensure_future(aiofiles.open(path, "xb"))
        try:
            return await asyncio.shield(opening)
        except asyncio.CancelledError:
            try:
                f = await opening
            except OSError:
                logger.debug("Cancelled open did not create a file", extra={"path": str(path)})
            else:
                await f.close()
                self._remove_partial(path)
            raise

    @staticmethod
    def _notify(sink: ProgressSink, progress: UploadProgress) -> None:
        try:
            sink.publish(progress)
        except Exception as e:
            logger.warning("Progress sink failed", extra={"error": str(e)})

    @staticmethod
    def _remove_partial(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.error("Failed to remove partial upload", extra={"path": str(path)}, exc_info=True)


# Singleton instance
local_backend = LocalStorageBackend()
