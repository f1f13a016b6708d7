"""Upload pipeline: policy, validation, naming and persistence."""

import logging
from typing import Optional

from whitelabel.storage.base import StorageBackend
from whitelabel.uploads.destinations import policy_for
from whitelabel.uploads.exceptions import UploadError
from whitelabel.uploads.models import StoredFileDescriptor, UploadRequest
from whitelabel.uploads.naming import resolve_name
from whitelabel.uploads.progress import ProgressSink
from whitelabel.uploads.validator import validate

logger = logging.getLogger(__name__)


class UploadService:
    """Runs one upload request through the intake pipeline."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def upload(
        self, request: UploadRequest, progress_sink: Optional[ProgressSink] = None
    ) -> StoredFileDescriptor:
        """Validate, name and store an upload.

        The stream is only read once validation and naming have passed.
        When ``request.overwrite`` is None, destinations that rename on
        store overwrite the previous file for the same rename target and
        all others get timestamped, non-overwriting names.

        Args:
            request: Upload attempt, consumed by this call
            progress_sink: Receiver of progress notifications

        Returns:
            Descriptor of the stored file

        Raises:
            UploadError: Any validation, naming or storage failure
        """
        policy = policy_for(request.destination)
        overwrite = policy.rename_on_store if request.overwrite is None else request.overwrite

        try:
            validate(request, policy)

            existing_names = set() if overwrite else self.backend.list_names(policy.storage_subdirectory)
            file_name = resolve_name(
                request.file_name,
                policy,
                request.rename_target,
                existing_names,
                overwrite=overwrite,
            )

            logger.info(
                "Upload accepted",
                extra={
                    "destination": request.destination.value,
                    "original_file_name": request.file_name,
                    "file_name": file_name,
                    "declared_size": request.declared_size,
                    "overwrite": overwrite,
                },
            )

            return await self.backend.persist(
                request.stream,
                destination=request.destination,
                subdirectory=policy.storage_subdirectory,
                file_name=file_name,
                max_size_bytes=policy.max_size_bytes,
                progress_sink=progress_sink,
                total_expected=request.declared_size,
                overwrite=overwrite,
            )
        except UploadError as e:
            logger.info(
                "Upload failed",
                extra={
                    "destination": request.destination.value,
                    "error_type": type(e).__name__,
                    "retryable": e.retryable,
                },
            )
            raise
