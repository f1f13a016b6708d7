"""Upload API routes."""

import logging
from typing import NamedTuple, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from whitelabel.core.logging import upload_id_context
from whitelabel.models.upload import UploadResponse
from whitelabel.storage.factory import get_storage_backend
from whitelabel.uploads.destinations import parse_destination
from whitelabel.uploads.exceptions import (
    AlreadyExistsError,
    ForbiddenError,
    MissingRenameTargetError,
    NameCollisionError,
    PayloadTooLargeError,
    StorageIOError,
    UnknownDestinationError,
    UnsupportedMediaTypeError,
    UploadError,
)
from whitelabel.uploads.models import UploadRequest
from whitelabel.uploads.progress import progress_tracker
from whitelabel.uploads.service import UploadService

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    UnknownDestinationError: 404,
    MissingRenameTargetError: 400,
    ForbiddenError: 403,
    UnsupportedMediaTypeError: 415,
    PayloadTooLargeError: 413,
    AlreadyExistsError: 409,
    NameCollisionError: 409,
    StorageIOError: 500,
}


class Principal(NamedTuple):
    """Authenticated caller as forwarded by the auth layer in front of us."""

    principal_id: str
    permissions: frozenset[str]


def get_principal(
    x_principal_id: Optional[str] = Header(None),
    x_principal_permissions: str = Header(""),
) -> Principal:
    """Read the principal from the headers set by the upstream auth layer."""
    if not x_principal_id or not x_principal_id.strip():
        raise HTTPException(status_code=401, detail="No authenticated principal")
    permissions = frozenset(
        p.strip() for p in x_principal_permissions.split(",") if p.strip()
    )
    return Principal(principal_id=x_principal_id.strip(), permissions=permissions)


def get_upload_service() -> UploadService:
    try:
        backend = get_storage_backend()
    except ValueError as e:
        logger.error(f"Storage backend configuration error: {e}")
        raise HTTPException(status_code=500, detail="Storage configuration error")
    return UploadService(backend)


def status_for(error: UploadError) -> int:
    """Map an upload error to an HTTP status code."""
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def _declared_size(content_length: Optional[str]) -> Optional[int]:
    if content_length is None:
        return None
    try:
        size = int(content_length)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Content-Length header")
    return size if size >= 0 else None


def _progress_key(principal: Principal, upload_id: str) -> str:
    return f"{principal.principal_id}-{upload_id}"


@router.put("/uploads/{destination}", response_model=UploadResponse, status_code=201)
async def upload_file(
    destination: str,
    request: Request,
    file_name: str = Query(..., min_length=1),
    rename_target: Optional[str] = Query(None),
    overwrite: Optional[bool] = Query(None),
    upload_id: Optional[str] = Query(None),
    principal: Principal = Depends(get_principal),
    service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    """Stream the raw request body into the requested destination.

    The declared content type and size come from the Content-Type and
    Content-Length headers. Passing ``upload_id`` publishes progress for
    ``GET /api/v1/uploads/progress/{upload_id}``.
    """
    try:
        target = parse_destination(destination)
    except UnknownDestinationError as e:
        raise HTTPException(status_code=404, detail=str(e))

    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    upload_request = UploadRequest(
        destination=target,
        content_type=content_type,
        file_name=file_name,
        stream=request.stream(),
        permissions=principal.permissions,
        declared_size=_declared_size(request.headers.get("content-length")),
        rename_target=rename_target,
        overwrite=overwrite,
    )

    progress_key = _progress_key(principal, upload_id) if upload_id else None
    progress_sink = progress_tracker.sink_for(progress_key) if progress_key else None
    token = upload_id_context.set(upload_id)
    try:
        descriptor = await service.upload(upload_request, progress_sink)
    except UploadError as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error during upload: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
    finally:
        if progress_key:
            progress_tracker.finish(progress_key)
        upload_id_context.reset(token)

    logger.info(
        f"Upload completed: destination={target.value}, file_name={descriptor.file_name}, "
        f"principal={principal.principal_id}, size={descriptor.size_bytes}"
    )
    return UploadResponse.from_descriptor(descriptor, service.backend.get_backend_name())


@router.get("/uploads/progress/{upload_id}")
async def upload_progress(
    upload_id: str, principal: Principal = Depends(get_principal)
) -> StreamingResponse:
    """Stream running byte totals of an upload, one number per line."""
    progress_key = _progress_key(principal, upload_id)
    logger.debug(f"Streaming progress for {progress_key}")

    async def lines():
        async for progress in progress_tracker.subscribe(progress_key):
            yield f"{progress.bytes_written}\n"

    return StreamingResponse(lines(), media_type="text/plain")
