"""Pre-flight checks of an upload against its destination policy."""

import logging

from whitelabel.uploads.destinations import DestinationPolicy
from whitelabel.uploads.exceptions import (
    ForbiddenError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from whitelabel.uploads.models import UploadRequest

logger = logging.getLogger(__name__)


def validate(request: UploadRequest, policy: DestinationPolicy) -> None:
    """Reject an upload before any of its bytes are read.

    Checks run in a fixed order and the first failure is raised:
    permissions, then content type, then declared size. The declared size
    is only advisory; the persister enforces the limit on actual bytes.

    Args:
        request: Upload attempt, its stream is left untouched
        policy: Policy of the requested destination

    Raises:
        ForbiddenError: Principal holds none of the required permissions
        UnsupportedMediaTypeError: Content type is not in the allow-list
        PayloadTooLargeError: Declared size exceeds the policy limit
    """
    if policy.required_permissions and not (policy.required_permissions & request.permissions):
        logger.warning(
            "Upload rejected: missing permission",
            extra={
                "destination": request.destination.value,
                "required_permissions": sorted(policy.required_permissions),
            },
        )
        raise ForbiddenError(
            f"Uploading to {request.destination.value} requires one of: "
            f"{', '.join(sorted(policy.required_permissions))}"
        )

    if request.content_type not in policy.allowed_content_types:
        logger.warning(
            "Upload rejected: content type not allowed",
            extra={
                "destination": request.destination.value,
                "content_type": request.content_type,
            },
        )
        raise UnsupportedMediaTypeError(f"Content type {request.content_type} not allowed")

    if request.declared_size is not None and request.declared_size > policy.max_size_bytes:
        logger.warning(
            "Upload rejected: declared size over limit",
            extra={
                "destination": request.destination.value,
                "declared_size": request.declared_size,
                "max_size_bytes": policy.max_size_bytes,
            },
        )
        raise PayloadTooLargeError(
            f"File size {request.declared_size} exceeds maximum allowed size of "
            f"{policy.max_size_bytes} bytes"
        )
