"""
Upload intake

Validates user-supplied images against the policy of their destination,
names them collision-safely and streams them into the upload directory.
"""

from whitelabel.uploads.destinations import (
    Destination,
    DestinationPolicy,
    parse_destination,
    policy_for,
)
from whitelabel.uploads.exceptions import UploadError
from whitelabel.uploads.models import StoredFileDescriptor, UploadProgress, UploadRequest
from whitelabel.uploads.naming import resolve_name
from whitelabel.uploads.validator import validate

__all__ = [
    "Destination",
    "DestinationPolicy",
    "parse_destination",
    "policy_for",
    "UploadError",
    "StoredFileDescriptor",
    "UploadProgress",
    "UploadRequest",
    "resolve_name",
    "validate",
]
