"""Upload destinations and the fixed policy bound to each of them."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from whitelabel.uploads.exceptions import UnknownDestinationError

MIB = 1024 * 1024

IMAGE_CONTENT_TYPES = frozenset(
    ["image/jpeg", "image/png", "image/gif", "image/webp"]
)


class Destination(str, Enum):
    """Where an upload is stored. Values double as form-field selectors."""

    ARTIST = "Artist"
    AVATAR = "Avatar"
    RELEASE = "Release"


@dataclass(frozen=True)
class DestinationPolicy:
    """Validation and storage rules for one destination."""

    allowed_content_types: frozenset[str]
    storage_subdirectory: str  # relative to the shared upload root
    required_permissions: frozenset[str]  # any one suffices, empty = anyone
    max_size_bytes: int  # inclusive
    rename_on_store: bool


_POLICIES = MappingProxyType(
    {
        Destination.ARTIST: DestinationPolicy(
            allowed_content_types=IMAGE_CONTENT_TYPES,
            storage_subdirectory="artists",
            required_permissions=frozenset(["admin", "label_owner"]),
            max_size_bytes=100 * MIB,
            rename_on_store=False,
        ),
        Destination.AVATAR: DestinationPolicy(
            allowed_content_types=IMAGE_CONTENT_TYPES,
            storage_subdirectory="avatars",
            required_permissions=frozenset(),
            max_size_bytes=10 * MIB,
            rename_on_store=True,
        ),
        Destination.RELEASE: DestinationPolicy(
            allowed_content_types=IMAGE_CONTENT_TYPES,
            storage_subdirectory="releases",
            required_permissions=frozenset(["admin", "label_owner"]),
            max_size_bytes=100 * MIB,
            rename_on_store=False,
        ),
    }
)


def policy_for(destination: Destination) -> DestinationPolicy:
    """Return the policy for a destination."""
    return _POLICIES[destination]


def parse_destination(value: str) -> Destination:
    """Parse an external selector such as a form field into a Destination.

    Matching is exact and case-sensitive, so ``"avatar"`` is rejected.

    Args:
        value: Selector string, e.g. ``"Artist"``

    Returns:
        The matching Destination

    Raises:
        UnknownDestinationError: If no destination has this value
    """
    for destination in Destination:
        if destination.value == value:
            return destination
    raise UnknownDestinationError(f"Invalid upload destination: {value!r}")
