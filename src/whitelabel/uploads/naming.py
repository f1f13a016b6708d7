"""Final on-disk names for uploaded files."""

import os
import time
from pathlib import Path
from typing import AbstractSet, Optional

from whitelabel.uploads.destinations import DestinationPolicy
from whitelabel.uploads.exceptions import MissingRenameTargetError, NameCollisionError

MAX_NAME_LENGTH = 255


def file_extension(file_name: str) -> Optional[str]:
    """Return the text after the last dot, or None if there is none.

    A trailing dot counts as no extension, so renaming ``"photo."`` never
    yields a name ending in a bare dot.

    >>> file_extension("archive.tar.gz")
    'gz'
    >>> file_extension("photo.PNG")
    'PNG'
    >>> file_extension("README") is None
    True
    """
    if "." not in file_name:
        return None
    extension = file_name.rsplit(".", 1)[1]
    return extension or None


def sanitize_filename(file_name: str) -> str:
    """Remove path traversal and directory separators."""
    safe = file_name.replace("../", "").replace("..\\", "")
    safe = safe.replace("/", "_").replace("\\", "_").replace("\x00", "")
    if safe in ("", ".", ".."):
        safe = "unnamed"
    return safe[-MAX_NAME_LENGTH:]


def list_existing_names(directory: Path) -> set[str]:
    """Names currently present in a destination directory."""
    try:
        return set(os.listdir(directory))
    except FileNotFoundError:
        return set()


def resolve_name(
    original_name: str,
    policy: DestinationPolicy,
    rename_target: Optional[str],
    existing_names: AbstractSet[str],
    overwrite: bool = False,
    now: Optional[float] = None,
) -> str:
    """Compute the stored file name for an upload.

    Renaming destinations store ``{rename_target}.{ext}`` with the original
    extension; all others keep the original name. Unless overwriting, the
    name gets a ``{unix_seconds}-`` prefix. Two uploads of the same name to
    one destination within the same second still collide; that case is
    reported as a retryable NameCollisionError instead of overwriting.

    Args:
        original_name: File name supplied by the client
        policy: Policy of the target destination
        rename_target: Canonical base name, required for renaming destinations
        existing_names: Current contents of the destination directory
        overwrite: Keep the bare name and replace any file already there
        now: Timestamp override, defaults to the current time

    Returns:
        Final file name, without any directory component

    Raises:
        MissingRenameTargetError: If the policy renames and no target is given
        NameCollisionError: If the prefixed name is already taken
    """
    if policy.rename_on_store:
        if not rename_target:
            raise MissingRenameTargetError(
                f"Uploads to {policy.storage_subdirectory} must supply a rename target"
            )
        extension = file_extension(original_name)
        base_name = f"{rename_target}.{extension}" if extension else rename_target
    else:
        base_name = original_name

    base_name = sanitize_filename(base_name)

    if overwrite:
        return base_name

    prefix = f"{int(time.time() if now is None else now)}-"
    name = prefix + base_name[-(MAX_NAME_LENGTH - len(prefix)):]
    if name in existing_names:
        raise NameCollisionError(
            f"File {name} already exists in {policy.storage_subdirectory}, retry the upload"
        )
    return name
