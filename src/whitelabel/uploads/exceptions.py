"""Exceptions raised by the upload pipeline."""


class UploadError(Exception):
    """Base exception for upload intake.

    ``retryable`` tells the caller whether re-sending the same upload as a
    fresh request can succeed without the client changing anything.
    """

    retryable = False


class UnknownDestinationError(UploadError):
    """Raised when a destination selector matches no known destination."""
    pass


class UploadValidationError(UploadError):
    """Raised when an upload is rejected by its destination policy."""
    pass


class ForbiddenError(UploadValidationError):
    """Raised when the principal holds none of the required permissions."""
    pass


class UnsupportedMediaTypeError(UploadValidationError):
    """Raised when the declared content type is not allowed."""
    pass


class PayloadTooLargeError(UploadValidationError):
    """Raised when the declared or streamed size exceeds the limit."""
    pass


class MissingRenameTargetError(UploadValidationError):
    """Raised when a renaming destination gets no rename target."""
    pass


class NameCollisionError(UploadError):
    """Raised when the resolved name is already taken in the destination."""

    retryable = True


class PersistError(UploadError):
    """Base exception for failures while writing the stream to storage."""
    pass


class AlreadyExistsError(PersistError):
    """Raised when the target path is occupied and overwrite was not requested."""

    retryable = True


class StorageIOError(PersistError):
    """Raised when the stream or the filesystem fails mid-write."""

    retryable = True
