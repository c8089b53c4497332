"""Error types raised by the upload pipeline."""


class UploadError(Exception):
    """Base class for pipeline failures.

    ``message`` is safe to send to the client. Internal detail belongs in the
    chained exception and the log, never in the message.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(UploadError):
    """Bad file type or oversize upload."""

    status_code = 400


class ConflictError(UploadError):
    """A record with the same digest already exists."""

    status_code = 409


class StorageError(UploadError):
    """Filesystem fault while reading or writing image files."""


class DecodeError(UploadError):
    """Stored bytes could not be decoded as an image."""


class RepositoryError(UploadError):
    """Database fault."""


class ConfigError(Exception):
    """Configuration file missing, unreadable or malformed."""
