"""Store, sidecar and ingestion errors."""


class PhotostoreError(Exception):
    """Base exception for store operations."""


class InputError(PhotostoreError):
    """Raised when a source file is missing or unreadable."""


class HashError(PhotostoreError):
    """Raised when a file cannot be read while computing its fingerprint."""


class MetadataFormatError(PhotostoreError):
    """Raised when a sidecar file contains malformed data."""


class SidecarWriteError(PhotostoreError, OSError):
    """Raised when a sidecar file cannot be written."""


class LinkError(PhotostoreError):
    """Raised when a symbolic link cannot be created."""


class DateExtractionWarning(UserWarning):
    """An embedded timestamp value that could not be parsed.

    Attributes:
        field: Name of the embedded timestamp field.
        raw_value: Value found in the file.
    """

    def __init__(self, field: str, raw_value: str, path: str | None = None) -> None:
        self.field = field
        self.raw_value = raw_value
        self.path = path
        location = f" in {path}" if path else ""
        super().__init__(f"Unparseable {field} value {raw_value!r}{location}; field ignored.")
