"""Errors raised by the media ingestion and deletion pipeline."""
from typing import Optional


class MediaError(Exception):
    """Base exception for media operations."""


class UnknownMediaType(MediaError, ValueError):
    """Raised when a MIME type (or kind) does not map to a supported media kind."""


class UnreadableImage(MediaError):
    """Raised when image dimensions cannot be determined."""


class ProbeFailure(MediaError):
    """Raised when ffprobe/ffmpeg cannot read a video or audio file."""


class DuplicateFile(MediaError):
    """Raised when a file with the same content hash already exists."""

    def __init__(self, file_hash: str, existing_id: Optional[int] = None):
        self.file_hash = file_hash
        self.existing_id = existing_id
        super().__init__(f"File already exists (hash {file_hash})")


class NonEmptyFolder(MediaError):
    """Raised when deleting a folder that contains a sub folder."""


class PersistenceError(MediaError):
    """Raised when the repository fails to read or write records."""


class StorageError(MediaError):
    """Raised when a stored file cannot be written, renamed or found."""
