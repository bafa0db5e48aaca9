"""
Media kind classification.

Maps MIME strings to the media kinds the pipeline can derive metadata for,
and sniffs MIME types from file content with python-magic.
"""
from pathlib import Path
import logging

from mediastore.exceptions import UnknownMediaType
from mediastore.models import MediaKind

logger = logging.getLogger(__name__)

# MIME prefix -> media kind
KIND_BY_MIME_PREFIX = {
    'audio': MediaKind.AUDIO,
    'image': MediaKind.IMAGE,
    'video': MediaKind.VIDEO,
}


def classify(mime: str | None) -> MediaKind:
    """
    Map a MIME string to a media kind.

    Only the part before '/' is considered, so 'image/svg+xml' and
    'image/png' both classify as images.

    Args:
        mime: MIME type string, e.g. 'video/mp4'

    Returns:
        MediaKind for the MIME prefix

    Raises:
        UnknownMediaType: If the MIME has no '/' or its prefix is not mapped

    Example:
        >>> classify('audio/mpeg')
        <MediaKind.AUDIO: 'audio'>
    """
    if not mime or '/' not in mime:
        raise UnknownMediaType(f"Unknown file type: {mime!r}")

    base = mime.strip().split('/', 1)[0].lower()
    kind = KIND_BY_MIME_PREFIX.get(base)
    if kind is None:
        raise UnknownMediaType(f"Unknown file type: {mime!r}")
    return kind


def detect_mime_type(file_path: Path | str) -> str:
    """
    Detect the MIME type of a file from its magic bytes.

    Client-declared content types are not trusted; the stored MIME is
    whatever the file content says it is.

    Args:
        file_path: Path to the file to inspect

    Returns:
        MIME type string (e.g. 'image/png')
    """
    # libmagic is a system library; import where it is needed
    import magic

    path = Path(file_path) if isinstance(file_path, str) else file_path
    mime_type = magic.from_file(str(path), mime=True)
    logger.debug(f"Detected {mime_type} for {path.name}")
    return mime_type
