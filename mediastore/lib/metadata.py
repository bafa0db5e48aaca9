"""
Kind-specific metadata ("additions") extraction.

Images are measured with Pillow. Video and audio are inspected through
MediaProbe; videos also get a JPEG preview frame written beside the source.
"""
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional, Union
import logging

from PIL import Image, UnidentifiedImageError

from mediastore.exceptions import ProbeFailure, UnknownMediaType, UnreadableImage
from mediastore.lib.probe import MediaProbe
from mediastore.models import MediaKind

logger = logging.getLogger(__name__)

# Offset of the frame used as video preview
PREVIEW_OFFSET_SECONDS = 2.0
PREVIEW_SUFFIX = '.jpg'


@dataclass(frozen=True)
class ImageAdditions:
    width: int
    height: int
    alt: str = ''
    title: str = ''

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VideoAdditions:
    duration: float
    width: int
    height: int
    preview: str  # Relative to the public storage root

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AudioAdditions:
    duration: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Additions = Union[ImageAdditions, VideoAdditions, AudioAdditions]


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def relative_to_root(path: Path, public_root: Path | str) -> str:
    """
    Strip the public storage prefix from an absolute path (posix separators).

    Paths outside the public root are returned unchanged.
    """
    path = Path(path)
    try:
        return path.relative_to(Path(public_root)).as_posix()
    except ValueError:
        return path.as_posix()


def preview_path_for(source_path: Path | str) -> Path:
    """Preview frame location: same directory and hash basename, .jpg extension."""
    source_path = Path(source_path)
    return source_path.with_name(source_path.name.split('.', 1)[0] + PREVIEW_SUFFIX)


def preview_offset(duration: Optional[float], offset: float = PREVIEW_OFFSET_SECONDS) -> float:
    """
    Pick the seek offset for the preview frame.

    Clips shorter than the offset would yield no frame, so the offset is
    clamped to the middle of the clip.

    Example:
        >>> preview_offset(10.0)
        2.0
        >>> preview_offset(1.0)
        0.5
    """
    if duration is None or duration <= 0:
        return 0.0
    if duration <= offset:
        return duration / 2
    return offset


def get_image_additions(file_path: Path | str) -> ImageAdditions:
    """
    Read pixel dimensions of an image.

    Only the image header is parsed; pixel data is not decoded.

    Raises:
        UnreadableImage: If the file is missing, corrupt or not an image
    """
    path = Path(file_path)
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise UnreadableImage(f"Cannot read image dimensions of {path.name}: {e}") from e

    if not width or not height:
        raise UnreadableImage(f"Image {path.name} reports empty dimensions")

    return ImageAdditions(width=width, height=height)


def get_video_additions(
    file_path: Path | str,
    probe: MediaProbe,
    public_root: Path | str,
    offset: float = PREVIEW_OFFSET_SECONDS
) -> VideoAdditions:
    """
    Probe a video and extract its preview frame.

    The frame is saved as '<hash>.jpg' next to '<hash>.<ext>' and its path
    is recorded relative to the public storage root.

    Raises:
        ProbeFailure: If there is no video stream or no frame can be extracted
    """
    path = Path(file_path)
    info = probe.probe(path)

    stream = next(
        (s for s in info['streams'] if s.get('codec_type') == 'video'),
        None
    )
    if stream is None:
        raise ProbeFailure(f"No readable video stream in {path.name}")

    # Some containers (mkv, webm) only report duration at format level
    duration = _to_float(stream.get('duration'))
    if duration is None:
        duration = _to_float(info['format'].get('duration'))
    if duration is None:
        raise ProbeFailure(f"Cannot determine duration of {path.name}")

    frame_path = preview_path_for(path)
    seek = preview_offset(duration, offset)
    probe.save_frame(path, seek, frame_path)
    logger.debug(f"Saved preview frame for {path.name} at {seek:.3f}s")

    return VideoAdditions(
        duration=duration,
        width=_to_int(stream.get('width')),
        height=_to_int(stream.get('height')),
        preview=relative_to_root(frame_path, public_root),
    )


def get_audio_additions(file_path: Path | str, probe: MediaProbe) -> AudioAdditions:
    """
    Read the container duration of an audio file.

    Raises:
        ProbeFailure: If ffprobe fails or reports no duration
    """
    path = Path(file_path)
    duration = _to_float(probe.format_info(path).get('duration'))
    if duration is None:
        raise ProbeFailure(f"Cannot determine duration of {path.name}")
    return AudioAdditions(duration=duration)


def extract_additions(
    file_path: Path | str,
    kind: MediaKind,
    probe: MediaProbe,
    public_root: Path | str,
    offset: float = PREVIEW_OFFSET_SECONDS
) -> Additions:
    """
    Derive kind-specific additions for a stored media file.

    Args:
        file_path: Absolute path of the stored file
        kind: Media kind from classify()
        probe: Probe used for video and audio
        public_root: Public storage root, stripped from preview paths
        offset: Preview frame offset for videos

    Returns:
        ImageAdditions, VideoAdditions or AudioAdditions

    Raises:
        UnknownMediaType: If kind is not a supported MediaKind
    """
    if kind == MediaKind.IMAGE:
        return get_image_additions(file_path)
    if kind == MediaKind.VIDEO:
        return get_video_additions(file_path, probe, public_root, offset)
    if kind == MediaKind.AUDIO:
        return get_audio_additions(file_path, probe)

    raise UnknownMediaType(f"Unknown media type: {kind!r}")
