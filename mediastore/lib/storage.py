"""
Local media storage under the public storage root.

Files are stored content-addressed as '<media_dir>/<hash><ext>' and are
referenced by records with paths relative to the public root.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import shutil
import uuid

from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.utils import secure_filename

from mediastore.exceptions import StorageError, UnreadableImage
from mediastore.lib.classify import detect_mime_type

logger = logging.getLogger(__name__)

# Extension used when the upload filename has none
FALLBACK_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'video/mp4': '.mp4',
    'video/quicktime': '.mov',
    'video/webm': '.webm',
    'audio/mpeg': '.mp3',
    'audio/ogg': '.ogg',
    'audio/wav': '.wav',
    'audio/x-wav': '.wav',
}


@dataclass
class UploadedFile:
    """A received file that has been written to disk."""
    path: Path
    filename: str
    mime_type: str

    @classmethod
    def from_path(
        cls,
        path: Path | str,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> 'UploadedFile':
        """Wrap a file on disk; MIME type is sniffed from content when not given."""
        path = Path(path)
        return cls(
            path=path,
            filename=filename or path.name,
            mime_type=mime_type or detect_mime_type(path),
        )

    @classmethod
    def from_file_storage(cls, file_storage, upload_dir: Path | str) -> 'UploadedFile':
        """
        Save a werkzeug FileStorage (request.files entry) to upload_dir.

        The declared content type is ignored; the MIME type is sniffed from
        the saved bytes.
        """
        upload_dir = Path(upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)

        filename = secure_filename(file_storage.filename or '') or 'upload'
        tmp_path = upload_dir / f"{uuid.uuid4().hex}_{filename}"
        file_storage.save(str(tmp_path))

        return cls.from_path(tmp_path, filename=filename)

    @property
    def extension(self) -> str:
        suffix = Path(self.filename).suffix.lower()
        if suffix == '.jpeg':
            suffix = '.jpg'
        return suffix or FALLBACK_EXTENSIONS.get(self.mime_type, '')


class MediaStorage:
    """Stores, renames and removes media files below a public root."""

    def __init__(self, public_root: Path | str, media_dir: str = 'media', jpeg_quality: int = 90):
        self.public_root = Path(public_root)
        self.media_dir = media_dir
        self.jpeg_quality = jpeg_quality

    def absolute_path(self, src: str) -> Path:
        """Resolve a stored relative path against the public root."""
        return self.public_root / src

    def relative_path(self, path: Path | str) -> str:
        """Strip the public root from an absolute path."""
        return Path(path).relative_to(self.public_root).as_posix()

    def store(self, upload: UploadedFile, file_hash: str, convert_to_jpeg: bool = False) -> str:
        """
        Copy an upload into storage, named by its content hash.

        Args:
            upload: File to store
            file_hash: Content hash used as the stored basename
            convert_to_jpeg: Re-encode images as JPEG (EXIF orientation applied)

        Returns:
            Stored path relative to the public root

        Raises:
            UnreadableImage: If JPEG conversion is requested for an undecodable image
            StorageError: If the file cannot be written
        """
        target_dir = self.public_root / self.media_dir
        target_dir.mkdir(parents=True, exist_ok=True)

        is_image = upload.mime_type.lower().startswith('image/')
        if convert_to_jpeg and is_image:
            target = target_dir / f"{file_hash}.jpg"
            self._save_as_jpeg(upload.path, target)
        else:
            target = target_dir / f"{file_hash}{upload.extension}"
            try:
                shutil.copyfile(upload.path, target)
            except OSError as e:
                raise StorageError(f"Cannot store {upload.filename}: {e}") from e

        src = self.relative_path(target)
        logger.debug(f"Stored {upload.filename} as {src}")
        return src

    def _save_as_jpeg(self, source: Path, target: Path):
        try:
            with Image.open(source) as img:
                # Apply EXIF orientation before re-encoding
                img = ImageOps.exif_transpose(img)

                # JPEG has no alpha or palette
                if img.mode != 'RGB':
                    img = img.convert('RGB')

                img.save(target, 'JPEG', quality=self.jpeg_quality, optimize=True)
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            if target.exists():
                target.unlink()
            raise UnreadableImage(f"Cannot convert {source.name} to JPEG: {e}") from e

    def rename_target(self, src: str, name: str) -> Path:
        """
        Work out where rename(src, name) would move a file, without moving it.

        Raises:
            StorageError: If the file is missing, the name is empty, or the target exists
        """
        current = self.absolute_path(src)
        if not current.exists():
            raise StorageError(f"Stored file not found: {src}")

        stem = secure_filename(name)
        if current.suffix and stem.lower().endswith(current.suffix.lower()):
            stem = stem[:-len(current.suffix)]
        if not stem:
            raise StorageError(f"Invalid file name: {name!r}")

        target = current.with_name(stem + current.suffix)
        if target != current and target.exists():
            raise StorageError(f"Cannot rename {src}: {self.relative_path(target)} already exists")
        return target

    def rename(self, src: str, name: str) -> str:
        """
        Rename a stored file, keeping its directory and extension.

        Args:
            src: Stored path relative to the public root
            name: New basename (sanitized with secure_filename)

        Returns:
            New stored path relative to the public root

        Raises:
            StorageError: If the file is missing, the name is empty, or the target exists
        """
        current = self.absolute_path(src)
        target = self.rename_target(src, name)
        if target == current:
            return src

        current.rename(target)
        new_src = self.relative_path(target)
        logger.info(f"Renamed {src} -> {new_src}")
        return new_src

    def remove(self, src: str) -> bool:
        """Delete a stored file. Returns False if it did not exist."""
        path = self.absolute_path(src)
        if not path.exists():
            return False
        path.unlink()
        logger.debug(f"Removed stored file {src}")
        return True
