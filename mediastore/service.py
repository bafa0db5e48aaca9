"""
Media record lifecycle: ingestion, renaming and safe deletion.

Ingestion pipeline for one upload:
1. Classify MIME type into a media kind
2. Hash file contents
3. Reject uploads whose hash is already stored
4. Store the file (optionally normalized to JPEG)
5. Extract kind-specific additions from the stored file
6. Persist the record

Deletion detaches child files inside a single unit of work before the
record itself is removed; folders holding sub folders cannot be deleted.
"""
from pathlib import Path
from typing import Any, Optional
import logging

from mediastore.exceptions import DuplicateFile, NonEmptyFolder, PersistenceError
from mediastore.lib.classify import classify
from mediastore.lib.hashing import DEFAULT_ALGORITHM, calculate_file_hash
from mediastore.lib.metadata import PREVIEW_OFFSET_SECONDS, extract_additions, preview_path_for
from mediastore.lib.probe import MediaProbe
from mediastore.lib.storage import MediaStorage, UploadedFile
from mediastore.models import MediaKind, MediaRecord, MediaRole
from mediastore.repository import MediaRepository

logger = logging.getLogger(__name__)


class MediaService:
    """Creates, renames and deletes media records."""

    def __init__(
        self,
        repository: MediaRepository,
        storage: MediaStorage,
        probe: MediaProbe,
        hash_algorithm: str = DEFAULT_ALGORITHM,
        preview_offset: float = PREVIEW_OFFSET_SECONDS
    ):
        self.repository = repository
        self.storage = storage
        self.probe = probe
        self.hash_algorithm = hash_algorithm
        self.preview_offset = preview_offset
        self.convert_to_jpeg = False

    def set_convert_to_jpeg(self, convert_to_jpeg: bool) -> 'MediaService':
        """Enable or disable JPEG normalization of stored images."""
        self.convert_to_jpeg = convert_to_jpeg
        return self

    def type_by_mime(self, mime: str) -> MediaKind:
        return classify(mime)

    def get_additions(self, file_path: Path | str, kind: MediaKind) -> dict[str, Any]:
        """Derive additions for a stored file as a JSON-ready dict."""
        additions = extract_additions(
            file_path,
            kind,
            self.probe,
            self.storage.public_root,
            self.preview_offset,
        )
        return additions.to_dict()

    def create_from_file(self, upload: UploadedFile) -> MediaRecord:
        """
        Create a media record from an uploaded file.

        Args:
            upload: File written to disk by the upload handler

        Returns:
            The persisted MediaRecord

        Raises:
            UnknownMediaType: If the MIME type is not image, video or audio
            DuplicateFile: If a record with the same content hash exists
            UnreadableImage / ProbeFailure: If additions cannot be extracted
            PersistenceError: If the repository rejects the record
        """
        kind = classify(upload.mime_type)

        file_hash = calculate_file_hash(upload.path, self.hash_algorithm)

        existing = self.repository.find_where(hash=file_hash)
        if existing:
            logger.warning(f"Duplicate upload {upload.filename}: matches media {existing[0].id}")
            raise DuplicateFile(file_hash, existing[0].id)

        src = self.storage.store(upload, file_hash, self.convert_to_jpeg)

        try:
            additions = self.get_additions(self.storage.absolute_path(src), kind)
            record = self.repository.create({
                'name': upload.filename,
                'hash': file_hash,
                'kind': kind,
                'role': MediaRole.FILE,
                'src': src,
                'mime': upload.mime_type,
                'additions': additions,
            })
        except PersistenceError:
            # A concurrent upload of the same bytes won the unique constraint
            winner = next(iter(self.repository.find_where(hash=file_hash)), None)
            if winner is not None:
                self._discard_stored(src, kind, keep=winner)
                logger.warning(f"Duplicate upload {upload.filename}: lost race to media {winner.id}")
                raise DuplicateFile(file_hash, winner.id)
            self._discard_stored(src, kind)
            raise
        except Exception:
            self._discard_stored(src, kind)
            raise

        logger.info(f"Created {kind.value} media {record.id} from {upload.filename}")
        return record

    def _discard_stored(self, src: str, kind: MediaKind, keep: Optional[MediaRecord] = None):
        """Remove a stored file and its preview unless they belong to `keep`."""
        kept = set()
        if keep is not None:
            kept = {keep.src, keep.addition('preview')}

        paths = [src]
        if kind == MediaKind.VIDEO:
            paths.append(self.storage.relative_path(preview_path_for(self.storage.absolute_path(src))))
        for path in paths:
            if path in kept:
                continue
            try:
                self.storage.remove(path)
            except OSError as e:
                logger.error(f"Failed to clean up stored file {path}: {e}")

    def rename_media(self, media: MediaRecord, name: str):
        """
        Rename the stored file of a record (and its video preview) in place.

        The caller is responsible for persisting the record.

        Raises:
            StorageError: If either file cannot be renamed; nothing is moved then
        """
        preview = media.addition('preview') if media.kind == MediaKind.VIDEO else None
        # Validate both targets before touching disk
        self.storage.rename_target(media.src, name)
        if preview:
            self.storage.rename_target(str(preview), name)

        media.src = self.storage.rename(media.src, name)

        if preview:
            # Reassign a copy so the JSON column change is detected
            additions = dict(media.additions)
            additions['preview'] = self.storage.rename(str(media.addition('preview')), name)
            media.additions = additions

    def create_folder(self, name: str, parent: Optional[MediaRecord] = None) -> MediaRecord:
        """Create an empty folder record, optionally inside another folder."""
        if parent is not None and not parent.is_folder:
            raise ValueError(f"Media {parent.id} is not a folder")

        folder = self.repository.create({
            'name': name,
            'role': MediaRole.FOLDER,
            'additions': {},
            'parent_id': parent.id if parent is not None else None,
        })
        logger.info(f"Created folder {folder.id} ({name})")
        return folder

    def safe_delete(self, media: MediaRecord):
        """
        Delete a record after detaching its children.

        All children are detached in one unit of work. A sub folder among the
        children aborts the deletion and leaves every child untouched.

        Raises:
            NonEmptyFolder: If a child is a folder
            PersistenceError: If detaching or deleting fails
        """
        children = self.repository.find_where(parent_id=media.id)

        uow = self.repository.begin()
        try:
            for child in children:
                if child.role == MediaRole.FOLDER:
                    raise NonEmptyFolder("Can't delete this folder. The folder contains sub folder.")
                uow.update({'parent_id': None}, child.id)
            uow.commit()
        except Exception as e:
            logger.warning(f"Delete of media {media.id} aborted: {e}")
            uow.rollback()
            raise

        self.repository.delete(media)
        logger.info(f"Deleted media {media.id}, detached {len(children)} child record(s)")


def build_media_service(app) -> MediaService:
    """Wire a MediaService from application config."""
    storage = MediaStorage(
        app.config['PUBLIC_STORAGE_DIR'],
        app.config['MEDIA_DIR'],
        app.config['JPEG_QUALITY'],
    )
    probe = MediaProbe(
        app.config['FFMPEG_PATH'],
        app.config['FFPROBE_PATH'],
        app.config['PROBE_TIMEOUT'],
    )
    service = MediaService(
        MediaRepository(),
        storage,
        probe,
        hash_algorithm=app.config['HASH_ALGORITHM'],
        preview_offset=app.config['PREVIEW_OFFSET_SECONDS'],
    )
    return service.set_convert_to_jpeg(app.config['CONVERT_TO_JPEG'])
