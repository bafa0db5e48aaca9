"""
Media repository over the Flask-SQLAlchemy session.

A narrow create/find/update/delete interface so the media service never
touches the session directly. Multi-step writes go through an explicit
UnitOfWork handle obtained from MediaRepository.begin().
"""
from typing import Any, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from mediastore import db
from mediastore.exceptions import PersistenceError
from mediastore.models import MediaRecord

logger = logging.getLogger(__name__)

# Columns callers may set through create/update
WRITABLE_FIELDS = {'name', 'hash', 'kind', 'role', 'src', 'mime', 'additions', 'parent_id'}


def _check_fields(fields: dict[str, Any]):
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise PersistenceError(f"Unknown media fields: {', '.join(sorted(unknown))}")


class UnitOfWork:
    """
    Transaction handle for a group of repository writes.

    Changes are flushed as they are made and only committed when the
    ``with`` block exits cleanly; any exception rolls all of them back.
    """

    def __init__(self, session):
        self.session = session
        self._done = False

    def update(self, fields: dict[str, Any], record_id: int):
        """Apply field changes to a record inside this unit of work."""
        _check_fields(fields)
        try:
            record = self.session.get(MediaRecord, record_id)
            if record is None:
                raise PersistenceError(f"Media {record_id} not found")
            for key, value in fields.items():
                setattr(record, key, value)
            self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update media {record_id}: {e}") from e

    def commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Commit failed: {e}") from e
        finally:
            self._done = True

    def rollback(self):
        self.session.rollback()
        self._done = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._done:
            return False
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class MediaRepository:
    """Create/find/update/delete access to MediaRecord rows."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def get(self, record_id: int) -> Optional[MediaRecord]:
        try:
            return self.session.get(MediaRecord, record_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load media {record_id}: {e}") from e

    def find_where(self, **filters) -> list[MediaRecord]:
        """Return all records matching the equality filters, ordered by id."""
        try:
            stmt = select(MediaRecord).filter_by(**filters).order_by(MediaRecord.id)
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Query failed for {filters}: {e}") from e

    def count_where(self, **filters) -> int:
        try:
            stmt = select(func.count()).select_from(MediaRecord).filter_by(**filters)
            return self.session.scalar(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Count failed for {filters}: {e}") from e

    def create(self, fields: dict[str, Any]) -> MediaRecord:
        """
        Insert and commit a new record.

        Raises:
            PersistenceError: On unknown fields or any database error
                (including the unique constraint on hash)
        """
        _check_fields(fields)
        record = MediaRecord(**fields)
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to create media: {e}") from e
        return record

    def update(self, fields: dict[str, Any], record_id: int):
        """Update a record in its own unit of work."""
        with self.begin() as uow:
            uow.update(fields, record_id)

    def save(self, record: MediaRecord):
        """Commit in-place changes made to a loaded record (e.g. after rename)."""
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to save media {record.id}: {e}") from e

    def delete(self, record: MediaRecord):
        try:
            self.session.delete(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to delete media {record.id}: {e}") from e

    def begin(self) -> UnitOfWork:
        """Open a unit of work; use as a context manager."""
        return UnitOfWork(self.session)
