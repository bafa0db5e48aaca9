"""SQLAlchemy database models for mediastore.

Defines the media table holding both uploaded files and the folders that
group them. Uses SQLAlchemy 2.x type-safe patterns with Mapped and mapped_column.
"""
from datetime import datetime, timezone
import sqlite3
from enum import Enum as PyEnum
from typing import Any, Optional
from sqlalchemy import Integer, String, DateTime, ForeignKey, Index, JSON
from sqlalchemy import Enum as SQLEnum, event
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.engine import Engine
from mediastore import db


# ============================================================================
# Enums
# ============================================================================

class MediaKind(str, PyEnum):
    """Kind of media held by a file record."""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class MediaRole(str, PyEnum):
    """Whether a record is a leaf file or a container folder."""
    FILE = "file"
    FOLDER = "folder"


# ============================================================================
# Models
# ============================================================================

class MediaRecord(db.Model):
    """A stored media file or a folder of media records."""
    __tablename__ = 'media'

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Display name (folder name, or original filename of an upload)
    name: Mapped[Optional[str]] = mapped_column(String(255))

    # Content identity - unique so concurrent identical uploads cannot both persist
    hash: Mapped[Optional[str]] = mapped_column(String(128), unique=True)

    kind: Mapped[Optional[MediaKind]] = mapped_column(SQLEnum(MediaKind))
    role: Mapped[MediaRole] = mapped_column(
        SQLEnum(MediaRole),
        default=MediaRole.FILE,
        nullable=False
    )

    # Storage location, relative to the public storage root
    src: Mapped[Optional[str]] = mapped_column(String(500))
    mime: Mapped[Optional[str]] = mapped_column(String(100))

    # Kind-specific derived metadata (width/height/duration/preview/...)
    additions: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Weak folder reference; children are detached, never cascaded
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey('media.id'), index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Indexes
    __table_args__ = (
        Index('ix_media_role', 'role'),
    )

    @validates('hash', 'kind')
    def _validate_immutable(self, key, value):
        """Hash and kind are fixed once a record has them."""
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValueError(f"MediaRecord.{key} cannot be changed once set")
        return value

    @property
    def is_folder(self) -> bool:
        return self.role == MediaRole.FOLDER

    def addition(self, key: str, default: Any = None) -> Any:
        """Return a single value from additions."""
        return (self.additions or {}).get(key, default)

    def __repr__(self):
        label = self.name or self.src
        return f"<MediaRecord {self.id}: {self.role} {label}>"


# ============================================================================
# SQLite Foreign Key Enforcement
# ============================================================================

@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    if not isinstance(dbapi_conn, sqlite3.Connection):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
