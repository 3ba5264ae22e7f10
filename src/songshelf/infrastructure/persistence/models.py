"""SQLAlchemy ORM models for songshelf."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Hey future me, ALL timestamps are UTC! Never store naive datetime.now() values.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive, so attach
# UTC before comparing them with datetime.now(UTC) or you get "can't compare offset-naive
# and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, SongModel is THE catalog table. file_path (relative to the music root) is the
# natural key and carries the UNIQUE constraint the scanner relies on for "already exists".
# play_count belongs to the serving layer - the pipeline must never write it. is_deleted is a
# soft delete set by admins; the scanner skips those rows forever (no resurrection on rescan).
class SongModel(Base):
    """SQLAlchemy model for a catalogued song."""

    __tablename__ = "songs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    artist: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    album: Mapped[str] = mapped_column(String(255), nullable=False)
    # Seconds, 0 means unknown
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    lyrics_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    play_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    is_collect: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default="0"
    )
    is_deleted: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (Index("ix_songs_is_deleted", "is_deleted"),)
