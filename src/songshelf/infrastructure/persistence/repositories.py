"""Repository for the songs catalog table."""

import logging
from datetime import datetime

from sqlalchemy import and_, func, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from songshelf.domain.entities import ScanRecord, Song, SongScanState
from songshelf.domain.exceptions import DuplicateEntityException
from songshelf.infrastructure.persistence.models import (
    SongModel,
    ensure_utc_aware,
    utc_now,
)

logger = logging.getLogger(__name__)


def _to_entity(model: SongModel) -> Song:
    return Song(
        id=model.id,
        title=model.title,
        artist=model.artist,
        album=model.album,
        file_path=model.file_path,
        duration=model.duration,
        lyrics_path=model.lyrics_path or None,
        cover_image=model.cover_image or None,
        play_count=model.play_count,
        is_collect=model.is_collect,
        is_deleted=model.is_deleted,
        created_at=ensure_utc_aware(model.created_at),
        updated_at=ensure_utc_aware(model.updated_at),
    )


# Hey future me, this repository speaks single statements only! The scanner never holds a
# transaction across files - every method here is ONE insert/update/select, and the caller's
# session_scope() commits it right away. A crash mid-pass leaves a valid (just incomplete)
# catalog, never a half-written batch.
class SongRepository:
    """SQLAlchemy implementation of the song catalog repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    # =========================================================================
    # SCANNER WRITES
    # =========================================================================

    async def get_scan_state(self, file_path: str) -> SongScanState | None:
        """Get the skip/insert/update flags for a relative file path."""
        stmt = select(SongModel.id, SongModel.is_collect, SongModel.is_deleted).where(
            SongModel.file_path == file_path
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        return SongScanState(id=row.id, is_collect=row.is_collect, is_deleted=row.is_deleted)

    async def insert_scanned(self, record: ScanRecord, now: datetime | None = None) -> int:
        """Insert a newly discovered file.

        Returns:
            The new song id

        Raises:
            DuplicateEntityException: If another row already owns the file path
        """
        now = now or utc_now()
        model = SongModel(
            title=record.title,
            artist=record.artist,
            album=record.album,
            duration=record.duration,
            file_path=record.relative_path,
            lyrics_path=record.lyrics_path or None,
            cover_image=record.cover_path or None,
            play_count=0,
            is_collect=record.is_collect,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Unique constraint on file_path - somebody beat us to it.
            await self.session.rollback()
            raise DuplicateEntityException("Song", record.relative_path) from e
        return model.id

    async def update_scanned(self, song_id: int, record: ScanRecord) -> int:
        """Overwrite a not-yet-collected row with this pass's scan result.

        The cover column is only written when a cover was resolved this pass, so a
        previously stored cover never regresses to NULL. play_count is not touched.
        Rows soft-deleted or collected since the lookup are left alone.

        Returns:
            Number of rows changed (0 when the row went away from under the scan)
        """
        values: dict[str, object] = {
            "title": record.title,
            "artist": record.artist,
            "album": record.album,
            "duration": record.duration,
            "lyrics_path": record.lyrics_path or None,
            "is_collect": record.is_collect,
            "updated_at": utc_now(),
        }
        if record.cover_path:
            values["cover_image"] = record.cover_path

        stmt = (
            update(SongModel)
            .where(SongModel.id == song_id)
            .where(SongModel.is_deleted.is_(False))
            .where(SongModel.is_collect.is_(False))
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def update_sidecars(
        self,
        file_path: str,
        lyrics_path: str,
        cover_path: str,
    ) -> int:
        """Store sidecar paths resolved by enrichment.

        Empty paths are skipped so a miss never clears a known value. is_collect is
        derived from what ends up stored, so it can only ever go from false to true.
        Soft-deleted rows are never written.

        Returns:
            Number of rows changed (0 when the path isn't catalogued or is deleted)
        """
        new_lyrics = literal(lyrics_path) if lyrics_path else SongModel.lyrics_path
        new_cover = literal(cover_path) if cover_path else SongModel.cover_image
        values: dict[str, object] = {
            "is_collect": and_(new_lyrics.is_not(None), new_cover.is_not(None)),
            "updated_at": utc_now(),
        }
        if lyrics_path:
            values["lyrics_path"] = lyrics_path
        if cover_path:
            values["cover_image"] = cover_path

        stmt = (
            update(SongModel)
            .where(SongModel.file_path == file_path)
            .where(SongModel.is_deleted.is_(False))
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    # =========================================================================
    # COLLABORATOR READS / ADMIN WRITES
    # =========================================================================

    async def get_by_id(self, song_id: int, include_deleted: bool = False) -> Song | None:
        """Get a song by id, soft-deleted rows excluded unless asked for."""
        stmt = select(SongModel).where(SongModel.id == song_id)
        if not include_deleted:
            stmt = stmt.where(SongModel.is_deleted.is_(False))
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return _to_entity(model) if model else None

    async def list_active(self, limit: int | None = None, offset: int = 0) -> list[Song]:
        """List non-deleted songs, newest first."""
        stmt = (
            select(SongModel)
            .where(SongModel.is_deleted.is_(False))
            .order_by(SongModel.created_at.desc(), SongModel.id.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [_to_entity(model) for model in result.scalars().all()]

    async def count_active(self) -> int:
        """Count non-deleted songs."""
        stmt = select(func.count(SongModel.id)).where(SongModel.is_deleted.is_(False))
        return (await self.session.execute(stmt)).scalar_one()

    async def search(self, query: str, limit: int | None = None) -> list[Song]:
        """Substring search over title, artist and album (case-insensitive)."""
        # Escape LIKE wildcards so "100%" searches for a literal percent sign.
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped.lower()}%"
        stmt = (
            select(SongModel)
            .where(SongModel.is_deleted.is_(False))
            .where(
                or_(
                    func.lower(SongModel.title).like(pattern, escape="\\"),
                    func.lower(SongModel.artist).like(pattern, escape="\\"),
                    func.lower(SongModel.album).like(pattern, escape="\\"),
                )
            )
            .order_by(SongModel.created_at.desc(), SongModel.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [_to_entity(model) for model in result.scalars().all()]

    async def update_metadata(
        self,
        song_id: int,
        title: str,
        artist: str,
        album: str,
        duration: int,
    ) -> int:
        """Overwrite the descriptive fields of one song (admin edit)."""
        stmt = (
            update(SongModel)
            .where(SongModel.id == song_id)
            .values(
                title=title,
                artist=artist,
                album=album,
                duration=duration,
                updated_at=utc_now(),
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def set_sidecars_by_id(
        self,
        song_id: int,
        lyrics_path: str,
        cover_path: str,
    ) -> None:
        """Store re-resolved sidecars for one song and recompute is_collect.

        Empty paths keep the stored value, is_collect is derived from what ends up stored.
        """
        model = await self.session.get(SongModel, song_id)
        if model is None:
            return
        if lyrics_path:
            model.lyrics_path = lyrics_path
        if cover_path:
            model.cover_image = cover_path
        model.is_collect = bool(model.lyrics_path) and bool(model.cover_image)
        model.updated_at = utc_now()

    async def set_deleted(self, song_ids: list[int], deleted: bool) -> int:
        """Set or clear the soft-delete flag for a batch of songs.

        Returns:
            Number of rows whose flag actually changed
        """
        if not song_ids:
            return 0
        stmt = (
            update(SongModel)
            .where(SongModel.id.in_(song_ids))
            .where(SongModel.is_deleted.is_not(deleted))
            .values(is_deleted=deleted, updated_at=utc_now())
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
