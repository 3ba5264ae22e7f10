"""Admin operations on catalog entries: edit, soft delete, restore."""

import logging
from pathlib import Path

from songshelf.application.services.library_enrichment_service import LibraryEnrichmentService
from songshelf.domain.entities import Song
from songshelf.domain.exceptions import EntityNotFoundException, ValidationException
from songshelf.infrastructure.persistence import Database, SongRepository, with_db_retry

logger = logging.getLogger(__name__)


class LibraryAdminService:
    """Edit song metadata and toggle the soft-delete flag."""

    def __init__(
        self,
        db: Database,
        enrichment: LibraryEnrichmentService,
        music_path: Path,
    ) -> None:
        self._db = db
        self._enrichment = enrichment
        self._music_path = music_path

    # Hey future me - an admin edit is the ONLY way a collected song (is_collect=1) gets new
    # sidecars. The scanner skips collected songs forever, so after fixing a typo in the
    # title we look lyrics and cover up again with the corrected names and REPLACE the old
    # sidecars when the lookup hits. A miss keeps whatever is on disk.
    async def update_song(
        self,
        song_id: int,
        title: str,
        artist: str,
        album: str = "",
        duration: int = 0,
    ) -> Song:
        """
        Overwrite a song's metadata and re-resolve its lyrics and cover.

        Args:
            song_id: Catalog id
            title: New title (required)
            artist: New artist (required)
            album: New album
            duration: New duration in seconds

        Returns:
            The updated song

        Raises:
            ValidationException: If title/artist are blank or duration is negative
            EntityNotFoundException: If the song does not exist
        """
        title, artist, album = title.strip(), artist.strip(), album.strip()
        if not title or not artist:
            raise ValidationException("Title and artist are required")
        if duration < 0:
            raise ValidationException("Duration must not be negative")

        song = await self._update_metadata(song_id, title, artist, album, duration)

        resolved = await self._enrichment.re_resolve_song(
            title,
            artist,
            album,
            self._music_path / song.file_path,
            replace_existing=True,
        )
        await self._store_sidecars(song_id, resolved.lyrics_path, resolved.cover_path)
        logger.info(
            f"Updated song {song_id} ('{title}' by {artist}), "
            f"lyrics={resolved.lyrics_path or '-'}, cover={resolved.cover_path or '-'}"
        )

        async with self._db.session_scope() as session:
            updated = await SongRepository(session).get_by_id(song_id, include_deleted=True)
        if updated is None:
            raise EntityNotFoundException("Song", song_id)
        return updated

    async def delete_songs(self, song_ids: list[int]) -> int:
        """Soft-delete songs. The scanner will skip their files from now on.

        Returns:
            Number of songs that were newly marked deleted
        """
        changed = await self._set_deleted(song_ids, True)
        logger.info(f"Soft-deleted {changed} of {len(song_ids)} songs")
        return changed

    async def restore_songs(self, song_ids: list[int]) -> int:
        """Clear the soft-delete flag so songs show up (and get scanned) again.

        Returns:
            Number of songs that were restored
        """
        changed = await self._set_deleted(song_ids, False)
        logger.info(f"Restored {changed} of {len(song_ids)} songs")
        return changed

    @with_db_retry()
    async def _update_metadata(
        self, song_id: int, title: str, artist: str, album: str, duration: int
    ) -> Song:
        async with self._db.session_scope() as session:
            repo = SongRepository(session)
            song = await repo.get_by_id(song_id, include_deleted=True)
            if song is None:
                raise EntityNotFoundException("Song", song_id)
            await repo.update_metadata(song_id, title, artist, album, duration)
            return song

    @with_db_retry()
    async def _store_sidecars(self, song_id: int, lyrics_path: str, cover_path: str) -> None:
        async with self._db.session_scope() as session:
            await SongRepository(session).set_sidecars_by_id(song_id, lyrics_path, cover_path)

    @with_db_retry()
    async def _set_deleted(self, song_ids: list[int], deleted: bool) -> int:
        async with self._db.session_scope() as session:
            return await SongRepository(session).set_deleted(list(set(song_ids)), deleted)
