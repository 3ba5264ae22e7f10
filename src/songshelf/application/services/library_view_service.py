"""Read-only catalog queries handed to the serving layer."""

import logging

from songshelf.domain.entities import Song
from songshelf.domain.exceptions import EntityNotFoundException
from songshelf.infrastructure.persistence import Database, SongRepository

logger = logging.getLogger(__name__)


class LibraryViewService:
    """List, fetch and search catalogued songs. Soft-deleted songs are invisible here."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def list_songs(self, limit: int | None = None, offset: int = 0) -> list[Song]:
        """All active songs, newest first."""
        async with self._db.session_scope() as session:
            return await SongRepository(session).list_active(limit=limit, offset=offset)

    async def count_songs(self) -> int:
        async with self._db.session_scope() as session:
            return await SongRepository(session).count_active()

    async def get_song(self, song_id: int) -> Song:
        """
        Get one active song.

        Raises:
            EntityNotFoundException: If the id is unknown or the song is soft-deleted
        """
        async with self._db.session_scope() as session:
            song = await SongRepository(session).get_by_id(song_id)
        if song is None:
            raise EntityNotFoundException("Song", song_id)
        return song

    async def search_songs(self, query: str, limit: int | None = None) -> list[Song]:
        """Substring search over title, artist and album. A blank query lists everything."""
        query = query.strip()
        if not query:
            return await self.list_songs(limit=limit)
        async with self._db.session_scope() as session:
            songs = await SongRepository(session).search(query, limit=limit)
        logger.debug(f"Search '{query}' matched {len(songs)} songs")
        return songs
