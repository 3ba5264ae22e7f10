"""HTTP client for the lyrics/cover lookup service."""

import logging

import httpx

from songshelf.config.settings import EnrichmentSettings
from songshelf.domain.exceptions import EnrichmentMissError
from songshelf.domain.value_objects import CoverImage

logger = logging.getLogger(__name__)


# Hey future me, the lookup service (api.lrc.cx style) is DEAD simple: GET /lyrics or /cover with
# title (always) plus artist/album (only when known), and the raw body IS the answer. 200 with
# a body = hit; ANY other status, an empty body, a timeout or a connection error = miss.
# We never retry inside a pass - the next scheduled pass is the retry.
class LyricsApiClient:
    """HTTP client for lyrics and cover lookups."""

    def __init__(self, settings: EnrichmentSettings) -> None:
        """
        Initialize lookup client.

        Args:
            settings: Enrichment service configuration
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LyricsApiClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @staticmethod
    def build_query(title: str, artist: str = "", album: str = "") -> dict[str, str]:
        """Build lookup query params, artist/album only when non-empty."""
        params = {"title": title}
        if artist:
            params["artist"] = artist
        if album:
            params["album"] = album
        return params

    async def _lookup(self, kind: str, title: str, artist: str, album: str) -> httpx.Response:
        client = await self._get_client()
        params = self.build_query(title, artist, album)

        try:
            response = await client.get(f"/{kind}", params=params)
        except httpx.HTTPError as e:
            logger.debug(f"{kind} lookup failed for '{title}': {type(e).__name__}: {e}")
            raise EnrichmentMissError(kind, title, type(e).__name__) from e

        if response.status_code != httpx.codes.OK:
            raise EnrichmentMissError(kind, title, f"HTTP {response.status_code}")
        if not response.content:
            raise EnrichmentMissError(kind, title, "empty response")
        return response

    async def fetch_lyrics(self, title: str, artist: str = "", album: str = "") -> str:
        """
        Look up lyrics text (usually LRC) for a song.

        Args:
            title: Song title
            artist: Artist name ("" to omit)
            album: Album name ("" to omit)

        Returns:
            Lyrics text

        Raises:
            EnrichmentMissError: On any non-hit
        """
        response = await self._lookup("lyrics", title, artist, album)
        lyrics = response.text
        logger.debug(f"Found lyrics for '{title}' ({len(lyrics)} chars)")
        return lyrics

    async def fetch_cover(self, title: str, artist: str = "", album: str = "") -> CoverImage:
        """
        Look up cover art for a song.

        Args:
            title: Song title
            artist: Artist name ("" to omit)
            album: Album name ("" to omit)

        Returns:
            CoverImage with raw bytes and the MIME type from Content-Type

        Raises:
            EnrichmentMissError: On any non-hit
        """
        response = await self._lookup("cover", title, artist, album)
        mime = response.headers.get("content-type", "").split(";")[0].strip().lower()
        logger.debug(f"Found cover for '{title}' ({len(response.content)} bytes, {mime or 'no type'})")
        return CoverImage(data=response.content, mime=mime)
