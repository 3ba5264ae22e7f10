"""Fill in missing lyrics/covers from the lookup service."""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from songshelf.application.services.catalog_reconciler import CatalogReconciler
from songshelf.application.services.library_scanner_service import ScanPassStats
from songshelf.application.services.sidecar_writer import SidecarWriter
from songshelf.domain.entities import ScanRecord, SidecarKind
from songshelf.domain.exceptions import EnrichmentMissError, SidecarWriteError
from songshelf.domain.value_objects import ResolvedSidecars
from songshelf.infrastructure.integrations import LyricsApiClient

logger = logging.getLogger(__name__)


def _never_stop() -> bool:
    return False


# Hey future me, enrichment runs AFTER the walk, over the records the scan touched. It only
# asks for what's missing: a song with an embedded cover but no lyrics costs one /lyrics
# request, not two. A miss is normal (obscure tracks, typos in tags) and simply waits for the
# next pass - no retries here, the scheduler is the retry loop.
class LibraryEnrichmentService:
    """Resolve missing sidecars via the lookup service and store them in the catalog."""

    def __init__(
        self,
        client: LyricsApiClient,
        sidecars: SidecarWriter,
        reconciler: CatalogReconciler,
    ) -> None:
        self.client = client
        self.sidecars = sidecars
        self.reconciler = reconciler

    async def enrich_records(
        self,
        records: list[ScanRecord],
        stats: ScanPassStats,
        should_stop: Callable[[], bool] = _never_stop,
    ) -> None:
        """Enrich every record that still misses lyrics or cover.

        Args:
            records: Records touched by the scan pass
            stats: Counters to fill in (lyrics_enriched, covers_enriched, errors)
            should_stop: Checked between records
        """
        pending = [r for r in records if r.missing_lyrics or r.missing_cover]
        logger.info(f"Enriching {len(pending)} of {len(records)} scanned songs")

        for record in pending:
            if should_stop():
                logger.info("Enrichment cancelled, stopping before next song")
                stats.cancelled = True
                break

            try:
                lyrics_added, cover_added = await self.enrich_record(record)
            except Exception as e:
                logger.error(f"Unexpected error while enriching {record.relative_path}: {e}", exc_info=True)
                stats.errors += 1
                continue

            stats.lyrics_enriched += int(lyrics_added)
            stats.covers_enriched += int(cover_added)

    async def enrich_record(self, record: ScanRecord) -> tuple[bool, bool]:
        """Fetch the missing field(s) for one record and persist what was found.

        Returns:
            (lyrics resolved, cover resolved)
        """
        lyrics_added = False
        cover_added = False

        if record.missing_lyrics:
            path = await self._fetch_lyrics_sidecar(
                record.absolute_path, record.title, record.artist, record.album
            )
            if path:
                record.lyrics_path = path
                lyrics_added = True

        if record.missing_cover:
            path = await self._fetch_cover_sidecar(
                record.absolute_path, record.title, record.artist, record.album
            )
            if path:
                record.cover_path = path
                cover_added = True

        if lyrics_added or cover_added:
            await self.reconciler.apply_sidecars(record)
            logger.info(
                f"Enriched {record.relative_path}: lyrics={'yes' if lyrics_added else 'no'}, "
                f"cover={'yes' if cover_added else 'no'}"
            )
        return lyrics_added, cover_added

    async def re_resolve_song(
        self,
        title: str,
        artist: str,
        album: str,
        file_path: Path,
        replace_existing: bool = False,
    ) -> ResolvedSidecars:
        """Resolve lyrics and cover for one song with fresh metadata.

        Used by the admin edit flow after a title/artist change. Both fields are
        looked up; a miss falls back to whatever sidecar is already on disk.

        Args:
            title: Song title
            artist: Artist name
            album: Album name
            file_path: Absolute path of the audio file
            replace_existing: Overwrite existing sidecars with the new lookup result

        Returns:
            ResolvedSidecars with relative paths ("" where nothing is known)
        """
        lyrics_path = await self._fetch_lyrics_sidecar(
            file_path, title, artist, album, overwrite=replace_existing
        )
        cover_path = await self._fetch_cover_sidecar(
            file_path, title, artist, album, overwrite=replace_existing
        )

        if not lyrics_path:
            lyrics_path = await asyncio.to_thread(self.sidecars.find_existing, file_path, SidecarKind.LYRICS)
        if not cover_path:
            cover_path = await asyncio.to_thread(self.sidecars.find_existing, file_path, SidecarKind.COVER)

        return ResolvedSidecars(lyrics_path=lyrics_path, cover_path=cover_path)

    async def _fetch_lyrics_sidecar(
        self, file_path: Path, title: str, artist: str, album: str, overwrite: bool = False
    ) -> str:
        try:
            lyrics = await self.client.fetch_lyrics(title, artist, album)
        except EnrichmentMissError as e:
            logger.info(e.message)
            return ""

        try:
            return await asyncio.to_thread(
                self.sidecars.write, file_path, SidecarKind.LYRICS, lyrics, "", overwrite
            )
        except SidecarWriteError as e:
            logger.warning(e.message)
            return ""

    async def _fetch_cover_sidecar(
        self, file_path: Path, title: str, artist: str, album: str, overwrite: bool = False
    ) -> str:
        try:
            cover = await self.client.fetch_cover(title, artist, album)
        except EnrichmentMissError as e:
            logger.info(e.message)
            return ""

        try:
            return await asyncio.to_thread(
                self.sidecars.write, file_path, SidecarKind.COVER, cover.data, cover.mime, overwrite
            )
        except SidecarWriteError as e:
            logger.warning(e.message)
            return ""
