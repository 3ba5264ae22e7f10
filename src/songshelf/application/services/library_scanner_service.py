"""Library scanner: walk the music root and reconcile every audio file with the catalog."""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from songshelf.application.services.catalog_reconciler import CatalogReconciler
from songshelf.application.services.metadata_extractor import MetadataExtractor
from songshelf.application.services.sidecar_writer import SidecarWriter
from songshelf.config import Settings
from songshelf.domain.entities import ReconcileOutcome, ScanRecord, SidecarKind
from songshelf.domain.exceptions import (
    DirectoryWalkError,
    InvalidFilenameError,
    MetadataUnreadableError,
    SidecarWriteError,
)
from songshelf.domain.value_objects import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_TITLE,
    ExtractedMetadata,
    infer_from_filename,
    is_audio_file,
)
from songshelf.infrastructure.observability import describe_oserror

logger = logging.getLogger(__name__)


def _never_stop() -> bool:
    return False


@dataclass
class ScanPassStats:
    """Counters for one scan + enrichment pass."""

    files_seen: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    already_existing: int = 0
    errors: int = 0
    lyrics_enriched: int = 0
    covers_enriched: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LibraryScannerService:
    """Walk the music root, resolve metadata per file and reconcile it with the catalog.

    The walk and all per-file disk/tag work runs in worker threads via
    asyncio.to_thread so the event loop (and with it the serving layer)
    never blocks on a slow disk. Catalog writes stay async and one at a time.
    """

    def __init__(
        self,
        settings: Settings,
        reconciler: CatalogReconciler,
        extractor: MetadataExtractor | None = None,
        sidecars: SidecarWriter | None = None,
    ) -> None:
        """Initialize scanner service.

        Args:
            settings: Application settings (music root, allowed formats)
            reconciler: Catalog reconciler
            extractor: Metadata extractor (default: mutagen based)
            sidecars: Sidecar writer (default: one rooted at the music path)
        """
        self.settings = settings
        self.music_path = settings.storage.music_path
        self.allowed_formats = frozenset(settings.library.allowed_formats)
        self.reconciler = reconciler
        self.extractor = extractor or MetadataExtractor()
        self.sidecars = sidecars or SidecarWriter(self.music_path)

    async def scan_library(
        self,
        stats: ScanPassStats,
        should_stop: Callable[[], bool] = _never_stop,
    ) -> list[ScanRecord]:
        """Scan the whole music root once.

        Hey future me - this NEVER raises for a single bad file. Unreadable tags, odd names,
        read-only dirs, a DB hiccup on one row: all logged, counted in stats.errors, skipped.
        The returned records (inserted, updated or already existing) feed the enrichment pass.

        Args:
            stats: Counters to fill in
            should_stop: Checked between files; True ends the walk early

        Returns:
            Records touched this pass
        """
        if not self.music_path.is_dir():
            logger.warning(f"Music directory does not exist, nothing to scan: {self.music_path}")
            return []

        audio_files, walk_errors = await asyncio.to_thread(self._discover_audio_files, self.music_path)
        stats.errors += walk_errors
        logger.info(f"Found {len(audio_files)} audio files below {self.music_path}")

        touched: list[ScanRecord] = []
        for path in audio_files:
            if should_stop():
                logger.info("Scan cancelled, stopping before next file")
                stats.cancelled = True
                break

            stats.files_seen += 1
            try:
                record = await self._process_file(path, stats)
            except Exception as e:
                # Hey future me - last line of defence, one cursed file must not end the pass.
                logger.error(f"Unexpected error while scanning {path}: {e}", exc_info=True)
                stats.errors += 1
                continue

            if record is not None:
                touched.append(record)

        return touched

    async def _process_file(self, path: Path, stats: ScanPassStats) -> ScanRecord | None:
        relative = self.sidecars.relative(path)

        try:
            state = await self.reconciler.lookup(relative)
        except SQLAlchemyError as e:
            logger.warning(f"Catalog lookup failed for {relative}, skipping this pass: {e}")
            stats.errors += 1
            return None

        if self.reconciler.should_skip(state):
            logger.debug(f"Skipping {relative} (deleted or complete)")
            stats.skipped += 1
            return None

        try:
            record = await asyncio.to_thread(self.resolve_file, path, relative)
        except InvalidFilenameError as e:
            logger.warning(f"Skipping file: {e.message} ({path})")
            stats.errors += 1
            return None

        try:
            outcome = await self.reconciler.reconcile(record, state)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to save {relative} to the catalog: {e}")
            stats.errors += 1
            return None

        if outcome == ReconcileOutcome.INSERTED:
            stats.inserted += 1
        elif outcome == ReconcileOutcome.UPDATED:
            stats.updated += 1
        elif outcome == ReconcileOutcome.ALREADY_EXISTS:
            stats.already_existing += 1
        else:
            stats.skipped += 1
            return None
        return record

    def resolve_file(self, path: Path, relative_path: str) -> ScanRecord:
        """Build the scan record for one file (blocking, run it in a thread).

        Tags first, then the filename fallback for a missing title, then sidecars:
        embedded lyrics/cover are written out unless a sidecar already exists, and
        sidecars placed by hand are picked up as well.

        Raises:
            InvalidFilenameError: If the title must come from the name and the name is empty
        """
        record = ScanRecord(absolute_path=path, relative_path=relative_path)

        try:
            meta = self.extractor.extract(path)
        except MetadataUnreadableError as e:
            logger.warning(f"{e.message}, using defaults")
            meta = ExtractedMetadata()

        record.duration = meta.duration
        record.title = meta.tags.get("title") or UNKNOWN_TITLE
        record.artist = meta.tags.get("artist") or UNKNOWN_ARTIST
        record.album = meta.tags.get("album") or UNKNOWN_ALBUM

        if record.title == UNKNOWN_TITLE:
            inferred = infer_from_filename(path.name, record.artist)
            record.title = inferred.title
            record.artist = inferred.artist

        lyrics = meta.tags.get("lyrics", "")
        if lyrics:
            try:
                record.lyrics_path = self.sidecars.write(path, SidecarKind.LYRICS, lyrics)
            except SidecarWriteError as e:
                logger.warning(e.message)
        if not record.lyrics_path:
            record.lyrics_path = self.sidecars.find_existing(path, SidecarKind.LYRICS)

        if meta.has_embedded_cover:
            record.cover_path = self._resolve_embedded_cover(path, meta.cover_mime)
        if not record.cover_path:
            record.cover_path = self.sidecars.find_existing(path, SidecarKind.COVER)

        return record

    def _resolve_embedded_cover(self, path: Path, mime: str) -> str:
        target = self.sidecars.sidecar_path(path, SidecarKind.COVER, mime)
        if target.exists():
            return self.sidecars.relative(target)

        cover = self.extractor.read_cover(path)
        if cover is None or not cover.data:
            return ""
        try:
            return self.sidecars.write(path, SidecarKind.COVER, cover.data, mime=mime)
        except SidecarWriteError as e:
            logger.warning(e.message)
            return ""

    def _discover_audio_files(self, root: Path) -> tuple[list[Path], int]:
        """Recursively collect audio files below root.

        Returns:
            (sorted audio file paths, number of directories that could not be listed)
        """
        audio_files: list[Path] = []
        walk_errors = 0

        def on_error(e: OSError) -> None:
            nonlocal walk_errors
            walk_errors += 1
            error = DirectoryWalkError(e.filename or root, describe_oserror(e))
            logger.warning(f"{error.message}, skipping subtree")

        # Symlinked directories are not followed, a link back to the root would loop forever.
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
            dirnames.sort()
            for filename in sorted(filenames):
                if is_audio_file(filename, self.allowed_formats):
                    audio_files.append(Path(dirpath) / filename)

        return audio_files, walk_errors
