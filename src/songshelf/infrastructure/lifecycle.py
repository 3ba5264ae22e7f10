"""Application lifecycle: wire settings, logging, database and the scan worker together.

The serving layer (whatever HTTP framework hosts songshelf) enters ``lifespan()`` once at
startup and gets a ``LibraryRuntime`` back. It reads the catalog through ``runtime.view``,
runs admin edits through ``runtime.admin`` and may trigger a scan with
``runtime.worker.trigger_scan()``. Nothing here is a process-wide singleton.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from songshelf.application.services import (
    CatalogReconciler,
    LibraryAdminService,
    LibraryEnrichmentService,
    LibraryScannerService,
    LibraryViewService,
    MetadataExtractor,
    SidecarWriter,
)
from songshelf.application.workers import LibraryScanWorker
from songshelf.config import Settings, get_settings
from songshelf.domain.exceptions import ConfigurationError
from songshelf.infrastructure.integrations import LyricsApiClient
from songshelf.infrastructure.observability import configure_logging, format_oserror_message
from songshelf.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


@dataclass
class LibraryRuntime:
    """Everything a host application needs to use the library."""

    settings: Settings
    db: Database
    client: LyricsApiClient
    worker: LibraryScanWorker
    view: LibraryViewService
    admin: LibraryAdminService


# Hey future me, this validates the SQLite path BEFORE the engine is created! SQLite needs to
# create -wal/-shm files next to the .db file, so a read-only data dir fails late and
# confusingly ("unable to open database file") unless we check it up front.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable."""
    db_path = settings.get_sqlite_db_path()
    if db_path is None:
        return

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            format_oserror_message(exc, "create SQLite database directory", db_path.parent)
        ) from exc

    test_file = db_path.parent / f".{db_path.stem}_write_test"
    try:
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            format_oserror_message(
                exc,
                "write in database directory",
                db_path.parent,
                {"database_url": settings.database.url},
            )
        ) from exc


def _ensure_music_root(settings: Settings) -> None:
    music_path = settings.storage.music_path
    if music_path.is_dir():
        return
    try:
        music_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created music directory {music_path}")
    except OSError as exc:
        # Not fatal: the scanner logs and skips passes until the directory shows up.
        logger.warning(format_oserror_message(exc, "create music directory", music_path))


def build_runtime(settings: Settings) -> LibraryRuntime:
    """Construct all services without starting anything."""
    db = Database(settings)
    client = LyricsApiClient(settings.enrichment)
    reconciler = CatalogReconciler(db)
    sidecars = SidecarWriter(settings.storage.music_path)

    scanner = LibraryScannerService(
        settings,
        reconciler,
        extractor=MetadataExtractor(),
        sidecars=sidecars,
    )
    enrichment = LibraryEnrichmentService(client, sidecars, reconciler)
    worker = LibraryScanWorker(
        scanner,
        enrichment,
        interval_minutes=settings.library.scan_interval_minutes,
        scan_on_startup=settings.library.scan_on_startup,
    )

    return LibraryRuntime(
        settings=settings,
        db=db,
        client=client,
        worker=worker,
        view=LibraryViewService(db),
        admin=LibraryAdminService(db, enrichment, settings.storage.music_path),
    )


@asynccontextmanager
async def lifespan(
    settings: Settings | None = None,
    start_worker: bool = True,
) -> AsyncGenerator[LibraryRuntime, None]:
    """Start songshelf and shut it down cleanly on exit.

    Args:
        settings: Settings to use (default: from environment)
        start_worker: Start the scheduled scan loop (False for one-off CLI scans)

    Yields:
        The wired LibraryRuntime
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info(f"Starting {settings.app_name} (env: {settings.app_env})")

    _validate_sqlite_path(settings)
    _ensure_music_root(settings)

    runtime = build_runtime(settings)
    await runtime.db.create_tables()

    try:
        if start_worker:
            await runtime.worker.start()
        yield runtime
    finally:
        # Shutdown order: worker first (it uses the client and DB), then client, then DB.
        logger.info(f"Shutting down {settings.app_name}")
        if runtime.worker.is_running:
            await runtime.worker.stop(timeout=settings.observability.shutdown_timeout)
        await runtime.client.close()
        await runtime.db.close()
