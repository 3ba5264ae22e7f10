"""Shared fixtures: isolated settings, a file-backed SQLite catalog and a music root."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest

from songshelf.config import Settings
from songshelf.config.settings import (
    DatabaseSettings,
    EnrichmentSettings,
    LibrarySettings,
    StorageSettings,
)
from songshelf.domain.entities import ScanRecord
from songshelf.infrastructure.persistence import Database, SongRepository

LOOKUP_BASE_URL = "https://lookup.test"


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    """Empty music root."""
    root = tmp_path / "music"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, music_dir: Path) -> Settings:
    """Settings pointing at tmp_path only (never the real .env locations)."""
    return Settings(
        app_env="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"),
        storage=StorageSettings(music_path=music_dir),
        library=LibrarySettings(scan_interval_minutes=1),
        enrichment=EnrichmentSettings(base_url=LOOKUP_BASE_URL, timeout=5.0),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Catalog database with the songs table created."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def add_song(db: Database, music_dir: Path) -> Callable[..., Awaitable[int]]:
    """Insert a catalog row the way the scanner would, returns the new id."""

    async def _add(relative_path: str, **fields: object) -> int:
        record = ScanRecord(absolute_path=music_dir / relative_path, relative_path=relative_path)
        for name, value in fields.items():
            setattr(record, name, value)
        async with db.session_scope() as session:
            return await SongRepository(session).insert_scanned(record)

    return _add
