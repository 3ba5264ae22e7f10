"""Tests for settings parsing and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from songshelf.config import Settings
from songshelf.config.settings import (
    DatabaseSettings,
    EnrichmentSettings,
    LibrarySettings,
)


class TestLibrarySettings:
    """Test library scan settings."""

    def test_defaults(self) -> None:
        settings = LibrarySettings()
        assert settings.scan_interval_minutes == 5
        assert settings.allowed_formats == [".mp3", ".wav", ".flac", ".m4a", ".aac", ".ogg"]
        assert settings.scan_on_startup is False

    def test_formats_are_normalized(self) -> None:
        """Test that 'MP3', 'flac' and '.Ogg' all become lowercase dotted extensions."""
        settings = LibrarySettings(allowed_formats=["MP3", "flac", ".Ogg", " ", "mp3"])
        assert settings.allowed_formats == [".mp3", ".flac", ".ogg"]

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            LibrarySettings(scan_interval_minutes=0)


class TestEnrichmentSettings:
    """Test lookup service settings."""

    def test_default_base_url(self) -> None:
        assert EnrichmentSettings().base_url == "https://api.lrc.cx"
        assert EnrichmentSettings().timeout == 30.0

    def test_trailing_slash_is_stripped(self) -> None:
        assert EnrichmentSettings(base_url="https://lookup.test/").base_url == "https://lookup.test"

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EnrichmentSettings(timeout=0)


class TestSettings:
    """Test top-level settings."""

    def test_nested_env_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that STORAGE__MUSIC_PATH style variables reach the nested models."""
        monkeypatch.setenv("STORAGE__MUSIC_PATH", "/srv/music")
        monkeypatch.setenv("LIBRARY__SCAN_INTERVAL_MINUTES", "15")
        monkeypatch.setenv("ENRICHMENT__BASE_URL", "http://lyrics.local/")

        settings = Settings()

        assert settings.storage.music_path == Path("/srv/music")
        assert settings.library.scan_interval_minutes == 15
        assert settings.enrichment.base_url == "http://lyrics.local"

    def test_log_level_is_uppercased(self) -> None:
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_sqlite_db_path(self) -> None:
        settings = Settings(database=DatabaseSettings(url="sqlite+aiosqlite:///./data/x.db"))
        assert settings.get_sqlite_db_path() == Path("./data/x.db")

    def test_sqlite_memory_has_no_path(self) -> None:
        settings = Settings(database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"))
        assert settings.get_sqlite_db_path() is None

    def test_postgres_has_no_path(self) -> None:
        settings = Settings(
            database=DatabaseSettings(url="postgresql+asyncpg://user:pw@localhost/songs")
        )
        assert settings.get_sqlite_db_path() is None
