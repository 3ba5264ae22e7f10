"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AUDIO_FORMATS = [".mp3", ".wav", ".flac", ".m4a", ".aac", ".ogg"]


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/songshelf.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True)
    # Pool settings only apply to PostgreSQL, SQLite ignores them
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=3600, ge=-1)


class StorageSettings(BaseModel):
    """Filesystem locations."""

    music_path: Path = Field(
        default=Path("./music"),
        description="Root directory that holds the music library",
    )


class LibrarySettings(BaseModel):
    """Library scan behaviour."""

    scan_interval_minutes: int = Field(
        default=5,
        ge=1,
        description="Minutes between two automatic library scans",
    )
    allowed_formats: list[str] = Field(
        default_factory=lambda: list(DEFAULT_AUDIO_FORMATS),
        description="Audio file extensions picked up by the scanner",
    )
    scan_on_startup: bool = Field(
        default=False,
        description="Run one scan pass right after the worker starts",
    )

    # Hey future me - users write "MP3" or "flac" in .env all the time. Normalize to ".mp3"
    # here so the scanner can do a plain lowercase set lookup per file.
    @field_validator("allowed_formats")
    @classmethod
    def normalize_formats(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in normalized:
                normalized.append(ext)
        return normalized


class EnrichmentSettings(BaseModel):
    """Remote lyrics/cover lookup service."""

    base_url: str = Field(
        default="https://api.lrc.cx",
        description="Base URL of the lyrics/cover lookup service",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ObservabilitySettings(BaseModel):
    """Logging and shutdown behaviour."""

    log_json_format: bool = Field(
        default=False,
        description="Emit logs as JSON (recommended for production)",
    )
    shutdown_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the scan worker to finish on shutdown",
    )


class Settings(BaseSettings):
    """Top-level application settings.

    Nested sections are set from the environment with a double underscore,
    e.g. ``STORAGE__MUSIC_PATH=/music`` or ``LIBRARY__SCAN_INTERVAL_MINUTES=10``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "songshelf"
    app_env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    def get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite database file path, or None for other backends/in-memory DBs."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path.startswith(":memory:"):
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
