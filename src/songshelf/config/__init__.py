"""Configuration module for songshelf."""

from .settings import (
    DatabaseSettings,
    EnrichmentSettings,
    LibrarySettings,
    ObservabilitySettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "EnrichmentSettings",
    "LibrarySettings",
    "ObservabilitySettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
