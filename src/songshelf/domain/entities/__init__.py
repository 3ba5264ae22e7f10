"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from songshelf.domain.value_objects.filename_parsing import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_TITLE,
)


class SidecarKind(str, Enum):
    """Kind of sidecar file stored next to an audio file."""

    LYRICS = "lyrics"
    COVER = "cover"


# Hey future me, this is what reconcile() tells the scanner about one file. ALREADY_EXISTS is
# the unique-constraint race (someone inserted the same path between lookup and insert). It is
# NOT an error, the scanner counts it separately and still enriches the record afterwards.
class ReconcileOutcome(str, Enum):
    """Result of reconciling one scanned file against the catalog."""

    SKIPPED = "skipped"
    INSERTED = "inserted"
    UPDATED = "updated"
    ALREADY_EXISTS = "already_exists"


@dataclass
class Song:
    """Catalog entry for one audio file below the music root."""

    id: int
    title: str
    artist: str
    album: str
    file_path: str
    duration: int = 0
    lyrics_path: str | None = None
    cover_image: str | None = None
    play_count: int = 0
    is_collect: bool = False
    is_deleted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_lyrics(self) -> bool:
        return bool(self.lyrics_path)

    @property
    def has_cover(self) -> bool:
        return bool(self.cover_image)


@dataclass(frozen=True)
class SongScanState:
    """The few catalog columns the scanner needs to decide insert/update/skip."""

    id: int
    is_collect: bool
    is_deleted: bool


# Yo, ScanRecord is the in-memory "what we found on disk this pass" object. It never goes to
# the DB as-is: the reconciler turns it into an INSERT or UPDATE. Empty string means
# "unresolved" for the sidecar paths, matching how the catalog treats NULL/"" alike.
@dataclass
class ScanRecord:
    """Transient per-file scan result."""

    absolute_path: Path
    relative_path: str
    title: str = UNKNOWN_TITLE
    artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    duration: int = 0
    lyrics_path: str = ""
    cover_path: str = ""

    @property
    def is_collect(self) -> bool:
        """Both lyrics and cover are resolved."""
        return bool(self.lyrics_path) and bool(self.cover_path)

    @property
    def missing_lyrics(self) -> bool:
        return not self.lyrics_path

    @property
    def missing_cover(self) -> bool:
        return not self.cover_path


__all__ = [
    "ReconcileOutcome",
    "ScanRecord",
    "SidecarKind",
    "Song",
    "SongScanState",
]
