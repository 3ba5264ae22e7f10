"""Value objects for the library pipeline."""

from dataclasses import dataclass, field

from songshelf.domain.value_objects.filename_parsing import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_TITLE,
    InferredNames,
    file_extension,
    infer_from_filename,
    is_audio_file,
    split_extension,
)


@dataclass(frozen=True)
class CoverImage:
    """Raw cover bytes plus their MIME type ("" when unknown)."""

    data: bytes
    mime: str = ""


# Hey future me, tags is a plain dict with normalized keys ("title", "artist", "album",
# "lyrics"). An EMPTY dict means "tags could not be read", not "file has no tags". The
# scanner uses the placeholders for every key that's missing either way.
@dataclass(frozen=True)
class ExtractedMetadata:
    """Best available metadata for one audio file."""

    tags: dict[str, str] = field(default_factory=dict)
    duration: int = 0
    cover_mime: str = ""

    @property
    def has_embedded_cover(self) -> bool:
        return bool(self.cover_mime)


@dataclass(frozen=True)
class ResolvedSidecars:
    """Relative sidecar paths resolved for a song ("" = unresolved)."""

    lyrics_path: str = ""
    cover_path: str = ""

    @property
    def is_collect(self) -> bool:
        return bool(self.lyrics_path) and bool(self.cover_path)


__all__ = [
    "UNKNOWN_ALBUM",
    "UNKNOWN_ARTIST",
    "UNKNOWN_TITLE",
    "CoverImage",
    "ExtractedMetadata",
    "InferredNames",
    "ResolvedSidecars",
    "file_extension",
    "infer_from_filename",
    "is_audio_file",
    "split_extension",
]
