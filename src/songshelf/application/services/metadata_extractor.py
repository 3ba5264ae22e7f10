"""Audio metadata extraction with mutagen and a size-based duration fallback."""

import base64
import logging
from pathlib import Path
from typing import Any

from mutagen import File as MutagenFile
from mutagen.flac import Picture
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Cover, MP4Tags

from songshelf.domain.exceptions import MetadataUnreadableError
from songshelf.domain.value_objects import CoverImage, ExtractedMetadata, file_extension

logger = logging.getLogger(__name__)

# Hey future me - this table is the ONLY duration source for files mutagen can't parse
# (truncated downloads, exotic encoders). duration = size_bytes * 8 / (kbps * 1000).
# It's a rough guess on purpose: a 4 MB mp3 shows "4:22" instead of "0:00" in the UI.
ASSUMED_BITRATE_KBPS: dict[str, float] = {
    ".mp3": 128.0,
    ".m4a": 128.0,
    ".aac": 128.0,
    ".ogg": 128.0,
    ".flac": 1000.0,
    ".wav": 1411.0,
}
DEFAULT_BITRATE_KBPS = 128.0

# ID3 frame id -> normalized key. USLT frames carry a language suffix ("USLT::eng"),
# getall() finds them regardless.
ID3_FRAMES = {
    "TIT2": "title",
    "TPE1": "artist",
    "TALB": "album",
    "USLT": "lyrics",
}

# Vorbis comments (FLAC, OGG, Opus) and APEv2 -> normalized key, first match wins
VORBIS_KEYS = {
    "title": "title",
    "artist": "artist",
    "album": "album",
    "lyrics": "lyrics",
    "unsyncedlyrics": "lyrics",
}

# MP4 atoms (M4A) -> normalized key
MP4_KEYS = {
    "©nam": "title",
    "©ART": "artist",
    "©alb": "album",
    "©lyr": "lyrics",
}


def estimate_duration(path: Path) -> int:
    """Estimate duration in whole seconds from file size and an assumed bitrate.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    size = path.stat().st_size
    kbps = ASSUMED_BITRATE_KBPS.get(file_extension(path.name), DEFAULT_BITRATE_KBPS)
    return int(size * 8 / (kbps * 1000))


def _first_text(value: Any) -> str:
    """Unwrap mutagen's list/frame wrappers down to the first text value."""
    if isinstance(value, list):
        value = value[0] if value else ""
    text = getattr(value, "text", value)
    if isinstance(text, list):
        text = text[0] if text else ""
    return "" if text is None else str(text)


def _first_picture(audio: Any) -> CoverImage | None:
    """Return the first embedded picture of a mutagen file object (or bare ID3 tags), if any."""
    # FLAC keeps pictures as metadata blocks, not tags
    pictures = getattr(audio, "pictures", None)
    if pictures:
        return CoverImage(data=pictures[0].data, mime=pictures[0].mime or "")

    tags = audio if isinstance(audio, ID3) else getattr(audio, "tags", None)
    if not tags:
        return None

    if isinstance(tags, ID3):
        frames = tags.getall("APIC")
        if frames:
            return CoverImage(data=frames[0].data, mime=frames[0].mime or "")
        return None

    covr = tags.get("covr") if hasattr(tags, "get") else None
    if covr:
        cover = covr[0]
        mime = "image/png" if getattr(cover, "imageformat", None) == MP4Cover.FORMAT_PNG else "image/jpeg"
        return CoverImage(data=bytes(cover), mime=mime)

    # Ogg Vorbis/Opus: base64-encoded FLAC picture block in a comment
    blocks = tags.get("metadata_block_picture") if hasattr(tags, "get") else None
    if blocks:
        try:
            picture = Picture(base64.b64decode(blocks[0]))
        except (ValueError, TypeError) as e:
            logger.debug(f"Ignoring malformed metadata_block_picture: {e}")
            return None
        return CoverImage(data=picture.data, mime=picture.mime or "")

    return None


class MetadataExtractor:
    """Read tags, duration and embedded cover info from one audio file.

    Tags and audio properties are read independently: a file with broken
    frames but intact ID3 tags still yields its title and cover, and a file
    with garbage tags still yields its duration.
    """

    def extract(self, path: Path) -> ExtractedMetadata:
        """
        Extract the best available metadata for a file.

        Args:
            path: Absolute path of the audio file

        Returns:
            ExtractedMetadata (tags may be empty, duration may be 0)

        Raises:
            MetadataUnreadableError: If tags failed AND the size estimate failed too
        """
        tags, cover_mime, tag_error = self._read_tags(path)

        try:
            length = self._read_length(path)
        except Exception as e:  # mutagen raises a zoo of parser errors
            logger.warning(
                f"Could not read audio properties from {path.name}: {type(e).__name__}: {e}. "
                f"Falling back to size estimation"
            )
            length = 0.0

        if length > 0:
            return ExtractedMetadata(tags=tags, duration=int(length), cover_mime=cover_mime)

        try:
            duration = estimate_duration(path)
        except OSError as e:
            if tag_error is not None:
                raise MetadataUnreadableError(
                    path, f"tags: {tag_error}; size estimate: {e}"
                ) from e
            logger.warning(f"Could not estimate duration of {path.name}: {e}")
            return ExtractedMetadata(tags=tags, duration=0, cover_mime=cover_mime)

        logger.debug(f"Estimated duration of {path.name}: {duration}s")
        return ExtractedMetadata(tags=tags, duration=duration, cover_mime=cover_mime)

    def read_cover(self, path: Path) -> CoverImage | None:
        """Read the first embedded picture (bytes + MIME), or None."""
        try:
            audio = self._open_tags(path)
        except Exception as e:
            logger.warning(f"Could not read embedded cover from {path.name}: {e}")
            return None
        return _first_picture(audio)

    def _open_tags(self, path: Path) -> Any:
        """Open a file for its tags: the mutagen file object, or the bare ID3 block.

        Hey future me - MP3s with corrupt audio frames make MutagenFile blow up even though
        the ID3 header is fine. For .mp3 we read the tag block on its own before giving up.
        """
        try:
            audio = MutagenFile(path)
            if audio is None:
                raise ValueError("unsupported or unrecognized audio format")
            return audio
        except Exception as e:
            if file_extension(path.name) != ".mp3":
                raise
            try:
                return ID3(path)
            except Exception as id3_error:
                logger.debug(f"ID3 fallback failed for {path.name}: {id3_error}")
                raise e from None

    def _read_tags(self, path: Path) -> tuple[dict[str, str], str, Exception | None]:
        """Read normalized tags and the cover MIME.

        Returns:
            (tags, cover MIME or "", error) - error is set when reading failed
        """
        try:
            audio = self._open_tags(path)
        except Exception as e:
            logger.warning(f"Could not read tags from {path.name}: {e}")
            return {}, "", e

        picture = _first_picture(audio)
        cover_mime = picture.mime if picture else ""
        audio_tags = audio if isinstance(audio, ID3) else audio.tags
        if not audio_tags:
            return {}, cover_mime, None
        return self._normalize_tags(audio_tags), cover_mime, None

    def _read_length(self, path: Path) -> float:
        """Read the playing time in seconds from the audio stream."""
        audio = MutagenFile(path)
        if audio is None:
            raise ValueError("unsupported or unrecognized audio format")
        return float(getattr(audio.info, "length", 0) or 0)

    @staticmethod
    def _normalize_tags(audio_tags: Any) -> dict[str, str]:
        tags: dict[str, str] = {}

        if isinstance(audio_tags, ID3):
            for frame_id, key in ID3_FRAMES.items():
                frames = audio_tags.getall(frame_id)
                if frames:
                    value = _first_text(frames[0])
                    if value.strip():
                        tags[key] = value
            return tags

        mapping = MP4_KEYS if isinstance(audio_tags, MP4Tags) else VORBIS_KEYS
        for tag_key, key in mapping.items():
            if key in tags or tag_key not in audio_tags:
                continue
            value = _first_text(audio_tags[tag_key])
            if value.strip():
                tags[key] = value
        return tags
