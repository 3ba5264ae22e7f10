"""Filename-based metadata inference for untagged audio files.

Hey future me - this is the fallback when a file carries no title tag! People name files
"Artist - Title.mp3" far more often than they tag them properly, so we split on the literal
" - " separator:

    "Artist - Song Title.mp3"        → artist="Artist", title="Song Title"
    "Artist - Song - Live.mp3"       → artist="Artist", title="Song - Live"
    "justtitle.mp3"                  → title="justtitle", artist unchanged
    ".mp3"                           → InvalidFilenameError (nothing to infer from)

Note the extension rule: everything after the LAST dot of the name is the extension, even
when the dot is the first character. That is why ".mp3" has an empty stem and is rejected,
while os.path.splitext() would call ".mp3" a stem without extension.
"""

from dataclasses import dataclass

from songshelf.domain.exceptions import InvalidFilenameError

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"

TITLE_SEPARATOR = " - "


@dataclass(frozen=True)
class InferredNames:
    """Title/artist derived from a file name."""

    title: str
    artist: str


def split_extension(filename: str) -> tuple[str, str]:
    """Split a file name into (stem, extension).

    The extension starts at the last dot and includes it. A name without dots
    has an empty extension.

    Args:
        filename: Bare file name (no directory part)

    Returns:
        Tuple of stem and extension, e.g. ("song", ".mp3")
    """
    dot = filename.rfind(".")
    if dot == -1:
        return filename, ""
    return filename[:dot], filename[dot:]


def file_extension(filename: str) -> str:
    """Lowercased extension of a file name, including the dot."""
    return split_extension(filename)[1].lower()


def is_audio_file(filename: str, allowed_formats: frozenset[str] | set[str]) -> bool:
    """Check if a filename has one of the allowed audio extensions (case-insensitive)."""
    return file_extension(filename) in allowed_formats


def infer_from_filename(filename: str, artist: str = UNKNOWN_ARTIST) -> InferredNames:
    """Infer title and artist from a file name.

    Args:
        filename: Bare file name including extension
        artist: Artist resolved so far (kept when the name has no separator)

    Returns:
        InferredNames with title and artist

    Raises:
        InvalidFilenameError: If the name has no stem (e.g. ".mp3" or "")
    """
    stem, _ = split_extension(filename)
    if not stem:
        raise InvalidFilenameError(filename)

    parts = stem.split(TITLE_SEPARATOR)
    if len(parts) >= 2:
        return InferredNames(title=TITLE_SEPARATOR.join(parts[1:]), artist=parts[0])
    return InferredNames(title=stem, artist=artist)
