"""Sidecar files (.lrc lyrics, .jpg/.png covers) stored next to audio files."""

import errno
import logging
import os
import uuid
from pathlib import Path

from songshelf.domain.entities import SidecarKind
from songshelf.domain.exceptions import SidecarWriteError
from songshelf.domain.value_objects import split_extension
from songshelf.infrastructure.observability import describe_oserror

logger = logging.getLogger(__name__)

LYRICS_SUFFIX = ".lrc"
COVER_SUFFIXES = (".jpg", ".png")


# Hey future me, the one rule here: an existing sidecar is NEVER touched by the scanner.
# Users drop hand-picked covers and hand-synced .lrc files next to their music, and a scan
# must not replace them with whatever the lookup service returns. Publishing uses an
# exclusive hard link so even two writers racing on the same file can't clobber each other.
# Only the admin "edit song" flow passes overwrite=True on purpose.
class SidecarWriter:
    """Write and locate sidecar files below the music root."""

    def __init__(self, music_root: Path) -> None:
        self.music_root = music_root

    def relative(self, path: Path) -> str:
        """Path relative to the music root, always with forward slashes."""
        return Path(os.path.relpath(path, self.music_root)).as_posix()

    @staticmethod
    def sidecar_path(audio_path: Path, kind: SidecarKind, mime: str = "") -> Path:
        """Target path for a sidecar: same directory and base name as the audio file.

        Covers get ".png" only for an explicit "image/png" MIME type, ".jpg" otherwise.
        """
        stem, _ = split_extension(audio_path.name)
        if kind == SidecarKind.LYRICS:
            suffix = LYRICS_SUFFIX
        else:
            suffix = ".png" if mime.lower() == "image/png" else ".jpg"
        return audio_path.with_name(stem + suffix)

    def find_existing(self, audio_path: Path, kind: SidecarKind) -> str:
        """Relative path of an already present sidecar, or "" if there is none."""
        if kind == SidecarKind.LYRICS:
            candidates = [self.sidecar_path(audio_path, kind)]
        else:
            stem, _ = split_extension(audio_path.name)
            candidates = [audio_path.with_name(stem + suffix) for suffix in COVER_SUFFIXES]

        for candidate in candidates:
            if candidate.is_file():
                return self.relative(candidate)
        return ""

    def write(
        self,
        audio_path: Path,
        kind: SidecarKind,
        data: bytes | str,
        mime: str = "",
        overwrite: bool = False,
    ) -> str:
        """
        Persist a sidecar next to the audio file.

        Args:
            audio_path: Absolute path of the audio file
            kind: LYRICS or COVER
            data: Lyrics text or image bytes
            mime: Image MIME type (covers only)
            overwrite: Replace an existing sidecar (admin edits only)

        Returns:
            Relative path of the sidecar (existing or newly written)

        Raises:
            SidecarWriteError: On any I/O failure
        """
        target = self.sidecar_path(audio_path, kind, mime)
        payload = data.encode("utf-8") if isinstance(data, str) else data

        if not overwrite and target.exists():
            return self.relative(target)

        # Hey future me - bytes go to a hidden temp file first and only a complete file is
        # moved into place. A half-written .lrc left by a full disk would otherwise be picked
        # up by find_existing() next pass and the song marked collected with a corrupt sidecar.
        tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            with open(tmp, "xb") as fh:
                fh.write(payload)
            if overwrite:
                os.replace(tmp, target)
            else:
                self._link_exclusive(tmp, target)
        except FileExistsError:
            # Created by someone else since our exists() check - theirs wins.
            return self.relative(target)
        except OSError as e:
            raise SidecarWriteError(target, describe_oserror(e)) from e
        finally:
            tmp.unlink(missing_ok=True)

        logger.info(f"Wrote {kind.value} sidecar {self.relative(target)} ({len(payload)} bytes)")
        return self.relative(target)

    @staticmethod
    def _link_exclusive(tmp: Path, target: Path) -> None:
        """Publish tmp as target, raising FileExistsError if target already exists."""
        try:
            os.link(tmp, target)
        except FileExistsError:
            raise
        except OSError as e:
            # Some network shares and FAT mounts have no hard links.
            if e.errno not in (errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS):
                raise
            if target.exists():
                raise FileExistsError(errno.EEXIST, "Sidecar already exists", str(target)) from e
            os.replace(tmp, target)
