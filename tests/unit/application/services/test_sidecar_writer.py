"""Tests for SidecarWriter (.lrc / .jpg / .png next to audio files)."""

import errno
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from songshelf.application.services.sidecar_writer import SidecarWriter
from songshelf.domain.entities import SidecarKind
from songshelf.domain.exceptions import SidecarWriteError


@pytest.fixture
def writer(music_dir: Path) -> SidecarWriter:
    return SidecarWriter(music_dir)


@pytest.fixture
def audio_file(music_dir: Path) -> Path:
    album_dir = music_dir / "Artist" / "Album"
    album_dir.mkdir(parents=True)
    path = album_dir / "01 - Song.mp3"
    path.write_bytes(b"\0" * 16)
    return path


class TestSidecarPath:
    """Test sidecar naming."""

    def test_lyrics_use_lrc(self, audio_file: Path) -> None:
        target = SidecarWriter.sidecar_path(audio_file, SidecarKind.LYRICS)
        assert target == audio_file.with_name("01 - Song.lrc")

    @pytest.mark.parametrize(
        ("mime", "suffix"),
        [
            ("image/png", ".png"),
            ("IMAGE/PNG", ".png"),
            ("image/jpeg", ".jpg"),
            ("image/webp", ".jpg"),
            ("", ".jpg"),
        ],
    )
    def test_cover_suffix_from_mime(self, audio_file: Path, mime: str, suffix: str) -> None:
        target = SidecarWriter.sidecar_path(audio_file, SidecarKind.COVER, mime)
        assert target.name == f"01 - Song{suffix}"

    def test_only_last_extension_is_replaced(self, music_dir: Path) -> None:
        target = SidecarWriter.sidecar_path(music_dir / "a.b.flac", SidecarKind.LYRICS)
        assert target.name == "a.b.lrc"


class TestWrite:
    """Test writing sidecars."""

    def test_writes_lyrics_and_returns_relative_path(
        self, writer: SidecarWriter, audio_file: Path
    ) -> None:
        relative = writer.write(audio_file, SidecarKind.LYRICS, "[00:01.00]La la")

        assert relative == "Artist/Album/01 - Song.lrc"
        assert audio_file.with_name("01 - Song.lrc").read_text(encoding="utf-8") == "[00:01.00]La la"

    def test_writes_cover_bytes(self, writer: SidecarWriter, audio_file: Path) -> None:
        relative = writer.write(audio_file, SidecarKind.COVER, b"\x89PNG", mime="image/png")

        assert relative == "Artist/Album/01 - Song.png"
        assert audio_file.with_name("01 - Song.png").read_bytes() == b"\x89PNG"

    def test_existing_sidecar_is_never_overwritten(
        self, writer: SidecarWriter, audio_file: Path
    ) -> None:
        """Test that a hand-placed .lrc survives a scan that found other lyrics."""
        existing = audio_file.with_name("01 - Song.lrc")
        existing.write_text("hand synced", encoding="utf-8")

        relative = writer.write(audio_file, SidecarKind.LYRICS, "from the service")

        assert relative == "Artist/Album/01 - Song.lrc"
        assert existing.read_text(encoding="utf-8") == "hand synced"

    def test_overwrite_replaces_existing(self, writer: SidecarWriter, audio_file: Path) -> None:
        existing = audio_file.with_name("01 - Song.jpg")
        existing.write_bytes(b"old")

        writer.write(audio_file, SidecarKind.COVER, b"new", mime="image/jpeg", overwrite=True)

        assert existing.read_bytes() == b"new"

    def test_io_failure_raises_sidecar_write_error(self, writer: SidecarWriter, music_dir: Path) -> None:
        missing_dir_audio = music_dir / "nowhere" / "song.mp3"

        with pytest.raises(SidecarWriteError) as exc_info:
            writer.write(missing_dir_audio, SidecarKind.LYRICS, "words")

        assert "song.lrc" in exc_info.value.path
        assert "Errno" in exc_info.value.message

    @pytest.mark.parametrize("overwrite", [False, True])
    def test_partial_write_leaves_no_sidecar(
        self, writer: SidecarWriter, audio_file: Path, mocker: MagicMock, overwrite: bool
    ) -> None:
        """Test a disk filling up halfway through the write."""
        real_open = open

        class ShortWrite:
            def __init__(self, fh: Any) -> None:
                self.fh = fh

            def __enter__(self) -> "ShortWrite":
                return self

            def __exit__(self, *exc: object) -> None:
                self.fh.close()

            def write(self, data: bytes) -> int:
                self.fh.write(data[:3])
                self.fh.flush()
                raise OSError(errno.ENOSPC, "No space left on device")

        def failing_open(path: Any, mode: str = "r", *args: Any, **kwargs: Any) -> ShortWrite:
            return ShortWrite(real_open(path, mode, *args, **kwargs))

        mocker.patch(
            "songshelf.application.services.sidecar_writer.open", side_effect=failing_open, create=True
        )

        with pytest.raises(SidecarWriteError) as exc_info:
            writer.write(audio_file, SidecarKind.LYRICS, "[00:01.00]complete lyrics", overwrite=overwrite)

        assert "ENOSPC" in exc_info.value.message
        assert writer.find_existing(audio_file, SidecarKind.LYRICS) == ""
        assert list(audio_file.parent.iterdir()) == [audio_file]

    def test_failed_overwrite_keeps_previous_sidecar(
        self, writer: SidecarWriter, audio_file: Path, mocker: MagicMock
    ) -> None:
        existing = audio_file.with_name("01 - Song.lrc")
        existing.write_text("old lyrics", encoding="utf-8")
        mocker.patch(
            "songshelf.application.services.sidecar_writer.os.replace",
            side_effect=OSError(errno.EIO, "Input/output error"),
        )

        with pytest.raises(SidecarWriteError):
            writer.write(audio_file, SidecarKind.LYRICS, "new lyrics", overwrite=True)

        assert existing.read_text(encoding="utf-8") == "old lyrics"
        assert sorted(p.name for p in audio_file.parent.iterdir()) == ["01 - Song.lrc", "01 - Song.mp3"]

    def test_no_temp_files_left_after_success(self, writer: SidecarWriter, audio_file: Path) -> None:
        writer.write(audio_file, SidecarKind.LYRICS, "words")

        assert sorted(p.name for p in audio_file.parent.iterdir()) == ["01 - Song.lrc", "01 - Song.mp3"]

    def test_filesystem_without_hard_links(
        self, writer: SidecarWriter, audio_file: Path, mocker: MagicMock
    ) -> None:
        mocker.patch(
            "songshelf.application.services.sidecar_writer.os.link",
            side_effect=OSError(errno.EPERM, "Operation not permitted"),
        )

        relative = writer.write(audio_file, SidecarKind.LYRICS, "words")

        assert relative == "Artist/Album/01 - Song.lrc"
        assert audio_file.with_name("01 - Song.lrc").read_text(encoding="utf-8") == "words"


class TestFindExisting:
    """Test locating sidecars that are already on disk."""

    def test_nothing_found(self, writer: SidecarWriter, audio_file: Path) -> None:
        assert writer.find_existing(audio_file, SidecarKind.LYRICS) == ""
        assert writer.find_existing(audio_file, SidecarKind.COVER) == ""

    def test_finds_lrc(self, writer: SidecarWriter, audio_file: Path) -> None:
        audio_file.with_name("01 - Song.lrc").write_text("x", encoding="utf-8")
        assert writer.find_existing(audio_file, SidecarKind.LYRICS) == "Artist/Album/01 - Song.lrc"

    def test_prefers_jpg_over_png(self, writer: SidecarWriter, audio_file: Path) -> None:
        audio_file.with_name("01 - Song.png").write_bytes(b"png")
        audio_file.with_name("01 - Song.jpg").write_bytes(b"jpg")
        assert writer.find_existing(audio_file, SidecarKind.COVER) == "Artist/Album/01 - Song.jpg"

    def test_finds_png(self, writer: SidecarWriter, audio_file: Path) -> None:
        audio_file.with_name("01 - Song.png").write_bytes(b"png")
        assert writer.find_existing(audio_file, SidecarKind.COVER) == "Artist/Album/01 - Song.png"

    def test_directory_with_sidecar_name_is_ignored(
        self, writer: SidecarWriter, audio_file: Path
    ) -> None:
        audio_file.with_name("01 - Song.lrc").mkdir()
        assert writer.find_existing(audio_file, SidecarKind.LYRICS) == ""


class TestRelative:
    """Test root-relative paths."""

    def test_uses_forward_slashes(self, writer: SidecarWriter, music_dir: Path) -> None:
        path = music_dir / "a" / "b" / "c.mp3"
        assert writer.relative(path) == "a/b/c.mp3"

    def test_relative_root_is_supported(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        writer = SidecarWriter(Path("music"))
        assert writer.relative(Path("music/x/y.mp3")) == "x/y.mp3"
