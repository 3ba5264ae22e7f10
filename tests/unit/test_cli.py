"""Tests for the songshelf command line."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from songshelf.__main__ import _load_settings, build_parser, cmd_list, cmd_run, cmd_scan, main
from songshelf.infrastructure.observability.logging import CorrelationIdFilter


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point every setting at tmp_path and keep a stray .env out of the way."""
    music = tmp_path / "music"
    music.mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE__URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("STORAGE__MUSIC_PATH", str(music))
    monkeypatch.setenv("ENRICHMENT__BASE_URL", "https://lookup.test")
    monkeypatch.setenv("LIBRARY__SCAN_ON_STARTUP", "false")

    root = logging.getLogger()
    level = root.level
    yield music
    for handler in root.handlers[:]:
        if any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            root.removeHandler(handler)
    root.setLevel(level)


class TestParser:
    """Test argument parsing."""

    def test_scan_command(self) -> None:
        args = build_parser().parse_args(["scan"])
        assert args.func is cmd_scan

    def test_run_with_scan_now(self) -> None:
        args = build_parser().parse_args(["--music-dir", "/srv/music", "run", "--scan-now"])
        assert args.func is cmd_run
        assert args.scan_now is True
        assert args.music_dir == "/srv/music"

    def test_list_has_no_query(self) -> None:
        args = build_parser().parse_args(["list", "--limit", "5"])
        assert args.func is cmd_list
        assert args.query is None
        assert args.limit == 5

    def test_search_takes_query(self) -> None:
        args = build_parser().parse_args(["search", "beatles"])
        assert args.func is cmd_list
        assert args.query == "beatles"


class TestMain:
    """Test commands end to end against a temporary library."""

    def test_scan_empty_library(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["scan"]) == 0

        out = capsys.readouterr().out
        assert '"files_seen": 0' in out
        assert '"cancelled": false' in out

    def test_list_empty_catalog(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["list"]) == 0
        assert "0 songs" in capsys.readouterr().out

    def test_music_dir_override(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        other = tmp_path / "other"

        assert main(["--music-dir", str(other), "scan"]) == 0
        assert other.is_dir()

    def test_unwritable_database_location_exits_2(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        monkeypatch.setenv("DATABASE__URL", f"sqlite+aiosqlite:///{blocker / 'cli.db'}")

        assert main(["scan"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_invalid_log_level_exits_2(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--log-level", "bogus", "scan"]) == 2

        captured = capsys.readouterr()
        assert "Configuration error" in captured.err
        assert "log_level" in captured.err
        assert "Invalid log level: bogus" in captured.err
        assert captured.out == ""

    def test_invalid_log_level_from_environment_exits_2(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        assert main(["list"]) == 2
        assert "Invalid log level: chatty" in capsys.readouterr().err

    def test_log_level_override_is_normalised(self) -> None:
        args = build_parser().parse_args(["--log-level", "debug", "scan"])
        assert _load_settings(args).log_level == "DEBUG"
