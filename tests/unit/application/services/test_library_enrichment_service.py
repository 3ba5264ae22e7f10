"""Tests for LibraryEnrichmentService."""

from collections.abc import Awaitable, Callable
from pathlib import Path

from sqlalchemy import select

from songshelf.application.services.catalog_reconciler import CatalogReconciler
from songshelf.application.services.library_enrichment_service import LibraryEnrichmentService
from songshelf.application.services.library_scanner_service import ScanPassStats
from songshelf.application.services.sidecar_writer import SidecarWriter
from songshelf.domain.entities import ScanRecord
from songshelf.domain.exceptions import EnrichmentMissError
from songshelf.domain.value_objects import CoverImage
from songshelf.infrastructure.persistence import Database, SongModel


class FakeLookupClient:
    """In-memory lookup service keyed by title."""

    def __init__(
        self,
        lyrics: dict[str, str] | None = None,
        covers: dict[str, CoverImage] | None = None,
    ) -> None:
        self.lyrics = lyrics or {}
        self.covers = covers or {}
        self.calls: list[tuple[str, str, str, str]] = []

    async def fetch_lyrics(self, title: str, artist: str = "", album: str = "") -> str:
        self.calls.append(("lyrics", title, artist, album))
        if title not in self.lyrics:
            raise EnrichmentMissError("lyrics", title, "HTTP 404")
        return self.lyrics[title]

    async def fetch_cover(self, title: str, artist: str = "", album: str = "") -> CoverImage:
        self.calls.append(("cover", title, artist, album))
        if title not in self.covers:
            raise EnrichmentMissError("cover", title, "HTTP 404")
        return self.covers[title]


def make_service(db: Database, music_dir: Path, client: FakeLookupClient) -> LibraryEnrichmentService:
    return LibraryEnrichmentService(client, SidecarWriter(music_dir), CatalogReconciler(db))  # type: ignore[arg-type]


def make_record(music_dir: Path, relative_path: str = "song.mp3", **fields: object) -> ScanRecord:
    (music_dir / relative_path).parent.mkdir(parents=True, exist_ok=True)
    (music_dir / relative_path).write_bytes(b"\0")
    record = ScanRecord(absolute_path=music_dir / relative_path, relative_path=relative_path, title="A", artist="B")
    for name, value in fields.items():
        setattr(record, name, value)
    return record


async def fetch_row(db: Database, relative_path: str) -> SongModel:
    async with db.session_scope() as session:
        result = await session.execute(select(SongModel).where(SongModel.file_path == relative_path))
        return result.scalar_one()


class TestEnrichRecord:
    """Test enrichment of a single scanned record."""

    async def test_only_missing_lyrics_are_requested(
        self, db: Database, music_dir: Path, add_song: Callable[..., Awaitable[int]]
    ) -> None:
        await add_song("song.mp3", title="A", artist="B", cover_path="song.jpg")
        client = FakeLookupClient(lyrics={"A": "La la"})
        record = make_record(music_dir, cover_path="song.jpg")

        lyrics_added, cover_added = await make_service(db, music_dir, client).enrich_record(record)

        assert (lyrics_added, cover_added) == (True, False)
        assert [call[0] for call in client.calls] == ["lyrics"]
        assert (music_dir / "song.lrc").read_text(encoding="utf-8") == "La la"
        row = await fetch_row(db, "song.mp3")
        assert row.lyrics_path == "song.lrc"
        assert row.is_collect is True

    async def test_cover_from_service_uses_mime_for_suffix(
        self, db: Database, music_dir: Path, add_song: Callable[..., Awaitable[int]]
    ) -> None:
        await add_song("song.mp3", title="A", artist="B")
        client = FakeLookupClient(covers={"A": CoverImage(data=b"\x89PNG", mime="image/png")})
        record = make_record(music_dir)

        lyrics_added, cover_added = await make_service(db, music_dir, client).enrich_record(record)

        assert (lyrics_added, cover_added) == (False, True)
        assert (music_dir / "song.png").read_bytes() == b"\x89PNG"
        row = await fetch_row(db, "song.mp3")
        assert row.cover_image == "song.png"
        assert row.lyrics_path is None
        assert row.is_collect is False

    async def test_miss_leaves_catalog_untouched(
        self, db: Database, music_dir: Path, add_song: Callable[..., Awaitable[int]]
    ) -> None:
        await add_song("song.mp3", title="A", artist="B")
        record = make_record(music_dir)

        result = await make_service(db, music_dir, FakeLookupClient()).enrich_record(record)

        assert result == (False, False)
        assert record.lyrics_path == ""
        assert record.cover_path == ""
        assert not (music_dir / "song.lrc").exists()

    async def test_query_carries_title_artist_album(self, db: Database, music_dir: Path) -> None:
        client = FakeLookupClient()
        record = make_record(music_dir, album="C")

        await make_service(db, music_dir, client).enrich_record(record)

        assert ("lyrics", "A", "B", "C") in client.calls
        assert ("cover", "A", "B", "C") in client.calls

    async def test_unwritable_sidecar_counts_as_miss(self, db: Database, music_dir: Path) -> None:
        client = FakeLookupClient(lyrics={"A": "La la"})
        record = ScanRecord(
            absolute_path=music_dir / "vanished" / "song.mp3",
            relative_path="vanished/song.mp3",
            title="A",
        )

        result = await make_service(db, music_dir, client).enrich_record(record)

        assert result == (False, False)
        assert record.lyrics_path == ""


class TestEnrichRecords:
    """Test the enrichment phase of a pass."""

    async def test_counts_and_skips_complete_records(
        self, db: Database, music_dir: Path, add_song: Callable[..., Awaitable[int]]
    ) -> None:
        await add_song("one.mp3", title="A")
        await add_song("two.mp3", title="Two")
        client = FakeLookupClient(
            lyrics={"A": "La la", "Two": "Words"},
            covers={"A": CoverImage(data=b"jpg", mime="image/jpeg")},
        )
        complete = make_record(music_dir, "done.mp3", lyrics_path="done.lrc", cover_path="done.jpg")
        records = [
            make_record(music_dir, "one.mp3"),
            make_record(music_dir, "two.mp3", title="Two"),
            complete,
        ]
        stats = ScanPassStats()

        await make_service(db, music_dir, client).enrich_records(records, stats)

        assert stats.lyrics_enriched == 2
        assert stats.covers_enriched == 1
        assert stats.errors == 0
        assert len(client.calls) == 4

    async def test_should_stop_between_records(self, db: Database, music_dir: Path) -> None:
        client = FakeLookupClient()
        records = [make_record(music_dir, "one.mp3"), make_record(music_dir, "two.mp3")]
        stats = ScanPassStats()

        await make_service(db, music_dir, client).enrich_records(records, stats, should_stop=lambda: True)

        assert stats.cancelled is True
        assert client.calls == []

    async def test_unexpected_error_is_counted(self, db: Database, music_dir: Path) -> None:
        class ExplodingClient(FakeLookupClient):
            async def fetch_lyrics(self, title: str, artist: str = "", album: str = "") -> str:
                raise RuntimeError("boom")

        records = [make_record(music_dir, "one.mp3")]
        stats = ScanPassStats()

        await make_service(db, music_dir, ExplodingClient()).enrich_records(records, stats)

        assert stats.errors == 1


class TestReResolveSong:
    """Test the admin re-resolve flow."""

    async def test_hit_replaces_existing_sidecars(self, db: Database, music_dir: Path) -> None:
        audio = music_dir / "song.mp3"
        audio.write_bytes(b"\0")
        (music_dir / "song.lrc").write_text("old words", encoding="utf-8")
        client = FakeLookupClient(
            lyrics={"Fixed": "new words"},
            covers={"Fixed": CoverImage(data=b"new-jpg", mime="image/jpeg")},
        )

        resolved = await make_service(db, music_dir, client).re_resolve_song(
            "Fixed", "B", "C", audio, replace_existing=True
        )

        assert resolved.lyrics_path == "song.lrc"
        assert resolved.cover_path == "song.jpg"
        assert resolved.is_collect is True
        assert (music_dir / "song.lrc").read_text(encoding="utf-8") == "new words"

    async def test_miss_falls_back_to_existing_sidecars(self, db: Database, music_dir: Path) -> None:
        audio = music_dir / "song.mp3"
        audio.write_bytes(b"\0")
        (music_dir / "song.png").write_bytes(b"png")

        resolved = await make_service(db, music_dir, FakeLookupClient()).re_resolve_song(
            "Nothing", "B", "", audio
        )

        assert resolved.lyrics_path == ""
        assert resolved.cover_path == "song.png"
        assert resolved.is_collect is False

    async def test_without_replace_existing_keeps_old_file(self, db: Database, music_dir: Path) -> None:
        audio = music_dir / "song.mp3"
        audio.write_bytes(b"\0")
        (music_dir / "song.lrc").write_text("old words", encoding="utf-8")
        client = FakeLookupClient(lyrics={"A": "new words"})

        resolved = await make_service(db, music_dir, client).re_resolve_song(
            "A", "B", "", audio, replace_existing=False
        )

        assert resolved.lyrics_path == "song.lrc"
        assert (music_dir / "song.lrc").read_text(encoding="utf-8") == "old words"
