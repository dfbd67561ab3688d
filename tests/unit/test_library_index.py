"""Test library index service."""

from datetime import datetime, timedelta, timezone

import pytest

from posterwall.core.models import MediaEntry, MediaKind, ResolutionState, compute_entry_id
from posterwall.core.services import LibraryIndex

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_entry(
    title: str = "Alien",
    year: int = 1979,
    kind: MediaKind = MediaKind.MOVIE,
    season: int = None,
    episode: int = None,
    **fields,
) -> MediaEntry:
    source_path = fields.pop("source_path", f"movies/{title}.{year}.mkv")
    return MediaEntry(
        id=compute_entry_id(kind, title, year, season, episode),
        kind=kind,
        title=title,
        year=year,
        season=season,
        episode=episode,
        source_path=source_path,
        last_scanned_at=fields.pop("last_scanned_at", BASE_TIME),
        **fields,
    )


def test_upsert_and_get(library_index):
    """Test inserting and reading an entry."""
    entry = make_entry()

    stored = library_index.upsert(entry)

    assert stored == entry
    assert library_index.get(entry.id) == entry
    assert len(library_index) == 1


def test_upsert_never_downgrades_resolution(library_index):
    """Test an unresolved re-upsert keeps resolved metadata."""
    resolved = make_entry(
        resolution_state=ResolutionState.RESOLVED,
        poster_url="https://image.tmdb.org/t/p/w500/alien.jpg",
        synopsis="In space no one can hear you scream.",
        canonical_title="Alien",
        external_id="348",
    )
    library_index.upsert(resolved)

    rescanned = make_entry(last_scanned_at=BASE_TIME + timedelta(days=1))
    stored = library_index.upsert(rescanned)

    assert stored.resolution_state == ResolutionState.RESOLVED
    assert stored.poster_url == "https://image.tmdb.org/t/p/w500/alien.jpg"
    assert stored.external_id == "348"
    assert stored.last_scanned_at == BASE_TIME + timedelta(days=1)


def test_upsert_keeps_poster(library_index):
    """Test a poster is never replaced by nothing."""
    library_index.upsert(
        make_entry(resolution_state=ResolutionState.RESOLVED, poster_url="https://p/1.jpg")
    )

    stored = library_index.upsert(make_entry(resolution_state=ResolutionState.NOT_FOUND))

    assert stored.resolution_state == ResolutionState.NOT_FOUND
    assert stored.poster_url == "https://p/1.jpg"


def test_upsert_keeps_backdrop_genres_and_rating(library_index):
    """Test artwork and descriptive metadata survive merges that lack them."""
    library_index.upsert(
        make_entry(
            resolution_state=ResolutionState.RESOLVED,
            backdrop_url="https://b/1.jpg",
            genres=["Horror", "Science Fiction"],
            rating=8.2,
        )
    )

    rescanned = library_index.upsert(make_entry(last_scanned_at=BASE_TIME + timedelta(days=1)))
    not_found = library_index.upsert(make_entry(resolution_state=ResolutionState.NOT_FOUND))

    for stored in (rescanned, not_found):
        assert stored.backdrop_url == "https://b/1.jpg"
        assert stored.genres == ["Horror", "Science Fiction"]
        assert stored.rating == 8.2
    assert not_found.resolution_state == ResolutionState.NOT_FOUND


def test_list_by_kind_ordering(library_index):
    """Test listings are ordered by title then season and episode."""
    library_index.upsert(make_entry("Zodiac", 2007))
    library_index.upsert(make_entry("alien", 1979))
    library_index.upsert(make_entry("Alien", 1986, source_path="movies/Aliens.mkv"))
    for episode in (3, 1, 2):
        library_index.upsert(
            make_entry(
                "Show",
                None,
                kind=MediaKind.EPISODE,
                season=1,
                episode=episode,
                source_path=f"tv/Show/S01E0{episode}.mkv",
            )
        )

    movies = library_index.list_by_kind(MediaKind.MOVIE)
    episodes = library_index.list_by_kind(MediaKind.EPISODE)

    assert [(m.title, m.year) for m in movies] == [
        ("alien", 1979),
        ("Alien", 1986),
        ("Zodiac", 2007),
    ]
    assert [e.episode for e in episodes] == [1, 2, 3]


def test_mark_removed_hides_entries(library_index):
    """Test tombstoned entries disappear from reads."""
    entry = library_index.upsert(make_entry())

    removed = library_index.mark_removed([entry.id, "unknown-id"])

    assert removed == [entry.id]
    assert library_index.get(entry.id) is None
    assert library_index.get(entry.id, include_removed=True).tombstoned
    assert library_index.list_by_kind(MediaKind.MOVIE) == []
    assert library_index.tombstoned_ids() == [entry.id]
    assert library_index.mark_removed([entry.id]) == []


def test_tombstone_restored_by_upsert(library_index):
    """Test re-upserting a tombstoned entry restores it."""
    entry = library_index.upsert(make_entry())
    library_index.mark_removed([entry.id])

    library_index.upsert(entry)

    assert library_index.get(entry.id) is not None
    assert library_index.expire_tombstones(1) == []


def test_expire_tombstones_after_retention(library_index):
    """Test tombstones survive the retention window, then get purged."""
    entry = library_index.upsert(make_entry())
    library_index.mark_removed([entry.id])

    assert library_index.expire_tombstones(2) == []
    assert library_index.get(entry.id, include_removed=True) is not None
    assert library_index.expire_tombstones(2) == [entry.id]
    assert library_index.get(entry.id, include_removed=True) is None


def test_is_stale(library_index):
    """Test staleness from modification time and resolution state."""
    resolved = make_entry(resolution_state=ResolutionState.RESOLVED)
    failed = make_entry(resolution_state=ResolutionState.FAILED)

    assert not library_index.is_stale(resolved, BASE_TIME)
    assert not library_index.is_stale(resolved, BASE_TIME - timedelta(hours=1))
    assert library_index.is_stale(resolved, BASE_TIME + timedelta(seconds=1))
    assert library_index.is_stale(failed, BASE_TIME)
    assert library_index.is_stale(make_entry(), BASE_TIME)


def test_find_by_source_path(library_index):
    """Test lookup by share path."""
    entry = library_index.upsert(make_entry(source_path="movies/Alien/Alien.1979.mkv"))

    assert library_index.find_by_source_path("movies/Alien/Alien.1979.mkv") == entry
    assert library_index.find_by_source_path("movies/other.mkv") is None


def test_search(library_index):
    """Test substring search over titles."""
    library_index.upsert(make_entry("The Matrix", 1999, canonical_title="The Matrix"))
    library_index.upsert(make_entry("Alien", 1979))

    assert [e.title for e in library_index.search("matrix")] == ["The Matrix"]
    assert library_index.search("   ") == []


def test_list_series(library_index):
    """Test episodes are grouped per series."""
    for season, episode in [(1, 1), (1, 2), (2, 1)]:
        library_index.upsert(
            make_entry(
                "Breaking Bad",
                None,
                kind=MediaKind.EPISODE,
                season=season,
                episode=episode,
                source_path=f"tv/Breaking Bad/S{season:02d}E{episode:02d}.mkv",
                poster_url="https://p/bb.jpg" if season == 2 else None,
            )
        )
    library_index.upsert(
        make_entry(
            "Andor",
            None,
            kind=MediaKind.EPISODE,
            season=1,
            episode=1,
            source_path="tv/Andor/S01E01.mkv",
        )
    )

    series = library_index.list_series()

    assert [s.title for s in series] == ["Andor", "Breaking Bad"]
    breaking_bad = series[1]
    assert breaking_bad.seasons == [1, 2]
    assert breaking_bad.episode_count == 3
    assert breaking_bad.poster_url == "https://p/bb.jpg"


def test_stats(library_index):
    """Test counts per kind and state."""
    library_index.upsert(make_entry("Alien", 1979, resolution_state=ResolutionState.RESOLVED))
    gone = library_index.upsert(make_entry("Zodiac", 2007))
    library_index.mark_removed([gone.id])

    stats = library_index.stats()

    assert stats["total"] == 1
    assert stats["movie"] == 1
    assert stats["resolved"] == 1
    assert stats["unresolved"] == 0
    assert stats["tombstoned"] == 1


@pytest.mark.asyncio
async def test_save_and_load(config, library_index):
    """Test entries survive a save/load round trip."""
    entry = library_index.upsert(
        make_entry(resolution_state=ResolutionState.RESOLVED, poster_url="https://p/1.jpg")
    )
    gone = library_index.upsert(make_entry("Zodiac", 2007))
    library_index.mark_removed([gone.id])

    await library_index.save()
    reloaded = LibraryIndex(config)
    count = await reloaded.load()

    assert count == 2
    assert reloaded.get(entry.id) == entry
    assert reloaded.get(gone.id) is None
    assert reloaded.tombstoned_ids() == [gone.id]
    assert not config.library.index_path.with_name("index.jsonl.tmp").exists()


@pytest.mark.asyncio
async def test_load_drops_corrupt_records(config, library_index, caplog):
    """Test unreadable records are dropped without losing the rest."""
    entry = library_index.upsert(make_entry())
    await library_index.save()
    with open(config.library.index_path, "a", encoding="utf-8") as f:
        f.write("{not json\n")
        f.write('{"id": "abc"}\n')

    reloaded = LibraryIndex(config)
    count = await reloaded.load()

    assert count == 1
    assert reloaded.get(entry.id) == entry
    assert "Dropping record" in caplog.text


@pytest.mark.asyncio
async def test_load_missing_file(library_index):
    """Test a missing index file is an empty index."""
    assert await library_index.load() == 0
    assert len(library_index) == 0
