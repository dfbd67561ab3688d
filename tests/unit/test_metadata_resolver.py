"""Test metadata resolver service."""

import asyncio

import pytest

from posterwall.core.models import CatalogCandidate, MediaGuess, MediaKind
from posterwall.core.services import MetadataResolver
from posterwall.utils import (
    CatalogError,
    CatalogNotFoundError,
    CatalogTransientError,
    RequestPacer,
)


def movie_guess(title: str, year: int = None, confidence: float = 0.8) -> MediaGuess:
    return MediaGuess(
        raw_path="movies",
        raw_filename=f"{title}.mkv",
        kind=MediaKind.MOVIE,
        title=title,
        year=year,
        confidence=confidence,
    )


def episode_guess(title: str, season: int, episode: int) -> MediaGuess:
    return MediaGuess(
        raw_path=f"tv/{title}",
        raw_filename=f"S{season:02d}E{episode:02d}.mkv",
        kind=MediaKind.EPISODE,
        title=title,
        season=season,
        episode=episode,
        confidence=0.9,
    )


@pytest.mark.asyncio
async def test_resolve_movie(resolver, fake_catalog):
    """Test a matching movie resolves to poster and synopsis."""
    fake_catalog.add_movie("The Matrix", 1999, "603")

    metadata = await resolver.resolve(movie_guess("The Matrix", 1999))

    assert metadata is not None
    assert metadata.canonical_title == "The Matrix"
    assert metadata.external_id == "603"
    assert metadata.poster_url == "https://image.tmdb.org/t/p/w500/603.jpg"
    assert metadata.synopsis == "About The Matrix"
    assert metadata.backdrop_url == "https://image.tmdb.org/t/p/original/603-bg.jpg"
    assert metadata.genres == ["Drama"]
    assert metadata.rating == 7.5
    assert fake_catalog.search_calls == [("The Matrix", MediaKind.MOVIE, 1999)]


@pytest.mark.asyncio
async def test_low_confidence_skips_catalog(resolver, fake_catalog):
    """Test ambiguous guesses are not found without any catalog request."""
    metadata = await resolver.resolve(movie_guess("home video", confidence=0.2))

    assert metadata is None
    assert fake_catalog.search_calls == []


@pytest.mark.asyncio
async def test_episode_searches_series(resolver, fake_catalog):
    """Test episodes are looked up by series title without a year filter."""
    fake_catalog.add_series("Breaking Bad", 2008, "1396")

    metadata = await resolver.resolve(episode_guess("Breaking Bad", 1, 2))

    assert metadata is not None
    assert metadata.external_id == "1396"
    assert fake_catalog.search_calls == [("Breaking Bad", MediaKind.EPISODE, None)]


@pytest.mark.asyncio
async def test_episodes_share_one_lookup(resolver, fake_catalog):
    """Test the per-cycle cache serves every episode of a series."""
    fake_catalog.add_series("Breaking Bad", 2008, "1396")

    results = await asyncio.gather(
        *(resolver.resolve(episode_guess("Breaking Bad", 1, n)) for n in range(1, 6))
    )

    assert all(r is not None and r.external_id == "1396" for r in results)
    assert len(fake_catalog.search_calls) == 1
    assert fake_catalog.details_calls == ["1396"]


@pytest.mark.asyncio
async def test_clear_cache(resolver, fake_catalog):
    """Test clearing the cache forces a new lookup."""
    fake_catalog.add_movie("Alien", 1979, "348")

    await resolver.resolve(movie_guess("Alien", 1979))
    resolver.clear_cache()
    await resolver.resolve(movie_guess("Alien", 1979))

    assert len(fake_catalog.search_calls) == 2


@pytest.mark.asyncio
async def test_year_filter_falls_back(resolver, fake_catalog):
    """Test an off-by-one filename year still finds the movie."""
    fake_catalog.add_movie("Alien", 1979, "348")

    metadata = await resolver.resolve(movie_guess("Alien", 1980))

    assert metadata is not None
    assert metadata.external_id == "348"
    assert fake_catalog.search_calls == [
        ("Alien", MediaKind.MOVIE, 1980),
        ("Alien", MediaKind.MOVIE, None),
    ]


@pytest.mark.asyncio
async def test_no_similar_candidate(resolver, fake_catalog):
    """Test dissimilar search hits are rejected."""
    fake_catalog.movies["obscure film"] = [
        CatalogCandidate(title="Completely Different Thing", year=2001, external_id="1")
    ]

    metadata = await resolver.resolve(movie_guess("Obscure Film"))

    assert metadata is None
    assert fake_catalog.details_calls == []


@pytest.mark.asyncio
async def test_catalog_not_found_is_none(resolver, fake_catalog):
    """Test a 404 from the catalog means not found."""
    fake_catalog.fail("Missing", CatalogNotFoundError("404"))

    assert await resolver.resolve(movie_guess("Missing")) is None


@pytest.mark.asyncio
async def test_transient_error_propagates_and_is_not_cached(resolver, fake_catalog):
    """Test transient failures reach the caller and a retry can succeed."""
    fake_catalog.add_movie("Alien", 1979, "348")
    fake_catalog.fail("Alien", CatalogTransientError("HTTP 503"))

    with pytest.raises(CatalogTransientError):
        await resolver.resolve(movie_guess("Alien", 1979))

    metadata = await resolver.resolve(movie_guess("Alien", 1979))
    assert metadata is not None


@pytest.mark.asyncio
async def test_terminal_catalog_error_propagates(resolver, fake_catalog):
    """Test rejected requests are not turned into not-found."""
    fake_catalog.fail("Alien", CatalogError("HTTP 401"))

    with pytest.raises(CatalogError):
        await resolver.resolve(movie_guess("Alien", 1979))


@pytest.mark.asyncio
async def test_request_timeout_is_transient(config, fake_catalog):
    """Test a slow catalog request times out as a transient error."""
    fast_config = config.model_copy(
        update={"resolver": config.resolver.model_copy(update={"request_timeout_seconds": 0.01})}
    )
    fake_catalog.latency = 0.5
    resolver = MetadataResolver(fast_config, fake_catalog, pacer=RequestPacer(0.0))

    with pytest.raises(CatalogTransientError):
        await resolver.resolve(movie_guess("Alien", 1979))


def test_rank_prefers_exact_title_then_year(resolver):
    """Test ranking by exact title, year proximity, then popularity."""
    guess = movie_guess("The Matrix", 1999)
    candidates = [
        CatalogCandidate(title="The Matrix Reloaded", year=2003, popularity=80, external_id="1"),
        CatalogCandidate(title="Matrix", year=1993, popularity=90, external_id="2"),
        CatalogCandidate(title="The Matrix", year=1999, popularity=30, external_id="3"),
        CatalogCandidate(title="The Matrix", year=None, popularity=99, external_id="4"),
    ]

    ranked = resolver.rank_candidates(guess, candidates)

    assert [c.external_id for c in ranked] == ["3", "2", "4", "1"]


def test_rank_by_popularity_without_year(resolver):
    """Test popularity breaks ties when the guess has no year."""
    guess = movie_guess("Dune")
    candidates = [
        CatalogCandidate(title="Dune", year=1984, popularity=20, external_id="old"),
        CatalogCandidate(title="Dune", year=2021, popularity=90, external_id="new"),
    ]

    best, similarity = resolver.select_candidate(guess, candidates)

    assert best.external_id == "new"
    assert similarity == 1.0
