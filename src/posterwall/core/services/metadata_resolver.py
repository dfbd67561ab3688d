"""Metadata resolver service implementation."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from ...config.models import Config
from ...infrastructure.logging import LoggerMixin
from ...utils import (
    CatalogError,
    CatalogNotFoundError,
    CatalogTransientError,
    MetadataResolverError,
    RequestPacer,
    calculate_similarity,
    identity_key,
    titles_match_exactly,
)
from ..interfaces import ICatalogClient, IMetadataResolver
from ..models import CatalogCandidate, MediaGuess, MediaKind, ResolvedMetadata

T = TypeVar("T")

CacheKey = Tuple[MediaKind, str, Optional[int]]

NO_YEAR_DISTANCE = 10_000


class MetadataResolver(IMetadataResolver, LoggerMixin):
    """Resolves media guesses to posters and synopses.

    Flow: confidence gate -> search catalog -> rank candidates -> fetch details.
    All outbound requests share one pacer, so the configured request budget
    holds however many resolutions run concurrently. Results are cached for
    the duration of a scan cycle; every episode of a series shares one lookup.
    """

    def __init__(
        self,
        config: Config,
        catalog: ICatalogClient,
        pacer: Optional[RequestPacer] = None,
    ) -> None:
        """Initialize metadata resolver.

        Args:
            config: Application configuration.
            catalog: Metadata catalog client.
            pacer: Request pacer; built from the TMDb request budget if None.
        """
        self._config = config
        self._resolver_config = config.resolver
        self._catalog = catalog
        self._pacer = pacer or RequestPacer.per_second(config.tmdb.requests_per_second)
        self._cache: Dict[CacheKey, Optional[ResolvedMetadata]] = {}
        self._locks: Dict[CacheKey, asyncio.Lock] = {}

    async def resolve(self, guess: MediaGuess) -> Optional[ResolvedMetadata]:
        """Resolve a media guess to catalog metadata.

        Args:
            guess: Classified media guess.

        Returns:
            Resolved metadata, or None when the catalog has no match.

        Raises:
            CatalogTransientError: If the lookup should be retried.
            CatalogError: If the catalog rejected the request.
            MetadataResolverError: On unexpected failures.
        """
        if guess.confidence < self._resolver_config.confidence_cutoff:
            self.logger.debug(
                f"Skipping catalog lookup for '{guess.raw_filename}' "
                f"(confidence {guess.confidence:.2f})"
            )
            return None

        key = self._cache_key(guess)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._cache:
                return self._cache[key]

            try:
                result = await self._lookup(guess)
            except CatalogError:
                raise
            except Exception as e:
                error_msg = f"Metadata resolution failed for '{guess.title}': {e}"
                self.logger.error(error_msg)
                raise MetadataResolverError(error_msg) from e

            self._cache[key] = result
            return result

    def clear_cache(self) -> None:
        """Forget lookups cached during the previous scan cycle."""
        self._cache.clear()
        self._locks.clear()

    def rank_candidates(
        self, guess: MediaGuess, candidates: List[CatalogCandidate]
    ) -> List[CatalogCandidate]:
        """Order candidates by exact title match, year proximity, then popularity.

        Args:
            guess: Media guess being resolved.
            candidates: Catalog search results.

        Returns:
            Candidates, best first.
        """

        def sort_key(candidate: CatalogCandidate) -> Tuple[int, int, float]:
            exact = titles_match_exactly(candidate.title, guess.title) or titles_match_exactly(
                candidate.original_title or "", guess.title
            )
            if guess.year is None:
                distance = 0
            elif candidate.year is None:
                distance = NO_YEAR_DISTANCE
            else:
                distance = abs(candidate.year - guess.year)
            return (0 if exact else 1, distance, -candidate.popularity)

        return sorted(candidates, key=sort_key)

    def select_candidate(
        self, guess: MediaGuess, candidates: List[CatalogCandidate]
    ) -> Tuple[Optional[CatalogCandidate], float]:
        """Pick the best ranked candidate whose title is similar enough.

        Args:
            guess: Media guess being resolved.
            candidates: Catalog search results.

        Returns:
            Tuple of (candidate or None, title similarity).
        """
        threshold = self._resolver_config.similarity_threshold
        for candidate in self.rank_candidates(guess, candidates):
            similarity = max(
                calculate_similarity(candidate.title, guess.title),
                calculate_similarity(candidate.original_title or "", guess.title),
            )
            if similarity >= threshold:
                return candidate, similarity
        return None, 0.0

    async def _lookup(self, guess: MediaGuess) -> Optional[ResolvedMetadata]:
        """Search, rank and fetch details for a guess."""
        search_kind = MediaKind.EPISODE if guess.kind == MediaKind.EPISODE else MediaKind.MOVIE
        year = guess.year if search_kind == MediaKind.MOVIE else None

        try:
            candidates = await self._request(self._catalog.search, guess.title, search_kind, year)
            if not candidates and year is not None:
                # Filename years are often off by one; retry unfiltered
                candidates = await self._request(
                    self._catalog.search, guess.title, search_kind, None
                )
        except CatalogNotFoundError:
            candidates = []

        candidates = candidates[: self._resolver_config.max_search_results]
        if not candidates:
            self.logger.info(f"No catalog candidates for '{guess.title}'")
            return None

        best, similarity = self.select_candidate(guess, candidates)
        if best is None:
            self.logger.info(f"No candidate similar enough to '{guess.title}'")
            return None

        try:
            details = await self._request(self._catalog.details, best.external_id, search_kind)
        except CatalogNotFoundError:
            self.logger.info(f"Catalog item {best.external_id} vanished for '{guess.title}'")
            return None

        self.logger.info(
            f"Resolved '{guess.title}' -> {best.title} ({best.year}) "
            f"[{best.external_id}] similarity {similarity:.2f}"
        )
        return ResolvedMetadata(
            poster_url=details.poster_url,
            synopsis=details.synopsis,
            backdrop_url=details.backdrop_url,
            genres=details.genres,
            rating=details.rating,
            canonical_title=best.title,
            external_id=best.external_id,
            year=best.year,
            similarity=min(similarity, 1.0),
        )

    async def _request(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Issue one paced, time-limited catalog request."""
        await self._pacer.wait()
        timeout = self._resolver_config.request_timeout_seconds
        try:
            return await asyncio.wait_for(func(*args), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise CatalogTransientError(f"Catalog request timed out after {timeout}s") from e

    @staticmethod
    def _cache_key(guess: MediaGuess) -> CacheKey:
        """Lookup identity: series for episodes, title and year otherwise."""
        if guess.kind == MediaKind.EPISODE:
            return (MediaKind.EPISODE, identity_key(guess.title), None)
        return (MediaKind.MOVIE, identity_key(guess.title), guess.year)
