"""TMDb catalog client implementation."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp

from ...config.models import Config
from ...infrastructure.logging import LoggerMixin
from ...utils import CatalogError, CatalogNotFoundError, CatalogTransientError
from ..interfaces import ICatalogClient
from ..models import CatalogCandidate, CatalogDetails, MediaKind


class TMDbCatalogClient(ICatalogClient, LoggerMixin):
    """Catalog client backed by the TMDb v3 API."""

    def __init__(self, config: Config) -> None:
        """Initialize TMDb client.

        Args:
            config: Application configuration.
        """
        self._config = config
        self._tmdb_config = config.tmdb
        self._session: Optional[aiohttp.ClientSession] = None

    async def search(
        self, title: str, kind: MediaKind, year: Optional[int] = None
    ) -> List[CatalogCandidate]:
        """Search movies or TV series by title.

        Args:
            title: Title to search for (series title for episodes).
            kind: Kind of media searched.
            year: Optional release year filter.

        Returns:
            Candidates in catalog order.

        Raises:
            CatalogNotFoundError: If TMDb answers 404.
            CatalogTransientError: On timeouts, server errors or malformed payloads.
            CatalogError: On other request failures.
        """
        params: Dict[str, str] = {"query": title, "include_adult": "false"}
        if kind == MediaKind.EPISODE:
            path = "/search/tv"
            if year:
                params["first_air_date_year"] = str(year)
        else:
            path = "/search/movie"
            if year:
                params["year"] = str(year)

        data = await self._get_json(path, params)
        results = data.get("results")
        if not isinstance(results, list):
            raise CatalogTransientError(f"Malformed TMDb search payload for '{title}'")

        candidates = []
        for result in results:
            candidate = self._parse_candidate(result)
            if candidate is not None:
                candidates.append(candidate)

        self.logger.debug(f"TMDb {path} '{title}' ({year}) returned {len(candidates)} results")
        return candidates

    async def details(self, external_id: str, kind: MediaKind) -> CatalogDetails:
        """Fetch poster and overview of a movie or series.

        Args:
            external_id: TMDb identifier.
            kind: Kind of media.

        Returns:
            Item details.

        Raises:
            CatalogNotFoundError: If the item does not exist.
            CatalogTransientError: On timeouts, server errors or malformed payloads.
            CatalogError: On other request failures.
        """
        segment = "tv" if kind == MediaKind.EPISODE else "movie"
        data = await self._get_json(f"/{segment}/{external_id}", {})

        genres = [
            genre["name"]
            for genre in data.get("genres") or []
            if isinstance(genre, dict) and genre.get("name")
        ]

        # TMDb reports 0 for items nobody has voted on yet
        try:
            rating = float(data.get("vote_average") or 0.0) or None
        except (TypeError, ValueError):
            rating = None

        return CatalogDetails(
            poster_url=self.build_image_url(data.get("poster_path")),
            synopsis=data.get("overview") or None,
            backdrop_url=self.build_image_url(
                data.get("backdrop_path"), self._tmdb_config.backdrop_size
            ),
            genres=genres,
            rating=rating,
        )

    def build_image_url(
        self, image_path: Optional[str], size: Optional[str] = None
    ) -> Optional[str]:
        """Build an absolute image URL from a TMDb image path.

        Args:
            image_path: Path such as ``/abc.jpg``.
            size: Size segment; defaults to ``tmdb.poster_size``.

        Returns:
            Absolute URL, or None when the item has no such image.
        """
        if not image_path:
            return None
        base = self._tmdb_config.image_base_url.rstrip("/")
        size = size or self._tmdb_config.poster_size
        return f"{base}/{size}/{image_path.lstrip('/')}"

    async def _get_json(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        """Perform a GET request and classify failures.

        Args:
            path: API path below the base URL.
            params: Query parameters besides credentials and language.

        Returns:
            Decoded JSON object.
        """
        url = f"{self._tmdb_config.base_url.rstrip('/')}{path}"
        query = {
            "api_key": self._tmdb_config.api_key,
            "language": self._tmdb_config.language,
            **params,
        }

        try:
            async with self._get_session().get(url, params=query) as response:
                if response.status == 404:
                    raise CatalogNotFoundError(f"TMDb has no resource at {path}")
                if response.status == 429 or response.status >= 500:
                    raise CatalogTransientError(f"TMDb returned HTTP {response.status} for {path}")
                if response.status >= 400:
                    raise CatalogError(f"TMDb rejected {path} with HTTP {response.status}")
                data = await response.json(content_type=None)
        except CatalogError:
            raise
        except asyncio.TimeoutError as e:
            raise CatalogTransientError(f"TMDb request to {path} timed out") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise CatalogTransientError(f"TMDb request to {path} failed: {e}") from e

        if not isinstance(data, dict):
            raise CatalogTransientError(f"Malformed TMDb payload for {path}")
        return data

    def _parse_candidate(self, data: Any) -> Optional[CatalogCandidate]:
        """Parse a TMDb search result.

        Args:
            data: Raw result object.

        Returns:
            Candidate, or None if the result lacks an id or title.
        """
        if not isinstance(data, dict) or data.get("id") is None:
            return None

        title = data.get("title") or data.get("name")
        if not title:
            return None

        release_date = data.get("release_date") or data.get("first_air_date")
        year = None
        if release_date:
            try:
                year = datetime.strptime(release_date, "%Y-%m-%d").year
            except (TypeError, ValueError):
                pass

        try:
            popularity = float(data.get("popularity") or 0.0)
        except (TypeError, ValueError):
            popularity = 0.0

        return CatalogCandidate(
            title=title,
            year=year,
            popularity=popularity,
            external_id=str(data["id"]),
            original_title=data.get("original_title") or data.get("original_name"),
        )

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session.

        Returns:
            HTTP session.
        """
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._tmdb_config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "TMDbCatalogClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
