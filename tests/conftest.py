"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, List, Optional, Tuple

import pytest

from posterwall.config import Config, ConfigManager
from posterwall.core.interfaces import ICatalogClient, IShareAccess
from posterwall.core.models import CatalogCandidate, CatalogDetails, MediaKind, ShareFile
from posterwall.core.services import (
    LibraryIndex,
    MetadataResolver,
    PathClassifier,
    ScanOrchestrator,
)
from posterwall.infrastructure import Container
from posterwall.utils import CatalogNotFoundError, RequestPacer, ShareUnavailableError

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable source of aware UTC timestamps."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeShare(IShareAccess):
    """In-memory share listing."""

    def __init__(self):
        self.files: Dict[str, ShareFile] = {}
        self.available = True
        self.list_calls = 0

    def add(self, path: str, mod_time: datetime = BASE_TIME, size: int = 1024) -> ShareFile:
        share_file = ShareFile(path=path, mod_time=mod_time, size=size)
        self.files[path] = share_file
        return share_file

    def remove(self, path: str) -> None:
        del self.files[path]

    async def list_files(self, root: str) -> AsyncIterator[ShareFile]:
        self.list_calls += 1
        if not self.available:
            raise ShareUnavailableError("share offline")
        for path in sorted(self.files):
            if path.startswith(f"{root}/"):
                yield self.files[path]

    async def exists(self, root: str) -> bool:
        if not self.available:
            raise ShareUnavailableError("share offline")
        return True

    async def read_file(self, path: str) -> bytes:
        return b""


class FakeCatalog(ICatalogClient):
    """In-memory catalog with scripted failures and call accounting."""

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.movies: Dict[str, List[CatalogCandidate]] = {}
        self.series: Dict[str, List[CatalogCandidate]] = {}
        self.details_by_id: Dict[str, CatalogDetails] = {}
        self.failures: Dict[str, List[Exception]] = {}
        self.search_calls: List[Tuple[str, MediaKind, Optional[int]]] = []
        self.details_calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add_movie(self, title: str, year: int, external_id: str, popularity: float = 10.0) -> None:
        self.movies.setdefault(title.lower(), []).append(
            CatalogCandidate(title=title, year=year, popularity=popularity, external_id=external_id)
        )
        self.details_by_id[external_id] = self._details(title, external_id)

    def add_series(self, title: str, year: int, external_id: str) -> None:
        self.series.setdefault(title.lower(), []).append(
            CatalogCandidate(title=title, year=year, popularity=10.0, external_id=external_id)
        )
        self.details_by_id[external_id] = self._details(title, external_id)

    @staticmethod
    def _details(title: str, external_id: str) -> CatalogDetails:
        return CatalogDetails(
            poster_url=f"https://image.tmdb.org/t/p/w500/{external_id}.jpg",
            synopsis=f"About {title}",
            backdrop_url=f"https://image.tmdb.org/t/p/original/{external_id}-bg.jpg",
            genres=["Drama"],
            rating=7.5,
        )

    def fail(self, title: str, *errors: Exception) -> None:
        """Raise the given errors on the next searches for a title."""
        self.failures.setdefault(title.lower(), []).extend(errors)

    async def search(
        self, title: str, kind: MediaKind, year: Optional[int] = None
    ) -> List[CatalogCandidate]:
        self.search_calls.append((title, kind, year))
        await self._enter()
        try:
            pending = self.failures.get(title.lower())
            if pending:
                raise pending.pop(0)
            table = self.series if kind == MediaKind.EPISODE else self.movies
            candidates = table.get(title.lower(), [])
            if year is not None:
                candidates = [c for c in candidates if c.year == year]
            return list(candidates)
        finally:
            self.in_flight -= 1

    async def details(self, external_id: str, kind: MediaKind) -> CatalogDetails:
        self.details_calls.append(external_id)
        await self._enter()
        try:
            if external_id not in self.details_by_id:
                raise CatalogNotFoundError(external_id)
            return self.details_by_id[external_id]
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        pass

    async def _enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(self.latency)


@pytest.fixture
def share_root(tmp_path):
    """Create an empty mounted share with movies and tv folders."""
    root = tmp_path / "share"
    (root / "movies").mkdir(parents=True)
    (root / "tv").mkdir()
    return root


@pytest.fixture
def temp_config_file(tmp_path, share_root):
    """Create a temporary configuration file."""
    config_content = f"""
share:
  root: "{share_root.as_posix()}"

tmdb:
  api_key: "test-tmdb-key"
  requests_per_second: 0

resolver:
  retry:
    max_attempts: 3
    base_delay_ms: 0

scanner:
  resolver_concurrency: 4

library:
  index_path: "{(tmp_path / 'index.jsonl').as_posix()}"

logging:
  level: "DEBUG"
"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(config_content)
    return config_file


@pytest.fixture
def config_manager(temp_config_file):
    """Create a configuration manager with test config."""
    return ConfigManager(temp_config_file)


@pytest.fixture
def config(config_manager) -> Config:
    """Load test configuration."""
    return config_manager.load_config()


@pytest.fixture
def container(config_manager):
    """Create a test container."""
    return Container(config_manager)


@pytest.fixture
def clock():
    """Controllable clock."""
    return FakeClock()


@pytest.fixture
def fake_share():
    """In-memory share."""
    return FakeShare()


@pytest.fixture
def fake_catalog():
    """In-memory catalog."""
    return FakeCatalog()


@pytest.fixture
def classifier(config):
    """Path classifier configured like the share."""
    return PathClassifier(extensions=config.share.extensions, root_folders=config.scan_roots)


@pytest.fixture
def resolver(config, fake_catalog):
    """Metadata resolver over the fake catalog, without pacing."""
    return MetadataResolver(config, fake_catalog, pacer=RequestPacer(0.0))


@pytest.fixture
def library_index(config):
    """Empty library index persisted below tmp_path."""
    return LibraryIndex(config)


@pytest.fixture
def orchestrator(config, fake_share, classifier, resolver, library_index, clock):
    """Scan orchestrator wired to in-memory collaborators."""
    return ScanOrchestrator(
        config,
        share=fake_share,
        classifier=classifier,
        resolver=resolver,
        index=library_index,
        clock=clock,
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end tests over a real share directory")
