"""Configuration data models."""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ShareConfig(BaseModel):
    """Media share configuration."""

    root: Path = Field(..., description="Mounted share root directory")
    movies_subpath: str = Field(default="movies", description="Movies folder below the root")
    tv_subpath: str = Field(default="tv", description="TV folder below the root")
    extensions: List[str] = Field(
        default_factory=lambda: [
            ".mkv",
            ".mp4",
            ".avi",
            ".mov",
            ".wmv",
            ".flv",
            ".webm",
            ".m4v",
            ".ts",
            ".m2ts",
            ".rmvb",
        ],
        description="Video file extensions to index",
    )
    ignore_patterns: List[str] = Field(
        default_factory=lambda: ["sample", "trailer", "extras", "behind.the.scenes"],
        description="Patterns to ignore in filenames",
    )
    min_file_size_mb: int = Field(default=0, ge=0, description="Minimum file size in MB")

    model_config = ConfigDict(frozen=True)

    @field_validator("root", mode="before")
    @classmethod
    def expand_root(cls, v: object) -> object:
        """Expand environment variables and ``~`` in the share root."""
        if isinstance(v, str):
            return os.path.expanduser(os.path.expandvars(v))
        return v

    @field_validator("movies_subpath", "tv_subpath")
    @classmethod
    def validate_subpath(cls, v: str) -> str:
        """Subpaths are relative to the share root."""
        v = v.strip().strip("/\\")
        if not v:
            raise ValueError("Subpath must not be empty")
        if ".." in Path(v).parts:
            raise ValueError("Subpath must stay inside the share root")
        return v

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Lowercase extensions and make sure they start with a dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class TMDbConfig(BaseModel):
    """TMDb API configuration."""

    api_key: str = Field(..., description="TMDb API key")
    base_url: str = Field(default="https://api.themoviedb.org/3", description="TMDb API base URL")
    image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/", description="TMDb image CDN base URL"
    )
    poster_size: str = Field(default="w500", description="Poster size segment")
    backdrop_size: str = Field(default="original", description="Backdrop size segment")
    language: str = Field(default="en-US", description="Default language for requests")
    timeout: int = Field(default=10, gt=0, description="HTTP session timeout in seconds")
    requests_per_second: float = Field(
        default=4.0, ge=0.0, description="Outbound request budget (0 disables pacing)"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Expand environment variables in API key."""
        return os.path.expandvars(v)


class RetryConfig(BaseModel):
    """Retry policy for transient catalog failures."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts per entry, first included")
    base_delay_ms: int = Field(default=500, ge=0, description="Delay after the first failure")
    factor: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")

    model_config = ConfigDict(frozen=True)


class ResolverConfig(BaseModel):
    """Metadata resolution configuration."""

    confidence_cutoff: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Guesses below this never reach the catalog"
    )
    similarity_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum title similarity for a match"
    )
    max_search_results: int = Field(
        default=10, gt=0, description="Maximum search results to consider"
    )
    request_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for a single catalog request"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")

    model_config = ConfigDict(frozen=True)


class ScannerConfig(BaseModel):
    """Scan cycle configuration."""

    scan_interval_minutes: int = Field(
        default=30, ge=0, description="Minutes between periodic scans (0 disables)"
    )
    resolver_concurrency: int = Field(
        default=4, gt=0, description="Concurrent metadata resolutions"
    )
    tombstone_retention_scans: int = Field(
        default=1, ge=1, description="Cycles a removed entry is kept for undo"
    )

    model_config = ConfigDict(frozen=True)


class LibraryConfig(BaseModel):
    """Library index configuration."""

    index_path: Optional[Path] = Field(
        default=None, description="JSON lines file persisting the index"
    )
    placeholder_poster: str = Field(
        default="/static/placeholder-poster.png",
        description="Poster shown for entries without metadata",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("index_path", mode="before")
    @classmethod
    def expand_index_path(cls, v: object) -> object:
        """Expand environment variables and ``~`` in the index path."""
        if isinstance(v, str):
            return os.path.expanduser(os.path.expandvars(v))
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    file: Optional[str] = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, gt=0, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, ge=0, description="Number of backup log files")

    model_config = ConfigDict(frozen=True)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Logging level must be one of: {allowed}")
        return v.upper()


class Config(BaseModel):
    """Main configuration model."""

    share: ShareConfig = Field(..., description="Media share configuration")
    tmdb: TMDbConfig = Field(..., description="TMDb configuration")
    resolver: ResolverConfig = Field(
        default_factory=ResolverConfig, description="Metadata resolution configuration"
    )
    scanner: ScannerConfig = Field(
        default_factory=ScannerConfig, description="Scan cycle configuration"
    )
    library: LibraryConfig = Field(
        default_factory=LibraryConfig, description="Library index configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

    @property
    def scan_roots(self) -> List[str]:
        """Share-relative folders walked by every scan."""
        return [self.share.movies_subpath, self.share.tv_subpath]
