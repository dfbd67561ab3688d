"""Media-related data models."""

import hashlib
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...utils.text_utils import identity_key


class MediaKind(str, Enum):
    """Media kind enumeration."""

    MOVIE = "movie"
    EPISODE = "episode"
    UNKNOWN = "unknown"


class ResolutionState(str, Enum):
    """Metadata resolution state enumeration."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    FAILED = "failed"

    @property
    def needs_resolution(self) -> bool:
        """Whether a scan should (re)try resolving entries in this state."""
        return self in (ResolutionState.UNRESOLVED, ResolutionState.FAILED)


def compute_entry_id(
    kind: MediaKind,
    title: str,
    year: Optional[int] = None,
    season: Optional[int] = None,
    episode: Optional[int] = None,
) -> str:
    """Derive the stable identifier of a library entry.

    Movies and unknown items are identified by kind, title and year, episodes
    by series title, season and episode number.

    Args:
        kind: Media kind.
        title: Title (series title for episodes).
        year: Release year.
        season: Season number.
        episode: Episode number.

    Returns:
        16 hex character identifier.
    """
    if kind == MediaKind.EPISODE:
        parts = [kind.value, identity_key(title), str(season), str(episode)]
    else:
        parts = [kind.value, identity_key(title), "" if year is None else str(year)]
    digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
    return digest[:16]


class MediaGuess(BaseModel):
    """Structured guess derived from a file path and name."""

    raw_path: str = Field(..., description="Directory of the file relative to the share root")
    raw_filename: str = Field(..., description="Original file name")
    kind: MediaKind = Field(..., description="Guessed media kind")
    title: str = Field(..., description="Title, or series title for episodes")
    year: Optional[int] = Field(None, description="Release year")
    season: Optional[int] = Field(None, ge=0, description="Season number")
    episode: Optional[int] = Field(None, ge=0, description="Episode number")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Classification confidence")

    model_config = ConfigDict(frozen=True)

    @property
    def entry_id(self) -> str:
        """Identifier of the library entry this guess maps to."""
        return compute_entry_id(self.kind, self.title, self.year, self.season, self.episode)

    def is_ambiguous(self, cutoff: float = 0.5) -> bool:
        """Whether the guess is too weak to look up in the catalog."""
        return self.confidence < cutoff


class MediaEntry(BaseModel):
    """A media item tracked by the library index."""

    id: str = Field(..., description="Stable identifier derived from identity fields")
    kind: MediaKind = Field(..., description="Media kind")
    title: str = Field(..., description="Title, or series title for episodes")
    year: Optional[int] = Field(None, description="Release year")
    season: Optional[int] = Field(None, description="Season number")
    episode: Optional[int] = Field(None, description="Episode number")
    poster_url: Optional[str] = Field(None, description="Poster image URL")
    synopsis: Optional[str] = Field(None, description="Plot overview")
    backdrop_url: Optional[str] = Field(None, description="Backdrop image URL")
    genres: List[str] = Field(default_factory=list, description="Genre names")
    rating: Optional[float] = Field(None, description="Average user rating (0-10)")
    canonical_title: Optional[str] = Field(None, description="Title reported by the catalog")
    external_id: Optional[str] = Field(None, description="Catalog identifier")
    source_path: str = Field(..., description="File path relative to the share root")
    file_size: int = Field(default=0, ge=0, description="File size in bytes")
    file_mod_time: Optional[datetime] = Field(None, description="File modification time")
    last_scanned_at: datetime = Field(..., description="When the file was last processed")
    last_resolved_at: Optional[datetime] = Field(None, description="Last resolution attempt")
    resolution_state: ResolutionState = Field(
        default=ResolutionState.UNRESOLVED, description="Metadata resolution state"
    )
    last_error: Optional[str] = Field(None, description="Reason of the last failed resolution")
    tombstoned: bool = Field(default=False, description="File vanished; hidden from listings")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_guess(
        cls,
        guess: MediaGuess,
        source_path: str,
        scanned_at: datetime,
        file_size: int = 0,
        file_mod_time: Optional[datetime] = None,
    ) -> "MediaEntry":
        """Create an unresolved entry for a freshly classified file."""
        return cls(
            id=guess.entry_id,
            kind=guess.kind,
            title=guess.title,
            year=guess.year,
            season=guess.season,
            episode=guess.episode,
            source_path=source_path,
            file_size=file_size,
            file_mod_time=file_mod_time,
            last_scanned_at=scanned_at,
        )

    @property
    def display_title(self) -> str:
        """Title to show on the poster wall."""
        return self.canonical_title or self.title

    @property
    def sort_key(self) -> tuple:
        """Ordering by title, then year, season and episode."""
        return (
            self.display_title.casefold(),
            self.year if self.year is not None else -1,
            self.season if self.season is not None else -1,
            self.episode if self.episode is not None else -1,
            self.id,
        )

    def poster_or_placeholder(self, placeholder: str) -> str:
        """Poster URL, or the neutral placeholder when none is available."""
        return self.poster_url or placeholder


class SeriesSummary(BaseModel):
    """Aggregated view of the episodes of one series."""

    title: str = Field(..., description="Series title")
    poster_url: Optional[str] = Field(None, description="Series poster")
    synopsis: Optional[str] = Field(None, description="Series overview")
    seasons: List[int] = Field(default_factory=list, description="Seasons present on the share")
    episode_count: int = Field(default=0, description="Number of indexed episodes")
    episode_ids: List[str] = Field(default_factory=list, description="Entry ids in order")
