"""Scan-related data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .media import MediaEntry


class ShareFile(BaseModel):
    """A file listed by the share collaborator."""

    path: str = Field(..., description="POSIX path relative to the share root")
    mod_time: datetime = Field(..., description="Modification time (UTC)")
    size: int = Field(default=0, ge=0, description="File size in bytes")

    model_config = ConfigDict(frozen=True)

    @field_validator("mod_time")
    @classmethod
    def normalize_mod_time(cls, v: datetime) -> datetime:
        """Store modification times as aware UTC; naive values are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def directory(self) -> str:
        """Parent directory relative to the share root."""
        head, _, _ = self.path.rpartition("/")
        return head

    @property
    def filename(self) -> str:
        """Base name of the file."""
        return self.path.rpartition("/")[2]


class ScanState(str, Enum):
    """Scan orchestrator state enumeration."""

    IDLE = "idle"
    SCANNING = "scanning"
    RECONCILING = "reconciling"
    RESOLVING = "resolving"
    ERROR = "error"


class ScanError(BaseModel):
    """A per-path problem reported by a scan cycle."""

    path: str = Field(..., description="Share path the error relates to")
    reason: str = Field(..., description="Human readable reason")


class ScanResult(BaseModel):
    """Outcome of one scan cycle."""

    added: List[MediaEntry] = Field(default_factory=list, description="New or restored entries")
    updated: List[MediaEntry] = Field(default_factory=list, description="Changed entries")
    removed: List[str] = Field(default_factory=list, description="Tombstoned entry ids")
    errors: List[ScanError] = Field(default_factory=list, description="Per-path errors")
    started_at: Optional[datetime] = Field(None, description="Cycle start")
    finished_at: Optional[datetime] = Field(None, description="Cycle end")
    fatal_error: Optional[str] = Field(None, description="Reason the cycle was aborted")
    forced: bool = Field(default=False, description="Whether resolution was forced")

    @property
    def is_empty(self) -> bool:
        """True when the cycle changed nothing in the index."""
        return not (self.added or self.updated or self.removed)

    @property
    def duration_seconds(self) -> float:
        """Wall time of the cycle."""
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class ScanProgress(BaseModel):
    """Live counters of the running cycle."""

    phase: ScanState = Field(default=ScanState.IDLE, description="Current phase")
    discovered: int = Field(default=0, description="Files listed so far")
    to_resolve: int = Field(default=0, description="Entries queued for resolution")
    resolved: int = Field(default=0, description="Resolutions written back")
    current_item: Optional[str] = Field(None, description="Last path handled")


class ScanStatus(BaseModel):
    """Snapshot of the orchestrator for the presentation layer."""

    state: ScanState = Field(..., description="Orchestrator state")
    progress: ScanProgress = Field(..., description="Counters of the running cycle")
    last_result: Optional[ScanResult] = Field(None, description="Result of the last cycle")
