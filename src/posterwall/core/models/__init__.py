"""Core data models."""

from .catalog import CatalogCandidate, CatalogDetails, ResolvedMetadata
from .media import (
    MediaEntry,
    MediaGuess,
    MediaKind,
    ResolutionState,
    SeriesSummary,
    compute_entry_id,
)
from .scan import ScanError, ScanProgress, ScanResult, ScanState, ScanStatus, ShareFile

__all__ = [
    "MediaKind",
    "ResolutionState",
    "MediaGuess",
    "MediaEntry",
    "SeriesSummary",
    "compute_entry_id",
    "CatalogCandidate",
    "CatalogDetails",
    "ResolvedMetadata",
    "ShareFile",
    "ScanState",
    "ScanError",
    "ScanResult",
    "ScanProgress",
    "ScanStatus",
]
