"""Core service implementations."""

from .library_index import LibraryIndex
from .local_share import LocalShareAccess
from .metadata_resolver import MetadataResolver
from .path_classifier import PathClassifier
from .scan_orchestrator import ScanOrchestrator
from .tmdb_catalog import TMDbCatalogClient

__all__ = [
    "PathClassifier",
    "LocalShareAccess",
    "TMDbCatalogClient",
    "MetadataResolver",
    "LibraryIndex",
    "ScanOrchestrator",
]
