"""Core interfaces for dependency injection."""

from .catalog_client import ICatalogClient
from .library_index import ILibraryIndex
from .metadata_resolver import IMetadataResolver
from .path_classifier import IPathClassifier
from .scan_orchestrator import IScanOrchestrator
from .share_access import IShareAccess

__all__ = [
    "IPathClassifier",
    "IShareAccess",
    "ICatalogClient",
    "IMetadataResolver",
    "ILibraryIndex",
    "IScanOrchestrator",
]
