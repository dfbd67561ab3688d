"""Metadata catalog client interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import CatalogCandidate, CatalogDetails, MediaKind


class ICatalogClient(ABC):
    """Interface for external metadata catalogs."""

    @abstractmethod
    async def search(
        self, title: str, kind: MediaKind, year: Optional[int] = None
    ) -> List[CatalogCandidate]:
        """Search the catalog by title.

        Args:
            title: Title to search for (series title for episodes).
            kind: Kind of media searched.
            year: Optional release year filter.

        Returns:
            Candidates in catalog order.

        Raises:
            CatalogNotFoundError: If the catalog reports the query as not found.
            CatalogTransientError: On timeouts, server errors or malformed payloads.
            CatalogError: On other request failures.
        """
        pass

    @abstractmethod
    async def details(self, external_id: str, kind: MediaKind) -> CatalogDetails:
        """Fetch poster and overview of a catalog item.

        Args:
            external_id: Catalog identifier.
            kind: Kind of media.

        Returns:
            Item details.

        Raises:
            CatalogNotFoundError: If the item does not exist.
            CatalogTransientError: On timeouts, server errors or malformed payloads.
            CatalogError: On other request failures.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        pass
