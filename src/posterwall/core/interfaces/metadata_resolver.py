"""Metadata resolver interface."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import MediaGuess, ResolvedMetadata


class IMetadataResolver(ABC):
    """Interface for resolving media guesses against the catalog."""

    @abstractmethod
    async def resolve(self, guess: MediaGuess) -> Optional[ResolvedMetadata]:
        """Resolve a media guess to catalog metadata.

        Args:
            guess: Classified media guess.

        Returns:
            Resolved metadata, or None when the catalog has no match.

        Raises:
            CatalogTransientError: If the lookup should be retried.
            CatalogError: If the lookup failed for good.
        """
        pass

    @abstractmethod
    def clear_cache(self) -> None:
        """Forget lookups cached during the previous scan cycle."""
        pass
