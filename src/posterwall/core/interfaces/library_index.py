"""Library index interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..models import MediaEntry, MediaKind, SeriesSummary


class ILibraryIndex(ABC):
    """Interface for the store of media entries."""

    @abstractmethod
    def upsert(self, entry: MediaEntry) -> MediaEntry:
        """Insert or merge an entry.

        Args:
            entry: Entry to store.

        Returns:
            The entry as stored after merging.
        """
        pass

    @abstractmethod
    def get(self, entry_id: str, include_removed: bool = False) -> Optional[MediaEntry]:
        """Get an entry by id.

        Args:
            entry_id: Entry identifier.
            include_removed: Also return tombstoned entries.

        Returns:
            The entry or None.
        """
        pass

    @abstractmethod
    def list_by_kind(self, kind: MediaKind) -> List[MediaEntry]:
        """List visible entries of one kind ordered by title, year, season, episode.

        Args:
            kind: Media kind.

        Returns:
            Snapshot list of entries.
        """
        pass

    @abstractmethod
    def mark_removed(self, entry_ids: Iterable[str]) -> List[str]:
        """Tombstone entries whose files vanished.

        Args:
            entry_ids: Identifiers to tombstone.

        Returns:
            Identifiers that were actually tombstoned.
        """
        pass

    @abstractmethod
    def is_stale(self, entry: MediaEntry, file_mod_time: datetime) -> bool:
        """Check whether an entry needs processing.

        Args:
            entry: Indexed entry.
            file_mod_time: Current modification time of its file.

        Returns:
            True if the file changed since the last scan or metadata is missing.
        """
        pass

    @abstractmethod
    def entries(self, include_removed: bool = False) -> List[MediaEntry]:
        """Snapshot of all entries."""
        pass

    @abstractmethod
    def expire_tombstones(self, retention_scans: int) -> List[str]:
        """Age tombstones by one cycle and purge the expired ones.

        Args:
            retention_scans: Cycles a tombstone survives.

        Returns:
            Identifiers purged from the index.
        """
        pass

    @abstractmethod
    def search(self, term: str) -> List[MediaEntry]:
        """Find visible entries whose title or path contains a term."""
        pass

    @abstractmethod
    def list_series(self) -> List[SeriesSummary]:
        """Group visible episodes by series."""
        pass

    @abstractmethod
    def stats(self) -> Dict[str, int]:
        """Entry counts per kind and resolution state."""
        pass

    @abstractmethod
    async def load(self) -> int:
        """Load persisted entries.

        Returns:
            Number of entries loaded.
        """
        pass

    @abstractmethod
    async def save(self) -> None:
        """Persist all entries."""
        pass
