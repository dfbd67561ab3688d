"""Share access interface."""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from ..models import ShareFile


class IShareAccess(ABC):
    """Interface for reading the media share."""

    @abstractmethod
    def list_files(self, root: str) -> AsyncIterator[ShareFile]:
        """Lazily list media files below a share folder.

        Each call starts a fresh, finite listing.

        Args:
            root: Folder relative to the share root.

        Yields:
            Listed files.

        Raises:
            ShareUnavailableError: If the share itself cannot be reached.
        """
        pass

    @abstractmethod
    async def exists(self, root: str) -> bool:
        """Check whether a share folder exists.

        Args:
            root: Folder relative to the share root.

        Returns:
            True if the folder can be listed.

        Raises:
            ShareUnavailableError: If the share itself cannot be reached.
        """
        pass

    @abstractmethod
    async def read_file(self, path: str) -> bytes:
        """Read a file from the share.

        Args:
            path: File path relative to the share root.

        Returns:
            File contents.
        """
        pass
