"""Local share access implementation."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Iterator, List

import aiofiles

from ...config.models import Config
from ...infrastructure.logging import LoggerMixin
from ...utils import (
    ShareUnavailableError,
    get_file_size,
    get_mod_time,
    is_hidden_file,
    to_share_path,
)
from ..interfaces import IShareAccess
from ..models import ShareFile


class LocalShareAccess(IShareAccess, LoggerMixin):
    """Share access over a locally mounted share directory."""

    def __init__(self, config: Config):
        """Initialize share access.

        Args:
            config: Application configuration.
        """
        self._config = config
        self._root = config.share.root
        self._video_extensions = set(ext.lower() for ext in config.share.extensions)
        self._ignore_patterns = [pattern.lower() for pattern in config.share.ignore_patterns]
        self._min_size_bytes = config.share.min_file_size_mb * 1024 * 1024

    async def list_files(self, root: str) -> AsyncIterator[ShareFile]:
        """Walk a share folder in sorted order, yielding media files.

        Args:
            root: Folder relative to the share root.

        Yields:
            Listed files.

        Raises:
            ShareUnavailableError: If the share or one of its folders cannot be listed.
        """
        if not await self.exists(root):
            return

        base = self._resolve(root)
        self.logger.info(f"Listing share folder: {base}")
        count = 0
        for items in self._walk(base):
            for item in items:
                if not item.is_file() or not self.is_video_file(item):
                    continue
                if self.should_ignore_file(item):
                    continue
                try:
                    share_file = ShareFile(
                        path=to_share_path(item, self._root),
                        mod_time=get_mod_time(item),
                        size=get_file_size(item),
                    )
                except OSError as e:
                    self.logger.warning(f"Cannot stat file {item}: {e}")
                    continue
                count += 1
                yield share_file
            # Let other tasks run between directories on large shares
            await asyncio.sleep(0)

        self.logger.info(f"Listed {count} media files below {base}")

    async def exists(self, root: str) -> bool:
        """Check whether a share folder exists.

        Args:
            root: Folder relative to the share root.

        Returns:
            True if the folder is a directory.

        Raises:
            ShareUnavailableError: If the share root itself is missing.
        """
        if not self._root.is_dir():
            raise ShareUnavailableError(f"Share root is not available: {self._root}")
        return self._resolve(root).is_dir()

    async def read_file(self, path: str) -> bytes:
        """Read a file from the share.

        Args:
            path: File path relative to the share root.

        Returns:
            File contents.

        Raises:
            ShareUnavailableError: If the file cannot be read.
        """
        file_path = self._resolve(path)
        try:
            async with aiofiles.open(file_path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise ShareUnavailableError(f"Cannot read {file_path}: {e}") from e

    def is_video_file(self, path: Path) -> bool:
        """Check if file is a video file.

        Args:
            path: File path to check.

        Returns:
            True if file is a video file.
        """
        return path.suffix.lower() in self._video_extensions

    def should_ignore_file(self, path: Path) -> bool:
        """Check if file should be ignored.

        Args:
            path: File path to check.

        Returns:
            True if file should be ignored.
        """
        filename_lower = path.name.lower()

        for pattern in self._ignore_patterns:
            if pattern in filename_lower:
                return True

        if is_hidden_file(path):
            return True

        if self._min_size_bytes:
            try:
                size = get_file_size(path)
            except OSError:
                self.logger.warning(f"Cannot get size for file: {path}")
                return True
            if size < self._min_size_bytes:
                self.logger.debug(f"Ignoring small video file: {path} ({size} bytes)")
                return True

        return False

    def _resolve(self, relative: str) -> Path:
        """Map a share-relative path onto the mount."""
        return self._root / relative.strip("/")

    def _walk(self, directory: Path) -> Iterator[List[Path]]:
        """Yield sorted directory contents depth-first, skipping hidden folders."""
        items = self._list_dir(directory)
        yield items
        for item in items:
            if item.is_dir() and not is_hidden_file(item):
                yield from self._walk(item)

    def _list_dir(self, directory: Path) -> List[Path]:
        """Sorted directory contents; any listing error aborts the walk."""
        try:
            return sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            error_msg = f"Error accessing {directory}: {e}"
            self.logger.error(error_msg)
            raise ShareUnavailableError(error_msg) from e
