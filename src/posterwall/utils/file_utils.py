"""File system utilities."""

import os
from datetime import datetime, timezone
from pathlib import Path


def get_file_size(path: Path) -> int:
    """Get file size in bytes.

    Args:
        path: Path to file.

    Returns:
        File size in bytes.

    Raises:
        OSError: If file cannot be accessed.
    """
    return path.stat().st_size


def get_mod_time(path: Path) -> datetime:
    """Get the modification time of a file as an aware UTC datetime.

    Raises:
        OSError: If file cannot be accessed.
    """
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def is_hidden_file(path: Path) -> bool:
    """Check if file is hidden.

    Args:
        path: Path to check.

    Returns:
        True if file is hidden.
    """
    # Unix-style hidden files (start with dot)
    if path.name.startswith("."):
        return True

    # Windows hidden files
    if os.name == "nt":
        try:
            import stat

            return bool(path.stat().st_file_attributes & stat.FILE_ATTRIBUTE_HIDDEN)
        except (AttributeError, OSError):
            pass

    return False


def to_share_path(path: Path, root: Path) -> str:
    """Express a file location as a POSIX path relative to the share root."""
    return path.relative_to(root).as_posix()
