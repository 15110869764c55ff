"""
Helper utilities for the Export Router.

Common filesystem functions used across domains.
"""

import errno
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator

from loguru import logger


ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def timestamp_suffix(now: datetime) -> str:
    """Format a second-resolution timestamp for collision renames."""
    return now.strftime(ARCHIVE_TIMESTAMP_FORMAT)


def has_extension(path: Path, extension: str) -> bool:
    """Case-insensitive extension check (``extension`` includes the dot)."""
    return path.name.lower().endswith(extension.lower())


def created_at(path: Path) -> datetime:
    """
    Get the creation timestamp of a file.

    Uses ``st_birthtime`` where the platform reports it. Older Windows
    interpreters report creation time as ``st_ctime`` instead. Linux
    ``os.stat`` has neither, so the modification time stands in there.

    Args:
        path: File path

    Returns:
        Local naive datetime of creation
    """
    stats = path.stat()
    timestamp = getattr(stats, "st_birthtime", None)
    if timestamp is None:
        timestamp = stats.st_ctime if os.name == "nt" else stats.st_mtime
    return datetime.fromtimestamp(timestamp)


def iter_files(folder: Path) -> Iterator[Path]:
    """Yield regular files directly under ``folder``, sorted by name."""
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if entry.is_file():
            yield entry


def ensure_directory(path: Path) -> bool:
    """
    Create ``path`` (and parents) when missing.

    Returns:
        True if the directory was created, False if it already existed
    """
    if path.is_dir():
        return False

    path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Folder created: {path}")
    return True


def is_cross_device(error: OSError) -> bool:
    """Check whether a rename failed because source and target are on different devices."""
    return error.errno == errno.EXDEV
