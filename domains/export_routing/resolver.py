"""
Destination folder lookup.

Destination folders are the immediate subfolders of the destination root,
named by routing key.
"""

from pathlib import Path
from typing import Optional


def is_plain_name(key: str) -> bool:
    """Check that ``key`` can only name an immediate child folder."""
    if key in {"", ".", ".."}:
        return False
    return "/" not in key and "\\" not in key


def resolve_folder(key: str, destination_root: Path) -> Optional[Path]:
    """
    Find the destination folder for ``key``.

    Tries ``destination_root / key`` first, then falls back to a scan of the
    immediate subfolders for one whose name equals ``key`` exactly. The scan
    catches folders that a direct join misses on some filesystem layouts.

    Args:
        key: Routing key
        destination_root: Folder whose children are named by key

    Returns:
        Folder path, or None if no folder matches

    Raises:
        OSError: If the destination root cannot be listed
    """
    if not is_plain_name(key):
        return None

    direct = destination_root / key
    if direct.is_dir():
        return direct

    for folder in sorted(destination_root.iterdir(), key=lambda p: p.name):
        if folder.is_dir() and folder.name == key:
            return folder

    return None
