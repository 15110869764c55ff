"""
Archive writer.

Moves routed originals out of the inbox into the archive folder. The move is
a rename, so the archive never holds a partially written file and the
original stays in the inbox if the move fails.
"""

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from app.utils.helpers import ensure_directory, is_cross_device, timestamp_suffix


def archive_name(file_name: str, taken: bool, now: datetime) -> str:
    """
    Compute the archive file name.

    Args:
        file_name: Original file name
        taken: Whether ``file_name`` is already present in the archive
        now: Time used for the collision suffix

    Returns:
        ``file_name``, or ``<stem>_<yyyyMMdd_HHmmss><suffix>`` when taken
    """
    if not taken:
        return file_name

    path = Path(file_name)
    return f"{path.stem}_{timestamp_suffix(now)}{path.suffix}"


class ArchiveWriter:
    """Retires files into a single archive folder."""

    def __init__(self, archive_folder: Path, clock: Callable[[], datetime] = datetime.now):
        self.archive_folder = archive_folder
        self.clock = clock

    def archive(self, source: Path) -> Path:
        """
        Move ``source`` into the archive folder.

        A name already present in the archive gets one timestamped retry.
        If the timestamped name is taken too (two archives of the same name
        within one second), the move fails instead of overwriting.

        Args:
            source: File to archive

        Returns:
            Final archive path

        Raises:
            FileExistsError: If both candidate names are taken
            OSError: If the move fails
        """
        ensure_directory(self.archive_folder)

        candidate = self.archive_folder / source.name
        if candidate.exists():
            candidate = self.archive_folder / archive_name(source.name, True, self.clock())
            logger.debug(f"Archive name taken, using {candidate.name}")

            if candidate.exists():
                raise FileExistsError(f"Archive target already exists: {candidate}")

        self._move(source, candidate)
        logger.info(f"File moved to archive: {candidate}")
        return candidate

    def _move(self, source: Path, target: Path) -> None:
        try:
            os.rename(source, target)
            return
        except OSError as e:
            if not is_cross_device(e):
                raise

        # Different volumes: stage a full copy next to the target, then rename
        staging: Optional[Path] = target.with_name(f".{target.name}.partial")
        try:
            shutil.copy2(source, staging)
            os.rename(staging, target)
            staging = None
        finally:
            if staging is not None and staging.exists():
                staging.unlink()

        try:
            source.unlink()
        except OSError:
            # Source must stay the only copy so a later pass can archive it again
            target.unlink()
            logger.warning(f"Could not remove {source} after copying to archive, archived copy removed")
            raise
