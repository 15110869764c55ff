"""
Retention sweeps for the archive and import folders.

Both sweeps look at top-level files only and are best-effort: a file that
cannot be deleted is logged and counted, and the sweep moves on.
"""

import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List

from loguru import logger

from app.models.schemas import RoutingConfig, SweepReport
from app.utils.helpers import created_at, has_extension, iter_files


class RetentionSweeper:
    """Deletes expired archive entries and stray import files."""

    def __init__(self, config: RoutingConfig, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize sweeper.

        Args:
            config: Routing configuration
            clock: Source of the current local time
        """
        self.config = config
        self.clock = clock
        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, folder: Path) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(folder, threading.Lock())

    def run(self) -> List[SweepReport]:
        """Run the archive sweep, then the import sweep when enabled."""
        logger.info("Starting retention sweep")

        reports = [self.sweep_archive()]
        if self.config.import_cleanup_active:
            reports.append(self.sweep_import())

        logger.info("Retention sweep finished")
        return reports

    def sweep_archive(self) -> SweepReport:
        """Delete archive files created before the retention cutoff."""
        folder = self.config.archive_folder
        retention = self.config.archive_retention_days
        cutoff = self.clock() - timedelta(days=retention)

        def expired(path: Path) -> bool:
            created = created_at(path)
            if created < cutoff:
                logger.info(f"Deleting archived file: {path.name} (created {created:%Y-%m-%d})")
                return True
            return False

        report = self._sweep(folder, expired)
        if not report.skipped:
            logger.info(
                f"Archive sweep done: {report.deleted} files deleted "
                f"(older than {retention} days), {report.failed} failures"
            )
        return report

    def sweep_import(self) -> SweepReport:
        """Delete import folder files that do not carry the payload extension."""
        if self.config.import_folder is None:
            logger.warning("Import cleanup requested but no import folder is configured")
            return SweepReport(folder=Path(), skipped=True)

        extension = self.config.payload_extension

        def stray(path: Path) -> bool:
            if has_extension(path, extension):
                return False
            logger.info(f"Deleting non-{extension} file from import folder: {path.name}")
            return True

        report = self._sweep(self.config.import_folder, stray)
        if not report.skipped:
            logger.info(
                f"Import sweep done: {report.deleted} non-{extension} files deleted, "
                f"{report.failed} failures"
            )
        return report

    def _sweep(self, folder: Path, should_delete: Callable[[Path], bool]) -> SweepReport:
        lock = self._lock_for(folder)
        if not lock.acquire(blocking=False):
            logger.warning(f"Sweep already running for {folder}, skipping")
            return SweepReport(folder=folder, skipped=True)

        try:
            if not folder.is_dir():
                logger.warning(f"Folder does not exist: {folder}")
                return SweepReport(folder=folder, skipped=True)

            report = SweepReport(folder=folder)
            try:
                entries = list(iter_files(folder))
            except OSError as e:
                logger.error(f"Failed to list {folder}: {e}")
                report.failed += 1
                return report

            for path in entries:
                try:
                    if should_delete(path):
                        path.unlink()
                        report.deleted += 1
                except OSError as e:
                    logger.error(f"Failed to delete {path}: {e}")
                    report.failed += 1

            return report
        finally:
            lock.release()
