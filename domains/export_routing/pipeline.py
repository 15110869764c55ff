"""
Routing pipeline.

One pass takes one inbox file through key extraction, folder lookup, copy to
the destination and archival of the original. Expected outcomes (no key, no
folder) and I/O failures both end the pass with a ``RouteResult``; nothing
escapes to the caller, so one bad file never blocks the others.
"""

import shutil
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger

from app.models.schemas import RouteResult, RouteStatus, RoutedFile, RoutingConfig
from app.utils.helpers import has_extension, iter_files
from domains.export_routing.archive import ArchiveWriter
from domains.export_routing.matcher import match_file_name
from domains.export_routing.resolver import resolve_folder


class RoutingPipeline:
    """Routes inbox files to destination folders and archives the originals."""

    def __init__(self, config: RoutingConfig, archive_writer: Optional[ArchiveWriter] = None):
        """
        Initialize pipeline.

        Args:
            config: Routing configuration
            archive_writer: Writer for the archive folder (built from config if omitted)
        """
        self.config = config
        self.archive_writer = archive_writer or ArchiveWriter(config.archive_folder)
        self._lock = threading.Lock()

    def is_payload(self, path: Path) -> bool:
        """Check whether ``path`` has the routed extension."""
        return has_extension(path, self.config.payload_extension)

    def process(self, path: Path) -> RouteResult:
        """
        Route a single file.

        Args:
            path: File in the inbox

        Returns:
            Terminal state of the pass
        """
        with self._lock:
            return self._process(RoutedFile(source=Path(path)))

    def _process(self, routed: RoutedFile) -> RouteResult:
        name = routed.name
        logger.info(f"Processing file: {name}")

        match = match_file_name(name, self.config.routing_pattern)
        if not match.is_match:
            logger.warning(f"Could not extract routing key from file: {name}")
            return RouteResult(status=RouteStatus.UNROUTABLE, file=routed)

        routed.key = match.key
        logger.info(f"Routing key extracted: {routed.key} ({name})")

        root = self.config.destination_root
        try:
            routed.destination = resolve_folder(routed.key, root)
        except OSError as e:
            logger.error(f"Failed to search {root} for folder {routed.key} ({name}): {e}")
            return RouteResult(status=RouteStatus.RESOLVE_FAILED, file=routed, reason=str(e))

        if routed.destination is None:
            logger.warning(f"Destination folder {routed.key} not found in {root} ({name})")
            return RouteResult(status=RouteStatus.NOT_FOUND, file=routed)

        target = routed.destination / name
        try:
            shutil.copy2(routed.source, target)
        except OSError as e:
            logger.error(f"Failed to copy {name} to {target}: {e}")
            return RouteResult(status=RouteStatus.COPY_FAILED, file=routed, reason=str(e))

        logger.info(f"File copied to: {target}")

        try:
            archived = self.archive_writer.archive(routed.source)
        except OSError as e:
            logger.error(f"Failed to move {name} to archive {self.archive_writer.archive_folder}: {e}")
            return RouteResult(
                status=RouteStatus.ARCHIVE_FAILED,
                file=routed,
                copied_to=target,
                reason=str(e),
            )

        logger.success(f"File routed: {name} -> {target} (archived as {archived.name})")
        return RouteResult(
            status=RouteStatus.ARCHIVED,
            file=routed,
            copied_to=target,
            archived_to=archived,
        )

    def scan_existing(self) -> List[RouteResult]:
        """
        Route every payload file already sitting in the inbox.

        Returns:
            One result per file, in name order
        """
        inbox = self.config.inbox_folder
        logger.info(f"Processing existing files in {inbox}")

        try:
            files = [path for path in iter_files(inbox) if self.is_payload(path)]
        except OSError as e:
            logger.error(f"Failed to list inbox {inbox}: {e}")
            return []

        logger.info(f"{len(files)} files found in inbox")

        results = [self.process(path) for path in files]

        routed = sum(1 for result in results if result.ok)
        logger.info(f"Startup scan done: {routed}/{len(results)} files routed")
        return results
