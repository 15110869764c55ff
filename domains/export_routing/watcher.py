"""
Inbox watcher.

Watches the inbox folder for new payload files and hands each one to the
routing pipeline. Uses watchdog library for cross-platform file system event
monitoring.
"""

import time
from pathlib import Path
from typing import Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.models.schemas import RoutingConfig
from domains.export_routing.pipeline import RoutingPipeline


class InboxEventHandler(FileSystemEventHandler):
    """Watchdog handler that routes newly created inbox files."""

    def __init__(self, pipeline: RoutingPipeline, inbox: Path, settling_delay: float):
        """
        Initialize event handler.

        Args:
            pipeline: Routing pipeline
            inbox: Watched folder
            settling_delay: Pause before reading a new file, in seconds
        """
        super().__init__()
        self.pipeline = pipeline
        self.inbox = inbox.resolve()
        self.settling_delay = settling_delay

    def should_process(self, path: Path) -> bool:
        """Only payload files directly inside the inbox are routed."""
        return path.parent.resolve() == self.inbox and self.pipeline.is_payload(path)

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        self._route(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        """Handle files renamed into the inbox by writers that stage elsewhere."""
        if event.is_directory:
            return
        dest = getattr(event, "dest_path", None)
        if dest:
            self._route(Path(dest))

    def _route(self, path: Path):
        if not self.should_process(path):
            return

        logger.info(f"New file detected: {path.name}")

        # Let the writer finish flushing before the file is read
        time.sleep(self.settling_delay)

        try:
            self.pipeline.process(path)
        except Exception as e:
            logger.error(f"Unexpected error while processing {path}: {e}")


class InboxWatcher:
    """Inbox monitoring orchestrator."""

    def __init__(self, config: RoutingConfig, pipeline: RoutingPipeline):
        """Initialize inbox watcher."""
        self.inbox = config.inbox_folder
        self.event_handler = InboxEventHandler(pipeline, self.inbox, config.settling_delay)
        self.observer: Optional[Observer] = None

    @property
    def running(self) -> bool:
        return self.observer is not None

    def start(self):
        """Start watching the inbox."""
        if self.observer is not None:
            return

        observer = Observer()
        observer.schedule(self.event_handler, str(self.inbox), recursive=False)
        observer.daemon = True
        observer.start()
        self.observer = observer
        logger.success(f"Watching folder: {self.inbox}")

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop watching and wait for in-flight work.

        Args:
            timeout: Grace period in seconds for the event thread to finish

        Returns:
            True if the observer stopped within the grace period
        """
        observer = self.observer
        if observer is None:
            return True

        self.observer = None
        observer.unschedule_all()
        observer.stop()
        observer.join(timeout)

        if observer.is_alive():
            logger.error(
                f"Watcher did not stop within {timeout}s, abandoning in-flight work"
            )
            return False

        logger.info("Inbox watcher stopped")
        return True
