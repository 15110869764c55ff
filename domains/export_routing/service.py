#!/usr/bin/env python3
"""
Export Router service.

Long-running process: prepares the folders, sweeps the archive and import
folders, routes files already waiting in the inbox, then watches the inbox
until told to stop.
"""

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from app.models.schemas import RouteResult, RoutingConfig, SweepReport
from app.utils.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from app.utils.helpers import ensure_directory
from app.utils.log import configure_logging
from domains.export_routing.matcher import compile_pattern
from domains.export_routing.pipeline import RoutingPipeline
from domains.export_routing.retention import RetentionSweeper
from domains.export_routing.watcher import InboxWatcher


class StartupError(RuntimeError):
    """A required folder could not be prepared; the service cannot run."""


def build_routing_config(settings: Settings) -> RoutingConfig:
    """
    Turn loaded settings into the immutable routing configuration.

    Args:
        settings: Settings instance

    Returns:
        RoutingConfig with absolute paths and a compiled pattern
    """
    return RoutingConfig(
        inbox_folder=Path(settings.export_folder).expanduser().absolute(),
        destination_root=Path(settings.dicom_folder).expanduser().absolute(),
        archive_folder=settings.get_archive_folder().absolute(),
        import_folder=settings.get_import_folder().absolute(),
        routing_pattern=compile_pattern(settings.file_name_regex_pattern),
        archive_retention_days=settings.archive_retention_days,
        import_cleanup_enabled=settings.enable_import_cleanup,
        settling_delay=settings.settling_delay,
        shutdown_grace_period=settings.shutdown_grace_period,
        sweep_interval_hours=settings.sweep_interval_hours,
    )


class ExportRouterService:
    """Service lifecycle orchestrator."""

    def __init__(self, config: RoutingConfig):
        """Initialize service components from ``config``."""
        self.config = config
        self.pipeline = RoutingPipeline(config)
        self.sweeper = RetentionSweeper(config)
        self.watcher = InboxWatcher(config, self.pipeline)

    def log_configuration(self):
        config = self.config
        logger.info(f"Inbox folder: {config.inbox_folder}")
        logger.info(f"Destination root: {config.destination_root}")
        logger.info(f"Archive folder: {config.archive_folder}")
        logger.info(f"Import folder: {config.import_folder}")
        logger.info(f"Archive retention: {config.archive_retention_days} days")
        logger.info(f"Import cleanup enabled: {config.import_cleanup_enabled}")

    def prepare_folders(self):
        """
        Create the folders the service works in.

        Raises:
            StartupError: If a folder cannot be created
        """
        folders = [
            self.config.inbox_folder,
            self.config.destination_root,
            self.config.archive_folder,
        ]
        if self.config.import_cleanup_active:
            folders.append(self.config.import_folder)

        for folder in folders:
            try:
                ensure_directory(folder)
            except OSError as e:
                raise StartupError(f"Cannot create folder {folder}: {e}") from e

    def sweep(self) -> List[SweepReport]:
        """Run the retention sweeps; never fails the caller."""
        try:
            return self.sweeper.run()
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}")
            return []

    def startup(self) -> List[RouteResult]:
        """
        Everything that happens before the watcher is armed.

        Returns:
            Results of the startup scan
        """
        self.log_configuration()
        self.prepare_folders()
        self.sweep()
        return self.pipeline.scan_existing()

    def start(self) -> List[RouteResult]:
        """Run startup, then arm the watcher."""
        logger.info("Export Router starting")
        results = self.startup()
        self.watcher.start()
        return results

    def run(self, stop_event: threading.Event, poll: float = 1.0):
        """
        Stay resident until ``stop_event`` is set.

        Args:
            stop_event: Set by the signal handlers to request shutdown
            poll: Wake-up interval in seconds
        """
        interval = self.config.sweep_interval_hours * 3600
        last_sweep = time.monotonic()

        while not stop_event.wait(poll):
            if interval and time.monotonic() - last_sweep >= interval:
                self.sweep()
                last_sweep = time.monotonic()

    def stop(self) -> bool:
        """Stop the watcher within the configured grace period."""
        stopped = self.watcher.stop(self.config.shutdown_grace_period)
        logger.info("Export Router stopped")
        return stopped


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Route exported files from the inbox to their destination folders.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to config.json (created with defaults when missing).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Override the configured event log file.",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the service."""

    args = parse_args(argv)
    configure_logging(args.log_level or "INFO")

    try:
        settings = load_settings(args.config)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    configure_logging(
        args.log_level or settings.log_level,
        args.log_file or settings.log_file,
        settings.log_retention_days,
    )

    try:
        config = build_routing_config(settings)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    service = ExportRouterService(config)

    try:
        service.start()
    except StartupError as e:
        logger.error(f"Service startup failed: {e}")
        service.stop()
        return 1

    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        service.run(stop_event)
    finally:
        service.stop()

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
