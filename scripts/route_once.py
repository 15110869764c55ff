#!/usr/bin/env python3
"""Run the Export Router startup sequence once and exit.

Prepares the folders, runs the retention sweeps and routes every file already
waiting in the inbox, without arming the watcher. Useful from a scheduler or
to drain the inbox by hand after a destination folder has been created.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from app.utils.config import DEFAULT_CONFIG_PATH, load_settings
from app.utils.log import configure_logging
from domains.export_routing.service import ExportRouterService, StartupError, build_routing_config


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Sweep the archive and route the files currently in the inbox.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to config.json (created with defaults when missing).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Minimum log level (default: INFO).",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script.

    Returns 1 when the configuration cannot be loaded, startup fails, or any
    file hit an I/O failure. Unroutable files and missing destination folders
    are expected outcomes and do not change the exit code.
    """

    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        settings = load_settings(args.config)
        config = build_routing_config(settings)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    service = ExportRouterService(config)

    try:
        results = service.startup()
    except StartupError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    failures = [result for result in results if result.io_failure]
    for result in failures:
        logger.error(f"{result.file.name}: {result.status.value} ({result.reason})")

    return 1 if failures else 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
