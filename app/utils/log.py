"""
Logging setup for the Export Router.

All modules log through the loguru ``logger``; this module only decides where
the records go. The optional file sink is the service's event log.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message}"


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    retention_days: int = 30,
) -> None:
    """
    Replace loguru's default sink with the service sinks.

    Args:
        level: Minimum level for every sink
        log_file: Event log file; rotated daily when given
        retention_days: How long rotated event log files are kept
    """
    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level.upper())

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            format=FILE_FORMAT,
            level=level.upper(),
            rotation="00:00",
            retention=f"{retention_days} days",
            encoding="utf-8",
            enqueue=True,
        )
