"""
Routing key extraction.

The routing key is the first capture group of the configured pattern applied
to the full file name (extension included).
"""

import re
from typing import Optional

from loguru import logger

from app.models.schemas import MatchResult
from app.utils.config import DEFAULT_ROUTING_PATTERN


DEFAULT_PATTERN = re.compile(DEFAULT_ROUTING_PATTERN)


def compile_pattern(raw: Optional[str]) -> re.Pattern:
    """
    Compile the configured routing pattern.

    A malformed pattern must not keep the service from starting, so any
    problem falls back to the default pattern.

    Args:
        raw: Pattern text from configuration

    Returns:
        Compiled pattern with at least one capture group
    """
    if not raw:
        logger.error("Routing pattern is empty. Using default pattern.")
        return DEFAULT_PATTERN

    try:
        pattern = re.compile(raw)
    except re.error as e:
        logger.error(f"Failed to compile routing pattern {raw!r}: {e}. Using default pattern.")
        return DEFAULT_PATTERN

    if pattern.groups < 1:
        logger.error(f"Routing pattern {raw!r} has no capture group. Using default pattern.")
        return DEFAULT_PATTERN

    logger.info(f"Routing pattern compiled: {raw}")
    return pattern


def extract_key(file_name: str, pattern: re.Pattern) -> Optional[str]:
    """Return the first capture group of ``pattern`` in ``file_name``, or None."""
    if pattern.groups < 1:
        return None

    match = pattern.search(file_name)
    if match is None:
        return None

    return match.group(1) or None


def match_file_name(file_name: str, pattern: re.Pattern) -> MatchResult:
    """Apply ``pattern`` to ``file_name`` and wrap the outcome."""
    key = extract_key(file_name, pattern)
    if key is None:
        return MatchResult.unmatched()
    return MatchResult.matched(key)
