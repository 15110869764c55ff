"""
Pydantic models for the Export Router.

Shared data models across the application.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =====================================================
# Configuration Models
# =====================================================

class RoutingConfig(BaseModel):
    """Validated, immutable configuration for one service run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    inbox_folder: Path
    destination_root: Path
    archive_folder: Path
    import_folder: Optional[Path] = None
    routing_pattern: re.Pattern
    archive_retention_days: int = Field(default=30, gt=0)
    import_cleanup_enabled: bool = True
    payload_extension: str = ".dcm"
    settling_delay: float = Field(default=0.5, ge=0)
    shutdown_grace_period: float = Field(default=3.0, ge=0)
    sweep_interval_hours: float = Field(default=0.0, ge=0)

    @field_validator("inbox_folder", "destination_root", "archive_folder", "import_folder")
    @classmethod
    def _require_absolute(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_absolute():
            raise ValueError(f"path must be absolute: {value}")
        return value

    @field_validator("routing_pattern")
    @classmethod
    def _require_capture_group(cls, value: re.Pattern) -> re.Pattern:
        if value.groups < 1:
            raise ValueError("routing pattern needs at least one capture group")
        return value

    @field_validator("payload_extension")
    @classmethod
    def _normalise_extension(cls, value: str) -> str:
        value = value.strip().lower()
        return value if value.startswith(".") else f".{value}"

    @property
    def import_cleanup_active(self) -> bool:
        """True when the import sweep should run."""
        return self.import_cleanup_enabled and self.import_folder is not None


# =====================================================
# Routing Models
# =====================================================

class MatchStatus(str, Enum):
    """Outcome of applying the routing pattern to a file name."""
    MATCHED = "matched"
    UNMATCHED = "unmatched"


class MatchResult(BaseModel):
    """Explicit name-matching result, never confused with an I/O failure."""
    status: MatchStatus
    key: Optional[str] = None

    @classmethod
    def matched(cls, key: str) -> "MatchResult":
        return cls(status=MatchStatus.MATCHED, key=key)

    @classmethod
    def unmatched(cls) -> "MatchResult":
        return cls(status=MatchStatus.UNMATCHED)

    @property
    def is_match(self) -> bool:
        return self.status is MatchStatus.MATCHED


class RoutedFile(BaseModel):
    """One inbox file on its way through a pipeline pass."""
    source: Path
    key: Optional[str] = None
    destination: Optional[Path] = None

    @property
    def name(self) -> str:
        return self.source.name


class RouteStatus(str, Enum):
    """Terminal state of a pipeline pass."""
    ARCHIVED = "archived"
    UNROUTABLE = "unroutable"
    NOT_FOUND = "not_found"
    RESOLVE_FAILED = "resolve_failed"
    COPY_FAILED = "copy_failed"
    ARCHIVE_FAILED = "archive_failed"


class RouteResult(BaseModel):
    """Result of routing a single file."""
    status: RouteStatus
    file: RoutedFile
    copied_to: Optional[Path] = None
    archived_to: Optional[Path] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is RouteStatus.ARCHIVED

    @property
    def io_failure(self) -> bool:
        """True for failures caused by the filesystem rather than the input."""
        return self.status in {
            RouteStatus.RESOLVE_FAILED,
            RouteStatus.COPY_FAILED,
            RouteStatus.ARCHIVE_FAILED,
        }


# =====================================================
# Retention Models
# =====================================================

class SweepReport(BaseModel):
    """Counts produced by one retention sweep over one folder."""
    folder: Path
    deleted: int = 0
    failed: int = 0
    skipped: bool = False
