"""
Configuration management for the Export Router.

Uses pydantic-settings to load configuration from environment variables
and .env files, layered over the ``config.json`` file that sits next to the
service. The JSON file keeps the PascalCase keys operators already edit.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ROUTING_PATTERN = r"^limbus_[^_]+_([A-Za-z0-9]+)(?:_[A-Za-z0-9]+)*\.dcm$"
DEFAULT_RETENTION_DAYS = 30
DEFAULT_CONFIG_PATH = Path("config.json")

# Settings field -> config.json key
FILE_KEYS: Dict[str, str] = {
    "export_folder": "ExportFolder",
    "dicom_folder": "DicomFolder",
    "archive_folder": "ArchiveFolder",
    "import_folder": "ImportFolder",
    "file_name_regex_pattern": "FileNameRegexPattern",
    "archive_retention_days": "ArchiveRetentionDays",
    "enable_import_cleanup": "EnableImportCleanup",
    "settling_delay": "SettlingDelaySeconds",
    "shutdown_grace_period": "ShutdownGracePeriodSeconds",
    "sweep_interval_hours": "SweepIntervalHours",
    "log_level": "LogLevel",
    "log_file": "LogFile",
    "log_retention_days": "LogRetentionDays",
}


class Settings(BaseSettings):
    """Application settings loaded from environment and config.json."""

    # Folder Configuration
    export_folder: Path = Path.home() / "Desktop" / "EXPORT"
    dicom_folder: Path = Path.home() / "DICOM"
    archive_folder: Optional[Path] = None
    import_folder: Optional[Path] = None

    # Routing Configuration
    file_name_regex_pattern: str = DEFAULT_ROUTING_PATTERN
    settling_delay: float = Field(default=0.5, ge=0)  # seconds

    # Retention Configuration
    archive_retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, gt=0)
    enable_import_cleanup: bool = True
    sweep_interval_hours: float = Field(default=0.0, ge=0)  # 0 = startup sweep only

    # Service Configuration
    shutdown_grace_period: float = Field(default=3.0, ge=0)  # seconds
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_retention_days: int = Field(default=30, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="EXPORT_ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_archive_folder(self) -> Path:
        """Archive folder, defaulting to ``<parent of export>/IMPORT/ARCHIVE``."""
        if self.archive_folder:
            return Path(self.archive_folder).expanduser()
        return default_import_folder(self.export_folder) / "ARCHIVE"

    def get_import_folder(self) -> Path:
        """Import folder, defaulting to ``<parent of export>/IMPORT``."""
        if self.import_folder:
            return Path(self.import_folder).expanduser()
        return default_import_folder(self.export_folder)


def default_import_folder(export_folder: Path) -> Path:
    """Return the IMPORT folder that sits beside ``export_folder``."""
    return Path(export_folder).expanduser().parent / "IMPORT"


def default_file_config() -> Dict[str, Any]:
    """Build the config.json payload written on first start."""
    defaults = Settings.model_construct()
    payload: Dict[str, Any] = {
        "ExportFolder": str(defaults.export_folder),
        "DicomFolder": str(defaults.dicom_folder),
        "ArchiveFolder": str(defaults.get_archive_folder()),
        "ImportFolder": str(defaults.get_import_folder()),
        "FileNameRegexPattern": DEFAULT_ROUTING_PATTERN,
        "ArchiveRetentionDays": DEFAULT_RETENTION_DAYS,
        "EnableImportCleanup": True,
    }
    return payload


def write_config_file(path: Path, data: Dict[str, Any]) -> None:
    """Persist ``data`` as indented JSON, replacing the file atomically."""
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp_path.replace(path)


def ensure_config_file(path: Path) -> Dict[str, Any]:
    """
    Create or upgrade the config.json file.

    A missing file is seeded with defaults. An existing file gets any field
    added since it was written (archive folder, import folder, pattern,
    retention, cleanup flag) and is rewritten only when something changed.

    Args:
        path: config.json location

    Returns:
        The file contents after seeding/backfill
    """
    if not path.exists():
        data = default_file_config()
        write_config_file(path, data)
        logger.info(f"Configuration file created with default values: {path}")
        return data

    data = json.loads(path.read_text(encoding="utf-8"))
    updated = False
    export_folder = Path(data.get("ExportFolder") or Settings.model_construct().export_folder)

    if not data.get("ArchiveFolder"):
        data["ArchiveFolder"] = str(default_import_folder(export_folder) / "ARCHIVE")
        updated = True
        logger.info(f"Archive folder added to configuration: {data['ArchiveFolder']}")

    if not data.get("ImportFolder"):
        data["ImportFolder"] = str(default_import_folder(export_folder))
        updated = True
        logger.info(f"Import folder added to configuration: {data['ImportFolder']}")

    if not data.get("FileNameRegexPattern"):
        data["FileNameRegexPattern"] = DEFAULT_ROUTING_PATTERN
        updated = True
        logger.info("Routing pattern added to configuration")

    retention = data.get("ArchiveRetentionDays")
    if isinstance(retention, bool) or not isinstance(retention, int) or retention <= 0:
        data["ArchiveRetentionDays"] = DEFAULT_RETENTION_DAYS
        updated = True
        logger.info(f"Archive retention set in configuration ({DEFAULT_RETENTION_DAYS} days)")

    if "EnableImportCleanup" not in data:
        data["EnableImportCleanup"] = True
        updated = True
        logger.info("Import cleanup flag added to configuration")

    if updated:
        write_config_file(path, data)
        logger.info("Configuration updated and saved")

    return data


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Load settings from config.json, with environment variables on top.

    Args:
        config_path: config.json location, created when missing

    Returns:
        Settings instance
    """
    file_data = ensure_config_file(config_path)
    file_values = {
        field: file_data[key]
        for field, key in FILE_KEYS.items()
        if file_data.get(key) not in (None, "")
    }

    # Only values actually supplied by the environment or .env override the file
    env_values = Settings().model_dump(exclude_unset=True)

    settings = Settings(**{**file_values, **env_values})
    logger.info(f"Configuration loaded from: {config_path}")
    return settings

