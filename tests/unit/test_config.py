import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from app.utils.config import (
    DEFAULT_ROUTING_PATTERN,
    ensure_config_file,
    load_settings,
)
from domains.export_routing.matcher import DEFAULT_PATTERN
from domains.export_routing.service import build_routing_config


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("EXPORT_ROUTER_ARCHIVE_RETENTION_DAYS", "EXPORT_ROUTER_EXPORT_FOLDER"):
        monkeypatch.delenv(name, raising=False)


def test_missing_config_is_seeded_with_defaults(tmp_path):
    path = tmp_path / "config.json"

    data = ensure_config_file(path)

    on_disk = json.loads(path.read_text())
    assert on_disk == data
    assert data["FileNameRegexPattern"] == DEFAULT_ROUTING_PATTERN
    assert data["ArchiveRetentionDays"] == 30
    assert data["EnableImportCleanup"] is True
    assert data["ArchiveFolder"].endswith(str(Path("IMPORT") / "ARCHIVE"))


def test_existing_config_is_backfilled(tmp_path):
    path = tmp_path / "config.json"
    export = tmp_path / "Desktop" / "EXPORT"
    path.write_text(json.dumps({
        "ExportFolder": str(export),
        "DicomFolder": str(tmp_path / "DICOM"),
        "ArchiveRetentionDays": 0,
    }))

    data = ensure_config_file(path)

    assert data["ArchiveFolder"] == str(tmp_path / "Desktop" / "IMPORT" / "ARCHIVE")
    assert data["ImportFolder"] == str(tmp_path / "Desktop" / "IMPORT")
    assert data["FileNameRegexPattern"] == DEFAULT_ROUTING_PATTERN
    assert data["ArchiveRetentionDays"] == 30
    assert json.loads(path.read_text()) == data


def test_complete_config_is_not_rewritten(tmp_path):
    path = tmp_path / "config.json"
    ensure_config_file(path)
    before = path.stat().st_mtime_ns
    text = path.read_text()

    ensure_config_file(path)

    assert path.read_text() == text
    assert path.stat().st_mtime_ns == before


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "ExportFolder": str(tmp_path / "EXPORT"),
        "DicomFolder": str(tmp_path / "DICOM"),
        "ArchiveRetentionDays": 14,
    }))
    monkeypatch.setenv("EXPORT_ROUTER_ARCHIVE_RETENTION_DAYS", "7")

    settings = load_settings(path)

    assert settings.archive_retention_days == 7
    assert settings.export_folder == tmp_path / "EXPORT"


def test_routing_config_from_settings(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "ExportFolder": str(tmp_path / "EXPORT"),
        "DicomFolder": str(tmp_path / "DICOM"),
        "FileNameRegexPattern": r"^(\w+)\.dcm$",
        "EnableImportCleanup": False,
    }))

    config = build_routing_config(load_settings(path))

    assert config.inbox_folder == tmp_path / "EXPORT"
    assert config.destination_root == tmp_path / "DICOM"
    assert config.archive_folder == tmp_path / "IMPORT" / "ARCHIVE"
    assert config.routing_pattern.pattern == r"^(\w+)\.dcm$"
    assert not config.import_cleanup_active


def test_bad_pattern_falls_back_to_default(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "ExportFolder": str(tmp_path / "EXPORT"),
        "DicomFolder": str(tmp_path / "DICOM"),
        "FileNameRegexPattern": "limbus_([",
    }))

    config = build_routing_config(load_settings(path))

    assert config.routing_pattern == DEFAULT_PATTERN


def test_routing_config_is_immutable(routing_config):
    with pytest.raises(Exception):
        routing_config.archive_retention_days = 1


def test_routing_config_rejects_relative_paths(routing_config):
    with pytest.raises(ValueError):
        type(routing_config)(**{**routing_config.model_dump(), "inbox_folder": Path("relative")})


def test_non_positive_retention_is_backfilled(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "ExportFolder": str(tmp_path / "EXPORT"),
        "DicomFolder": str(tmp_path / "DICOM"),
        "ArchiveRetentionDays": -5,
    }))

    settings = load_settings(path)

    assert settings.archive_retention_days == 30
    assert json.loads(path.read_text())["ArchiveRetentionDays"] == 30


def test_out_of_range_values_are_rejected(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "ExportFolder": str(tmp_path / "EXPORT"),
        "DicomFolder": str(tmp_path / "DICOM"),
        "SettlingDelaySeconds": -1,
    }))

    with pytest.raises(ValidationError):
        load_settings(path)

    path.write_text(json.dumps({"ExportFolder": str(tmp_path / "EXPORT")}))
    monkeypatch.setenv("EXPORT_ROUTER_ARCHIVE_RETENTION_DAYS", "-5")

    with pytest.raises(ValidationError):
        load_settings(path)
