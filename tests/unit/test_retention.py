import os
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from app.utils import helpers
from domains.export_routing import retention
from domains.export_routing.retention import RetentionSweeper

NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def mtime_as_creation(monkeypatch):
    """Use mtime as creation time so ages can be set with os.utime on every platform."""
    monkeypatch.setattr(
        retention, "created_at", lambda path: datetime.fromtimestamp(path.stat().st_mtime)
    )


def make_file(folder: Path, name: str, age_days: float = 0) -> Path:
    path = folder / name
    path.write_bytes(b"x")
    stamp = (NOW - timedelta(days=age_days)).timestamp()
    os.utime(path, (stamp, stamp))
    return path


def test_archive_sweep_deletes_only_expired(routing_config, folders):
    old = make_file(folders["archive"], "old.dcm", age_days=40)
    recent = make_file(folders["archive"], "recent.dcm", age_days=2)

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_archive()

    assert report.deleted == 1
    assert report.failed == 0
    assert not old.exists()
    assert recent.exists()


def test_archive_sweep_is_not_recursive(routing_config, folders):
    nested = folders["archive"] / "sub"
    nested.mkdir()
    deep = make_file(nested, "deep.dcm", age_days=400)

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_archive()

    assert report.deleted == 0
    assert deep.exists()
    assert nested.is_dir()


def test_import_sweep_deletes_non_payload_case_insensitive(routing_config, folders):
    a = make_file(folders["import"], "a.dcm")
    b = make_file(folders["import"], "b.txt")
    c = make_file(folders["import"], "c.DCM")

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_import()

    assert report.deleted == 1
    assert a.exists()
    assert not b.exists()
    assert c.exists()


def test_run_skips_import_sweep_when_disabled(routing_config, folders):
    config = routing_config.model_copy(update={"import_cleanup_enabled": False})
    stray = make_file(folders["import"], "b.txt")

    reports = RetentionSweeper(config, clock=lambda: NOW).run()

    assert len(reports) == 1
    assert reports[0].folder == folders["archive"]
    assert stray.exists()


def test_missing_folder_is_skipped(routing_config, folders, log_records):
    folders["archive"].rmdir()

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_archive()

    assert report.skipped
    assert any(record["level"].name == "WARNING" for record in log_records)


def test_delete_failure_does_not_stop_sweep(routing_config, folders, monkeypatch, log_records):
    first = make_file(folders["archive"], "a.dcm", age_days=50)
    second = make_file(folders["archive"], "b.dcm", age_days=50)

    real_unlink = Path.unlink

    def unlink(self, *args, **kwargs):
        if self.name == "a.dcm":
            raise PermissionError("locked")
        return real_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", unlink)

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_archive()

    assert report.deleted == 1
    assert report.failed == 1
    assert first.exists()
    assert not second.exists()
    assert any(record["level"].name == "ERROR" for record in log_records)


def test_concurrent_sweep_of_same_folder_is_skipped(routing_config, folders):
    sweeper = RetentionSweeper(routing_config, clock=lambda: NOW)
    old = make_file(folders["archive"], "old.dcm", age_days=40)

    lock = sweeper._lock_for(folders["archive"])
    with lock:
        report = sweeper.sweep_archive()

    assert report.skipped
    assert old.exists()


def test_created_at_returns_recent_datetime(tmp_path):
    path = tmp_path / "f.dcm"
    path.write_bytes(b"x")
    assert abs(datetime.now() - helpers.created_at(path)) < timedelta(minutes=5)


def test_import_sweep_keeps_bare_payload_extension_name(routing_config, folders):
    bare = make_file(folders["import"], ".dcm")
    dotted = make_file(folders["import"], ".hidden")

    report = RetentionSweeper(routing_config, clock=lambda: NOW).sweep_import()

    assert report.deleted == 1
    assert bare.exists()
    assert not dotted.exists()


def test_created_at_uses_ctime_on_windows_without_birthtime(monkeypatch):
    monkeypatch.setattr(helpers, "os", SimpleNamespace(name="nt"))
    ctime = datetime(2024, 1, 2, 3, 4, 5).timestamp()
    mtime = datetime(2024, 5, 6, 7, 8, 9).timestamp()
    path = SimpleNamespace(stat=lambda: SimpleNamespace(st_ctime=ctime, st_mtime=mtime))

    assert helpers.created_at(path) == datetime(2024, 1, 2, 3, 4, 5)


def test_created_at_uses_mtime_without_birthtime_elsewhere(monkeypatch):
    monkeypatch.setattr(helpers, "os", SimpleNamespace(name="posix"))
    ctime = datetime(2024, 1, 2, 3, 4, 5).timestamp()
    mtime = datetime(2024, 5, 6, 7, 8, 9).timestamp()
    path = SimpleNamespace(stat=lambda: SimpleNamespace(st_ctime=ctime, st_mtime=mtime))

    assert helpers.created_at(path) == datetime(2024, 5, 6, 7, 8, 9)
