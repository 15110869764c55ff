from pathlib import Path

import pytest
from loguru import logger

from app.models.schemas import RoutingConfig
from domains.export_routing.matcher import DEFAULT_PATTERN


@pytest.fixture
def log_records():
    """Collect loguru records emitted during a test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def folders(tmp_path: Path) -> dict[str, Path]:
    paths = {
        "inbox": tmp_path / "EXPORT",
        "destination": tmp_path / "DICOM",
        "import": tmp_path / "IMPORT",
        "archive": tmp_path / "IMPORT" / "ARCHIVE",
    }
    for path in paths.values():
        path.mkdir(parents=True, exist_ok=True)
    return paths


@pytest.fixture
def routing_config(folders) -> RoutingConfig:
    return RoutingConfig(
        inbox_folder=folders["inbox"],
        destination_root=folders["destination"],
        archive_folder=folders["archive"],
        import_folder=folders["import"],
        routing_pattern=DEFAULT_PATTERN,
        archive_retention_days=30,
        import_cleanup_enabled=True,
        settling_delay=0,
        shutdown_grace_period=2.0,
    )
