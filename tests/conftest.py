"""
Pytest configuration and fixtures for Modwarden tests.
"""

import datetime
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modwarden.storage.backups import BackupRotator  # noqa: E402
from modwarden.storage.json_backend import JsonFileBackend  # noqa: E402
from modwarden.storage.record_store import RecordStore  # noqa: E402


class FakeClock:
    """Deterministic, manually advanced UTC clock."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2025, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += datetime.timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def json_backend(tmp_path: Path) -> JsonFileBackend:
    rotator = BackupRotator(tmp_path / "backups", max_backups=3)
    return JsonFileBackend(tmp_path / "warnings.json", rotator)


@pytest_asyncio.fixture()
async def store(json_backend: JsonFileBackend) -> RecordStore:
    record_store = RecordStore(json_backend, create_backups=False)
    await record_store.load()
    return record_store
