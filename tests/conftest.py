from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lecture_hub.bootstrap import Bootstrapper
from lecture_hub.config import AppConfig
from lecture_hub.services.database import SQLiteLectureStorage
from lecture_hub.services.storage import LectureStorage, MemoryLectureStorage


class FakeClock:
    """Manually advanced clock handed to storage backends."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.delenv("LECTURE_HUB_STORAGE_BACKEND", raising=False)
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/lectures.db",
            "storage_backend": "sqlite",
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request: pytest.FixtureRequest, temp_config: AppConfig, clock: FakeClock) -> LectureStorage:
    if request.param == "memory":
        return MemoryLectureStorage(clock=clock, retention=temp_config.retention)
    return SQLiteLectureStorage(temp_config, clock=clock)
