from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

import pytest

from lecture_hub.config import AppConfig
from lecture_hub.models import RecordedLectureCreate
from lecture_hub.services.database import SQLiteLectureStorage, format_timestamp
from lecture_hub.services.storage import LectureStorage, StorageUnavailable


def _recorded(title: str = "Genetics") -> RecordedLectureCreate:
    return RecordedLectureCreate(
        title=title, subject="zoology", youtubeUrl="https://youtu.be/gen_123"
    )


def test_records_persist_across_instances(temp_config: AppConfig) -> None:
    first = SQLiteLectureStorage(temp_config)
    lecture = first.create_recorded_lecture(_recorded())

    second = SQLiteLectureStorage(temp_config)
    stored = second.get_recorded_lecture(lecture.id)

    assert stored == lecture


def test_rows_use_snake_case_columns(temp_config: AppConfig) -> None:
    storage = SQLiteLectureStorage(temp_config)
    lecture = storage.create_recorded_lecture(_recorded())
    storage.toggle_bookmark(lecture.id)

    connection = sqlite3.connect(temp_config.database_file)
    try:
        row = connection.execute(
            "SELECT title, subject, youtube_url, views, upload_date, is_bookmarked "
            "FROM recorded_lectures WHERE id = ?",
            (lecture.id,),
        ).fetchone()
    finally:
        connection.close()

    assert row == (
        "Genetics",
        "zoology",
        "https://youtu.be/gen_123",
        0,
        format_timestamp(lecture.upload_date),
        1,
    )


def test_missing_schema_raises_storage_unavailable(tmp_path: Path, temp_config: AppConfig) -> None:
    config = replace(temp_config, database_file=tmp_path / "empty.db")
    storage = SQLiteLectureStorage(config)

    with pytest.raises(StorageUnavailable):
        storage.get_recorded_lectures()


def test_unreachable_database_raises_storage_unavailable(
    tmp_path: Path, temp_config: AppConfig
) -> None:
    config = replace(temp_config, database_file=tmp_path / "missing" / "dir" / "lectures.db")
    storage = SQLiteLectureStorage(config)

    with pytest.raises(StorageUnavailable) as excinfo:
        storage.create_recorded_lecture(_recorded())

    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


def test_event_emitter_receives_query_events(temp_config: AppConfig) -> None:
    events = []

    def emitter(event_type, message, **kwargs):
        events.append((event_type, message, kwargs))

    storage = SQLiteLectureStorage(temp_config, event_emitter=emitter)
    lecture = storage.create_recorded_lecture(_recorded())
    storage.delete_recorded_lecture(lecture.id)

    actions = [message for _, message, _ in events]
    assert actions == ["recorded_lectures.insert", "recorded_lectures.delete"]
    assert all(event_type == "DB_QUERY" for event_type, _, _ in events)
    assert events[0][2]["payload"]["lecture_id"] == lecture.id
    assert events[1][2]["payload"]["status"] == "ok"
    assert events[1][2]["duration_ms"] >= 0


def test_failed_query_is_reported_to_emitter(tmp_path: Path, temp_config: AppConfig) -> None:
    events = []
    config = replace(temp_config, database_file=tmp_path / "empty.db")
    storage = SQLiteLectureStorage(
        config, event_emitter=lambda *args, **kwargs: events.append(kwargs)
    )

    with pytest.raises(StorageUnavailable):
        storage.get_live_lectures()

    assert events[-1]["payload"]["status"] == "error"


def test_count_records(temp_config: AppConfig) -> None:
    storage = SQLiteLectureStorage(temp_config)
    storage.create_recorded_lecture(_recorded("One"))
    storage.create_recorded_lecture(_recorded("Two"))

    assert storage.count_records() == {"live_lectures": 0, "recorded_lectures": 2}


def test_concurrent_toggles_do_not_lose_updates(storage: LectureStorage) -> None:
    lecture = storage.create_recorded_lecture(_recorded())

    with ThreadPoolExecutor(max_workers=4) as executor:
        list(executor.map(lambda _: storage.toggle_bookmark(lecture.id), range(20)))

    stored = storage.get_recorded_lecture(lecture.id)
    assert stored is not None
    # An even number of toggles lands back on the original value.
    assert stored.is_bookmarked is False


def test_concurrent_view_increments_are_counted(storage: LectureStorage) -> None:
    lecture = storage.create_recorded_lecture(_recorded())

    with ThreadPoolExecutor(max_workers=4) as executor:
        list(executor.map(lambda _: storage.increment_views(lecture.id), range(25)))

    stored = storage.get_recorded_lecture(lecture.id)
    assert stored is not None and stored.views == 25
