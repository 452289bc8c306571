from __future__ import annotations

import logging

import pytest

from lecture_hub.models import Subject
from lecture_hub.services.importer import (
    BulkImporter,
    CandidateRejected,
    ImportSummary,
    build_recorded_lecture,
)
from lecture_hub.services.storage import MemoryLectureStorage, StorageUnavailable


def _candidate(name: str, *, subject: str = "botany", link: str | None = "https://youtu.be/leaf01") -> dict:
    candidate = {"subject": subject, "lecture_name": name}
    if link is not None:
        candidate["lecture_link"] = link
    return candidate


def test_partial_batch_counts_failures() -> None:
    storage = MemoryLectureStorage()
    candidates = [
        _candidate("Photosynthesis"),
        _candidate("Respiration", link=None),
        _candidate("Transpiration"),
        _candidate("Pollination", link=None),
        _candidate("Germination"),
    ]

    summary = BulkImporter(storage).run(candidates)

    assert (summary.added, summary.failed) == (3, 2)
    assert summary.message == "Successfully added 3 lectures, 2 failed"
    assert len(storage.get_recorded_lectures()) == 3


def test_subject_is_matched_case_insensitively() -> None:
    storage = MemoryLectureStorage()
    candidates = [
        {"subject": "Physics", "lecture_name": "A", "lecture_link": "https://youtu.be/x"},
        {"subject": "bad", "lecture_name": "B", "lecture_link": "https://youtu.be/y"},
    ]

    summary = BulkImporter(storage).run(candidates)

    assert (summary.added, summary.failed) == (1, 1)
    [lecture] = storage.get_recorded_lectures()
    assert lecture.title == "A"
    assert lecture.subject is Subject.PHYSICS


def test_message_omits_failures_when_all_succeed() -> None:
    summary = BulkImporter(MemoryLectureStorage()).run([_candidate("Roots"), _candidate("Stems")])

    assert summary.message == "Successfully added 2 lectures"
    assert [lecture.title for lecture in summary.created] == ["Roots", "Stems"]


def test_empty_batch() -> None:
    summary = BulkImporter(MemoryLectureStorage()).run([])

    assert summary == ImportSummary()
    assert summary.message == "Successfully added 0 lectures"


@pytest.mark.parametrize(
    "candidate",
    [
        "not an object",
        None,
        {"subject": "botany", "lecture_name": "   ", "lecture_link": "https://youtu.be/x"},
        {"subject": "botany", "lecture_name": "Leaves", "lecture_link": 42},
        {"subject": "botany", "lecture_name": "Leaves", "lecture_link": "https://vimeo.com/1"},
        {"subject": "geology", "lecture_name": "Rocks", "lecture_link": "https://youtu.be/x"},
    ],
)
def test_invalid_candidates_are_rejected(candidate) -> None:
    with pytest.raises(CandidateRejected):
        build_recorded_lecture(candidate)


def test_rejections_are_logged_with_index(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lecture_hub.services.importer")

    BulkImporter(MemoryLectureStorage()).run([_candidate("Fine"), _candidate("Broken", link=None)])

    assert any("#1" in record.getMessage() for record in caplog.records)


class _FlakyStorage(MemoryLectureStorage):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def create_recorded_lecture(self, payload):
        self.calls += 1
        if self.calls == 2:
            raise StorageUnavailable("disk full")
        return super().create_recorded_lecture(payload)


def test_storage_failures_do_not_abort_batch() -> None:
    storage = _FlakyStorage()

    summary = BulkImporter(storage).run([_candidate("One"), _candidate("Two"), _candidate("Three")])

    assert (summary.added, summary.failed) == (2, 1)
    assert [lecture.title for lecture in summary.created] == ["One", "Three"]
