"""Shared helpers for building overview snapshots of the lecture catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from ..models import LiveLecture, RecordedLecture, Subject
from .storage import LectureStorage


SUBJECT_LABELS: Dict[Subject, str] = {
    Subject.PHYSICS: "⚛️ Physics",
    Subject.CHEMISTRY: "🧪 Chemistry",
    Subject.BOTANY: "🌿 Botany",
    Subject.ZOOLOGY: "🦓 Zoology",
}


@dataclass
class SubjectOverview:
    subject: Subject
    live: List[LiveLecture]
    recorded: List[RecordedLecture]

    @property
    def label(self) -> str:
        return SUBJECT_LABELS[self.subject]


@dataclass
class CatalogSnapshot:
    subjects: List[SubjectOverview]
    live_count: int
    recorded_count: int
    total_views: int
    bookmarked_count: int

    def subject_counts(self) -> Dict[str, int]:
        """Recorded lecture count per subject, keyed by subject value."""

        return {entry.subject.value: len(entry.recorded) for entry in self.subjects}

    def as_stats(self) -> Dict[str, object]:
        return {
            "liveLectures": self.live_count,
            "recordedLectures": self.recorded_count,
            "totalViews": self.total_views,
            "subjects": self.subject_counts(),
        }


def collect_overview(storage: LectureStorage) -> CatalogSnapshot:
    """Aggregate both lecture collections into a snapshot grouped by subject."""

    live = storage.get_live_lectures()
    recorded = storage.get_recorded_lectures()

    subjects = [
        SubjectOverview(
            subject=subject,
            live=[lecture for lecture in live if lecture.subject is subject],
            recorded=[lecture for lecture in recorded if lecture.subject is subject],
        )
        for subject in Subject
    ]

    return CatalogSnapshot(
        subjects=subjects,
        live_count=len(live),
        recorded_count=len(recorded),
        total_views=sum(lecture.views or 0 for lecture in recorded),
        bookmarked_count=sum(1 for lecture in recorded if lecture.is_bookmarked),
    )


__all__ = ["CatalogSnapshot", "SUBJECT_LABELS", "SubjectOverview", "collect_overview"]
