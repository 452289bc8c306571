"""Storage interface for lecture records and its in-memory implementation."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from ..models import (
    LIVE_PATCH_FIELDS,
    RECORDED_PATCH_FIELDS,
    LiveLecture,
    LiveLectureCreate,
    RecordedLecture,
    RecordedLectureCreate,
    Subject,
)


LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)

Clock = Callable[[], datetime]
SubjectFilter = Union[Subject, str, None]


class StorageError(RuntimeError):
    """Base class for failures raised by a storage backend."""


class StorageUnavailable(StorageError):
    """Raised when the durable backend cannot complete an operation."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class LectureStorage(Protocol):
    """Operations every lecture storage backend provides.

    Reads return fresh records; mutating them never changes stored state.
    Operations that target a missing id return ``None`` (or ``False`` for
    deletes) rather than raising.
    """

    def create_live_lecture(self, payload: LiveLectureCreate) -> LiveLecture:
        ...

    def get_live_lectures(self) -> List[LiveLecture]:
        ...

    def get_live_lecture(self, lecture_id: int) -> Optional[LiveLecture]:
        ...

    def update_live_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[LiveLecture]:
        ...

    def delete_live_lecture(self, lecture_id: int) -> bool:
        ...

    def delete_expired_live_lectures(self) -> int:
        ...

    def create_recorded_lecture(self, payload: RecordedLectureCreate) -> RecordedLecture:
        ...

    def get_recorded_lectures(self, subject: SubjectFilter = None) -> List[RecordedLecture]:
        ...

    def get_recorded_lectures_by_subject(
        self, subject: Union[Subject, str]
    ) -> List[RecordedLecture]:
        ...

    def get_recorded_lecture(self, lecture_id: int) -> Optional[RecordedLecture]:
        ...

    def update_recorded_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[RecordedLecture]:
        ...

    def increment_views(self, lecture_id: int) -> Optional[RecordedLecture]:
        ...

    def delete_recorded_lecture(self, lecture_id: int) -> bool:
        ...

    def toggle_bookmark(self, lecture_id: int) -> Optional[RecordedLecture]:
        ...

    def clear(self) -> None:
        ...


def normalize_patch(
    updates: Mapping[str, Any], allowed: FrozenSet[str], *, kind: str
) -> Dict[str, Any]:
    """Return a validated copy of *updates* for a partial record update.

    Unknown or immutable field names are a caller error and raise
    :class:`ValueError`.
    """

    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValueError(f"Cannot update {kind} field(s): {', '.join(unknown)}")
    normalized = dict(updates)
    if "subject" in normalized:
        normalized["subject"] = Subject(normalized["subject"])
    for flag in ("is_live", "is_bookmarked"):
        if flag in normalized and not isinstance(normalized[flag], bool):
            raise ValueError(f"{flag} must be a boolean")
    for counter in ("viewers", "views"):
        if counter in normalized:
            if isinstance(normalized[counter], bool):
                raise ValueError(f"{counter} must be an integer")
            value = int(normalized[counter])
            if value < 0:
                raise ValueError(f"{counter} must not be negative")
            normalized[counter] = value
    return normalized


def resolve_subject_filter(subject: SubjectFilter) -> Optional[str]:
    """Return the stored value to filter on, or ``None`` for no filtering."""

    if subject is None:
        return None
    if isinstance(subject, Subject):
        return subject.value
    return str(subject)


class MemoryLectureStorage:
    """Transient backend keeping both collections in process memory."""

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        self._clock: Clock = clock or utc_now
        self._retention = retention
        self._lock = threading.Lock()
        self._live: Dict[int, LiveLecture] = {}
        self._recorded: Dict[int, RecordedLecture] = {}
        self._next_live_id = 1
        self._next_recorded_id = 1
        LOGGER.debug("In-memory lecture storage initialised")

    # ------------------------------------------------------------------
    # Live lectures
    # ------------------------------------------------------------------
    def create_live_lecture(self, payload: LiveLectureCreate) -> LiveLecture:
        with self._lock:
            lecture = LiveLecture(
                id=self._next_live_id,
                title=payload.title,
                subject=Subject(payload.subject),
                lecture_url=payload.lecture_url,
                is_live=True,
                viewers=0,
                created_at=self._clock(),
            )
            self._next_live_id += 1
            self._live[lecture.id] = lecture
            LOGGER.debug("Live lecture '%s' stored with id=%s", lecture.title, lecture.id)
            return lecture.copy()

    def get_live_lectures(self) -> List[LiveLecture]:
        with self._lock:
            lectures = [lecture.copy() for lecture in self._live.values()]
        lectures.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        return lectures

    def get_live_lecture(self, lecture_id: int) -> Optional[LiveLecture]:
        with self._lock:
            lecture = self._live.get(lecture_id)
            return lecture.copy() if lecture is not None else None

    def update_live_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[LiveLecture]:
        changes = normalize_patch(updates, LIVE_PATCH_FIELDS, kind="live lecture")
        with self._lock:
            lecture = self._live.get(lecture_id)
            if lecture is None:
                LOGGER.debug("Skipping update for missing live lecture id=%s", lecture_id)
                return None
            for field_name, value in changes.items():
                setattr(lecture, field_name, value)
            return lecture.copy()

    def delete_live_lecture(self, lecture_id: int) -> bool:
        with self._lock:
            removed = self._live.pop(lecture_id, None) is not None
        LOGGER.debug("Live lecture id=%s removed=%s", lecture_id, removed)
        return removed

    def delete_expired_live_lectures(self) -> int:
        threshold = self._clock() - self._retention
        with self._lock:
            expired = [
                lecture_id
                for lecture_id, lecture in self._live.items()
                if lecture.created_at < threshold
            ]
            for lecture_id in expired:
                del self._live[lecture_id]
        if expired:
            LOGGER.debug("Evicted live lectures created before %s: %s", threshold, expired)
        return len(expired)

    # ------------------------------------------------------------------
    # Recorded lectures
    # ------------------------------------------------------------------
    def create_recorded_lecture(self, payload: RecordedLectureCreate) -> RecordedLecture:
        with self._lock:
            lecture = RecordedLecture(
                id=self._next_recorded_id,
                title=payload.title,
                subject=Subject(payload.subject),
                youtube_url=payload.youtube_url,
                views=0,
                upload_date=self._clock(),
                is_bookmarked=False,
            )
            self._next_recorded_id += 1
            self._recorded[lecture.id] = lecture
            total = len(self._recorded)
        LOGGER.info(
            "Created recorded lecture '%s' (id=%s). Total: %s", lecture.title, lecture.id, total
        )
        return lecture.copy()

    def get_recorded_lectures(self, subject: SubjectFilter = None) -> List[RecordedLecture]:
        wanted = resolve_subject_filter(subject)
        with self._lock:
            lectures = [
                lecture.copy()
                for lecture in self._recorded.values()
                if wanted is None or lecture.subject.value == wanted
            ]
        lectures.sort(key=lambda item: (item.upload_date, item.id), reverse=True)
        LOGGER.debug(
            "Retrieved %s recorded lectures (subject=%s)", len(lectures), wanted or "<all>"
        )
        return lectures

    def get_recorded_lectures_by_subject(
        self, subject: Union[Subject, str]
    ) -> List[RecordedLecture]:
        return self.get_recorded_lectures(subject)

    def get_recorded_lecture(self, lecture_id: int) -> Optional[RecordedLecture]:
        with self._lock:
            lecture = self._recorded.get(lecture_id)
            return lecture.copy() if lecture is not None else None

    def update_recorded_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[RecordedLecture]:
        changes = normalize_patch(updates, RECORDED_PATCH_FIELDS, kind="recorded lecture")
        with self._lock:
            lecture = self._recorded.get(lecture_id)
            if lecture is None:
                LOGGER.debug("Skipping update for missing recorded lecture id=%s", lecture_id)
                return None
            for field_name, value in changes.items():
                setattr(lecture, field_name, value)
            return lecture.copy()

    def increment_views(self, lecture_id: int) -> Optional[RecordedLecture]:
        with self._lock:
            lecture = self._recorded.get(lecture_id)
            if lecture is None:
                return None
            lecture.views = (lecture.views or 0) + 1
            return lecture.copy()

    def delete_recorded_lecture(self, lecture_id: int) -> bool:
        with self._lock:
            removed = self._recorded.pop(lecture_id, None) is not None
        LOGGER.debug("Recorded lecture id=%s removed=%s", lecture_id, removed)
        return removed

    def toggle_bookmark(self, lecture_id: int) -> Optional[RecordedLecture]:
        with self._lock:
            lecture = self._recorded.get(lecture_id)
            if lecture is None:
                return None
            lecture.is_bookmarked = not lecture.is_bookmarked
            return lecture.copy()

    def clear(self) -> None:
        with self._lock:
            self._live.clear()
            self._recorded.clear()
        LOGGER.info("Cleared in-memory lecture storage")


__all__ = [
    "Clock",
    "DEFAULT_RETENTION",
    "LectureStorage",
    "MemoryLectureStorage",
    "StorageError",
    "StorageUnavailable",
    "SubjectFilter",
    "normalize_patch",
    "resolve_subject_filter",
    "utc_now",
]
