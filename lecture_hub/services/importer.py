"""Bulk import of recorded lectures from loosely-typed descriptors."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from ..models import RecordedLecture, RecordedLectureCreate, Subject
from .storage import LectureStorage, StorageError


LOGGER = logging.getLogger(__name__)

REQUIRED_FIELDS = ("subject", "lecture_name", "lecture_link")


class CandidateRejected(ValueError):
    """Raised when a single bulk candidate cannot be turned into a lecture."""


@dataclass
class ImportSummary:
    """Outcome of a bulk import run."""

    added: int = 0
    failed: int = 0
    created: List[RecordedLecture] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = f"Successfully added {self.added} lectures"
        if self.failed > 0:
            text += f", {self.failed} failed"
        return text


def _required_text(candidate: Mapping[str, Any], key: str) -> str:
    value = candidate.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CandidateRejected(f"missing '{key}'")
    return value.strip()


def build_recorded_lecture(candidate: Any) -> RecordedLectureCreate:
    """Map a ``{subject, lecture_name, lecture_link}`` descriptor to a creation payload."""

    if not isinstance(candidate, Mapping):
        raise CandidateRejected("entry is not an object")
    values = {key: _required_text(candidate, key) for key in REQUIRED_FIELDS}
    subject: Optional[Subject] = Subject.parse(values["subject"])
    if subject is None:
        raise CandidateRejected(f"unrecognised subject '{values['subject']}'")
    try:
        return RecordedLectureCreate(
            title=values["lecture_name"],
            subject=subject,
            youtube_url=values["lecture_link"],
        )
    except ValidationError as error:
        messages = "; ".join(str(item.get("msg", "")) for item in error.errors())
        raise CandidateRejected(messages or "invalid lecture") from error


class BulkImporter:
    """Create as many recorded lectures as possible from a batch.

    A bad entry or a storage failure is counted and skipped; the batch never
    stops early.
    """

    def __init__(self, storage: LectureStorage) -> None:
        self._storage = storage

    def run(self, candidates: Iterable[Any]) -> ImportSummary:
        summary = ImportSummary()
        for index, candidate in enumerate(candidates):
            try:
                payload = build_recorded_lecture(candidate)
                lecture = self._storage.create_recorded_lecture(payload)
            except CandidateRejected as error:
                summary.failed += 1
                LOGGER.warning("Skipping bulk lecture #%s: %s", index, error)
                continue
            except StorageError as error:
                summary.failed += 1
                LOGGER.warning("Could not store bulk lecture #%s: %s", index, error)
                continue
            summary.added += 1
            summary.created.append(lecture)

        LOGGER.info("Bulk import finished: %s", summary.message)
        return summary


__all__ = ["BulkImporter", "CandidateRejected", "ImportSummary", "build_recorded_lecture"]
