"""Sample catalog used to populate an empty installation."""

from __future__ import annotations

import logging
from typing import List, Tuple

from ..models import RecordedLecture, RecordedLectureCreate, Subject
from .storage import LectureStorage


LOGGER = logging.getLogger(__name__)


SAMPLE_RECORDED_LECTURES: Tuple[Tuple[str, Subject, str], ...] = (
    ("Human Anatomy and Physiology - Complete Overview", Subject.ZOOLOGY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Plant Kingdom Classification - Detailed Study", Subject.BOTANY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Organic Chemistry - Reaction Mechanisms", Subject.CHEMISTRY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Thermodynamics and Heat Transfer", Subject.PHYSICS, "https://youtu.be/dQw4w9WgXcQ"),
    ("Cell Biology and Molecular Biology", Subject.ZOOLOGY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Photosynthesis and Respiration Processes", Subject.BOTANY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Atomic Structure and Chemical Bonding", Subject.CHEMISTRY, "https://youtu.be/dQw4w9WgXcQ"),
    ("Mechanics - Motion and Forces", Subject.PHYSICS, "https://youtu.be/dQw4w9WgXcQ"),
)


def seed_sample_lectures(storage: LectureStorage) -> List[RecordedLecture]:
    """Insert the sample recorded lectures and return the stored records."""

    created: List[RecordedLecture] = []
    for title, subject, url in SAMPLE_RECORDED_LECTURES:
        payload = RecordedLectureCreate(title=title, subject=subject, youtube_url=url)
        created.append(storage.create_recorded_lecture(payload))
    LOGGER.info("Seeded %s sample recorded lectures", len(created))
    return created


__all__ = ["SAMPLE_RECORDED_LECTURES", "seed_sample_lectures"]
