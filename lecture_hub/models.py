"""Lecture records and the validation rules applied before they are stored."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


LIVE_URL_PREFIX = "https://live-server.dev-boi.xyz"
YOUTUBE_URL_PATTERN = re.compile(r"^https://youtu\.be/[a-zA-Z0-9_-]+$")


class Subject(str, Enum):
    PHYSICS = "physics"
    CHEMISTRY = "chemistry"
    BOTANY = "botany"
    ZOOLOGY = "zoology"

    @classmethod
    def parse(cls, value: Any) -> Optional["Subject"]:
        """Return the subject matching *value* case-insensitively, if any."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


@dataclass
class LiveLecture:
    id: int
    title: str
    subject: Subject
    lecture_url: str
    is_live: bool
    viewers: int
    created_at: datetime

    def copy(self) -> "LiveLecture":
        return replace(self)


@dataclass
class RecordedLecture:
    id: int
    title: str
    subject: Subject
    youtube_url: str
    views: int
    upload_date: datetime
    is_bookmarked: bool

    def copy(self) -> "RecordedLecture":
        return replace(self)


# Fields a partial update may touch. Identifiers and timestamps are immutable.
LIVE_PATCH_FIELDS = frozenset({"title", "subject", "lecture_url", "is_live", "viewers"})
RECORDED_PATCH_FIELDS = frozenset(
    {"title", "subject", "youtube_url", "views", "is_bookmarked"}
)


class _CreatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    subject: Subject


class LiveLectureCreate(_CreatePayload):
    """Input accepted when scheduling a live lecture."""

    lecture_url: str = Field(..., alias="lectureUrl")

    @field_validator("lecture_url")
    @classmethod
    def _check_live_url(cls, value: str) -> str:
        if not value.startswith(LIVE_URL_PREFIX):
            raise ValueError("Please provide a valid live-server.dev-boi.xyz URL")
        return value


class RecordedLectureCreate(_CreatePayload):
    """Input accepted when cataloguing a recorded lecture."""

    youtube_url: str = Field(..., alias="youtubeUrl")

    @field_validator("youtube_url")
    @classmethod
    def _check_youtube_url(cls, value: str) -> str:
        if not YOUTUBE_URL_PATTERN.match(value):
            raise ValueError("Please provide a valid youtu.be URL")
        return value


class ViewerCountUpdate(BaseModel):
    viewers: int = Field(..., ge=0)


__all__ = [
    "LIVE_PATCH_FIELDS",
    "LIVE_URL_PREFIX",
    "LiveLecture",
    "LiveLectureCreate",
    "RECORDED_PATCH_FIELDS",
    "RecordedLecture",
    "RecordedLectureCreate",
    "Subject",
    "ViewerCountUpdate",
    "YOUTUBE_URL_PATTERN",
]
