from __future__ import annotations

import pytest
from pydantic import ValidationError

from lecture_hub.models import LiveLectureCreate, RecordedLectureCreate, Subject


def test_live_lecture_accepts_trusted_url_alias() -> None:
    payload = LiveLectureCreate.model_validate(
        {
            "title": "  Organic Reactions ",
            "subject": "chemistry",
            "lectureUrl": "https://live-server.dev-boi.xyz/stream/42",
        }
    )

    assert payload.title == "Organic Reactions"
    assert payload.subject is Subject.CHEMISTRY
    assert payload.lecture_url.endswith("/42")


@pytest.mark.parametrize(
    "url",
    [
        "http://live-server.dev-boi.xyz/stream",
        "https://example.com/live-server.dev-boi.xyz",
        "",
    ],
)
def test_live_lecture_rejects_untrusted_urls(url: str) -> None:
    with pytest.raises(ValidationError):
        LiveLectureCreate(title="Optics", subject="physics", lectureUrl=url)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/",
        "https://youtu.be/abc?t=10",
        "http://youtu.be/abc",
    ],
)
def test_recorded_lecture_requires_short_link(url: str) -> None:
    with pytest.raises(ValidationError):
        RecordedLectureCreate(title="Ecology", subject="botany", youtubeUrl=url)


def test_recorded_lecture_accepts_short_link() -> None:
    payload = RecordedLectureCreate(
        title="Ecology", subject="botany", youtubeUrl="https://youtu.be/a-B_9"
    )

    assert payload.youtube_url == "https://youtu.be/a-B_9"


@pytest.mark.parametrize("title", ["", "   "])
def test_title_must_not_be_blank(title: str) -> None:
    with pytest.raises(ValidationError):
        RecordedLectureCreate(title=title, subject="botany", youtubeUrl="https://youtu.be/x")


def test_single_creation_requires_exact_subject() -> None:
    with pytest.raises(ValidationError):
        RecordedLectureCreate(title="Cells", subject="Zoology", youtubeUrl="https://youtu.be/x")
    with pytest.raises(ValidationError):
        RecordedLectureCreate(title="Cells", subject="astronomy", youtubeUrl="https://youtu.be/x")


def test_subject_parse_is_case_insensitive() -> None:
    assert Subject.parse(" PHYSICS ") is Subject.PHYSICS
    assert Subject.parse(Subject.BOTANY) is Subject.BOTANY
    assert Subject.parse("geology") is None
    assert Subject.parse(None) is None
