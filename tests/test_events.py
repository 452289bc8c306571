from __future__ import annotations

import logging
from pathlib import Path

import pytest

from lecture_hub.models import Subject
from lecture_hub.services.events import emit_db_event, emit_structured_event, normalize_context


def test_normalize_context_drops_empty_values() -> None:
    context = normalize_context(
        {"subject": Subject.BOTANY, "path": Path("/tmp/x"), "empty": "  ", "none": None, "count": 0}
    )

    assert context == {"subject": "botany", "path": "/tmp/x", "count": 0}


def test_structured_event_formats_details(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("lecture_hub.tests.events")
    caplog.set_level(logging.INFO, logger=logger.name)

    emit_structured_event(
        "APP_EVENT", "Created lecture", payload={"lecture_id": 3}, duration_ms=1.234, logger=logger
    )

    [record] = caplog.records
    assert record.getMessage() == "[APP_EVENT] Created lecture (lecture_id=3, duration_ms=1.23)"
    assert record.event_details == {"lecture_id": 3, "duration_ms": 1.23}


@pytest.mark.parametrize(
    "payload, duration, expected",
    [
        ({"status": "ok"}, 2.0, logging.DEBUG),
        ({"status": "error"}, 2.0, logging.WARNING),
        ({"status": "ok"}, 900.0, logging.WARNING),
    ],
)
def test_db_event_level(caplog: pytest.LogCaptureFixture, payload, duration, expected) -> None:
    logger = logging.getLogger("lecture_hub.tests.db")
    caplog.set_level(logging.DEBUG, logger=logger.name)

    emit_db_event(
        "recorded_lectures.list",
        payload=payload,
        duration_ms=duration,
        slow_threshold_ms=450.0,
        logger=logger,
    )

    assert caplog.records[-1].levelno == expected
