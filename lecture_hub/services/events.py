"""Structured log events for storage queries and request handling."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


EVENT_LOGGER = logging.getLogger("lecture_hub.events")

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]

_VALUE_LIMIT = 200


def _loggable(value: Any) -> Any:
    """Collapse *value* into something printable inside a ``key=value`` pair."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        text = ", ".join(map(str, value))
    else:
        text = str(value)
    text = text.strip()
    if len(text) > _VALUE_LIMIT:
        text = text[:_VALUE_LIMIT] + "…"
    return text or None


def normalize_context(values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return *values* with string keys and without empty entries."""

    cleaned = {str(key): _loggable(value) for key, value in (values or {}).items() if key}
    return {key: value for key, value in cleaned.items() if value not in (None, "", {})}


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: LoggerLike = EVENT_LOGGER,
) -> None:
    """Log ``[event_type] message (key=value, ...)``.

    The merged details are also attached to the record as ``event_details`` so
    handlers can render them without parsing the message.
    """

    summary = str(message).strip()
    details = {**normalize_context(context), **normalize_context(payload)}
    if duration_ms is not None:
        details["duration_ms"] = round(float(duration_ms), 2)

    head = f"[{event_type}] {summary}" if event_type else summary
    if details:
        described = ", ".join(f"{key}={value}" for key, value in details.items())
        head = f"{head} ({described})"
    logger.log(
        level,
        head,
        extra={"event": summary, "event_type": event_type or "", "event_details": details},
    )


def emit_db_event(
    action: str,
    *,
    payload: Optional[Mapping[str, Any]] = None,
    duration_ms: Optional[float] = None,
    slow_threshold_ms: Optional[float] = None,
    logger: LoggerLike = EVENT_LOGGER,
) -> None:
    """Log a ``DB_QUERY`` event. Failed and slow queries go out at WARNING."""

    failed = bool(payload) and payload.get("status") == "error"
    slow = (
        duration_ms is not None
        and slow_threshold_ms is not None
        and duration_ms >= slow_threshold_ms
    )
    emit_structured_event(
        "DB_QUERY",
        action,
        payload=payload,
        duration_ms=duration_ms,
        level=logging.WARNING if failed or slow else logging.DEBUG,
        logger=logger,
    )


__all__ = ["EVENT_LOGGER", "emit_db_event", "emit_structured_event", "normalize_context"]
