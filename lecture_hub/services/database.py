"""Durable lecture storage backed by SQLite."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import AppConfig
from ..models import (
    LIVE_PATCH_FIELDS,
    RECORDED_PATCH_FIELDS,
    LiveLecture,
    LiveLectureCreate,
    RecordedLecture,
    RecordedLectureCreate,
    Subject,
)
from .storage import (
    DEFAULT_RETENTION,
    Clock,
    StorageUnavailable,
    SubjectFilter,
    normalize_patch,
    resolve_subject_filter,
    utc_now,
)


LOGGER = logging.getLogger(__name__)


SCHEMA_SCRIPT = """
CREATE TABLE IF NOT EXISTS live_lectures (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    lecture_url TEXT NOT NULL,
    subject TEXT NOT NULL,
    is_live INTEGER NOT NULL DEFAULT 0,
    viewers INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recorded_lectures (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    subject TEXT NOT NULL,
    youtube_url TEXT NOT NULL,
    views INTEGER NOT NULL DEFAULT 0,
    upload_date TEXT NOT NULL,
    is_bookmarked INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_live_lectures_created_at
    ON live_lectures(created_at);
CREATE INDEX IF NOT EXISTS idx_recorded_lectures_subject_upload
    ON recorded_lectures(subject, upload_date);
"""

_LIVE_COLUMNS = "id, title, lecture_url, subject, is_live, viewers, created_at"
_RECORDED_COLUMNS = "id, title, subject, youtube_url, views, upload_date, is_bookmarked"


def format_timestamp(value: datetime) -> str:
    """Return a fixed-width UTC string whose lexical order is chronological."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _live_from_row(row: sqlite3.Row) -> LiveLecture:
    return LiveLecture(
        id=int(row["id"]),
        title=row["title"],
        subject=Subject(row["subject"]),
        lecture_url=row["lecture_url"],
        is_live=bool(row["is_live"]),
        viewers=int(row["viewers"] or 0),
        created_at=parse_timestamp(row["created_at"]),
    )


def _recorded_from_row(row: sqlite3.Row) -> RecordedLecture:
    return RecordedLecture(
        id=int(row["id"]),
        title=row["title"],
        subject=Subject(row["subject"]),
        youtube_url=row["youtube_url"],
        views=int(row["views"] or 0),
        upload_date=parse_timestamp(row["upload_date"]),
        is_bookmarked=bool(row["is_bookmarked"]),
    )


def _to_column_value(value: Any) -> Any:
    if isinstance(value, Subject):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteLectureStorage:
    """Durable backend storing each lecture kind in its own table.

    A connection is opened per operation and every operation runs in a single
    transaction. Any :class:`sqlite3.Error` surfaces as
    :class:`StorageUnavailable`; no retries happen here.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        clock: Optional[Clock] = None,
        retention: Optional[timedelta] = None,
        event_emitter: Optional[Callable[..., None]] = None,
    ) -> None:
        self._db_path: Path = config.database_file
        self._timeout = config.database_timeout_seconds
        self._clock: Clock = clock or utc_now
        self._retention = retention if retention is not None else config.retention
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    @property
    def database_file(self) -> Path:
        return self._db_path

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting query events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any) -> Iterator[Dict[str, Any]]:
        """Emit a structured event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        error: BaseException | None = None
        try:
            yield event_payload
        except Exception as exc:
            error = exc
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            if error is None:
                event_payload.setdefault("status", "ok")
            filtered = {key: value for key, value in event_payload.items() if value is not None}
            self._event_emitter("DB_QUERY", action, payload=filtered, duration_ms=duration_ms)

    def _execute(
        self,
        connection: sqlite3.Connection,
        statement: str,
        parameters: Sequence[Any] | Tuple[Any, ...] | None = None,
    ) -> sqlite3.Cursor:
        params: Tuple[Any, ...] = tuple(parameters) if parameters is not None else ()
        return connection.execute(statement, params)

    @contextlib.contextmanager
    def _session(self, action: str, **payload: Any) -> Iterator[Tuple[sqlite3.Connection, Dict[str, Any]]]:
        """Yield a connection inside one transaction, closing it afterwards."""

        with self._track_db_event(action, **payload) as event:
            connection: Optional[sqlite3.Connection] = None
            try:
                connection = sqlite3.connect(self._db_path, timeout=self._timeout)
                connection.row_factory = sqlite3.Row
                with connection:
                    yield connection, event
            except sqlite3.Error as error:
                LOGGER.error("SQLite %s failed on %s: %s", action, self._db_path, error)
                raise StorageUnavailable(f"Database operation '{action}' failed: {error}") from error
            finally:
                if connection is not None:
                    connection.close()

    # ---------------------------------------------------------------------
    # Live lectures
    # ---------------------------------------------------------------------
    def create_live_lecture(self, payload: LiveLectureCreate) -> LiveLecture:
        created_at = self._clock()
        with self._session("live_lectures.insert", table="live_lectures") as (connection, event):
            cursor = self._execute(
                connection,
                "INSERT INTO live_lectures(title, lecture_url, subject, is_live, viewers, created_at) "
                "VALUES (?, ?, ?, 1, 0, ?)",
                (
                    payload.title,
                    payload.lecture_url,
                    Subject(payload.subject).value,
                    format_timestamp(created_at),
                ),
            )
            lecture_id = int(cursor.lastrowid)
            event["lecture_id"] = lecture_id
        LOGGER.debug("Live lecture '%s' inserted with id=%s", payload.title, lecture_id)
        return LiveLecture(
            id=lecture_id,
            title=payload.title,
            subject=Subject(payload.subject),
            lecture_url=payload.lecture_url,
            is_live=True,
            viewers=0,
            created_at=parse_timestamp(format_timestamp(created_at)),
        )

    def get_live_lectures(self) -> List[LiveLecture]:
        with self._session("live_lectures.list", table="live_lectures") as (connection, event):
            rows = self._execute(
                connection,
                f"SELECT {_LIVE_COLUMNS} FROM live_lectures ORDER BY created_at DESC, id DESC",
            ).fetchall()
            event["rowcount"] = len(rows)
        return [_live_from_row(row) for row in rows]

    def get_live_lecture(self, lecture_id: int) -> Optional[LiveLecture]:
        with self._session("live_lectures.get", table="live_lectures", lecture_id=lecture_id) as (
            connection,
            _event,
        ):
            row = self._execute(
                connection,
                f"SELECT {_LIVE_COLUMNS} FROM live_lectures WHERE id = ?",
                (lecture_id,),
            ).fetchone()
        return _live_from_row(row) if row else None

    def update_live_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[LiveLecture]:
        changes = normalize_patch(updates, LIVE_PATCH_FIELDS, kind="live lecture")
        row = self._apply_patch("live_lectures", _LIVE_COLUMNS, lecture_id, changes)
        return _live_from_row(row) if row else None

    def delete_live_lecture(self, lecture_id: int) -> bool:
        return self._delete("live_lectures", lecture_id)

    def delete_expired_live_lectures(self) -> int:
        threshold = format_timestamp(self._clock() - self._retention)
        with self._session("live_lectures.expire", table="live_lectures", threshold=threshold) as (
            connection,
            event,
        ):
            cursor = self._execute(
                connection,
                "DELETE FROM live_lectures WHERE created_at < ?",
                (threshold,),
            )
            removed = max(cursor.rowcount, 0)
            event["rowcount"] = removed
        if removed:
            LOGGER.debug("Evicted %s live lectures created before %s", removed, threshold)
        return removed

    # ---------------------------------------------------------------------
    # Recorded lectures
    # ---------------------------------------------------------------------
    def create_recorded_lecture(self, payload: RecordedLectureCreate) -> RecordedLecture:
        upload_date = format_timestamp(self._clock())
        with self._session("recorded_lectures.insert", table="recorded_lectures") as (
            connection,
            event,
        ):
            cursor = self._execute(
                connection,
                "INSERT INTO recorded_lectures(title, subject, youtube_url, views, upload_date, is_bookmarked) "
                "VALUES (?, ?, ?, 0, ?, 0)",
                (payload.title, Subject(payload.subject).value, payload.youtube_url, upload_date),
            )
            lecture_id = int(cursor.lastrowid)
            event["lecture_id"] = lecture_id
        LOGGER.info("Created recorded lecture '%s' (id=%s)", payload.title, lecture_id)
        return RecordedLecture(
            id=lecture_id,
            title=payload.title,
            subject=Subject(payload.subject),
            youtube_url=payload.youtube_url,
            views=0,
            upload_date=parse_timestamp(upload_date),
            is_bookmarked=False,
        )

    def get_recorded_lectures(self, subject: SubjectFilter = None) -> List[RecordedLecture]:
        wanted = resolve_subject_filter(subject)
        query = f"SELECT {_RECORDED_COLUMNS} FROM recorded_lectures"
        params: List[Any] = []
        if wanted is not None:
            query += " WHERE subject = ?"
            params.append(wanted)
        query += " ORDER BY upload_date DESC, id DESC"
        with self._session("recorded_lectures.list", table="recorded_lectures", subject=wanted) as (
            connection,
            event,
        ):
            rows = self._execute(connection, query, params).fetchall()
            event["rowcount"] = len(rows)
        LOGGER.debug("Retrieved %s recorded lectures (subject=%s)", len(rows), wanted or "<all>")
        return [_recorded_from_row(row) for row in rows]

    def get_recorded_lectures_by_subject(
        self, subject: Union[Subject, str]
    ) -> List[RecordedLecture]:
        return self.get_recorded_lectures(subject)

    def get_recorded_lecture(self, lecture_id: int) -> Optional[RecordedLecture]:
        with self._session(
            "recorded_lectures.get", table="recorded_lectures", lecture_id=lecture_id
        ) as (connection, _event):
            row = self._execute(
                connection,
                f"SELECT {_RECORDED_COLUMNS} FROM recorded_lectures WHERE id = ?",
                (lecture_id,),
            ).fetchone()
        return _recorded_from_row(row) if row else None

    def update_recorded_lecture(
        self, lecture_id: int, updates: Mapping[str, Any]
    ) -> Optional[RecordedLecture]:
        changes = normalize_patch(updates, RECORDED_PATCH_FIELDS, kind="recorded lecture")
        row = self._apply_patch("recorded_lectures", _RECORDED_COLUMNS, lecture_id, changes)
        return _recorded_from_row(row) if row else None

    def increment_views(self, lecture_id: int) -> Optional[RecordedLecture]:
        row = self._update_and_fetch(
            "recorded_lectures",
            _RECORDED_COLUMNS,
            lecture_id,
            "views = COALESCE(views, 0) + 1",
            (),
            action="recorded_lectures.increment_views",
        )
        return _recorded_from_row(row) if row else None

    def delete_recorded_lecture(self, lecture_id: int) -> bool:
        return self._delete("recorded_lectures", lecture_id)

    def toggle_bookmark(self, lecture_id: int) -> Optional[RecordedLecture]:
        row = self._update_and_fetch(
            "recorded_lectures",
            _RECORDED_COLUMNS,
            lecture_id,
            "is_bookmarked = NOT is_bookmarked",
            (),
            action="recorded_lectures.toggle_bookmark",
        )
        return _recorded_from_row(row) if row else None

    def clear(self) -> None:
        with self._session("clear") as (connection, _event):
            self._execute(connection, "DELETE FROM live_lectures")
            self._execute(connection, "DELETE FROM recorded_lectures")
        LOGGER.info("Cleared lecture tables in %s", self._db_path)

    def count_records(self) -> Dict[str, int]:
        """Return the number of stored rows per table."""

        counts: Dict[str, int] = {}
        with self._session("count") as (connection, _event):
            for table in ("live_lectures", "recorded_lectures"):
                row = self._execute(connection, f"SELECT COUNT(*) FROM {table}").fetchone()
                counts[table] = int(row[0]) if row else 0
        return counts

    # ---------------------------------------------------------------------
    # Shared helpers
    # ---------------------------------------------------------------------
    def _apply_patch(
        self,
        table: str,
        columns: str,
        lecture_id: int,
        changes: Dict[str, Any],
    ) -> Optional[sqlite3.Row]:
        if not changes:
            with self._session(f"{table}.get", table=table, lecture_id=lecture_id) as (
                connection,
                _event,
            ):
                return self._execute(
                    connection, f"SELECT {columns} FROM {table} WHERE id = ?", (lecture_id,)
                ).fetchone()

        assignments = ", ".join(f"{name} = ?" for name in changes)
        params = [_to_column_value(value) for value in changes.values()]
        return self._update_and_fetch(
            table,
            columns,
            lecture_id,
            assignments,
            params,
            action=f"{table}.update",
        )

    def _update_and_fetch(
        self,
        table: str,
        columns: str,
        lecture_id: int,
        assignments: str,
        params: Sequence[Any],
        *,
        action: str,
    ) -> Optional[sqlite3.Row]:
        with self._session(action, table=table, lecture_id=lecture_id) as (connection, event):
            cursor = self._execute(
                connection,
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                [*params, lecture_id],
            )
            event["rowcount"] = max(cursor.rowcount, 0)
            if cursor.rowcount <= 0:
                LOGGER.debug("Skipping update for missing %s id=%s", table, lecture_id)
                return None
            return self._execute(
                connection, f"SELECT {columns} FROM {table} WHERE id = ?", (lecture_id,)
            ).fetchone()

    def _delete(self, table: str, lecture_id: int) -> bool:
        with self._session(f"{table}.delete", table=table, lecture_id=lecture_id) as (
            connection,
            event,
        ):
            cursor = self._execute(connection, f"DELETE FROM {table} WHERE id = ?", (lecture_id,))
            removed = cursor.rowcount > 0
            event["rowcount"] = max(cursor.rowcount, 0)
        LOGGER.debug("Removed %s id=%s: %s", table, lecture_id, removed)
        return removed


__all__ = ["SCHEMA_SCRIPT", "SQLiteLectureStorage", "format_timestamp", "parse_timestamp"]
