"""FastAPI application exposing the lecture catalog over REST."""

from __future__ import annotations

import contextlib
import contextvars
import logging
import uuid
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from ..config import AppConfig
from ..models import (
    LiveLecture,
    LiveLectureCreate,
    RecordedLecture,
    RecordedLectureCreate,
    ViewerCountUpdate,
)
from ..services.events import emit_db_event, emit_structured_event
from ..services.importer import BulkImporter
from ..services.overview import collect_overview
from ..services.storage import LectureStorage, StorageUnavailable
from ..services.sweeper import ExpirySweeper


_DB_SLOW_WARNING_MS = 450.0

_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "lecture_hub_request_id",
    default=None,
)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


def _collect_correlation_context() -> Dict[str, str]:
    request_id = _REQUEST_ID_VAR.get()
    return {"request_id": request_id} if request_id else {}


class RequestContextMiddleware:
    """Assign a correlation identifier to each request and expose it via contextvars."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _new_correlation_id()
        token = _REQUEST_ID_VAR.set(request_id)

        async def _send_with_header(message: Dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("ascii")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, _send_with_header)
        finally:
            _REQUEST_ID_VAR.reset(token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra or {})
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        for key, value in _collect_correlation_context().items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("lecture_hub.events"), {})


def _log_event(message: str, **context: Any) -> None:
    emit_structured_event(
        "APP_EVENT",
        message,
        context={**_collect_correlation_context(), **context},
        level=logging.DEBUG,
        logger=EVENT_LOGGER,
    )


def _storage_event_emitter(event_type: str, message: str, **kwargs: Any) -> None:
    if event_type == "DB_QUERY":
        payload = {**_collect_correlation_context(), **(kwargs.get("payload") or {})}
        emit_db_event(
            message,
            payload=payload,
            duration_ms=kwargs.get("duration_ms"),
            slow_threshold_ms=_DB_SLOW_WARNING_MS,
            logger=EVENT_LOGGER,
        )
    else:
        emit_structured_event(event_type, message, payload=kwargs.get("payload"), logger=EVENT_LOGGER)


def _serialize_live_lecture(lecture: LiveLecture) -> Dict[str, Any]:
    data = asdict(lecture)
    return {
        "id": data["id"],
        "title": data["title"],
        "subject": lecture.subject.value,
        "lectureUrl": data["lecture_url"],
        "isLive": data["is_live"],
        "viewers": data["viewers"],
        "createdAt": lecture.created_at.isoformat(),
    }


def _serialize_recorded_lecture(lecture: RecordedLecture) -> Dict[str, Any]:
    data = asdict(lecture)
    return {
        "id": data["id"],
        "title": data["title"],
        "subject": lecture.subject.value,
        "youtubeUrl": data["youtube_url"],
        "views": data["views"],
        "uploadDate": lecture.upload_date.isoformat(),
        "isBookmarked": data["is_bookmarked"],
    }


def create_app(
    storage: LectureStorage,
    *,
    config: AppConfig,
    sweeper: Optional[ExpirySweeper] = None,
    root_path: str | None = None,
) -> FastAPI:
    """Return a configured FastAPI application.

    When *sweeper* is given it is started with the application and stopped on
    shutdown.
    """

    @contextlib.asynccontextmanager
    async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if sweeper is not None:
            await sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                await sweeper.stop()

    app = FastAPI(
        title="Lecture Hub",
        description="Browse live and recorded lectures by subject",
        root_path=root_path or "",
        lifespan=_lifespan,
    )
    app.state.storage = storage
    app.state.sweeper = sweeper
    app.state.config = config
    app.state.server = None

    configure_emitter = getattr(storage, "configure_event_emitter", None)
    if callable(configure_emitter):
        configure_emitter(_storage_event_emitter)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    importer = BulkImporter(storage)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "message": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        _log_event("Rejected invalid input", path=request.url.path, error_count=len(errors))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid input", "errors": errors},
        )

    @app.exception_handler(StorageUnavailable)
    async def _handle_storage_unavailable(request: Request, exc: StorageUnavailable) -> JSONResponse:
        LOGGER.error(
            "Storage unavailable while handling %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Lecture storage is unavailable"},
        )

    @app.get("/api/ping")
    async def ping() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Live lectures
    # ------------------------------------------------------------------
    @app.get("/api/live-lectures")
    async def list_live_lectures() -> List[Dict[str, Any]]:
        lectures = storage.get_live_lectures()
        _log_event("Listed live lectures", count=len(lectures))
        return [_serialize_live_lecture(lecture) for lecture in lectures]

    @app.post("/api/live-lectures", status_code=status.HTTP_201_CREATED)
    async def create_live_lecture(payload: LiveLectureCreate) -> Dict[str, Any]:
        lecture = storage.create_live_lecture(payload)
        _log_event("Created live lecture", lecture_id=lecture.id, subject=lecture.subject)
        return _serialize_live_lecture(lecture)

    @app.delete("/api/live-lectures/{lecture_id}")
    async def delete_live_lecture(lecture_id: int) -> Dict[str, str]:
        if not storage.delete_live_lecture(lecture_id):
            raise HTTPException(status_code=404, detail="Live lecture not found")
        _log_event("Deleted live lecture", lecture_id=lecture_id)
        return {"message": "Live lecture deleted successfully"}

    @app.patch("/api/live-lectures/{lecture_id}/viewers")
    async def update_viewer_count(lecture_id: int, payload: ViewerCountUpdate) -> Dict[str, Any]:
        lecture = storage.update_live_lecture(lecture_id, {"viewers": payload.viewers})
        if lecture is None:
            raise HTTPException(status_code=404, detail="Live lecture not found")
        return _serialize_live_lecture(lecture)

    # ------------------------------------------------------------------
    # Recorded lectures
    # ------------------------------------------------------------------
    @app.get("/api/recorded-lectures")
    async def list_recorded_lectures(
        subject: Optional[str] = Query(None),
    ) -> List[Dict[str, Any]]:
        lectures = storage.get_recorded_lectures(subject or None)
        _log_event("Listed recorded lectures", subject=subject, count=len(lectures))
        return [_serialize_recorded_lecture(lecture) for lecture in lectures]

    @app.get("/api/recorded-lectures/subject/{subject}")
    async def list_recorded_lectures_by_subject(subject: str) -> List[Dict[str, Any]]:
        lectures = storage.get_recorded_lectures_by_subject(subject)
        return [_serialize_recorded_lecture(lecture) for lecture in lectures]

    @app.post("/api/recorded-lectures", status_code=status.HTTP_201_CREATED)
    async def create_recorded_lecture(payload: RecordedLectureCreate) -> Dict[str, Any]:
        lecture = storage.create_recorded_lecture(payload)
        _log_event("Created recorded lecture", lecture_id=lecture.id, subject=lecture.subject)
        return _serialize_recorded_lecture(lecture)

    @app.post("/api/recorded-lectures/bulk")
    async def bulk_import_recorded_lectures(
        payload: Any = Body(...),
    ) -> Dict[str, Any]:
        lectures = payload.get("lectures") if isinstance(payload, dict) else None
        if not isinstance(lectures, list):
            raise HTTPException(status_code=400, detail="Lectures must be an array")
        summary = importer.run(lectures)
        _log_event("Bulk imported recorded lectures", added=summary.added, failed=summary.failed)
        return {"message": summary.message, "added": summary.added, "failed": summary.failed}

    @app.patch("/api/recorded-lectures/{lecture_id}/bookmark")
    async def toggle_bookmark(lecture_id: int) -> Dict[str, Any]:
        lecture = storage.toggle_bookmark(lecture_id)
        if lecture is None:
            raise HTTPException(status_code=404, detail="Recorded lecture not found")
        return _serialize_recorded_lecture(lecture)

    @app.patch("/api/recorded-lectures/{lecture_id}/views")
    async def increment_views(lecture_id: int) -> Dict[str, Any]:
        lecture = storage.increment_views(lecture_id)
        if lecture is None:
            raise HTTPException(status_code=404, detail="Recorded lecture not found")
        return _serialize_recorded_lecture(lecture)

    @app.delete("/api/recorded-lectures/{lecture_id}")
    async def delete_recorded_lecture(lecture_id: int) -> Dict[str, str]:
        if not storage.delete_recorded_lecture(lecture_id):
            raise HTTPException(status_code=404, detail="Recorded lecture not found")
        _log_event("Deleted recorded lecture", lecture_id=lecture_id)
        return {"message": "Recorded lecture deleted successfully"}

    @app.get("/api/stats")
    async def catalog_stats() -> Dict[str, Any]:
        return collect_overview(storage).as_stats()

    return app


__all__ = ["create_app"]
