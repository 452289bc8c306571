"""Selection of the storage backend named in the configuration."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import AppConfig
from .database import SQLiteLectureStorage
from .storage import Clock, LectureStorage, MemoryLectureStorage


LOGGER = logging.getLogger(__name__)


def build_storage(config: AppConfig, *, clock: Optional[Clock] = None) -> LectureStorage:
    """Return the backend configured by ``config.storage_backend``."""

    if config.storage_backend == "sqlite":
        LOGGER.info("Using SQLite lecture storage at %s", config.database_file)
        return SQLiteLectureStorage(config, clock=clock)
    LOGGER.info("Using in-memory lecture storage; records are lost on restart")
    return MemoryLectureStorage(clock=clock, retention=config.retention)


__all__ = ["build_storage"]
