"""Logging setup shared by the CLI commands and the web server."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable, Union


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_log_level(value: Union[str, int, None]) -> int:
    """Translate ``"debug"``/``"INFO"``/``20`` style values into a logging level."""

    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name not in _LEVEL_NAMES:
        raise ValueError(f"Unknown log level '{value}'. Expected one of: {', '.join(_LEVEL_NAMES)}")
    return int(getattr(logging, name))


def configure_logging(
    level: int = logging.INFO, *, handlers: Iterable[logging.Handler] | None = None
) -> Logger:
    """Attach *handlers* (or a stderr handler) to the root logger."""

    logger = logging.getLogger()
    logger.setLevel(level)

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        handlers = [stream_handler]

    for handler in handlers:
        logger.addHandler(handler)

    return logger


def get_log_file_path(storage_root: Path) -> Path:
    return storage_root / "lecture_hub.log"


__all__ = ["DEFAULT_LOG_FORMAT", "configure_logging", "get_log_file_path", "parse_log_level"]
