"""Preparation of runtime directories and the SQLite schema before startup."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from . import config as config_module
from .config import AppConfig, load_config
from .services.database import SCHEMA_SCRIPT

LOGGER = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """Raised when the storage location or the database cannot be prepared."""


class Bootstrapper:
    """Make sure the configured storage backend can be used.

    Directories are checked for every backend; the schema is only created when
    the SQLite backend is selected.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        return self._config

    def initialize(self) -> None:
        LOGGER.debug("Bootstrapping lecture storage (backend=%s)", self._config.storage_backend)
        self._prepare_directories()
        if self._config.storage_backend == "sqlite":
            self._create_schema()
        LOGGER.info("Lecture storage ready at %s", self._config.storage_root)

    def _prepare_directories(self) -> None:
        required = {
            "storage": self._config.storage_root,
            "database": self._config.database_file.parent,
        }
        for label, path in required.items():
            if not config_module._ensure_writable_directory(path):
                raise BootstrapError(f"The {label} directory '{path}' is not writable")
            LOGGER.debug("%s directory ready: %s", label.capitalize(), path)

    def _create_schema(self) -> None:
        database_file = self._config.database_file
        LOGGER.debug("Applying lecture schema to %s", database_file)
        try:
            connection = sqlite3.connect(database_file)
        except sqlite3.Error as error:
            raise BootstrapError(f"Could not open database '{database_file}': {error}") from error
        try:
            with connection:
                connection.executescript(SCHEMA_SCRIPT)
        except sqlite3.Error as error:
            raise BootstrapError(f"Could not create the lecture schema: {error}") from error
        finally:
            connection.close()


def initialize_app(config_path: Path | None = None) -> AppConfig:
    """Load the configuration and bootstrap it, returning the loaded config."""

    config = load_config(config_path=config_path)
    Bootstrapper(config).initialize()
    return config


__all__ = ["BootstrapError", "Bootstrapper", "initialize_app"]
