"""Configuration loading utilities for the Lecture Hub application."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Literal, Sequence, Tuple


LOGGER = logging.getLogger(__name__)


StorageBackend = Literal["memory", "sqlite"]

STORAGE_BACKENDS: Tuple[str, ...] = ("memory", "sqlite")
BACKEND_ENV_VAR = "LECTURE_HUB_STORAGE_BACKEND"

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "default.json"

_PERMISSION_SENTINEL = ".lecture_hub_write_check"

_DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0
_DEFAULT_RETENTION_HOURS = 24.0
_DEFAULT_DATABASE_TIMEOUT_SECONDS = 5.0


def _ensure_writable_directory(path: Path) -> bool:
    """Create *path* if needed and confirm a file can be written inside it."""

    probe = path / _PERMISSION_SENTINEL
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe.write_text("ok", encoding="utf-8")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            probe.unlink()
    return True


def _first_writable(candidates: Sequence[Path], *, label: str) -> Tuple[Path, bool]:
    """Return the first writable directory among *candidates*.

    The flag is ``True`` when a later candidate replaced the first one. If none
    can be used the first candidate comes back unchanged and the bootstrapper
    reports the failure.
    """

    resolved = list(dict.fromkeys(path.resolve() for path in candidates))
    requested = resolved[0]
    for index, candidate in enumerate(resolved):
        if not _ensure_writable_directory(candidate):
            continue
        if index:
            LOGGER.warning(
                "The %s directory '%s' is not writable; falling back to '%s'.",
                label,
                requested,
                candidate,
            )
        return candidate, index > 0

    LOGGER.warning(
        "No writable %s directory found (tried: %s).",
        label,
        ", ".join(str(path) for path in resolved),
    )
    return requested, False


def _relocate_database(database_file: Path, old_root: Path, new_root: Path) -> Path:
    """Move a database file that lived under *old_root* to the same spot under *new_root*."""

    if old_root not in database_file.parents:
        return database_file
    moved = new_root / database_file.relative_to(old_root)
    if not _ensure_writable_directory(moved.parent):
        return database_file
    LOGGER.warning("Database '%s' follows the storage root to '%s'.", database_file, moved)
    return moved


def _normalize_backend(value: Any) -> StorageBackend:
    normalized = str(value or "memory").strip().lower()
    if normalized not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend '{value}'. Expected one of: {', '.join(STORAGE_BACKENDS)}"
        )
    return normalized  # type: ignore[return-value]


def _positive_float(mapping: Dict[str, Any], key: str, default: float) -> float:
    raw = mapping.get(key, default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as error:
        raise ValueError(f"Configuration value '{key}' must be a number") from error
    if value <= 0:
        raise ValueError(f"Configuration value '{key}' must be positive")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for storage, the expiry sweeper and the database."""

    storage_root: Path
    database_file: Path
    storage_backend: StorageBackend = "memory"
    sweep_interval_seconds: float = _DEFAULT_SWEEP_INTERVAL_SECONDS
    retention_hours: float = _DEFAULT_RETENTION_HOURS
    database_timeout_seconds: float = _DEFAULT_DATABASE_TIMEOUT_SECONDS

    @property
    def retention(self) -> timedelta:
        """Age after which a live lecture becomes eligible for eviction."""

        return timedelta(hours=self.retention_hours)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        requested_root = (base_path / mapping["storage_root"]).resolve()
        storage_root, relocated = _first_writable(
            [requested_root, Path.home() / ".lecture_hub" / "storage"],
            label="storage",
        )

        database_file = (base_path / mapping["database_file"]).resolve()
        if relocated:
            database_file = _relocate_database(database_file, requested_root, storage_root)

        backend = os.environ.get(BACKEND_ENV_VAR) or mapping.get("storage_backend")

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            storage_backend=_normalize_backend(backend),
            sweep_interval_seconds=_positive_float(
                mapping, "sweep_interval_seconds", _DEFAULT_SWEEP_INTERVAL_SECONDS
            ),
            retention_hours=_positive_float(mapping, "retention_hours", _DEFAULT_RETENTION_HOURS),
            database_timeout_seconds=_positive_float(
                mapping, "database_timeout_seconds", _DEFAULT_DATABASE_TIMEOUT_SECONDS
            ),
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Read a JSON settings file, ``config/default.json`` unless told otherwise.

    Relative paths inside the file resolve against the project root.
    """

    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    raw_config = json.loads(path.read_text(encoding="utf-8"))
    return AppConfig.from_mapping(raw_config, base_path=PROJECT_ROOT)


__all__ = [
    "AppConfig",
    "BACKEND_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "STORAGE_BACKENDS",
    "StorageBackend",
    "load_config",
]
