"""Entry-point for the Lecture Hub application."""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from lecture_hub.bootstrap import BootstrapError, Bootstrapper, initialize_app
from lecture_hub.logging_utils import (
    DEFAULT_LOG_FORMAT,
    configure_logging,
    get_log_file_path,
    parse_log_level,
)
from lecture_hub.services.backends import build_storage
from lecture_hub.services.database import SQLiteLectureStorage
from lecture_hub.services.seed import seed_sample_lectures
from lecture_hub.services.storage import StorageUnavailable
from lecture_hub.services.sweeper import ExpirySweeper
from lecture_hub.ui.console import ConsoleUI
from lecture_hub.ui.modern import ModernUI
from lecture_hub.web import create_app


LOGGER = logging.getLogger("lecture_hub.cli")


cli = typer.Typer(add_completion=False, help="Lecture Hub management commands")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000


def _prepare_logging(storage_root: Path, level: int = logging.INFO) -> None:
    """Log to stderr and to ``lecture_hub.log`` under the storage root."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    handlers = [
        logging.FileHandler(get_log_file_path(storage_root), encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    configure_logging(level, handlers=handlers)


def _normalize_root_path(root_path: Optional[str]) -> str:
    """Return ``/prefix`` without a trailing slash, or an empty string."""

    cleaned = (root_path or "").strip().strip("/")
    return f"/{cleaned}" if cleaned else ""


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the overview presentation style.",
    show_default=True,
)


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None, log_level="info")


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="LECTURE_HUB_ROOT_PATH",
    ),
    log_level: str = typer.Option("info", help="Logging level (debug, info, warning, ...)"),
) -> None:
    """Run the REST API together with the expiry sweeper."""

    try:
        level = parse_log_level(log_level)
    except ValueError as error:
        raise typer.BadParameter(str(error), param_hint="--log-level") from error

    app_config = initialize_app()
    _prepare_logging(app_config.storage_root, level)

    storage = build_storage(app_config)
    sweeper = ExpirySweeper(storage, interval=app_config.sweep_interval_seconds)
    normalized_root = _normalize_root_path(root_path)
    app = create_app(storage, config=app_config, sweeper=sweeper, root_path=normalized_root)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server
    LOGGER.info("Serving Lecture Hub on http://%s:%s%s", host, port, normalized_root or "/")
    server.run()


@cli.command()
def seed() -> None:
    """Load the sample recorded lectures into the configured storage."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    if config.storage_backend == "memory":
        typer.echo("Warning: the in-memory backend discards seeded lectures when this command exits.")

    try:
        created = seed_sample_lectures(build_storage(config))
    except StorageUnavailable as error:
        typer.echo(f"Seeding failed: {error}")
        raise typer.Exit(code=1) from error
    typer.echo(f"Seeded {len(created)} recorded lectures.")


@cli.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete every live and recorded lecture."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    if not yes:
        typer.confirm("This removes all lectures. Continue?", abort=True)

    try:
        build_storage(config).clear()
    except StorageUnavailable as error:
        typer.echo(f"Reset failed: {error}")
        raise typer.Exit(code=1) from error
    typer.echo("All lectures have been deleted.")


@cli.command("check-db")
def check_db() -> None:
    """Verify that the SQLite database can be opened and queried."""

    config = replace(initialize_app(), storage_backend="sqlite")
    _prepare_logging(config.storage_root)

    try:
        Bootstrapper(config).initialize()
        counts = SQLiteLectureStorage(config).count_records()
    except (BootstrapError, StorageUnavailable) as error:
        typer.echo(f"Database check failed: {error}")
        raise typer.Exit(code=1) from error

    typer.echo(f"Database: {config.database_file}")
    typer.echo(f"  Live lectures: {counts['live_lectures']}")
    typer.echo(f"  Recorded lectures: {counts['recorded_lectures']}")
    typer.echo("Database connection test completed successfully.")


@cli.command()
def sweep() -> None:
    """Run one eviction pass over expired live lectures."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    storage = build_storage(config)
    removed = ExpirySweeper(storage, interval=config.sweep_interval_seconds).run_once()
    typer.echo(f"Removed {removed} expired live lectures.")


@cli.command()
def overview(style: UIStyle = style_option) -> None:
    """Render the catalog grouped by subject using the chosen UI style."""

    config = initialize_app()
    _prepare_logging(config.storage_root, logging.WARNING)

    storage = build_storage(config)
    if style is UIStyle.MODERN:
        ui = ModernUI(storage)
    else:
        ui = ConsoleUI(storage, write=typer.echo)
    ui.run()


if __name__ == "__main__":
    cli()
