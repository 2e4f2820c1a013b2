"""Command-line interface for the browser span agent and its sink."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from .config import ENDPOINT_KEY, JsonSettingsStore, PublisherSettings, SinkSettings, resolve_endpoint
from .paths import get_db_path, get_projects_path, get_settings_path

app = typer.Typer(help="Track active browser spans and collect them locally.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the sink."),
    port: int = typer.Option(
        8787, "--port", min=1, max=65535, help="TCP port for the sink."
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        envvar="DEVLOG_DB_PATH",
        path_type=Path,
        help="Location of the events SQLite database.",
    ),
    projects_path: Optional[Path] = typer.Option(
        None,
        "--projects",
        envvar="DEVLOG_PROJECTS_PATH",
        path_type=Path,
        help="projects.yaml used to group titles into projects.",
    ),
) -> None:
    """Run the local event sink until interrupted."""
    from .server_runner import run_sink

    settings = SinkSettings(
        host=host, port=port, projects_path=projects_path or get_projects_path()
    )
    run_sink(settings=settings, db_path=db_path or get_db_path())


@app.command()
def replay(
    source: str = typer.Argument(..., help="JSON-lines notification feed, or '-' for stdin."),
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", path_type=Path, help="Location of the settings file."
    ),
    timeout_ms: float = typer.Option(
        1000.0, "--timeout-ms", min=1.0, help="Delivery deadline per event."
    ),
) -> None:
    """Replay recorded browser notifications and publish the resulting spans."""
    from .notifications import NotificationParseError, replay_notifications

    store = JsonSettingsStore(settings_path or get_settings_path())
    settings = PublisherSettings.from_timeout_ms(timeout_ms)
    try:
        if source == "-":
            count = asyncio.run(replay_notifications(sys.stdin, store, settings=settings))
        else:
            with open(source, encoding="utf-8") as handle:
                count = asyncio.run(replay_notifications(handle, store, settings=settings))
    except (OSError, NotificationParseError) as exc:
        typer.echo(f"Replay failed: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Replayed {count} notifications.")


@app.command()
def endpoint(
    url: Optional[str] = typer.Argument(None, help="New sink URL; omit to show the current one."),
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", path_type=Path, help="Location of the settings file."
    ),
) -> None:
    """Show or set the sink endpoint used by the publisher."""
    store = JsonSettingsStore(settings_path or get_settings_path())
    if url is not None:
        store.set(ENDPOINT_KEY, url)
    typer.echo(resolve_endpoint(store))


@app.command()
def stats(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        envvar="DEVLOG_DB_PATH",
        path_type=Path,
        help="Location of the events SQLite database.",
    ),
    projects_path: Optional[Path] = typer.Option(
        None,
        "--projects",
        envvar="DEVLOG_PROJECTS_PATH",
        path_type=Path,
        help="projects.yaml used to group titles into projects.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of markdown."),
) -> None:
    """Print the browser summary for a specific day."""
    from .reporting import SummaryPrinter

    try:
        target = datetime.strptime(date, "%Y-%m-%d").date() if date else datetime.now().date()
    except ValueError:
        raise typer.BadParameter("expected YYYY-MM-DD", param_hint="--date")
    summary_printer = SummaryPrinter(
        db_path=db_path or get_db_path(),
        projects_path=projects_path or get_projects_path(),
    )
    try:
        summary_printer.print_daily_summary(target, as_json=as_json)
    except ValueError as exc:
        typer.echo(f"Invalid projects config: {exc}", err=True)
        raise typer.Exit(code=1)
