"""Command-line interface for the coding time tracker."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from .config import CollectorSettings
from .paths import get_db_path, get_log_path

app = typer.Typer(help="Local coding time tracker.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the ledger SQLite database."
    ),
    tick_seconds: float = typer.Option(
        1.0,
        "--interval",
        min=0.1,
        help="Tick interval in seconds.",
    ),
    idle_seconds: float = typer.Option(
        60.0,
        "--idle-threshold",
        min=1.0,
        help="Seconds without activity before time stops counting.",
    ),
    persist_seconds: Optional[float] = typer.Option(
        None,
        "--persist-interval",
        min=1.0,
        help="Seconds between ledger writes (defaults to 15).",
    ),
    sleep_gap_minutes: Optional[float] = typer.Option(
        None,
        "--sleep-gap",
        min=0.1,
        help="Discard any single tick longer than this many minutes. Off by default.",
    ),
    frameworks: Optional[list[str]] = typer.Option(
        None,
        "--framework",
        help="Framework labels for a folder, as NAME=Label[,Label]. Repeatable.",
    ),
    log_file: bool = typer.Option(
        False,
        "--log-file/--no-log-file",
        help="Also write logs to the application data directory.",
    ),
) -> None:
    """Start the tracker session and its local HTTP API."""
    from .classifier import StaticClassifier
    from .server_runner import run_dashboard

    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(handler)

    settings = CollectorSettings.from_intervals(
        tick_seconds=tick_seconds,
        idle_seconds=idle_seconds,
        persist_seconds=persist_seconds,
        sleep_gap_minutes=sleep_gap_minutes,
    )
    run_dashboard(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        classifier=StaticClassifier(_parse_framework_options(frameworks or [])),
    )


@app.command()
def summary(
    date_value: Optional[str] = typer.Option(
        None,
        "--date",
        help="UTC date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    days: Optional[int] = typer.Option(
        None,
        "--days",
        min=1,
        help="Report the last N days ending at --date instead of a single day.",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the ledger SQLite database.",
    ),
) -> None:
    """Print per-project, language and framework totals for a day or a range."""
    from .reporting import SummaryPrinter

    target = _parse_day(date_value) if date_value else datetime.now(timezone.utc).date()
    printer = SummaryPrinter(db_path=db_path or get_db_path())
    if days is None:
        printer.print_daily_summary(target)
    else:
        printer.print_range_report(target, days)


@app.command()
def delete(
    project: str = typer.Argument(..., help="Project key to delete from."),
    date_value: str = typer.Argument(..., metavar="DATE", help="UTC date (YYYY-MM-DD)."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the ledger SQLite database."
    ),
) -> None:
    """Remove one project's day from every ledger."""
    from .db import StateStore
    from .session import TrackerSession

    day = _parse_day(date_value)
    with TrackerSession(StateStore(db_path or get_db_path())) as session:
        session.delete_entry(project, day.isoformat())
    typer.echo(f"Deleted {project} on {day.isoformat()}.")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the ledger SQLite database."
    ),
) -> None:
    """Clear all recorded history."""
    from .db import StateStore
    from .session import TrackerSession

    if not yes:
        typer.confirm("Reset all tracked history? This cannot be undone.", abort=True)
    with TrackerSession(StateStore(db_path or get_db_path())) as session:
        session.reset_all()
    typer.echo("History cleared.")


def _parse_framework_options(values: list[str]) -> dict[str, list[str]]:
    labels: dict[str, list[str]] = {}
    for value in values:
        name, sep, raw_labels = value.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected NAME=Label[,Label], got {value!r}.")
        labels[name.strip()] = [label.strip() for label in raw_labels.split(",") if label.strip()]
    return labels


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("Expected a date in YYYY-MM-DD format.") from exc
