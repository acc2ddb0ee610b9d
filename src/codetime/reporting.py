"""Display snapshots of the ledgers and simple console reporting."""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from .db import (
    FRAMEWORK_HISTORY_KEY,
    HISTORY_KEY,
    LANGUAGE_HISTORY_KEY,
    database_connection,
    load_value,
)
from .ledger import LEGACY_PROJECT_KEY, History, NestedHistory, TimeLedger
from .models import HistoryRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """Read-only projection of the ledgers handed to the presentation layer."""

    rows: tuple[HistoryRow, ...]
    language_history: NestedHistory
    framework_history: NestedHistory

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "languageHistory": copy.deepcopy(self.language_history),
            "frameworkHistory": copy.deepcopy(self.framework_history),
        }


def build_rows(
    history: History,
    today_key: str,
    today_ms: float,
    current_project: Optional[str] = None,
) -> list[HistoryRow]:
    """Flatten the primary ledger, overlaying the in-progress day.

    Rows are unique per (project, date) and sorted by project then date, both
    descending.
    """
    rows_by_key: dict[tuple[str, str], HistoryRow] = {}
    for project, days in history.items():
        for date_key, ms in days.items():
            rows_by_key[(project, date_key)] = HistoryRow(project, date_key, ms)

    if current_project:
        rows_by_key[(current_project, today_key)] = HistoryRow(
            current_project, today_key, today_ms
        )
    elif not rows_by_key and today_ms > 0:
        rows_by_key[(LEGACY_PROJECT_KEY, today_key)] = HistoryRow(
            LEGACY_PROJECT_KEY, today_key, today_ms
        )

    return sorted(
        rows_by_key.values(),
        key=lambda row: (row.project, row.date),
        reverse=True,
    )


def build_snapshot(
    ledger: TimeLedger,
    today_key: str,
    today_ms: float,
    current_project: Optional[str] = None,
) -> StatsSnapshot:
    return StatsSnapshot(
        rows=tuple(build_rows(ledger.history, today_key, today_ms, current_project)),
        language_history=copy.deepcopy(ledger.language_history),
        framework_history=copy.deepcopy(ledger.framework_history),
    )


def apply_deletion(
    ledger: TimeLedger,
    project: str,
    date_key: str,
    today_key: str,
    current_project: Optional[str] = None,
) -> bool:
    """Remove ``(project, date_key)`` from every ledger.

    Returns True when the entry is the in-progress day, whose working total
    the caller must reset.
    """
    removed = ledger.delete_entry(project, date_key)
    if not removed:
        logger.debug("No history to delete for %s on %s.", project, date_key)
    return project == current_project and date_key == today_key


def aggregate_category_totals(
    history: Mapping[str, Mapping[str, Mapping[str, float]]],
    start: date,
    end: date,
) -> list[tuple[str, float]]:
    """Sum category milliseconds over ``start..end`` (inclusive) across projects."""
    start_key = start.isoformat()
    end_key = end.isoformat()
    totals: defaultdict[str, float] = defaultdict(float)
    for days in history.values():
        for date_key, categories in days.items():
            if date_key < start_key or date_key > end_key:
                continue
            for label, ms in categories.items():
                totals[label] += ms
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def aggregate_by_project(history: History, date_key: str) -> list[tuple[str, float]]:
    totals = [
        (project, days[date_key]) for project, days in history.items() if date_key in days
    ]
    return sorted(totals, key=lambda item: item[1], reverse=True)


def range_bounds(today: date, days: int) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` of the last ``days`` days ending today."""
    if days < 1:
        raise ValueError("days must be at least 1")
    return today - timedelta(days=days - 1), today


@dataclass(frozen=True, slots=True)
class RangeReport:
    """Dashboard totals for today, a trailing range, the month and all time."""

    today: date
    start: date
    end: date
    today_ms: float
    range_ms: float
    month_ms: float
    all_ms: float
    daily: dict[str, dict[str, float]]
    languages: list[tuple[str, float]]
    frameworks: list[tuple[str, float]]

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "today": self.today.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "days": self.days,
            "totals": {
                "today": int(self.today_ms),
                "range": int(self.range_ms),
                "month": int(self.month_ms),
                "all": int(self.all_ms),
            },
            "daily": [
                {"date": date_key, "projects": dict(projects)}
                for date_key, projects in self.daily.items()
            ],
            "languages": [{"label": label, "ms": ms} for label, ms in self.languages],
            "frameworks": [{"label": label, "ms": ms} for label, ms in self.frameworks],
        }


def build_range_report(
    rows: Iterable[HistoryRow],
    language_history: NestedHistory,
    framework_history: NestedHistory,
    today: date,
    days: int = 7,
) -> RangeReport:
    """Summarize display rows and category ledgers over the last ``days`` days.

    The month total counts every row dated on or after the first of the
    current month.
    """
    start, end = range_bounds(today, days)
    today_key = today.isoformat()
    month_key = today.replace(day=1).isoformat()

    daily: dict[str, dict[str, float]] = {
        (start + timedelta(days=offset)).isoformat(): {} for offset in range(days)
    }
    today_ms = range_ms = month_ms = all_ms = 0.0
    for row in rows:
        all_ms += row.ms
        if row.date == today_key:
            today_ms += row.ms
        if row.date >= month_key:
            month_ms += row.ms
        projects = daily.get(row.date)
        if projects is not None:
            range_ms += row.ms
            projects[row.project] = projects.get(row.project, 0) + row.ms

    return RangeReport(
        today=today,
        start=start,
        end=end,
        today_ms=today_ms,
        range_ms=range_ms,
        month_ms=month_ms,
        all_ms=all_ms,
        daily=daily,
        languages=aggregate_category_totals(language_history, start, end),
        frameworks=aggregate_category_totals(framework_history, start, end),
    )


def format_duration(ms: float) -> str:
    total_seconds = int(ms // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes = remainder // 60
    return f"{hours:02d}h {minutes:02d}m"


def format_clock(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def build_status_text(ms: float, is_active: bool) -> str:
    icon = "●" if is_active else "○"
    return f"{format_duration(ms)} {icon}"


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def load_ledger(self) -> TimeLedger:
        with database_connection(self.db_path) as conn:
            return TimeLedger.from_raw(
                load_value(conn, HISTORY_KEY),
                load_value(conn, LANGUAGE_HISTORY_KEY),
                load_value(conn, FRAMEWORK_HISTORY_KEY),
            )

    def print_daily_summary(self, day: date) -> None:
        ledger = self.load_ledger()
        date_key = day.isoformat()
        projects = aggregate_by_project(ledger.history, date_key)
        if not projects:
            print("No coding time recorded for the selected day.")
            return

        total = sum(ms for _, ms in projects)
        print(f"Summary for {date_key}")
        print("-" * 40)
        print(f"Active time: {format_clock(total / 1000)}")
        print()

        print("Projects:")
        for project, ms in projects:
            print(f"  {project:<30} {format_clock(ms / 1000)}")

        languages = aggregate_category_totals(ledger.language_history, day, day)
        if languages:
            print()
            print("Languages:")
            for label, ms in languages[:5]:
                print(f"  {label:<30} {format_clock(ms / 1000)}")

        frameworks = aggregate_category_totals(ledger.framework_history, day, day)
        if frameworks:
            print()
            print("Frameworks:")
            for label, ms in frameworks[:5]:
                print(f"  {label:<30} {format_clock(ms / 1000)}")

    def print_range_report(self, today: date, days: int) -> None:
        ledger = self.load_ledger()
        rows = build_rows(ledger.history, today.isoformat(), 0)
        report = build_range_report(
            rows, ledger.language_history, ledger.framework_history, today, days
        )
        if not report.all_ms:
            print("No coding time recorded yet.")
            return

        print(f"Report for {report.start.isoformat()} to {report.end.isoformat()}")
        print("-" * 40)
        totals = (
            ("Today", report.today_ms),
            (f"Last {report.days} days", report.range_ms),
            ("This month", report.month_ms),
            ("All time", report.all_ms),
        )
        for label, ms in totals:
            print(f"{label + ':':<18}{format_clock(ms / 1000)}")
        print()

        print("Daily:")
        for date_key, projects in report.daily.items():
            print(f"  {date_key:<30} {format_clock(sum(projects.values()) / 1000)}")
            for project, ms in sorted(projects.items(), key=lambda item: item[1], reverse=True):
                print(f"    {project:<28} {format_clock(ms / 1000)}")

        for title, categories in (("Languages", report.languages), ("Frameworks", report.frameworks)):
            if categories:
                print()
                print(f"{title}:")
                for label, ms in categories[:5]:
                    print(f"  {label:<30} {format_clock(ms / 1000)}")
