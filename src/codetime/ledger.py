"""Nested time-bucket ledgers and their mutation primitives.

Every ledger is keyed by project first and date second. The primary ledger
stores milliseconds at the date level; category ledgers (language, framework)
add a third level keyed by display label. Lookups of absent keys read as zero
and deletions of absent keys are no-ops.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

LEGACY_PROJECT_KEY = "Legacy"

History = dict[str, dict[str, float]]
NestedHistory = dict[str, dict[str, dict[str, float]]]


def normalize_history(raw: Optional[Mapping[str, Any]]) -> History:
    """Upgrade persisted primary history to the ``project -> date -> ms`` shape.

    Data recorded before projects existed is a flat ``date -> ms`` mapping;
    it is nested under :data:`LEGACY_PROJECT_KEY`. The shape is decided by the
    first value only, so applying this twice is the same as applying it once.
    Totals that are not non-negative numbers are dropped, along with any
    container they leave empty.
    """
    if not raw or not isinstance(raw, Mapping):
        return {}
    first = next(iter(raw.values()))
    if not isinstance(first, Mapping):
        logger.info("Upgrading legacy history with %d day(s).", len(raw))
        raw = {LEGACY_PROJECT_KEY: raw}

    normalized: History = {}
    for project, days in raw.items():
        if not isinstance(days, Mapping):
            logger.warning("Dropping malformed history for %r.", project)
            continue
        totals = _clean_totals(days, str(project))
        if totals:
            normalized[str(project)] = totals
    return normalized


def normalize_nested_history(raw: Optional[Mapping[str, Any]]) -> NestedHistory:
    if not raw or not isinstance(raw, Mapping):
        return {}
    normalized: NestedHistory = {}
    for project, days in raw.items():
        if not isinstance(days, Mapping):
            logger.warning("Dropping malformed category history for %r.", project)
            continue
        cleaned_days: dict[str, dict[str, float]] = {}
        for date, categories in days.items():
            if not isinstance(categories, Mapping):
                logger.warning("Dropping malformed categories for %r on %r.", project, date)
                continue
            totals = _clean_totals(categories, f"{project}/{date}")
            if totals:
                cleaned_days[str(date)] = totals
        if cleaned_days:
            normalized[str(project)] = cleaned_days
    return normalized


def _is_ms(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _clean_totals(values: Mapping[str, Any], owner: str) -> dict[str, float]:
    totals: dict[str, float] = {}
    for key, value in values.items():
        if _is_ms(value):
            totals[str(key)] = value
        else:
            logger.warning("Dropping malformed total %r under %s/%s.", value, owner, key)
    return totals


def delete_entry(ledger: dict[str, dict[str, Any]], project: str, date: str) -> bool:
    """Remove ``ledger[project][date]`` and prune the project if it empties.

    Returns whether anything was removed.
    """
    days = ledger.get(project)
    if not days or date not in days:
        return False
    del days[date]
    if not days:
        del ledger[project]
    return True


def add_category_ms(
    ledger: NestedHistory, project: str, date: str, category: str, delta: float
) -> None:
    categories = ledger.setdefault(project, {}).setdefault(date, {})
    categories[category] = categories.get(category, 0) + delta


@dataclass(slots=True)
class TimeLedger:
    """The primary ledger plus the language and framework category ledgers."""

    history: History = field(default_factory=dict)
    language_history: NestedHistory = field(default_factory=dict)
    framework_history: NestedHistory = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls,
        history: Optional[Mapping[str, Any]],
        language_history: Optional[Mapping[str, Any]] = None,
        framework_history: Optional[Mapping[str, Any]] = None,
    ) -> "TimeLedger":
        return cls(
            history=normalize_history(history),
            language_history=normalize_nested_history(language_history),
            framework_history=normalize_nested_history(framework_history),
        )

    def get_day_total(self, project: Optional[str], date: str) -> float:
        if not project:
            return 0
        return self.history.get(project, {}).get(date, 0)

    def set_day_total(self, project: str, date: str, ms: float) -> None:
        self.history.setdefault(project, {})[date] = ms

    def add_language_ms(self, project: str, date: str, label: str, delta: float) -> None:
        add_category_ms(self.language_history, project, date, label, delta)

    def add_framework_ms(self, project: str, date: str, label: str, delta: float) -> None:
        add_category_ms(self.framework_history, project, date, label, delta)

    def delete_entry(self, project: str, date: str) -> bool:
        """Delete ``(project, date)`` from all three ledgers."""
        removed = [
            delete_entry(self.history, project, date),
            delete_entry(self.language_history, project, date),
            delete_entry(self.framework_history, project, date),
        ]
        return any(removed)

    def reset_all(self) -> None:
        self.history.clear()
        self.language_history.clear()
        self.framework_history.clear()

    def is_empty(self) -> bool:
        return not (self.history or self.language_history or self.framework_history)
