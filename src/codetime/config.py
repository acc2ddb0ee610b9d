"""Configuration models and helpers for the coding time tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass(slots=True)
class CollectorSettings:
    """Runtime configuration for the accumulation loop.

    ``sleep_gap`` is off by default so every active tick is credited with the
    full time since the previous one. When set, a single tick longer than the
    gap (a laptop waking from suspend, for instance) adds nothing.
    """

    tick_interval: timedelta = timedelta(seconds=1)
    idle_threshold: timedelta = timedelta(seconds=60)
    persist_interval: timedelta = timedelta(seconds=15)
    sleep_gap: Optional[timedelta] = None

    @classmethod
    def from_intervals(
        cls,
        tick_seconds: float,
        idle_seconds: float,
        persist_seconds: float | None = None,
        sleep_gap_minutes: float | None = None,
    ) -> "CollectorSettings":
        return cls(
            tick_interval=timedelta(seconds=tick_seconds),
            idle_threshold=timedelta(seconds=idle_seconds),
            persist_interval=timedelta(
                seconds=15.0 if persist_seconds is None else persist_seconds
            ),
            sleep_gap=(
                None if sleep_gap_minutes is None else timedelta(minutes=sleep_gap_minutes)
            ),
        )

    @property
    def idle_threshold_ms(self) -> int:
        return _to_ms(self.idle_threshold)

    @property
    def persist_interval_ms(self) -> int:
        return _to_ms(self.persist_interval)

    @property
    def sleep_gap_ms(self) -> Optional[int]:
        return None if self.sleep_gap is None else _to_ms(self.sleep_gap)


def _to_ms(value: timedelta) -> int:
    return int(value.total_seconds() * 1000)
