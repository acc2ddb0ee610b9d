"""The tracker session: owns the ledgers and drives the accumulation loop."""

from __future__ import annotations

import copy
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Sequence

from .classifier import ProjectClassifier, framework_labels, null_classifier
from .config import CollectorSettings
from .db import FRAMEWORK_HISTORY_KEY, HISTORY_KEY, LANGUAGE_HISTORY_KEY, StateStore
from .ledger import TimeLedger
from .models import ActivitySignal, WorkspaceFolder, WorkspaceFoldersChanged
from .normalization import UNKNOWN_LABEL, normalize_language_label
from .reporting import (
    RangeReport,
    StatsSnapshot,
    apply_deletion,
    build_range_report,
    build_rows,
    build_snapshot,
    build_status_text,
)
from .tracker import ActivityTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


def date_key_of(now_ms: int) -> str:
    """Return the UTC ``YYYY-MM-DD`` key for an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


@dataclass(frozen=True, slots=True)
class SessionStatus:
    text: str
    active: bool
    today_ms: float
    today_key: str
    project: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "active": self.active,
            "today_ms": int(self.today_ms),
            "today_key": self.today_key,
            "project": self.project,
        }


class TrackerSession:
    """Accumulates active coding time into the ledgers.

    All mutation goes through one lock, so ticks, activity signals, deletions
    and resets are applied one at a time. The working total for the current
    (project, day) is kept in ``today_ms`` and written into the primary ledger
    on day rollover, project switches, every persist and on :meth:`close`.

    Store writes run on a single writer thread against copies of the ledgers
    taken under the lock, so a busy database never holds up a tick. A failed
    write is reported by its future and repeated on the next persist.
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[CollectorSettings] = None,
        *,
        classifier: ProjectClassifier = null_classifier,
        folders: Sequence[WorkspaceFolder] = (),
        clock: Clock = epoch_ms,
    ) -> None:
        self.store = store
        self.settings = settings or CollectorSettings()
        self._classifier = classifier
        self._clock = clock
        self._lock = threading.Lock()
        self._closed = False
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codetime-writer")
        self._pending_write: Optional[Future[bool]] = None

        now = clock()
        self.ledger = TimeLedger.from_raw(
            store.load(HISTORY_KEY),
            store.load(LANGUAGE_HISTORY_KEY),
            store.load(FRAMEWORK_HISTORY_KEY),
        )
        self.tracker = ActivityTracker(now, folders)
        self._frameworks: dict[str, list[str]] = {}
        self._refresh_frameworks()

        self.today_key = date_key_of(now)
        self.today_ms: float = self.ledger.get_day_total(
            self.tracker.current_project_id, self.today_key
        )
        self.last_tick_at = now
        self.last_persist_at = now
        self._status = self._build_status(now)

    def __enter__(self) -> "TrackerSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def closed(self) -> bool:
        return self._closed

    def frameworks_for(self, project: str) -> list[str]:
        return list(self._frameworks.get(project, [UNKNOWN_LABEL]))

    def tick(self, now: Optional[int] = None) -> SessionStatus:
        with self._lock:
            now = self._clock() if now is None else now
            project = self.tracker.current_project_id

            current_key = date_key_of(now)
            if current_key != self.today_key:
                self._flush_working_total_locked()
                logger.info("Day rolled over from %s to %s.", self.today_key, current_key)
                self.today_key = current_key
                self.today_ms = self.ledger.get_day_total(project, current_key)

            is_active = self.tracker.is_active(now, self.settings.idle_threshold_ms)
            delta = self._tick_delta(now)
            if is_active and project and delta > 0:
                self._attribute_locked(project, delta)
            self.last_tick_at = now

            persist_due = now - self.last_persist_at >= self.settings.persist_interval_ms
            if persist_due and not self._closed:
                self._persist_on_cadence_locked(now)

            self._status = self._build_status(now, is_active)
            return self._status

    def handle_signal(self, signal: ActivitySignal, now: Optional[int] = None) -> SessionStatus:
        """Apply an activity signal, reconciling the working total on project switches."""
        with self._lock:
            now = self._clock() if now is None else now
            previous = self.tracker.current_project_id
            changed = self.tracker.handle(signal, now)
            if isinstance(signal, WorkspaceFoldersChanged):
                self._refresh_frameworks()
            if changed:
                if previous:
                    self._write_day_total_locked(previous, self.today_ms)
                project = self.tracker.current_project_id
                self.today_ms = self.ledger.get_day_total(project, self.today_key)
                logger.debug("Switched project from %s to %s.", previous, project)
            self._status = self._build_status(now)
            return self._status

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return build_snapshot(
                self.ledger,
                self.today_key,
                self.today_ms,
                self.tracker.current_project_id,
            )

    def range_report(self, days: int = 7) -> RangeReport:
        """Summarize the last ``days`` days, including the in-progress total."""
        with self._lock:
            rows = build_rows(
                self.ledger.history,
                self.today_key,
                self.today_ms,
                self.tracker.current_project_id,
            )
            return build_range_report(
                rows,
                self.ledger.language_history,
                self.ledger.framework_history,
                date.fromisoformat(self.today_key),
                days,
            )

    def delete_entry(self, project: str, date_key: str) -> StatsSnapshot:
        """Delete one (project, day) from every ledger and return a fresh snapshot."""
        with self._lock:
            if apply_deletion(
                self.ledger,
                project,
                date_key,
                self.today_key,
                self.tracker.current_project_id,
            ):
                self.today_ms = 0
            self._submit_save_locked()
            self._status = self._build_status(self._clock())
        return self.snapshot()

    def reset_all(self) -> StatsSnapshot:
        """Clear every ledger and the working total in one step."""
        with self._lock:
            self.ledger.reset_all()
            self.today_ms = 0
            self._submit_save_locked()
            self._status = self._build_status(self._clock())
            logger.info("All tracked history was reset.")
        return self.snapshot()

    def persist(self) -> bool:
        """Flush the working total and wait for the resulting write."""
        with self._lock:
            future = self._persist_locked(self._clock())
        return future.result() if future is not None else False

    def wait_for_writes(self, timeout: Optional[float] = None) -> bool:
        """Block until the most recently submitted write finishes and return its outcome."""
        future = self._pending_write
        if future is None:
            return True
        return future.result(timeout=timeout)

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Tick until the provided event is set, then close the session."""
        try:
            self._run_loop(stop_event)
        finally:
            self.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            try:
                self._persist_locked(self._clock())
            finally:
                self._closed = True
                self._writer.shutdown(wait=True)
                self.store.close()
                logger.info("Tracker session stopped.")

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting tracker session; writing to %s", self.store.path)
        interval = self.settings.tick_interval.total_seconds()
        while not stop_event.is_set():
            self.tick()
            stop_event.wait(interval)

    def _tick_delta(self, now: int) -> int:
        delta = now - self.last_tick_at
        if delta < 0:
            logger.info("Clock moved backwards by %d ms; ignoring tick.", -delta)
            return 0
        sleep_gap_ms = self.settings.sleep_gap_ms
        if sleep_gap_ms is not None and delta > sleep_gap_ms:
            logger.info("Skipping %d ms gap since the last tick.", delta)
            return 0
        return delta

    def _attribute_locked(self, project: str, delta: float) -> None:
        self.today_ms += delta
        language = normalize_language_label(self.tracker.current_language)
        self.ledger.add_language_ms(project, self.today_key, language, delta)
        frameworks = self.frameworks_for(project)
        share = delta / len(frameworks)
        for framework in frameworks:
            self.ledger.add_framework_ms(project, self.today_key, framework, share)

    def _refresh_frameworks(self) -> None:
        self._frameworks = {
            folder.name: framework_labels(self._classifier, folder.path)
            for folder in self.tracker.workspace_folders
        }

    def _write_day_total_locked(self, project: str, ms: float) -> None:
        # A zero total is only written over an existing entry so deleted days stay deleted.
        if ms or self.today_key in self.ledger.history.get(project, {}):
            self.ledger.set_day_total(project, self.today_key, ms)

    def _flush_working_total_locked(self) -> None:
        project = self.tracker.current_project_id
        if project:
            self._write_day_total_locked(project, self.today_ms)

    def _persist_locked(self, now: int) -> Optional[Future[bool]]:
        self._flush_working_total_locked()
        self.last_persist_at = now
        return self._submit_save_locked()

    def _persist_on_cadence_locked(self, now: int) -> None:
        # One write in flight at a time; a slow one defers the next attempt to a later tick.
        if self._pending_write is not None and not self._pending_write.done():
            logger.debug("Previous write still running; deferring persist.")
            return
        self._persist_locked(now)

    def _submit_save_locked(self) -> Optional[Future[bool]]:
        if self._closed:
            logger.warning("Tracker session is closed; ledgers were not saved.")
            return None
        future = self._writer.submit(
            self._write_ledgers,
            copy.deepcopy(self.ledger.history),
            copy.deepcopy(self.ledger.language_history),
            copy.deepcopy(self.ledger.framework_history),
        )
        self._pending_write = future
        return future

    def _write_ledgers(
        self,
        history: dict[str, Any],
        language_history: dict[str, Any],
        framework_history: dict[str, Any],
    ) -> bool:
        results = [
            self.store.save(HISTORY_KEY, history),
            self.store.save(LANGUAGE_HISTORY_KEY, language_history),
            self.store.save(FRAMEWORK_HISTORY_KEY, framework_history),
        ]
        ok = all(results)
        logger.debug("Persisted ledgers (ok=%s).", ok)
        return ok

    def _build_status(self, now: int, is_active: Optional[bool] = None) -> SessionStatus:
        if is_active is None:
            is_active = self.tracker.is_active(now, self.settings.idle_threshold_ms)
        return SessionStatus(
            text=build_status_text(self.today_ms, is_active),
            active=is_active,
            today_ms=self.today_ms,
            today_key=self.today_key,
            project=self.tracker.current_project_id,
        )
