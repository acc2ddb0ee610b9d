from __future__ import annotations

from datetime import datetime, timezone

import pytest

from codetime.classifier import StaticClassifier
from codetime.db import StateStore
from codetime.models import DocumentChanged, WorkspaceFolder
from codetime.session import TrackerSession


def ms_at(*args: int) -> int:
    """Epoch milliseconds for a UTC datetime."""
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


class FakeClock:
    def __init__(self, now_ms: int) -> None:
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def run_ticks(session: TrackerSession, clock: FakeClock, count: int, step: int = 1000) -> None:
    for _ in range(count):
        clock.advance(step)
        session.tick()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(ms_at(2026, 1, 1, 12))


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "ledger.sqlite3"


@pytest.fixture
def store(db_path, monkeypatch):
    state = StateStore(db_path)
    # Sessions built directly on this store run a background writer; close them
    # (draining their writes) before the connection is closed underneath them.
    sessions: list[TrackerSession] = []
    original_init = TrackerSession.__init__

    def tracking_init(self, store_arg, *args, **kwargs):
        original_init(self, store_arg, *args, **kwargs)
        if store_arg is state:
            sessions.append(self)

    monkeypatch.setattr(TrackerSession, "__init__", tracking_init)
    yield state
    for session in sessions:
        session.close()
    state.close()


@pytest.fixture
def demo_folder(tmp_path) -> WorkspaceFolder:
    path = tmp_path / "demo"
    path.mkdir()
    return WorkspaceFolder("demo", path)


@pytest.fixture
def make_session(store, clock, demo_folder):
    sessions: list[TrackerSession] = []

    def factory(frameworks=("Django",), folders=None, settings=None, classifier=None):
        session = TrackerSession(
            store,
            settings,
            classifier=classifier or StaticClassifier({"demo": frameworks}),
            folders=(demo_folder,) if folders is None else folders,
            clock=clock,
        )
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def editing_python(demo_folder):
    return DocumentChanged(demo_folder.path / "app.py", "python")
