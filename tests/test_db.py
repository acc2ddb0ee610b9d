import sqlite3

from codetime import db
from codetime.db import HISTORY_KEY, StateStore, database_connection, load_value, save_value


def test_load_absent_key_returns_none(store):
    assert store.load(HISTORY_KEY) is None


def test_save_overwrites_previous_value(store):
    assert store.save(HISTORY_KEY, {"demo": {"2026-01-01": 1}}) is True
    assert store.save(HISTORY_KEY, {"demo": {"2026-01-01": 2}}) is True
    assert store.load(HISTORY_KEY) == {"demo": {"2026-01-01": 2}}


def test_values_survive_reopen(db_path):
    with database_connection(db_path) as conn:
        save_value(conn, HISTORY_KEY, {"Legacy": {"2026-01-01": 600000}})
    with database_connection(db_path) as conn:
        assert load_value(conn, HISTORY_KEY) == {"Legacy": {"2026-01-01": 600000}}


def test_malformed_json_reads_as_absent(db_path):
    with database_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO ledger_state (key, value, updated_at) VALUES (?, ?, ?)",
            (HISTORY_KEY, "{not json", "2026-01-01 00:00:00.000000"),
        )
        assert load_value(conn, HISTORY_KEY) is None


def test_save_failure_is_reported_not_raised(store, monkeypatch):
    def broken(conn, key, value):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db, "save_value", broken)
    assert store.save(HISTORY_KEY, {}) is False


def test_closed_store_drops_writes(db_path):
    state = StateStore(db_path)
    state.close()
    assert state.save(HISTORY_KEY, {}) is False
    assert state.load(HISTORY_KEY) is None
    state.close()


def test_creates_parent_directories(tmp_path):
    state = StateStore(tmp_path / "nested" / "dir" / "ledger.sqlite3")
    try:
        assert state.save(HISTORY_KEY, {"a": {"2026-01-01": 1}})
    finally:
        state.close()
