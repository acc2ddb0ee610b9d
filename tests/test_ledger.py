from codetime.ledger import (
    LEGACY_PROJECT_KEY,
    TimeLedger,
    add_category_ms,
    delete_entry,
    normalize_history,
    normalize_nested_history,
)


class TestNormalizeHistory:
    def test_legacy_flat_history_is_nested_under_sentinel(self):
        assert normalize_history({"2026-01-01": 600000}) == {
            "Legacy": {"2026-01-01": 600000}
        }

    def test_nested_history_is_kept(self):
        raw = {"demo": {"2026-01-01": 1000}, "other": {"2026-01-02": 2000}}
        assert normalize_history(raw) == raw

    def test_missing_history_is_empty(self):
        assert normalize_history(None) == {}
        assert normalize_history({}) == {}

    def test_idempotent_for_legacy_input(self):
        once = normalize_history({"2026-01-01": 600000, "2026-01-02": 5})
        assert normalize_history(once) == once

    def test_idempotent_for_nested_input(self):
        once = normalize_history({"demo": {"2026-01-01": 1}})
        assert normalize_history(once) == once

    def test_does_not_alias_input(self):
        raw = {"demo": {"2026-01-01": 1}}
        normalized = normalize_history(raw)
        normalized["demo"]["2026-01-02"] = 2
        assert raw == {"demo": {"2026-01-01": 1}}

    def test_non_numeric_day_totals_are_dropped(self, caplog):
        raw = {"demo": {"2026-01-01": None, "2026-01-02": 5, "2026-01-03": "12"}}
        with caplog.at_level("WARNING", logger="codetime.ledger"):
            assert normalize_history(raw) == {"demo": {"2026-01-02": 5}}
        assert "Dropping malformed total" in caplog.text

    def test_negative_and_non_finite_totals_are_dropped(self):
        raw = {"demo": {"a": -1, "b": float("nan"), "c": float("inf"), "d": True, "e": 2.5}}
        assert normalize_history(raw) == {"demo": {"e": 2.5}}

    def test_project_left_empty_is_pruned(self):
        raw = {"demo": {"2026-01-01": None}, "other": {"2026-01-01": 1}}
        assert normalize_history(raw) == {"other": {"2026-01-01": 1}}

    def test_legacy_input_with_bad_totals(self):
        assert normalize_history({"2026-01-01": "x", "2026-01-02": 3}) == {
            "Legacy": {"2026-01-02": 3}
        }


class TestNormalizeNestedHistory:
    def test_none_is_empty(self):
        assert normalize_nested_history(None) == {}

    def test_malformed_projects_are_dropped(self):
        raw = {"demo": {"2026-01-01": {"Python": 10}}, "broken": 5}
        assert normalize_nested_history(raw) == {"demo": {"2026-01-01": {"Python": 10}}}

    def test_non_numeric_category_totals_are_dropped(self, caplog):
        raw = {
            "demo": {
                "2026-01-01": {"Unknown": "x", "Python": 10},
                "2026-01-02": {"Go": None},
                "2026-01-03": "broken",
            },
            "empty": {"2026-01-01": {"Rust": "1"}},
        }
        with caplog.at_level("WARNING", logger="codetime.ledger"):
            assert normalize_nested_history(raw) == {"demo": {"2026-01-01": {"Python": 10}}}
        assert "Dropping malformed total" in caplog.text


class TestPrimitives:
    def test_absent_day_total_is_zero(self):
        ledger = TimeLedger()
        assert ledger.get_day_total("demo", "2026-01-01") == 0
        assert ledger.get_day_total(None, "2026-01-01") == 0

    def test_set_day_total_overwrites(self):
        ledger = TimeLedger()
        ledger.set_day_total("demo", "2026-01-01", 1000)
        ledger.set_day_total("demo", "2026-01-01", 250)
        assert ledger.history == {"demo": {"2026-01-01": 250}}

    def test_add_category_ms_accumulates(self):
        nested = {}
        add_category_ms(nested, "demo", "2026-01-01", "Python", 500)
        add_category_ms(nested, "demo", "2026-01-01", "Python", 250)
        add_category_ms(nested, "demo", "2026-01-01", "SQL", 1)
        assert nested == {"demo": {"2026-01-01": {"Python": 750, "SQL": 1}}}

    def test_delete_entry_prunes_empty_project(self):
        history = {"demo": {"2026-01-01": 1000}}
        assert delete_entry(history, "demo", "2026-01-01") is True
        assert history == {}

    def test_delete_entry_keeps_other_days(self):
        history = {"demo": {"2026-01-01": 1000, "2026-01-02": 2000}}
        delete_entry(history, "demo", "2026-01-01")
        assert history == {"demo": {"2026-01-02": 2000}}

    def test_delete_entry_is_idempotent(self):
        history = {"demo": {"2026-01-01": 1000, "2026-01-02": 2000}}
        delete_entry(history, "demo", "2026-01-01")
        after_once = {"demo": dict(history["demo"])}
        assert delete_entry(history, "demo", "2026-01-01") is False
        assert history == after_once

    def test_delete_unknown_project_is_noop(self):
        history = {}
        assert delete_entry(history, "ghost", "2026-01-01") is False
        assert history == {}


class TestTimeLedger:
    def _ledger(self) -> TimeLedger:
        ledger = TimeLedger()
        ledger.set_day_total("demo", "2026-01-01", 3000)
        ledger.add_language_ms("demo", "2026-01-01", "Python", 3000)
        ledger.add_framework_ms("demo", "2026-01-01", "Django", 3000)
        return ledger

    def test_delete_only_day_removes_project_from_all_ledgers(self):
        ledger = self._ledger()
        assert ledger.delete_entry("demo", "2026-01-01") is True
        assert "demo" not in ledger.history
        assert "demo" not in ledger.language_history
        assert "demo" not in ledger.framework_history

    def test_reset_all_clears_everything(self):
        ledger = self._ledger()
        ledger.reset_all()
        assert ledger.is_empty()

    def test_from_raw_normalizes_legacy(self):
        ledger = TimeLedger.from_raw({"2026-01-01": 600000}, None, None)
        assert ledger.history == {LEGACY_PROJECT_KEY: {"2026-01-01": 600000}}
        assert ledger.language_history == {}
        assert ledger.framework_history == {}
