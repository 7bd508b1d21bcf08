from datetime import date

from src.constants import ReminderType
from src.periods import Period
from src.reminders import mark_done
from src.state import SCHEMA_VERSION, default_state


# -- Schema --

class TestSchema:
    def test_all_tables_exist(self, db):
        conn = db._get_conn()
        tables = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
        assert {"app_state", "notification_log"}.issubset({r["name"] for r in tables})

    def test_wal_mode(self, db):
        result = db._get_conn().execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"


# -- State document --

class TestStateDocument:
    def test_empty_database_gives_defaults(self, db):
        assert db.load_raw_state() is None
        assert db.load_state() == default_state()

    def test_save_and_load(self, db):
        state = default_state().with_periods([Period(date(2024, 1, 1), date(2024, 1, 5))])
        flowers = mark_done(state.reminder(ReminderType.FLOWERS), ReminderType.FLOWERS, date(2024, 1, 3))
        state = state.with_reminder(ReminderType.FLOWERS, flowers)
        db.save_state(state)
        assert db.load_state() == state

    def test_save_overwrites(self, db):
        db.save_state(default_state())
        state = default_state().with_periods([Period(date(2024, 2, 1))])
        db.save_state(state)
        count = db._get_conn().execute("SELECT COUNT(*) FROM app_state").fetchone()[0]
        assert count == 1
        assert db.load_state().cycle.periods == (Period(date(2024, 2, 1)),)

    def test_records_schema_version(self, db):
        db.save_state(default_state())
        row = db._get_conn().execute("SELECT schema_version FROM app_state").fetchone()
        assert row["schema_version"] == SCHEMA_VERSION

    def test_legacy_document_is_upgraded_on_load(self, db):
        db.save_raw_state({"cycle": {"startDate": "2024-01-01", "endDate": "2024-01-05", "cycleLength": 28}})
        state = db.load_state()
        assert state.cycle.periods == (Period(date(2024, 1, 1), date(2024, 1, 5)),)
        assert state.cycle.expected_next_start == date(2024, 1, 29)

    def test_malformed_lists_load_as_empty(self, db):
        db.save_raw_state({"schemaVersion": 3, "cycle": {"periods": 7}, "reminders": {"flowers": {"events": 5}}})
        state = db.load_state()
        assert state.cycle.periods == ()
        assert state.reminder(ReminderType.FLOWERS).events == ()

    def test_corrupt_payload_gives_defaults(self, db):
        with db._get_conn() as conn:
            conn.execute("INSERT INTO app_state (id, schema_version, payload) VALUES (1, 3, '{broken')")
        assert db.load_state() == default_state()


# -- Notification log --

class TestNotificationLog:
    def test_mark_and_check(self, db):
        assert not db.was_notified(date(2026, 3, 10))
        db.mark_notified(date(2026, 3, 10))
        assert db.was_notified(date(2026, 3, 10))
        assert not db.was_notified(date(2026, 3, 11))

    def test_mark_twice(self, db):
        db.mark_notified(date(2026, 3, 10))
        db.mark_notified(date(2026, 3, 10))
        count = db._get_conn().execute("SELECT COUNT(*) FROM notification_log").fetchone()[0]
        assert count == 1

    def test_prune_old_entries(self, db):
        db.mark_notified(date(2000, 1, 1))
        db.mark_notified(date.today())
        db.prune_notification_log(keep_days=30)
        assert not db.was_notified(date(2000, 1, 1))
        assert db.was_notified(date.today())

    def test_prune_is_relative_to_given_day(self, db):
        db.mark_notified(date(2025, 11, 1))
        db.mark_notified(date(2026, 3, 10))
        db.prune_notification_log(today=date(2026, 3, 10), keep_days=90)
        assert not db.was_notified(date(2025, 11, 1))
        assert db.was_notified(date(2026, 3, 10))
