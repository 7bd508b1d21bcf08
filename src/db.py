import json
import logging
import sqlite3
from datetime import date, timedelta
from pathlib import Path

from src.state import AppState, state_to_dict, upgrade_state

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False, timeout=10)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        return self._conn

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS app_state (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    schema_version INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notification_log (
                    day TEXT PRIMARY KEY,
                    sent_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
            """)

    # ── State document ──────────────────────────────────────────────

    def load_raw_state(self) -> dict | None:
        with self._get_conn() as conn:
            row = conn.execute("SELECT payload FROM app_state WHERE id = 1").fetchone()
        if not row:
            return None
        try:
            return json.loads(row["payload"])
        except json.JSONDecodeError as e:
            logger.error(f"Stored state is not valid JSON, starting fresh: {e}")
            return None

    def load_state(self) -> AppState:
        """Load and upgrade the stored state; a missing row yields defaults."""
        return upgrade_state(self.load_raw_state())

    def save_raw_state(self, payload: dict):
        with self._get_conn() as conn:
            conn.execute("""
                INSERT INTO app_state (id, schema_version, payload) VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    schema_version = excluded.schema_version,
                    payload = excluded.payload,
                    updated_at = datetime('now')
            """, (payload.get("schemaVersion", 1), json.dumps(payload)))

    def save_state(self, state: AppState):
        self.save_raw_state(state_to_dict(state))

    # ── Daily notification de-duplication ───────────────────────────

    def was_notified(self, day: date) -> bool:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM notification_log WHERE day = ?", (day.isoformat(),)
            ).fetchone()
            return row is not None

    def mark_notified(self, day: date):
        with self._get_conn() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO notification_log (day) VALUES (?)",
                (day.isoformat(),),
            )

    def prune_notification_log(self, today: date | None = None, keep_days: int = 90):
        cutoff = (today or date.today()) - timedelta(days=keep_days)
        with self._get_conn() as conn:
            conn.execute(
                "DELETE FROM notification_log WHERE day < ?",
                (cutoff.isoformat(),),
            )
