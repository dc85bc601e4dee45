"""
SQLite key-value persistence for the shadow calendar id and sync token.
"""

import sqlite3
import time
from pathlib import Path

from calendar_shadow.models import SyncState

SHADOW_CALENDAR_KEY = "shadow_calendar"
SYNC_TOKEN_KEY = "sync_token"


class StateDatabase:
    """Key-value store scoped to one main calendar."""

    def __init__(self, db_path: Path, main_calendar_id: str):
        self.db_path = db_path
        self.main_calendar_id = main_calendar_id
        self.conn: sqlite3.Connection | None = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self):
        """Initialize and connect to the state database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sync_properties (
                main_calendar_id TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY (main_calendar_id, key)
            )
        """)
        self.conn.commit()

    # ------------------------------------------------------------------ #
    # Key-value access, scoped to the current main calendar               #
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> str | None:
        cursor = self.conn.execute(
            "SELECT value FROM sync_properties WHERE main_calendar_id = ? AND key = ?",
            (self.main_calendar_id, key),
        )
        row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str):
        self.conn.execute(
            "INSERT INTO sync_properties (main_calendar_id, key, value, updated_at) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(main_calendar_id, key) DO UPDATE SET "
            "value = excluded.value, updated_at = excluded.updated_at",
            (self.main_calendar_id, key, value, int(time.time())),
        )
        self.conn.commit()

    def delete(self, key: str):
        self.conn.execute(
            "DELETE FROM sync_properties WHERE main_calendar_id = ? AND key = ?",
            (self.main_calendar_id, key),
        )
        self.conn.commit()

    def clear_all(self):
        """Forget every stored value for this main calendar."""
        self.conn.execute(
            "DELETE FROM sync_properties WHERE main_calendar_id = ?", (self.main_calendar_id,)
        )
        self.conn.commit()

    # ------------------------------------------------------------------ #
    # SyncState record                                                     #
    # ------------------------------------------------------------------ #

    def load_state(self) -> SyncState:
        return SyncState(
            shadow_calendar_id=self.get(SHADOW_CALENDAR_KEY),
            sync_token=self.get(SYNC_TOKEN_KEY),
        )

    def save_state(self, state: SyncState):
        """Persist the record; a None field removes the stored value."""
        for key, value in (
            (SHADOW_CALENDAR_KEY, state.shadow_calendar_id),
            (SYNC_TOKEN_KEY, state.sync_token),
        ):
            if value:
                self.set(key, value)
            else:
                self.delete(key)

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None


def query_status_all(db_path: Path) -> list:
    """
    Return one row per main calendar recorded in the database.

    Each row exposes: main_calendar_id, shadow_calendar_id, has_sync_token, last_update.
    Returns an empty list when the DB file or table does not exist yet.
    """
    if not db_path.exists():
        return []
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        if "sync_properties" not in tables:
            return []
        cursor = conn.execute(
            """
            SELECT
                main_calendar_id,
                MAX(CASE WHEN key = ? THEN value END)         AS shadow_calendar_id,
                MAX(CASE WHEN key = ? THEN 1 ELSE 0 END)      AS has_sync_token,
                MAX(updated_at)                               AS last_update
            FROM sync_properties
            GROUP BY main_calendar_id
            ORDER BY main_calendar_id
            """,
            (SHADOW_CALENDAR_KEY, SYNC_TOKEN_KEY),
        )
        return cursor.fetchall()
    finally:
        conn.close()
