"""
Unit tests for StateDatabase — key-value semantics, SyncState round trips
and per-main-calendar scoping.
"""

from calendar_shadow.db import SHADOW_CALENDAR_KEY
from calendar_shadow.db import SYNC_TOKEN_KEY
from calendar_shadow.db import StateDatabase
from calendar_shadow.db import query_status_all
from calendar_shadow.models import SyncState
from tests.fake_backend import MAIN_CAL_ID


class TestKeyValue:
    def test_missing_key_is_none(self, state_db):
        assert state_db.get(SYNC_TOKEN_KEY) is None

    def test_set_upserts(self, state_db):
        state_db.set(SYNC_TOKEN_KEY, "old")
        state_db.set(SYNC_TOKEN_KEY, "new")
        assert state_db.get(SYNC_TOKEN_KEY) == "new"

    def test_delete(self, state_db):
        state_db.set(SYNC_TOKEN_KEY, "tok")
        state_db.delete(SYNC_TOKEN_KEY)
        assert state_db.get(SYNC_TOKEN_KEY) is None

    def test_values_survive_reopen(self, db_path):
        with StateDatabase(db_path, MAIN_CAL_ID) as db:
            db.set(SHADOW_CALENDAR_KEY, "cal-1")
        with StateDatabase(db_path, MAIN_CAL_ID) as db:
            assert db.get(SHADOW_CALENDAR_KEY) == "cal-1"


class TestSyncState:
    def test_empty_state(self, state_db):
        assert state_db.load_state() == SyncState()

    def test_round_trip(self, state_db):
        state_db.save_state(SyncState(shadow_calendar_id="cal-1", sync_token="tok"))
        assert state_db.load_state() == SyncState(shadow_calendar_id="cal-1", sync_token="tok")

    def test_clearing_token_keeps_calendar(self, state_db):
        state_db.save_state(SyncState(shadow_calendar_id="cal-1", sync_token="tok"))
        state_db.save_state(SyncState(shadow_calendar_id="cal-1", sync_token=None))
        assert state_db.get(SYNC_TOKEN_KEY) is None
        assert state_db.get(SHADOW_CALENDAR_KEY) == "cal-1"

    def test_clear_all(self, state_db):
        state_db.save_state(SyncState(shadow_calendar_id="cal-1", sync_token="tok"))
        state_db.clear_all()
        assert state_db.load_state() == SyncState()


class TestScoping:
    def test_main_calendars_do_not_share_state(self, db_path):
        with StateDatabase(db_path, "a@example.com") as a, StateDatabase(db_path, "b@example.com") as b:
            a.save_state(SyncState(shadow_calendar_id="cal-a", sync_token="tok-a"))
            assert b.load_state() == SyncState()
            b.clear_all()
            assert a.load_state().sync_token == "tok-a"


class TestQueryStatus:
    def test_missing_database(self, tmp_path):
        assert query_status_all(tmp_path / "nope.db") == []

    def test_one_row_per_main_calendar(self, db_path):
        with StateDatabase(db_path, "a@example.com") as a:
            a.save_state(SyncState(shadow_calendar_id="cal-a", sync_token="tok-a"))
        with StateDatabase(db_path, "b@example.com") as b:
            b.save_state(SyncState(shadow_calendar_id="cal-b"))

        rows = query_status_all(db_path)

        assert [r["main_calendar_id"] for r in rows] == ["a@example.com", "b@example.com"]
        assert rows[0]["shadow_calendar_id"] == "cal-a"
        assert rows[0]["has_sync_token"] == 1
        assert rows[1]["has_sync_token"] == 0
        assert rows[1]["last_update"] > 0
