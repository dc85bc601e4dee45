"""
Shared pytest fixtures.
"""

from datetime import datetime
from datetime import timezone

import pytest

from calendar_shadow.db import StateDatabase
from calendar_shadow.gateway import RetryingApiGateway
from calendar_shadow.models import ShadowConfig
from tests.fake_backend import MAIN_CAL_ID
from tests.fake_backend import FakeCalendarBackend

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class RecordingSleep:
    """Replacement for time.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float):
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test_state.db"


@pytest.fixture
def state_db(db_path):
    with StateDatabase(db_path, MAIN_CAL_ID) as db:
        yield db


@pytest.fixture
def shadow_config():
    return ShadowConfig(
        attendee_emails=("client@example.org",),
        main_calendar_id=MAIN_CAL_ID,
        show_full_details=False,
        accepted_only=False,
    )


@pytest.fixture
def backend():
    return FakeCalendarBackend()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def gateway(sleeper):
    return RetryingApiGateway(sleep=sleeper)
