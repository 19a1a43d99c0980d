# tests/conftest.py
import os
from datetime import datetime, timedelta, timezone

# Settings are read once and cached, so the test environment must be in
# place before anything from teachtune is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///./teachtune_test.db")
os.environ.setdefault("MONITOR_ENABLED", "false")
os.environ.setdefault("LOCAL_TIMEZONE", "UTC")
os.environ.setdefault("SCHEDULE_HORIZON_MONTHS", "6")

import pytest
from fastapi.testclient import TestClient

from teachtune.core.clock import Clock, get_clock
from teachtune.db.session import reset_schema_sync
from teachtune.main import create_app

TEACHER_ID = "teacher-1"
OTHER_TEACHER_ID = "teacher-2"


class FrozenClock(Clock):
    """
    Clock whose "now" only moves when a test moves it.
    """

    def __init__(self, current: datetime, tz=timezone.utc) -> None:
        super().__init__(tz=tz)
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _reset_db():
    """
    Every test gets a clean schema and empty tables.
    """
    reset_schema_sync()
    yield


@pytest.fixture
def clock() -> FrozenClock:
    # Friday 2024-03-01 12:00 UTC
    return FrozenClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def client(clock) -> TestClient:
    """
    TestClient built from the application factory, with the frozen clock
    injected in place of the real one.
    """
    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def teacher_headers() -> dict:
    return {"X-Teacher-Id": TEACHER_ID}


@pytest.fixture
def other_teacher_headers() -> dict:
    return {"X-Teacher-Id": OTHER_TEACHER_ID}
