"""
Integration test fixtures for Salon Scheduler.

Provides an API client wired to the test database with a fixed business clock
for testing complete booking workflows.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_app_settings, get_db_session, get_now
from src.api.main import app


# Sunday before the week under test, 08:00 business time
FIXED_NOW = datetime(2026, 10, 18, 8, 0, tzinfo=ZoneInfo("America/Santiago"))


@pytest.fixture
def integration_api_client(db_session, test_settings, staff_member, other_staff_member):
    """
    API client plus the seeded professionals.

    Each request commits or rolls back the shared test session, so later
    requests observe earlier ones exactly as separate HTTP calls would.
    """

    def override_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_app_settings] = lambda: test_settings
    app.dependency_overrides[get_now] = lambda: FIXED_NOW

    with TestClient(app) as client:
        yield {
            "client": client,
            "staff": staff_member,
            "other_staff": other_staff_member,
        }

    app.dependency_overrides.clear()
