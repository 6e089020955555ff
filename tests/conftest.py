"""
Pytest configuration and fixtures for Salon Scheduler tests.

Provides database session fixtures and sample data for testing.
"""

from typing import Callable, Generator

import pytest
import sqlalchemy as sa
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.models.base import Base
from src.models.staff import StaffMember, WEEKDAY_KEYS
from src.models.appointments import Appointment, AppointmentItem
from src.models.blocks import TimeBlock, BLOCKING
from src.models.settings import SystemSetting


# Configure SQLite to enforce foreign key constraints in tests
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def weekday_schedule(start: str = "09:00", end: str = "18:00", closed: tuple = ("sunday",)) -> dict:
    """Weekly schedule open every day except `closed`."""
    return {
        day: {"enabled": day not in closed, "start": start, "end": end}
        for day in WEEKDAY_KEYS
    }


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a clean database session for each test.

    Uses an in-memory SQLite database that is torn down after each test.
    StaticPool keeps a single connection so TestClient worker threads see
    the same database.

    Yields:
        Session: SQLAlchemy session for database operations
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as connection:
            connection.execute(sa.text("PRAGMA foreign_keys=OFF"))
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        timezone="America/Santiago",
        slot_grid_minutes=30,
        lead_time_fallback_minutes=120,
        settings_read_attempts=3,
    )


@pytest.fixture
def staff_member(db_session: Session) -> StaffMember:
    """
    Create a professional working 09:00-18:00 Monday to Saturday.

    Returns:
        StaffMember: A persisted, active professional closed on Sundays
    """
    staff = StaffMember(
        name="Camila Rojas",
        location_id="providencia",
        active=True,
        weekly_schedule=weekday_schedule(),
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


@pytest.fixture
def other_staff_member(db_session: Session) -> StaffMember:
    """Create a second professional with the same hours."""
    staff = StaffMember(
        name="Diego Soto",
        location_id="providencia",
        active=True,
        weekly_schedule=weekday_schedule(),
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


@pytest.fixture
def make_appointment(db_session: Session) -> Callable[..., Appointment]:
    """
    Factory fixture that persists an appointment.

    Extra professionals are attached as line items.
    """

    def _make(
        staff: StaffMember,
        date: str,
        start_time: str,
        end_time: str,
        status: str = "confirmed",
        extra_staff: tuple = (),
        client_name: str = "Valentina",
    ) -> Appointment:
        appointment = Appointment(
            staff_id=staff.id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            client_name=client_name,
        )
        appointment.items.append(
            AppointmentItem(staff_id=staff.id, position=0, service_name="Corte")
        )
        for position, other in enumerate(extra_staff, start=1):
            appointment.items.append(
                AppointmentItem(staff_id=other.id, position=position, service_name="Color")
            )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def make_block(db_session: Session) -> Callable[..., TimeBlock]:
    """Factory fixture that persists a block of either kind."""

    def _make(
        staff: StaffMember,
        date: str,
        start_time: str,
        end_time: str,
        kind: str = BLOCKING,
        reason: str = None,
    ) -> TimeBlock:
        block = TimeBlock(
            staff_id=staff.id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            kind=kind,
            reason=reason,
        )
        db_session.add(block)
        db_session.commit()
        db_session.refresh(block)
        return block

    return _make


@pytest.fixture
def set_lead_time(db_session: Session) -> Callable[[object], SystemSetting]:
    """Factory fixture that stores the same-day booking lead time."""

    def _set(value) -> SystemSetting:
        setting = SystemSetting(key="min_booking_lead_minutes", value=value)
        db_session.add(setting)
        db_session.commit()
        return setting

    return _set
