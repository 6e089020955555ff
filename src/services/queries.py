"""
Query service for staff, appointments, blocks and settings.

Provides the read side of every store the scheduling engine consumes:
- Eager loading of appointment line items to avoid N+1 queries
- Date and date-range filtering over YYYY-MM-DD strings
- Soft deletion handling
- Translation of database failures into UpstreamUnavailableError
"""

import logging
from functools import wraps
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from src.models.appointments import Appointment, AppointmentItem, CANCELLED
from src.models.blocks import TimeBlock
from src.models.settings import SystemSetting
from src.models.staff import StaffMember
from src.services.exceptions import (
    AppointmentNotFoundError,
    StaffNotFoundError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


def store_read(func):
    """Convert SQLAlchemy failures raised by a store read into UpstreamUnavailableError."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store read failed in {func.__name__}: {e}")
            raise UpstreamUnavailableError(
                f"Store read failed in {func.__name__}",
                original_error=e,
            ) from e

    return wrapper


def _references_staff(staff_id: UUID):
    return or_(
        Appointment.staff_id == staff_id,
        Appointment.items.any(AppointmentItem.staff_id == staff_id),
    )


def _references_any_staff(staff_ids: list[UUID]):
    return or_(
        Appointment.staff_id.in_(staff_ids),
        Appointment.items.any(AppointmentItem.staff_id.in_(staff_ids)),
    )


# =============================================================================
# Staff Queries
# =============================================================================


@store_read
def get_staff_member(session: Session, staff_id: UUID) -> StaffMember:
    """
    Get a live staff member by ID.

    Raises:
        StaffNotFoundError: If the id is unknown or the member was deleted
    """
    stmt = select(StaffMember).where(
        and_(
            StaffMember.id == staff_id,
            StaffMember.deleted_at.is_(None),
        )
    )
    staff = session.scalar(stmt)
    if staff is None:
        raise StaffNotFoundError(f"Staff member {staff_id} not found")
    return staff


@store_read
def get_all_staff(
    session: Session,
    active_only: bool = True,
    location_id: Optional[str] = None,
) -> Sequence[StaffMember]:
    """
    Get all staff members, optionally filtered by location.

    Args:
        session: Database session
        active_only: Only return bookable staff
        location_id: Only return staff of this location

    Returns:
        Staff members ordered by name
    """
    conditions = [StaffMember.deleted_at.is_(None)]
    if active_only:
        conditions.append(StaffMember.active.is_(True))
    if location_id:
        conditions.append(StaffMember.location_id == location_id)

    stmt = select(StaffMember).where(and_(*conditions)).order_by(StaffMember.name)
    return session.scalars(stmt).all()


# =============================================================================
# Appointment Queries
# =============================================================================


@store_read
def get_appointments_for_day(
    session: Session,
    date: str,
    staff_id: Optional[UUID] = None,
    include_cancelled: bool = False,
) -> Sequence[Appointment]:
    """
    Get appointments on a date, optionally only those involving a professional.

    A professional is involved when they are the main professional or perform
    any line item.

    Args:
        session: Database session
        date: Calendar date (YYYY-MM-DD)
        staff_id: Professional to filter by (None = everyone)
        include_cancelled: Include cancelled appointments

    Returns:
        Appointments ordered by start time, line items loaded
    """
    conditions = [
        Appointment.date == date,
        Appointment.deleted_at.is_(None),
    ]
    if not include_cancelled:
        conditions.append(Appointment.status != CANCELLED)
    if staff_id is not None:
        conditions.append(_references_staff(staff_id))

    stmt = (
        select(Appointment)
        .where(and_(*conditions))
        .options(selectinload(Appointment.items))
        .order_by(Appointment.start_time)
    )
    return session.scalars(stmt).all()


@store_read
def get_appointments_in_range(
    session: Session,
    start_date: str,
    end_date: str,
    staff_ids: Optional[list[UUID]] = None,
) -> Sequence[Appointment]:
    """
    Get non-cancelled appointments between two dates (both inclusive).

    Args:
        session: Database session
        start_date: First date (YYYY-MM-DD)
        end_date: Last date (YYYY-MM-DD)
        staff_ids: Professionals to filter by (None = everyone)

    Returns:
        Appointments ordered by date and start time
    """
    conditions = [
        Appointment.date >= start_date,
        Appointment.date <= end_date,
        Appointment.deleted_at.is_(None),
        Appointment.status != CANCELLED,
    ]
    if staff_ids:
        conditions.append(_references_any_staff(staff_ids))

    stmt = (
        select(Appointment)
        .where(and_(*conditions))
        .options(selectinload(Appointment.items))
        .order_by(Appointment.date, Appointment.start_time)
    )
    return session.scalars(stmt).all()


@store_read
def get_appointment(session: Session, appointment_id: UUID) -> Appointment:
    """
    Get a live appointment by ID with line items loaded.

    Raises:
        AppointmentNotFoundError: If the id is unknown or deleted
    """
    stmt = (
        select(Appointment)
        .where(
            and_(
                Appointment.id == appointment_id,
                Appointment.deleted_at.is_(None),
            )
        )
        .options(selectinload(Appointment.items))
    )
    appointment = session.scalar(stmt)
    if appointment is None:
        raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
    return appointment


# =============================================================================
# Block Queries
# =============================================================================


@store_read
def get_blocks_for_day(
    session: Session,
    date: str,
    staff_id: UUID,
) -> Sequence[TimeBlock]:
    """
    Get every block (both kinds) for a professional on a date.

    Returns:
        Blocks ordered by start time
    """
    stmt = (
        select(TimeBlock)
        .where(
            and_(
                TimeBlock.staff_id == staff_id,
                TimeBlock.date == date,
                TimeBlock.deleted_at.is_(None),
            )
        )
        .order_by(TimeBlock.start_time)
    )
    return session.scalars(stmt).all()


@store_read
def get_blocks_in_range(
    session: Session,
    start_date: str,
    end_date: str,
    staff_ids: Optional[list[UUID]] = None,
) -> Sequence[TimeBlock]:
    """
    Get blocks between two dates (both inclusive).

    Returns:
        Blocks ordered by date and start time
    """
    conditions = [
        TimeBlock.date >= start_date,
        TimeBlock.date <= end_date,
        TimeBlock.deleted_at.is_(None),
    ]
    if staff_ids:
        conditions.append(TimeBlock.staff_id.in_(staff_ids))

    stmt = (
        select(TimeBlock)
        .where(and_(*conditions))
        .order_by(TimeBlock.date, TimeBlock.start_time)
    )
    return session.scalars(stmt).all()


# =============================================================================
# Settings Queries
# =============================================================================


@store_read
def get_setting_value(session: Session, key: str, default: Any = None) -> Any:
    """
    Get a global setting value.

    Args:
        session: Database session
        key: Setting name
        default: Value returned when the setting does not exist

    Returns:
        Stored JSON value or default
    """
    stmt = select(SystemSetting).where(
        and_(
            SystemSetting.key == key,
            SystemSetting.deleted_at.is_(None),
        )
    )
    setting = session.scalar(stmt)
    if setting is None:
        return default
    return setting.value
