"""
SQLAlchemy models for Salon Scheduler.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from src.models.base import Base, BaseModel, GUID, get_json_type

from src.models.staff import StaffMember, WEEKDAY_KEYS, default_weekly_schedule
from src.models.appointments import (
    Appointment,
    AppointmentItem,
    APPOINTMENT_STATUSES,
    CANCELLED,
)
from src.models.blocks import TimeBlock, BLOCK_KINDS, BLOCKING, AVAILABLE
from src.models.settings import SystemSetting, StaffDayLedger, MIN_BOOKING_LEAD_MINUTES

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    "get_json_type",
    # Staff
    "StaffMember",
    "WEEKDAY_KEYS",
    "default_weekly_schedule",
    # Appointments
    "Appointment",
    "AppointmentItem",
    "APPOINTMENT_STATUSES",
    "CANCELLED",
    # Blocks
    "TimeBlock",
    "BLOCK_KINDS",
    "BLOCKING",
    "AVAILABLE",
    # Settings and ledger
    "SystemSetting",
    "StaffDayLedger",
    "MIN_BOOKING_LEAD_MINUTES",
]
