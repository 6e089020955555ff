"""
SystemSetting and StaffDayLedger models.

Entities:
- SystemSetting: Global key/value configuration edited by administrators
- StaffDayLedger: Version counter used for conditional writes per professional and date
"""

import uuid
from typing import Any

from sqlalchemy import String, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, get_json_type


MIN_BOOKING_LEAD_MINUTES = "min_booking_lead_minutes"


class SystemSetting(BaseModel):
    """A single global configuration value, stored as JSON."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        doc="Setting name (e.g., 'min_booking_lead_minutes')"
    )

    value: Mapped[Any] = mapped_column(
        get_json_type(),
        nullable=True,
        doc="Setting value"
    )

    def __repr__(self) -> str:
        return f"<SystemSetting(key='{self.key}', value={self.value!r})>"


class StaffDayLedger(BaseModel):
    """
    Write ledger for one professional on one date.

    Every commit that adds time-occupying data for the professional on that
    date must first advance `version` with a compare-and-set update. Two
    writers that read the same version cannot both succeed.
    """

    __tablename__ = "staff_day_ledgers"

    staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_members.id"),
        nullable=False,
        doc="Professional"
    )

    date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        doc="Calendar date (YYYY-MM-DD)"
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Number of commits applied for this professional and date"
    )

    __table_args__ = (
        UniqueConstraint("staff_id", "date", name="uq_staff_day_ledger"),
    )

    def __repr__(self) -> str:
        return f"<StaffDayLedger(staff_id={self.staff_id}, date='{self.date}', version={self.version})>"
