"""
StaffMember model.

Entities:
- StaffMember: A bookable professional with a recurring weekly schedule
"""

from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel, get_json_type

if TYPE_CHECKING:
    from src.models.blocks import TimeBlock


WEEKDAY_KEYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def default_weekly_schedule() -> dict:
    """Closed every day; administrators enable the days a professional works."""
    return {
        day: {"enabled": False, "start": "09:00", "end": "18:00"}
        for day in WEEKDAY_KEYS
    }


class StaffMember(BaseModel):
    """
    A professional whose time can be booked.

    The weekly schedule is a JSON document with exactly seven entries keyed by
    lowercase English weekday name (see WEEKDAY_KEYS, Monday first):

        {"monday": {"enabled": true, "start": "09:00", "end": "18:00"}, ...}

    A disabled entry means the professional has no operating window that day.
    """

    __tablename__ = "staff_members"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name of the professional"
    )

    location_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Location (branch) the professional works at"
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Whether the professional can currently be booked"
    )

    weekly_schedule: Mapped[dict] = mapped_column(
        get_json_type(),
        nullable=False,
        default=default_weekly_schedule,
        doc="Recurring weekly hours keyed by weekday name"
    )

    time_blocks: Mapped[list["TimeBlock"]] = relationship(
        "TimeBlock",
        back_populates="staff_member",
        doc="Manual blocks and availability overrides"
    )

    __table_args__ = (
        Index("idx_staff_location", "location_id"),
        Index("idx_staff_deleted", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<StaffMember(name='{self.name}', active={self.active})>"
