"""
Appointment and AppointmentItem models.

Entities:
- Appointment: A client booking on a calendar date
- AppointmentItem: A service line item, each performed by one professional
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel


APPOINTMENT_STATUSES = (
    "reserved",
    "confirmed",
    "attended",
    "no_show",
    "pending_payment",
    "deposit_paid",
    "waiting",
    "cancelled",
)

CANCELLED = "cancelled"


class Appointment(BaseModel):
    """
    A client booking.

    Dates and times are plain calendar strings in the business timezone
    (`YYYY-MM-DD`, `HH:MM`); they are never converted to UTC.

    Every status except "cancelled" occupies the professional's time. A single
    appointment can involve several professionals through its line items.
    """

    __tablename__ = "appointments"

    staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_members.id"),
        nullable=False,
        doc="Main professional for the booking"
    )

    date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        doc="Calendar date (YYYY-MM-DD)"
    )

    start_time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        doc="Start time (HH:MM)"
    )

    end_time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        doc="End time (HH:MM)"
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="reserved",
        doc="Booking status, see APPOINTMENT_STATUSES"
    )

    client_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Client display name"
    )

    client_phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Client phone number"
    )

    location_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Location (branch) where the service takes place"
    )

    origin: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="admin",
        doc="Channel the booking came from: 'admin', 'public_web'"
    )

    total: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        doc="Sum of line item prices"
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Timestamp when the booking was cancelled"
    )

    items: Mapped[list["AppointmentItem"]] = relationship(
        "AppointmentItem",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentItem.position",
        doc="Service line items"
    )

    __table_args__ = (
        Index("idx_appointment_date", "date"),
        Index("idx_appointment_status", "status"),
        Index("idx_appointment_deleted", "deleted_at"),
        Index("idx_appointment_staff_date", "staff_id", "date"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED

    @property
    def staff_ids(self) -> list[uuid.UUID]:
        """Every professional involved, main professional first, without duplicates."""
        ids = [self.staff_id]
        for item in self.items:
            if item.staff_id not in ids:
                ids.append(item.staff_id)
        return ids

    def __repr__(self) -> str:
        return (
            f"<Appointment(date='{self.date}', start='{self.start_time}', "
            f"end='{self.end_time}', status='{self.status}')>"
        )


class AppointmentItem(BaseModel):
    """A service performed as part of an appointment by one professional."""

    __tablename__ = "appointment_items"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id"),
        nullable=False,
        doc="Owning appointment"
    )

    staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_members.id"),
        nullable=False,
        doc="Professional performing this service"
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Order of the item within the appointment"
    )

    service_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Service name at booking time"
    )

    price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        doc="Price at booking time"
    )

    duration_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Service duration at booking time"
    )

    appointment: Mapped["Appointment"] = relationship(
        "Appointment",
        back_populates="items",
    )

    __table_args__ = (
        Index("idx_item_appointment", "appointment_id"),
        Index("idx_item_staff", "staff_id"),
    )

    def __repr__(self) -> str:
        return f"<AppointmentItem(service='{self.service_name}', staff_id={self.staff_id})>"
