"""
TimeBlock model.

Entities:
- TimeBlock: A manual block of a professional's time, or an availability override
"""

import uuid
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel

if TYPE_CHECKING:
    from src.models.staff import StaffMember


BLOCKING = "blocking"
AVAILABLE = "available"
BLOCK_KINDS = (BLOCKING, AVAILABLE)


class TimeBlock(BaseModel):
    """
    A manually managed interval on a professional's day.

    Kinds:
    - blocking: occupies time exactly like an appointment (lunch, errands)
    - available: occupies nothing; reopens time covered by blocking blocks
      of the same professional on the same date
    """

    __tablename__ = "time_blocks"

    staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_members.id"),
        nullable=False,
        doc="Professional whose time is affected"
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

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BLOCKING,
        doc="Block kind: 'blocking' or 'available'"
    )

    reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Free-text reason shown on the calendar"
    )

    location_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Location (branch) the block applies to"
    )

    staff_member: Mapped["StaffMember"] = relationship(
        "StaffMember",
        back_populates="time_blocks",
    )

    __table_args__ = (
        Index("idx_block_staff_date", "staff_id", "date"),
        Index("idx_block_date", "date"),
        Index("idx_block_deleted", "deleted_at"),
    )

    @property
    def is_available(self) -> bool:
        return self.kind == AVAILABLE

    def __repr__(self) -> str:
        return (
            f"<TimeBlock(kind='{self.kind}', date='{self.date}', "
            f"start='{self.start_time}', end='{self.end_time}')>"
        )
