"""
Commitment aggregation and block conflict checking.

Provides:
- Busy interval aggregation for one professional on one date
  (non-cancelled appointments plus effective blocking blocks)
- The conflict guard run before a manual block is persisted

Both are advisory reads. The commit path in reservations.py re-checks under
a conditional write.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from src.models.appointments import Appointment
from src.models.blocks import TimeBlock
from src.services.intervals import (
    TimeInterval,
    parse_date,
    parse_interval,
    subtract_intervals,
)
from src.services.queries import (
    get_appointments_for_day,
    get_blocks_for_day,
    get_staff_member,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentConflict:
    """An existing appointment that intersects a candidate range."""

    appointment_id: UUID
    start_time: str
    end_time: str
    status: str
    client_name: Optional[str] = None


@dataclass
class BlockConflictReport:
    """Result of checking a candidate block against existing appointments."""

    staff_id: UUID
    date: str
    start_time: str
    end_time: str
    conflicts: list[AppointmentConflict] = field(default_factory=list)

    @property
    def conflicting_count(self) -> int:
        return len(self.conflicts)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def effective_blocking_intervals(blocks: Iterable[TimeBlock]) -> list[TimeInterval]:
    """
    Time closed by blocking blocks after availability overrides reopen it.

    All blocks must belong to the same professional and date.

    Raises:
        MalformedInputError: If any block carries unparsable times
    """
    blocking: list[TimeInterval] = []
    available: list[TimeInterval] = []

    for block in blocks:
        interval = parse_interval(block.start_time, block.end_time)
        if block.is_available:
            available.append(interval)
        else:
            blocking.append(interval)

    return subtract_intervals(blocking, available)


def aggregate_busy_intervals(
    appointments: Iterable[Appointment],
    blocks: Iterable[TimeBlock],
) -> list[TimeInterval]:
    """
    Merge appointment and block data into busy intervals.

    Cancelled appointments are skipped. Availability overrides trim blocking
    blocks but never appointments.

    Returns:
        Busy intervals ordered by start

    Raises:
        MalformedInputError: If any record carries unparsable times
    """
    busy = [
        parse_interval(appointment.start_time, appointment.end_time)
        for appointment in appointments
        if not appointment.is_cancelled
    ]
    busy.extend(effective_blocking_intervals(blocks))
    return sorted(busy)


def collect_busy_intervals(
    session: Session,
    staff_id: UUID,
    date: str,
) -> list[TimeInterval]:
    """
    Collect every interval that already occupies a professional on a date.

    Args:
        session: Database session
        staff_id: Professional
        date: Calendar date (YYYY-MM-DD)

    Returns:
        Busy intervals ordered by start

    Raises:
        MalformedInputError: If the date or any stored time is malformed
        UpstreamUnavailableError: If either store cannot be read
    """
    parse_date(date)
    appointments = get_appointments_for_day(session, date, staff_id=staff_id)
    blocks = get_blocks_for_day(session, date, staff_id)

    busy = aggregate_busy_intervals(appointments, blocks)
    logger.debug(
        f"Staff {staff_id} on {date}: {len(appointments)} appointments, "
        f"{len(blocks)} blocks, {len(busy)} busy intervals"
    )
    return busy


def find_conflicting_appointments(
    appointments: Iterable[Appointment],
    candidate: TimeInterval,
) -> list[AppointmentConflict]:
    """Appointments (non-cancelled) whose interval intersects the candidate."""
    conflicts = []
    for appointment in appointments:
        if appointment.is_cancelled:
            continue
        if parse_interval(appointment.start_time, appointment.end_time).overlaps(candidate):
            conflicts.append(
                AppointmentConflict(
                    appointment_id=appointment.id,
                    start_time=appointment.start_time,
                    end_time=appointment.end_time,
                    status=appointment.status,
                    client_name=appointment.client_name,
                )
            )
    return conflicts


def check_block_conflict(
    session: Session,
    staff_id: UUID,
    date: str,
    start_time: str,
    end_time: str,
) -> BlockConflictReport:
    """
    Find existing appointments that a new block on [start_time, end_time) would overlap.

    Pre-check only: a booking committed after this call is not covered.

    Raises:
        StaffNotFoundError: If the professional does not exist
        MalformedInputError: If the date or times are malformed
        UpstreamUnavailableError: If a store cannot be read
    """
    parse_date(date)
    candidate = parse_interval(start_time, end_time)
    get_staff_member(session, staff_id)

    appointments = get_appointments_for_day(session, date, staff_id=staff_id)
    conflicts = find_conflicting_appointments(appointments, candidate)

    if conflicts:
        logger.info(
            f"Block {start_time}-{end_time} on {date} for staff {staff_id} "
            f"overlaps {len(conflicts)} appointment(s)"
        )

    return BlockConflictReport(
        staff_id=staff_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        conflicts=conflicts,
    )
