"""
Reservation commit service.

Availability and block-conflict reads are advisory: two requests can both see
a free interval. Every write that adds occupied time therefore goes through a
conditional update of the professional's day ledger, then re-checks overlap
inside the same transaction. Of two racing writers, only one can advance the
ledger from the version both of them read; the other gets CommitConflictError.

Provides:
- claim_staff_day: compare-and-set on the (staff, date) ledger
- book_appointment: commit a booking for one or more professionals
- create_time_block: commit a manual block or availability override
- cancel_appointment: release a booking
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.appointments import (
    Appointment,
    AppointmentItem,
    APPOINTMENT_STATUSES,
    CANCELLED,
)
from src.models.blocks import TimeBlock, BLOCK_KINDS, BLOCKING
from src.models.settings import StaffDayLedger
from src.services.commitments import (
    check_block_conflict,
    effective_blocking_intervals,
)
from src.services.exceptions import (
    BlockConflictError,
    CommitConflictError,
    MalformedInputError,
    SlotUnavailableError,
)
from src.services.intervals import (
    TimeInterval,
    format_time,
    overlaps_any,
    parse_date,
    parse_interval,
    parse_time,
)
from src.services.queries import (
    get_appointment,
    get_appointments_for_day,
    get_blocks_for_day,
    get_staff_member,
    store_read,
)
from src.services.schedules import resolve_operating_window

logger = logging.getLogger(__name__)


@dataclass
class LineItem:
    """Service requested as part of a booking."""

    service_name: str
    staff_id: Optional[UUID] = None
    price: Optional[Decimal] = None
    duration_minutes: Optional[int] = None


# =============================================================================
# Ledger
# =============================================================================


@store_read
def claim_staff_day(session: Session, staff_id: UUID, date: str) -> StaffDayLedger:
    """
    Advance the write ledger of a professional on a date.

    Must be called inside the transaction that performs the write, before the
    final overlap check.

    Raises:
        CommitConflictError: If a concurrent writer advanced or created the
            ledger first
    """
    stmt = (
        select(StaffDayLedger)
        .where(
            and_(
                StaffDayLedger.staff_id == staff_id,
                StaffDayLedger.date == date,
            )
        )
        .execution_options(populate_existing=True)
    )
    ledger = session.scalar(stmt)

    if ledger is None:
        ledger = StaffDayLedger(staff_id=staff_id, date=date, version=0)
        session.add(ledger)
        try:
            session.flush()
        except IntegrityError as e:
            raise CommitConflictError(
                f"Concurrent write for staff {staff_id} on {date}",
                original_error=e,
            ) from e

    expected = ledger.version
    result = session.execute(
        update(StaffDayLedger)
        .where(
            and_(
                StaffDayLedger.id == ledger.id,
                StaffDayLedger.version == expected,
            )
        )
        .values(version=expected + 1)
    )
    if result.rowcount != 1:
        raise CommitConflictError(f"Concurrent write for staff {staff_id} on {date}")

    logger.debug(f"Claimed ledger for staff {staff_id} on {date} at version {expected + 1}")
    return ledger


# =============================================================================
# Appointments
# =============================================================================


def _occupied_intervals(session: Session, staff_id: UUID, date: str) -> list[TimeInterval]:
    appointments = get_appointments_for_day(session, date, staff_id=staff_id)
    busy = [parse_interval(a.start_time, a.end_time) for a in appointments]
    busy.extend(effective_blocking_intervals(get_blocks_for_day(session, date, staff_id)))
    return busy


def book_appointment(
    session: Session,
    staff_id: UUID,
    date: str,
    start_time: str,
    end_time: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    items: Optional[Sequence[LineItem]] = None,
    client_name: Optional[str] = None,
    client_phone: Optional[str] = None,
    location_id: Optional[str] = None,
    origin: str = "admin",
    status: str = "reserved",
    enforce_hours: bool = False,
) -> Appointment:
    """
    Commit a booking after re-checking it under the ledger of every professional involved.

    Args:
        session: Database session (caller commits)
        staff_id: Main professional
        date: Calendar date (YYYY-MM-DD)
        start_time: Start (HH:MM)
        end_time: End (HH:MM); derived from duration_minutes when omitted
        duration_minutes: Length, used when end_time is omitted
        items: Service line items; items without staff go to the main professional
        client_name: Client display name
        client_phone: Client phone
        location_id: Location of the booking
        origin: Booking channel
        status: Initial status (anything but "cancelled")
        enforce_hours: Reject bookings outside the operating window of any professional involved

    Returns:
        The persisted appointment (flushed, not committed)

    Raises:
        MalformedInputError: On malformed date, times, duration or status
        StaffNotFoundError: If any professional does not exist
        SlotUnavailableError: If the interval is already occupied or outside hours
        CommitConflictError: If a concurrent writer won the ledger
    """
    parse_date(date)
    if status not in APPOINTMENT_STATUSES or status == CANCELLED:
        raise MalformedInputError(f"Invalid initial status '{status}'")

    if end_time is None:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise MalformedInputError("Either end_time or a positive duration_minutes is required")
        end_time = format_time(parse_time(start_time) + duration_minutes)
    interval = parse_interval(start_time, end_time)

    items = list(items or [])
    involved = [staff_id] + [item.staff_id for item in items if item.staff_id is not None]
    staff_ids = sorted(set(involved), key=str)
    for sid in staff_ids:
        get_staff_member(session, sid)

    if enforce_hours:
        for sid in staff_ids:
            window = resolve_operating_window(session, sid, date)
            if window is None or not (window.interval.start <= interval.start and interval.end <= window.interval.end):
                raise SlotUnavailableError(
                    f"{start_time}-{end_time} on {date} is outside working hours for staff {sid}"
                )

    # Sorted claim order keeps multi-professional bookings deadlock-free
    for sid in staff_ids:
        claim_staff_day(session, sid, date)

    for sid in staff_ids:
        if overlaps_any(interval, _occupied_intervals(session, sid, date)):
            raise SlotUnavailableError(
                f"{start_time}-{end_time} on {date} is no longer available for staff {sid}"
            )

    appointment = Appointment(
        staff_id=staff_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        status=status,
        client_name=client_name,
        client_phone=client_phone,
        location_id=location_id,
        origin=origin,
    )
    for position, item in enumerate(items):
        appointment.items.append(
            AppointmentItem(
                staff_id=item.staff_id or staff_id,
                position=position,
                service_name=item.service_name,
                price=item.price,
                duration_minutes=item.duration_minutes,
            )
        )
    prices = [item.price for item in items if item.price is not None]
    appointment.total = sum(prices, Decimal("0")) if prices else None

    session.add(appointment)
    session.flush()

    logger.info(
        f"Booked appointment {appointment.id} for staff {staff_id} "
        f"on {date} {start_time}-{end_time} ({origin})"
    )
    return appointment


def cancel_appointment(session: Session, appointment_id: UUID) -> Appointment:
    """
    Cancel a booking, releasing its time.

    Idempotent: cancelling a cancelled appointment changes nothing.

    Raises:
        AppointmentNotFoundError: If the appointment does not exist
    """
    appointment = get_appointment(session, appointment_id)
    if appointment.is_cancelled:
        return appointment

    appointment.status = CANCELLED
    appointment.cancelled_at = datetime.now(timezone.utc)
    session.flush()

    logger.info(f"Cancelled appointment {appointment_id}")
    return appointment


# =============================================================================
# Blocks
# =============================================================================


def create_time_block(
    session: Session,
    staff_id: UUID,
    date: str,
    start_time: str,
    end_time: str,
    kind: str = BLOCKING,
    reason: Optional[str] = None,
    location_id: Optional[str] = None,
    force: bool = False,
) -> TimeBlock:
    """
    Commit a manual block or an availability override.

    Blocking blocks are checked against existing appointments under the
    professional's ledger; overlaps are rejected unless `force` is set.
    Availability overrides occupy nothing and skip the check.

    Returns:
        The persisted block (flushed, not committed)

    Raises:
        MalformedInputError: On malformed date, times or kind
        StaffNotFoundError: If the professional does not exist
        BlockConflictError: If a blocking block overlaps appointments
        CommitConflictError: If a concurrent writer won the ledger
    """
    if kind not in BLOCK_KINDS:
        raise MalformedInputError(f"Invalid block kind '{kind}'")
    parse_date(date)
    parse_interval(start_time, end_time)
    get_staff_member(session, staff_id)

    if kind == BLOCKING:
        claim_staff_day(session, staff_id, date)
        report = check_block_conflict(session, staff_id, date, start_time, end_time)
        if report.has_conflicts and not force:
            raise BlockConflictError(
                f"Staff {staff_id} has {report.conflicting_count} appointment(s) "
                f"between {start_time} and {end_time} on {date}",
                report=report,
            )
        if report.has_conflicts:
            logger.warning(
                f"Forcing block over {report.conflicting_count} appointment(s) "
                f"for staff {staff_id} on {date}"
            )

    block = TimeBlock(
        staff_id=staff_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        kind=kind,
        reason=reason,
        location_id=location_id,
    )
    session.add(block)
    session.flush()

    logger.info(f"Created {kind} block {block.id} for staff {staff_id} on {date} {start_time}-{end_time}")
    return block
