"""
Availability service.

Provides functions for:
- Reading the same-day minimum lead time from the configuration store
- Walking the slot grid across a professional's operating window
- Returning the bookable start times for a requested duration
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from src.config import Settings, get_settings
from src.models.settings import MIN_BOOKING_LEAD_MINUTES
from src.services.commitments import collect_busy_intervals
from src.services.exceptions import MalformedInputError, UpstreamUnavailableError
from src.services.intervals import (
    TimeInterval,
    format_time,
    overlaps_any,
    parse_date,
)
from src.services.queries import get_setting_value, store_read
from src.services.schedules import OperatingWindow, resolve_operating_window

logger = logging.getLogger(__name__)


@dataclass
class SlotSearchResult:
    """Bookable start times for one professional, date and duration."""

    staff_id: UUID
    date: str
    duration_minutes: int
    slots: list[str] = field(default_factory=list)
    window: Optional[OperatingWindow] = None
    lead_time_minutes: int = 0

    @property
    def is_closed(self) -> bool:
        return self.window is None


def _coerce_lead_time(value: Any) -> int:
    """Validate a stored lead time value (minutes)."""
    if isinstance(value, bool):
        raise MalformedInputError(f"Invalid lead time setting: {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 0:
        raise MalformedInputError(f"Invalid lead time setting: {value!r}")
    return value


@store_read
def _read_lead_time_setting(session: Session) -> Any:
    # A failed statement aborts the whole transaction on PostgreSQL; each
    # attempt runs in its own savepoint so the next one starts clean.
    with session.begin_nested():
        return get_setting_value(session, MIN_BOOKING_LEAD_MINUTES, default=0)


def get_minimum_lead_time(session: Session, settings: Optional[Settings] = None) -> int:
    """
    Read the same-day minimum lead time, in minutes.

    Store failures are retried with exponential backoff. When every attempt
    fails the conservative `lead_time_fallback_minutes` is returned instead of
    disabling the buffer. A missing setting means no buffer (0).

    Raises:
        MalformedInputError: If the stored value is not a non-negative integer
    """
    settings = settings or get_settings()

    try:
        for attempt in Retrying(
            stop=stop_after_attempt(settings.settings_read_attempts),
            wait=wait_exponential(multiplier=0.1, max=2),
            retry=retry_if_exception_type(UpstreamUnavailableError),
            reraise=True,
        ):
            with attempt:
                value = _read_lead_time_setting(session)
    except UpstreamUnavailableError as e:
        logger.warning(
            f"Lead time setting unavailable ({e.message}); "
            f"using fallback of {settings.lead_time_fallback_minutes} minutes"
        )
        return settings.lead_time_fallback_minutes

    return _coerce_lead_time(value)


def compute_slots(
    window: TimeInterval,
    busy: list[TimeInterval],
    duration_minutes: int,
    grid_minutes: int,
    earliest_start: Optional[int] = None,
) -> list[str]:
    """
    Walk the grid from window open and keep every start that fits.

    Args:
        window: Operating window
        busy: Busy intervals (any order, may overlap)
        duration_minutes: Requested booking length
        grid_minutes: Step between candidate starts
        earliest_start: Candidates starting before this minute are skipped

    Returns:
        Valid start times (HH:MM), ascending
    """
    slots = []
    current = window.start

    while current + duration_minutes <= window.end:
        candidate = TimeInterval(current, current + duration_minutes)
        too_soon = earliest_start is not None and current < earliest_start

        if not too_soon and not overlaps_any(candidate, busy):
            slots.append(format_time(current))

        current += grid_minutes

    return slots


def _now_in_business_tz(now: Optional[datetime], settings: Settings) -> datetime:
    tz = settings.tzinfo
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def _minute_of_day_ceil(moment: datetime) -> int:
    """Minute of the day, rounded up when `moment` is past the minute mark."""
    seconds = moment.hour * 3600 + moment.minute * 60 + moment.second + moment.microsecond / 1_000_000
    return math.ceil(seconds / 60)


def get_available_slots(
    session: Session,
    staff_id: UUID,
    date: str,
    duration_minutes: int,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> SlotSearchResult:
    """
    Find bookable start times for a professional on a date.

    The result is a point-in-time snapshot; the commit path re-checks the
    chosen slot before writing.

    Args:
        session: Database session
        staff_id: Professional to book
        date: Calendar date (YYYY-MM-DD)
        duration_minutes: Requested booking length
        now: Current instant (defaults to the clock, business timezone)
        settings: Settings override

    Returns:
        SlotSearchResult (empty slots when the day is closed)

    Raises:
        StaffNotFoundError: If the professional does not exist
        MalformedInputError: If the date, duration or stored data is malformed
        UpstreamUnavailableError: If the staff or commitment stores fail
    """
    settings = settings or get_settings()

    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise MalformedInputError(f"Duration must be a positive number of minutes, got {duration_minutes!r}")
    target_date = parse_date(date)

    result = SlotSearchResult(staff_id=staff_id, date=date, duration_minutes=duration_minutes)

    window = resolve_operating_window(session, staff_id, date)
    if window is None:
        logger.debug(f"Staff {staff_id} closed on {date}")
        return result
    result.window = window

    busy = collect_busy_intervals(session, staff_id, date)

    earliest_start = None
    current = _now_in_business_tz(now, settings)
    if target_date == current.date():
        result.lead_time_minutes = get_minimum_lead_time(session, settings)
        earliest_start = _minute_of_day_ceil(current) + result.lead_time_minutes

    result.slots = compute_slots(
        window.interval,
        busy,
        duration_minutes,
        settings.slot_grid_minutes,
        earliest_start=earliest_start,
    )

    logger.info(
        f"Staff {staff_id} on {date}: {len(result.slots)} slots "
        f"for {duration_minutes} min (lead {result.lead_time_minutes} min)"
    )
    return result
