"""
Schedule resolution service.

Turns a professional's recurring weekly schedule into the operating window
for one calendar date.

Weekday numbering is ISO Monday-first (`date.weekday()`, Monday = 0) applied
to the plain YYYY-MM-DD string, so the result never depends on the server's
timezone.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from src.models.staff import WEEKDAY_KEYS
from src.services.exceptions import MalformedInputError
from src.services.intervals import TimeInterval, parse_date, parse_interval
from src.services.queries import get_staff_member

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatingWindow:
    """Open and close time of a professional on a date."""

    start_time: str
    end_time: str
    interval: TimeInterval


def weekday_key(date: str) -> str:
    """
    Weekday key of a calendar date.

    >>> weekday_key("2026-10-19")
    'monday'
    """
    return WEEKDAY_KEYS[parse_date(date).weekday()]


def window_from_schedule(weekly_schedule: dict, date: str) -> Optional[OperatingWindow]:
    """
    Resolve the operating window from a weekly schedule document.

    Args:
        weekly_schedule: Mapping of weekday key to {enabled, start, end}
        date: Calendar date (YYYY-MM-DD)

    Returns:
        OperatingWindow, or None when the day is disabled or missing

    Raises:
        MalformedInputError: If an enabled day carries unparsable times
    """
    day = weekday_key(date)
    entry = (weekly_schedule or {}).get(day)

    if not entry or not entry.get("enabled"):
        return None

    start, end = entry.get("start"), entry.get("end")
    try:
        interval = parse_interval(start, end)
    except MalformedInputError as e:
        raise MalformedInputError(
            f"Schedule for {day} is malformed: {e.message}", original_error=e
        ) from e

    return OperatingWindow(start_time=start, end_time=end, interval=interval)


def resolve_operating_window(
    session: Session,
    staff_id: UUID,
    date: str,
) -> Optional[OperatingWindow]:
    """
    Resolve a professional's operating window for a date.

    Inactive professionals are treated as closed.

    Returns:
        OperatingWindow, or None when closed

    Raises:
        StaffNotFoundError: If the professional does not exist
        MalformedInputError: If the date or the schedule entry is malformed
        UpstreamUnavailableError: If the staff store cannot be read
    """
    parse_date(date)
    staff = get_staff_member(session, staff_id)

    if not staff.active:
        logger.debug(f"Staff {staff_id} is inactive; treating {date} as closed")
        return None

    return window_from_schedule(staff.weekly_schedule, date)
