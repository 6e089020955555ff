"""
Time-of-day parsing and interval arithmetic.

All scheduling math works on integer minutes since midnight over half-open
intervals [start, end). Calendar strings are validated here before they reach
any overlap test.
"""

import re
from dataclasses import dataclass
from datetime import date as date_type
from typing import Iterable

from dateutil.parser import isoparse

from src.services.exceptions import MalformedInputError


_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class TimeInterval:
    """Half-open interval of minutes since midnight."""

    start: int
    end: int

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and self.end > other.start

    @property
    def duration(self) -> int:
        return self.end - self.start


def parse_time(value: str) -> int:
    """
    Parse an HH:MM string into minutes since midnight.

    Raises:
        MalformedInputError: If the value is not a 24-hour HH:MM string
    """
    if not isinstance(value, str):
        raise MalformedInputError(f"Invalid time value: {value!r}")

    match = _TIME_RE.match(value.strip())
    if not match:
        raise MalformedInputError(f"Invalid time '{value}', expected HH:MM")

    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    """Format minutes since midnight as HH:MM."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise MalformedInputError(f"Minutes out of range for a time of day: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date_type:
    """
    Parse a YYYY-MM-DD calendar string.

    Raises:
        MalformedInputError: If the value is not a valid calendar date
    """
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise MalformedInputError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return isoparse(value.strip()).date()
    except ValueError as e:
        raise MalformedInputError(f"Invalid date '{value}': {e}") from e


def parse_interval(start: str, end: str) -> TimeInterval:
    """
    Parse a pair of HH:MM strings into a non-empty interval.

    Raises:
        MalformedInputError: If either string is malformed or end <= start
    """
    interval = TimeInterval(parse_time(start), parse_time(end))
    if interval.end <= interval.start:
        raise MalformedInputError(f"Interval end {end} must be after start {start}")
    return interval


def minutes_to_hours(minutes: int) -> float:
    """Minutes since midnight as decimal hours (e.g., 570 -> 9.5)."""
    return minutes / 60


def overlaps_any(candidate: TimeInterval, busy: Iterable[TimeInterval]) -> bool:
    """Check whether the candidate intersects any busy interval."""
    return any(candidate.overlaps(interval) for interval in busy)


def subtract_intervals(
    base: Iterable[TimeInterval],
    holes: Iterable[TimeInterval],
) -> list[TimeInterval]:
    """
    Remove every hole from every base interval.

    Used to reopen blocked time with availability overrides: a blocking
    10:00-12:00 minus an override 11:00-11:30 leaves 10:00-11:00 and
    11:30-12:00.

    Returns:
        Remaining non-empty pieces, sorted by start
    """
    sorted_holes = sorted(holes)
    remaining: list[TimeInterval] = []

    for interval in base:
        pieces = [interval]
        for hole in sorted_holes:
            next_pieces = []
            for piece in pieces:
                if not piece.overlaps(hole):
                    next_pieces.append(piece)
                    continue
                if piece.start < hole.start:
                    next_pieces.append(TimeInterval(piece.start, hole.start))
                if hole.end < piece.end:
                    next_pieces.append(TimeInterval(hole.end, piece.end))
            pieces = next_pieces
        remaining.extend(pieces)

    return sorted(remaining)
