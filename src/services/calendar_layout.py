"""
Calendar layout service.

Prepares a day or week of appointments and blocks for absolute positioning:
1. Blocking blocks overlapped by an availability override of the same
   professional are dropped (the override is what the calendar shows).
2. Remaining events are grouped into collision clusters and packed into
   columns so that overlapping events sit side by side.

Clusters are connected components: A-B and B-C overlapping puts A, B and C
in one cluster even when A and C do not overlap, so every member of a chain
shares the same column count.

Layout is a pure transform. Input events are never mutated; annotated copies
are returned.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from src.models.appointments import Appointment
from src.models.blocks import TimeBlock, AVAILABLE, BLOCK_KINDS
from src.services.exceptions import MalformedInputError
from src.services.intervals import minutes_to_hours, parse_date, parse_interval
from src.services.queries import get_appointments_in_range, get_blocks_in_range

logger = logging.getLogger(__name__)


APPOINTMENT = "appointment"
BLOCK = "block"
EVENT_TYPES = (APPOINTMENT, BLOCK)

# Five minutes; shorter events are still drawn this tall
MIN_DISPLAY_HOURS = 5 / 60


@dataclass(frozen=True)
class EventLayout:
    """Horizontal placement of an event inside its day column."""

    column: int = 0
    total_columns: int = 1
    width_percent: float = 100.0
    left_offset_percent: float = 0.0


@dataclass(frozen=True)
class CalendarEvent:
    """
    Rendering projection of an appointment or block.

    `start` and `end` are decimal hours (9.5 = 09:30).
    """

    id: str
    type: str
    start: float
    end: float
    staff_ids: tuple[str, ...]
    date: Optional[str] = None
    kind: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    layout: EventLayout = EventLayout()

    def __post_init__(self):
        if self.type not in EVENT_TYPES:
            raise MalformedInputError(f"Unknown event type '{self.type}'")
        if self.type == BLOCK and self.kind not in BLOCK_KINDS:
            raise MalformedInputError(f"Block event {self.id} has invalid kind '{self.kind}'")
        if not self.end > self.start:
            raise MalformedInputError(
                f"Event {self.id} ends ({self.end}) before it starts ({self.start})"
            )
        if not self.staff_ids:
            raise MalformedInputError(f"Event {self.id} has no staff")

    @property
    def is_available_block(self) -> bool:
        return self.type == BLOCK and self.kind == AVAILABLE

    @property
    def is_blocking_block(self) -> bool:
        return self.type == BLOCK and self.kind != AVAILABLE

    @property
    def display_duration(self) -> float:
        return max(MIN_DISPLAY_HOURS, self.end - self.start)

    def overlaps(self, other: "CalendarEvent") -> bool:
        return self.start < other.end and self.end > other.start

    def shares_staff(self, other: "CalendarEvent") -> bool:
        return bool(set(self.staff_ids) & set(other.staff_ids))


# =============================================================================
# Override suppression
# =============================================================================


def suppress_overridden_blocks(events: Sequence[CalendarEvent]) -> list[CalendarEvent]:
    """
    Drop blocking blocks that an availability override touches.

    A blocking block is removed entirely (not trimmed) when an available block
    for the same professional on the same date overlaps it at all.
    """
    overrides = [event for event in events if event.is_available_block]

    kept = []
    for event in events:
        if event.is_blocking_block and any(
            override.date == event.date
            and override.shares_staff(event)
            and override.overlaps(event)
            for override in overrides
        ):
            logger.debug(f"Block {event.id} hidden by availability override")
            continue
        kept.append(event)
    return kept


# =============================================================================
# Column packing
# =============================================================================


def collides(a: CalendarEvent, b: CalendarEvent) -> bool:
    """
    Whether two events must be drawn side by side.

    Appointments never collide with availability overrides; bookings inside
    reopened time are the point of the override.
    """
    if a.date != b.date or not a.shares_staff(b) or not a.overlaps(b):
        return False
    if a.type == APPOINTMENT and b.is_available_block:
        return False
    if b.type == APPOINTMENT and a.is_available_block:
        return False
    return True


def _find(parents: list[int], i: int) -> int:
    while parents[i] != i:
        parents[i] = parents[parents[i]]
        i = parents[i]
    return i


def find_clusters(events: Sequence[CalendarEvent]) -> list[list[int]]:
    """
    Group event indexes into connected collision clusters (union-find).

    Returns:
        Clusters of indexes, each in input order, ordered by first member
    """
    parents = list(range(len(events)))

    for i in range(len(events)):
        for j in range(i + 1, len(events)):
            if collides(events[i], events[j]):
                root_i, root_j = _find(parents, i), _find(parents, j)
                if root_i != root_j:
                    parents[max(root_i, root_j)] = min(root_i, root_j)

    clusters: dict[int, list[int]] = {}
    for i in range(len(events)):
        clusters.setdefault(_find(parents, i), []).append(i)
    return list(clusters.values())


def pack_columns(events: Sequence[CalendarEvent]) -> tuple[list[int], int]:
    """
    Greedy interval-graph colouring of one cluster.

    Events are visited by start time (ties keep input order) and placed in the
    first column whose last event ends at or before the new start.

    Returns:
        (column index per event in input order, number of columns)
    """
    order = sorted(range(len(events)), key=lambda i: events[i].start)
    column_ends: list[float] = []
    columns = [0] * len(events)

    for i in order:
        event = events[i]
        for col, last_end in enumerate(column_ends):
            if event.start >= last_end:
                column_ends[col] = event.end
                columns[i] = col
                break
        else:
            column_ends.append(event.end)
            columns[i] = len(column_ends) - 1

    return columns, len(column_ends)


def compute_calendar_layout(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """
    Suppress overridden blocks and assign every remaining event a layout.

    Args:
        events: Events of one rendering window (any number of days and staff)

    Returns:
        New event records with `layout` set, in input order minus the
        suppressed blocks
    """
    visible = suppress_overridden_blocks(list(events))
    laid_out: list[CalendarEvent] = [replace(event, layout=EventLayout()) for event in visible]

    for cluster in find_clusters(visible):
        if len(cluster) < 2:
            continue

        members = [visible[i] for i in cluster]
        columns, total = pack_columns(members)
        width = 100 / total

        for index, column in zip(cluster, columns):
            laid_out[index] = replace(
                visible[index],
                layout=EventLayout(
                    column=column,
                    total_columns=total,
                    width_percent=width,
                    left_offset_percent=column * width,
                ),
            )

    return laid_out


# =============================================================================
# Building events from stored data
# =============================================================================


def appointment_event(appointment: Appointment) -> CalendarEvent:
    """
    Project an appointment onto the calendar.

    Raises:
        MalformedInputError: If the stored times are unparsable
    """
    interval = parse_interval(appointment.start_time, appointment.end_time)
    return CalendarEvent(
        id=str(appointment.id),
        type=APPOINTMENT,
        start=minutes_to_hours(interval.start),
        end=minutes_to_hours(interval.end),
        staff_ids=tuple(str(staff_id) for staff_id in appointment.staff_ids),
        date=appointment.date,
        title=appointment.client_name,
        status=appointment.status,
    )


def block_event(block: TimeBlock) -> CalendarEvent:
    """
    Project a block onto the calendar.

    Raises:
        MalformedInputError: If the stored times are unparsable
    """
    interval = parse_interval(block.start_time, block.end_time)
    return CalendarEvent(
        id=str(block.id),
        type=BLOCK,
        start=minutes_to_hours(interval.start),
        end=minutes_to_hours(interval.end),
        staff_ids=(str(block.staff_id),),
        date=block.date,
        kind=block.kind,
        title=block.reason,
    )


def build_calendar_events(
    appointments: Iterable[Appointment],
    blocks: Iterable[TimeBlock],
) -> list[CalendarEvent]:
    """Appointments (cancelled ones skipped) followed by blocks, as calendar events."""
    events = [
        appointment_event(appointment)
        for appointment in appointments
        if not appointment.is_cancelled
    ]
    events.extend(block_event(block) for block in blocks)
    return events


def load_calendar(
    session: Session,
    start_date: str,
    end_date: str,
    staff_ids: Optional[list[UUID]] = None,
) -> list[CalendarEvent]:
    """
    Load and lay out the calendar for a date range.

    Args:
        session: Database session
        start_date: First date (YYYY-MM-DD)
        end_date: Last date (YYYY-MM-DD), inclusive
        staff_ids: Professionals to include (None = everyone)

    Returns:
        Laid-out events

    Raises:
        MalformedInputError: If the dates or stored times are malformed
        UpstreamUnavailableError: If a store cannot be read
    """
    if parse_date(end_date) < parse_date(start_date):
        raise MalformedInputError(f"end_date {end_date} is before start_date {start_date}")

    appointments = get_appointments_in_range(session, start_date, end_date, staff_ids)
    blocks = get_blocks_in_range(session, start_date, end_date, staff_ids)

    events = compute_calendar_layout(build_calendar_events(appointments, blocks))
    logger.info(f"Calendar {start_date}..{end_date}: {len(events)} events")
    return events
