"""
Service layer for the Salon Scheduler.

Provides the scheduling engine:
- Schedule resolution (weekly template -> operating window)
- Commitment aggregation and the block conflict guard
- Availability (bookable slots)
- Calendar layout (override suppression and column packing)
- Reservation commits guarded by per-day ledgers
"""

from src.services.exceptions import (
    SchedulingError,
    StaffNotFoundError,
    AppointmentNotFoundError,
    MalformedInputError,
    UpstreamUnavailableError,
    CommitConflictError,
    SlotUnavailableError,
    BlockConflictError,
)

from src.services.intervals import (
    TimeInterval,
    parse_time,
    format_time,
    parse_date,
    parse_interval,
    subtract_intervals,
)

from src.services.schedules import (
    OperatingWindow,
    weekday_key,
    window_from_schedule,
    resolve_operating_window,
)

from src.services.commitments import (
    AppointmentConflict,
    BlockConflictReport,
    aggregate_busy_intervals,
    collect_busy_intervals,
    check_block_conflict,
)

from src.services.availability import (
    SlotSearchResult,
    compute_slots,
    get_minimum_lead_time,
    get_available_slots,
)

from src.services.calendar_layout import (
    CalendarEvent,
    EventLayout,
    compute_calendar_layout,
    build_calendar_events,
    load_calendar,
)

from src.services.reservations import (
    LineItem,
    claim_staff_day,
    book_appointment,
    cancel_appointment,
    create_time_block,
)

__all__ = [
    # Errors
    "SchedulingError",
    "StaffNotFoundError",
    "AppointmentNotFoundError",
    "MalformedInputError",
    "UpstreamUnavailableError",
    "CommitConflictError",
    "SlotUnavailableError",
    "BlockConflictError",
    # Intervals
    "TimeInterval",
    "parse_time",
    "format_time",
    "parse_date",
    "parse_interval",
    "subtract_intervals",
    # Schedule resolution
    "OperatingWindow",
    "weekday_key",
    "window_from_schedule",
    "resolve_operating_window",
    # Commitments
    "AppointmentConflict",
    "BlockConflictReport",
    "aggregate_busy_intervals",
    "collect_busy_intervals",
    "check_block_conflict",
    # Availability
    "SlotSearchResult",
    "compute_slots",
    "get_minimum_lead_time",
    "get_available_slots",
    # Calendar layout
    "CalendarEvent",
    "EventLayout",
    "compute_calendar_layout",
    "build_calendar_events",
    "load_calendar",
    # Commits
    "LineItem",
    "claim_staff_day",
    "book_appointment",
    "cancel_appointment",
    "create_time_block",
]
