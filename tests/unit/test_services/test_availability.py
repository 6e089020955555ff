"""
Unit tests for the availability service.

Tests slot computation, the same-day lead time and how blocks and
availability overrides shape the bookable grid.
"""

import sqlite3
from datetime import datetime
from unittest.mock import patch
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import event

from src.models.blocks import AVAILABLE
from src.services.availability import (
    compute_slots,
    get_available_slots,
    get_minimum_lead_time,
)
from src.services.exceptions import (
    MalformedInputError,
    StaffNotFoundError,
    UpstreamUnavailableError,
)
from src.services.intervals import TimeInterval, parse_interval, parse_time


SANTIAGO = ZoneInfo("America/Santiago")
SUNDAY = "2026-10-18"
MONDAY = "2026-10-19"
TUESDAY = "2026-10-20"

# Monday 10:10 in the business timezone
MONDAY_MORNING = datetime(2026, 10, 19, 10, 10, tzinfo=SANTIAGO)
# A moment well before any test date
EARLIER = datetime(2026, 10, 1, 8, 0, tzinfo=SANTIAGO)


def full_day(start="09:00", last="17:30"):
    """Every half-hour start from `start` through `last`."""
    slots = []
    minutes = parse_time(start)
    while minutes <= parse_time(last):
        slots.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
        minutes += 30
    return slots


class TestComputeSlots:
    """Test the pure grid walk."""

    def test_empty_window(self):
        slots = compute_slots(TimeInterval(540, 1080), [], 30, 30)
        assert slots == full_day()

    def test_duration_must_fit_before_close(self):
        slots = compute_slots(TimeInterval(540, 1080), [], 60, 30)
        assert slots[-1] == "17:00"

    def test_duration_longer_than_window(self):
        assert compute_slots(TimeInterval(540, 600), [], 90, 30) == []

    def test_busy_interval_excluded(self):
        slots = compute_slots(TimeInterval(540, 1080), [TimeInterval(840, 870)], 30, 30)
        assert "14:00" not in slots
        assert "13:30" in slots
        assert "14:30" in slots

    def test_earliest_start(self):
        slots = compute_slots(TimeInterval(540, 1080), [], 30, 30, earliest_start=671)
        assert slots[0] == "11:30"

    def test_grid_follows_window_open(self):
        slots = compute_slots(TimeInterval(555, 720), [], 30, 30)
        assert slots == ["09:15", "09:45", "10:15", "10:45", "11:15"]


class TestGetAvailableSlots:
    """Test get_available_slots end to end against the database."""

    def test_closed_day_returns_empty(self, db_session, staff_member, test_settings):
        result = get_available_slots(db_session, staff_member.id, SUNDAY, 30, now=EARLIER, settings=test_settings)

        assert result.slots == []
        assert result.is_closed

    def test_example_day_with_one_appointment(
        self, db_session, staff_member, make_appointment, test_settings
    ):
        make_appointment(staff_member, MONDAY, "14:00", "14:30")

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert result.slots == full_day("09:00", "13:30") + full_day("14:30", "17:30")
        assert "14:00" not in result.slots
        assert not result.is_closed

    def test_slots_never_overlap_commitments(
        self, db_session, staff_member, make_appointment, make_block, test_settings
    ):
        appointments = [
            make_appointment(staff_member, MONDAY, "09:15", "10:05"),
            make_appointment(staff_member, MONDAY, "15:00", "16:30"),
        ]
        blocks = [make_block(staff_member, MONDAY, "12:00", "13:00", reason="Almuerzo")]
        busy = [parse_interval(r.start_time, r.end_time) for r in appointments + blocks]

        result = get_available_slots(db_session, staff_member.id, MONDAY, 45, now=EARLIER, settings=test_settings)

        assert result.slots
        for slot in result.slots:
            start = parse_time(slot)
            candidate = TimeInterval(start, start + 45)
            assert 540 <= candidate.start and candidate.end <= 1080
            assert not any(candidate.overlaps(b) for b in busy)
            assert (start - 540) % 30 == 0

    def test_idempotent(self, db_session, staff_member, make_appointment, test_settings):
        make_appointment(staff_member, MONDAY, "11:00", "12:00")

        first = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)
        second = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert first.slots == second.slots

    def test_cancelled_appointment_frees_time(
        self, db_session, staff_member, make_appointment, test_settings
    ):
        make_appointment(staff_member, MONDAY, "14:00", "14:30", status="cancelled")

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert "14:00" in result.slots

    def test_other_staff_commitments_ignored(
        self, db_session, staff_member, other_staff_member, make_appointment, test_settings
    ):
        make_appointment(other_staff_member, MONDAY, "09:00", "18:00")

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert result.slots == full_day()

    def test_override_reopens_part_of_block(self, db_session, staff_member, make_block, test_settings):
        make_block(staff_member, MONDAY, "10:00", "12:00")
        make_block(staff_member, MONDAY, "11:00", "11:30", kind=AVAILABLE)

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert "11:00" in result.slots
        assert "10:00" not in result.slots
        assert "10:30" not in result.slots
        assert "11:30" not in result.slots
        assert "09:30" in result.slots
        assert "12:00" in result.slots

    def test_override_does_not_extend_hours(self, db_session, staff_member, make_block, test_settings):
        make_block(staff_member, MONDAY, "18:00", "20:00", kind=AVAILABLE)

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert result.slots[-1] == "17:30"

    def test_override_does_not_open_day_off(self, db_session, staff_member, make_block, test_settings):
        make_block(staff_member, SUNDAY, "10:00", "14:00", kind=AVAILABLE)

        result = get_available_slots(db_session, staff_member.id, SUNDAY, 30, now=EARLIER, settings=test_settings)

        assert result.slots == []

    def test_inactive_staff_is_closed(self, db_session, staff_member, test_settings):
        staff_member.active = False
        db_session.commit()

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)

        assert result.is_closed
        assert result.slots == []

    def test_unknown_staff(self, db_session, test_settings):
        with pytest.raises(StaffNotFoundError):
            get_available_slots(db_session, uuid4(), MONDAY, 30, now=EARLIER, settings=test_settings)

    @pytest.mark.parametrize("duration", [0, -30, True, 30.5, "30"])
    def test_malformed_duration(self, db_session, staff_member, test_settings, duration):
        with pytest.raises(MalformedInputError):
            get_available_slots(db_session, staff_member.id, MONDAY, duration, now=EARLIER, settings=test_settings)

    def test_malformed_date(self, db_session, staff_member, test_settings):
        with pytest.raises(MalformedInputError):
            get_available_slots(db_session, staff_member.id, "2026-10-32", 30, now=EARLIER, settings=test_settings)

    def test_staff_store_failure_propagates(self, db_session, staff_member, test_settings):
        with patch(
            "src.services.schedules.get_staff_member",
            side_effect=UpstreamUnavailableError("staff store down"),
        ):
            with pytest.raises(UpstreamUnavailableError):
                get_available_slots(db_session, staff_member.id, MONDAY, 30, now=EARLIER, settings=test_settings)


class TestLeadTime:
    """Test the same-day minimum lead time."""

    def test_applied_today(self, db_session, staff_member, set_lead_time, test_settings):
        set_lead_time(60)

        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30, now=MONDAY_MORNING, settings=test_settings
        )

        # 10:10 + 60 minutes = 11:10, next grid point is 11:30
        assert result.slots[0] == "11:30"
        assert result.lead_time_minutes == 60

    def test_seconds_past_the_minute_count(self, db_session, staff_member, set_lead_time, test_settings):
        set_lead_time(60)

        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30,
            now=datetime(2026, 10, 19, 10, 0, 30, tzinfo=SANTIAGO),
            settings=test_settings,
        )

        # 10:00:30 + 60 minutes is past 11:00
        assert result.slots[0] == "11:30"

    def test_slot_already_started_not_offered(self, db_session, staff_member, test_settings):
        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30,
            now=datetime(2026, 10, 19, 10, 0, 45, tzinfo=SANTIAGO),
            settings=test_settings,
        )

        assert result.slots[0] == "10:30"

    def test_slot_starting_now_offered(self, db_session, staff_member, test_settings):
        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30,
            now=datetime(2026, 10, 19, 10, 0, tzinfo=SANTIAGO),
            settings=test_settings,
        )

        assert result.slots[0] == "10:00"

    def test_not_applied_tomorrow(self, db_session, staff_member, set_lead_time, test_settings):
        set_lead_time(60)

        result = get_available_slots(
            db_session, staff_member.id, TUESDAY, 30, now=MONDAY_MORNING, settings=test_settings
        )

        assert result.slots[0] == "09:00"
        assert result.lead_time_minutes == 0

    def test_missing_setting_means_no_buffer(self, db_session, staff_member, test_settings):
        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30, now=MONDAY_MORNING, settings=test_settings
        )

        assert result.slots[0] == "10:30"
        assert result.lead_time_minutes == 0

    def test_naive_now_is_business_time(self, db_session, staff_member, set_lead_time, test_settings):
        set_lead_time(60)

        result = get_available_slots(
            db_session, staff_member.id, MONDAY, 30,
            now=datetime(2026, 10, 19, 10, 10),
            settings=test_settings,
        )

        assert result.slots[0] == "11:30"

    def test_now_converted_to_business_timezone(self, db_session, staff_member, test_settings):
        # 13:10 UTC is 10:10 in Santiago (UTC-3 in October)
        now = datetime(2026, 10, 19, 13, 10, tzinfo=ZoneInfo("UTC"))

        result = get_available_slots(db_session, staff_member.id, MONDAY, 30, now=now, settings=test_settings)

        assert result.slots[0] == "10:30"

    def test_fallback_when_store_unavailable(self, db_session, staff_member, test_settings):
        with patch(
            "src.services.availability.get_setting_value",
            side_effect=UpstreamUnavailableError("settings store down"),
        ) as mock_read:
            result = get_available_slots(
                db_session, staff_member.id, MONDAY, 30, now=MONDAY_MORNING, settings=test_settings
            )

        # 10:10 + 120 minutes fallback = 12:10
        assert result.lead_time_minutes == 120
        assert result.slots[0] == "12:30"
        assert mock_read.call_count == test_settings.settings_read_attempts

    def test_transient_failure_retried(self, db_session, test_settings):
        with patch(
            "src.services.availability.get_setting_value",
            side_effect=[UpstreamUnavailableError("blip"), 45],
        ) as mock_read:
            assert get_minimum_lead_time(db_session, test_settings) == 45

        assert mock_read.call_count == 2

    def test_failed_read_rolled_back_before_retry(self, db_session, set_lead_time, test_settings):
        set_lead_time(45)
        engine = db_session.get_bind()
        statements = []
        failures = [sqlite3.OperationalError("database is locked")]

        def fail_first_settings_read(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)
            if "system_settings" in statement and failures:
                raise failures.pop()

        event.listen(engine, "before_cursor_execute", fail_first_settings_read)
        try:
            assert get_minimum_lead_time(db_session, test_settings) == 45
        finally:
            event.remove(engine, "before_cursor_execute", fail_first_settings_read)

        assert any(s.startswith("ROLLBACK TO SAVEPOINT") for s in statements)
        assert sum("system_settings" in s for s in statements) == 2

    def test_numeric_string_accepted(self, db_session, set_lead_time, test_settings):
        set_lead_time("45")
        assert get_minimum_lead_time(db_session, test_settings) == 45

    @pytest.mark.parametrize("value", ["soon", -5, True, 1.5])
    def test_invalid_setting_rejected(self, db_session, set_lead_time, test_settings, value):
        set_lead_time(value)
        with pytest.raises(MalformedInputError):
            get_minimum_lead_time(db_session, test_settings)
