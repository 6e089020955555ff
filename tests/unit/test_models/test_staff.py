"""
Unit tests for the StaffMember model.
"""

from sqlalchemy.orm import Session

from src.models.blocks import TimeBlock
from src.models.staff import WEEKDAY_KEYS, StaffMember, default_weekly_schedule


class TestDefaultWeeklySchedule:
    """Test default_weekly_schedule function."""

    def test_has_seven_disabled_days(self):
        schedule = default_weekly_schedule()

        assert list(schedule) == list(WEEKDAY_KEYS)
        assert not any(entry["enabled"] for entry in schedule.values())

    def test_returns_fresh_copies(self):
        first = default_weekly_schedule()
        first["monday"]["enabled"] = True

        assert default_weekly_schedule()["monday"]["enabled"] is False


class TestStaffMember:
    """Test StaffMember persistence."""

    def test_defaults(self, db_session: Session):
        staff = StaffMember(name="Camila Rojas")
        db_session.add(staff)
        db_session.commit()

        assert staff.active is True
        assert staff.weekly_schedule == default_weekly_schedule()

    def test_time_blocks_relationship(self, db_session: Session, staff_member, make_block):
        make_block(staff_member, "2026-10-19", "13:00", "14:00")
        db_session.refresh(staff_member)

        assert len(staff_member.time_blocks) == 1
        assert isinstance(staff_member.time_blocks[0], TimeBlock)
