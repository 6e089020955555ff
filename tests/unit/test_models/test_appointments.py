"""
Unit tests for the Appointment, AppointmentItem, TimeBlock and ledger models.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.appointments import Appointment, AppointmentItem
from src.models.blocks import AVAILABLE
from src.models.settings import StaffDayLedger, SystemSetting


class TestAppointment:
    """Test Appointment model helpers."""

    def test_staff_ids_main_first_without_duplicates(
        self, staff_member, other_staff_member, make_appointment
    ):
        appointment = make_appointment(
            staff_member, "2026-10-19", "10:00", "11:00", extra_staff=(other_staff_member,)
        )

        assert appointment.staff_ids == [staff_member.id, other_staff_member.id]

    def test_staff_ids_without_items(self, staff_member):
        appointment = Appointment(
            staff_id=staff_member.id, date="2026-10-19", start_time="10:00", end_time="11:00"
        )
        assert appointment.staff_ids == [staff_member.id]

    def test_is_cancelled(self, staff_member, make_appointment):
        assert make_appointment(staff_member, "2026-10-19", "10:00", "11:00", status="cancelled").is_cancelled
        assert not make_appointment(staff_member, "2026-10-19", "11:00", "12:00").is_cancelled

    def test_items_ordered_by_position(self, db_session: Session, staff_member):
        appointment = Appointment(
            staff_id=staff_member.id, date="2026-10-19", start_time="10:00", end_time="11:00"
        )
        appointment.items.append(AppointmentItem(staff_id=staff_member.id, position=1, service_name="Brushing"))
        appointment.items.append(AppointmentItem(staff_id=staff_member.id, position=0, service_name="Corte"))
        db_session.add(appointment)
        db_session.commit()
        db_session.expire_all()

        stored = db_session.get(Appointment, appointment.id)
        assert [item.service_name for item in stored.items] == ["Corte", "Brushing"]

    def test_foreign_key_enforced(self, db_session: Session):
        db_session.add(
            Appointment(staff_id=uuid.uuid4(), date="2026-10-19", start_time="10:00", end_time="11:00")
        )
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestTimeBlock:
    """Test TimeBlock model."""

    def test_kinds(self, staff_member, make_block):
        assert not make_block(staff_member, "2026-10-19", "13:00", "14:00").is_available
        assert make_block(staff_member, "2026-10-19", "15:00", "16:00", kind=AVAILABLE).is_available


class TestSettingsModels:
    """Test SystemSetting and StaffDayLedger constraints."""

    def test_setting_key_unique(self, db_session: Session):
        db_session.add(SystemSetting(key="min_booking_lead_minutes", value=60))
        db_session.add(SystemSetting(key="min_booking_lead_minutes", value=90))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_one_ledger_per_staff_and_date(self, db_session: Session, staff_member):
        db_session.add(StaffDayLedger(staff_id=staff_member.id, date="2026-10-19", version=0))
        db_session.add(StaffDayLedger(staff_id=staff_member.id, date="2026-10-19", version=0))
        with pytest.raises(IntegrityError):
            db_session.commit()
