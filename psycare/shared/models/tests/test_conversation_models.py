"""Tests for conversation and appointment models."""
import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime

from psycare.shared.models import (
    Appointment,
    AppointmentStatus,
    ConversationTurn,
    UserProfile,
)


class TestConversationTurn:
    """Tests for ConversationTurn."""

    def test_defaults(self):
        turn = ConversationTurn(user_id="u1", message="hi", reply="hello")
        assert turn.escalated is False
        assert turn.severity_tag is None
        assert turn.turn_id.startswith("turn_")

    def test_immutable(self):
        turn = ConversationTurn(user_id="u1", message="hi", reply="hello")
        with pytest.raises(FrozenInstanceError):
            turn.reply = "changed"


class TestAppointment:
    """Tests for Appointment."""

    def test_defaults_to_confirmed_thirty_minutes(self):
        appt = Appointment(
            student_id="s1", therapist_id="t1", appointment_time=datetime(2025, 9, 17, 15, 0),
        )
        assert appt.duration == 30
        assert appt.status == AppointmentStatus.CONFIRMED

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValueError):
            Appointment(
                student_id="s1",
                therapist_id="t1",
                appointment_time=datetime(2025, 9, 17, 15, 0),
                duration=0,
            )

    def test_to_dict(self):
        appt = Appointment(
            student_id="s1", therapist_id="t1", appointment_time=datetime(2025, 9, 17, 15, 0),
        )
        data = appt.to_dict()

        assert data["studentId"] == "s1"
        assert data["therapistId"] == "t1"
        assert data["appointmentTime"] == "2025-09-17T15:00:00"
        assert data["status"] == "confirmed"
        assert data["id"] == appt.appointment_id


class TestUserProfile:
    """Tests for UserProfile."""

    def test_directory_entry_fills_missing_fields(self):
        entry = UserProfile(id="t1", role="psychologist").to_directory_entry()
        assert entry.to_dict() == {"id": "t1", "name": "", "email": ""}
