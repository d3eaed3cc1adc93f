"""Tests for the booking resolver."""
import threading
import pytest
from datetime import datetime
from unittest.mock import MagicMock

from psycare.services.chat_router.booking_resolver import (
    BookingOutcome,
    BookingResolver,
    find_therapist,
    parse_time,
)
from psycare.shared.database import (
    AppointmentStore,
    InMemoryAppointmentStore,
    RepositoryError,
)
from psycare.shared.models import TherapistDirectoryEntry
from psycare.shared.utils import configure_pii_salt


NOW = datetime(2025, 9, 1, 9, 30)

RAO = TherapistDirectoryEntry(id="t_rao", name="Dr. Rao", email="rao@psycare.example")
MEHTA = TherapistDirectoryEntry(id="t_mehta", name="Dr. Mehta", email="mehta@psycare.example")
THERAPISTS = [RAO, MEHTA]


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def store():
    return InMemoryAppointmentStore()


@pytest.fixture
def resolver(store):
    return BookingResolver(store)


class TestFindTherapist:
    """Tests for therapist name matching."""

    def test_case_insensitive_substring(self):
        assert find_therapist("please book with dr. rao", THERAPISTS) == RAO

    def test_first_match_wins(self):
        namesake = TherapistDirectoryEntry(id="t_rao2", name="Dr. Rao", email="other@psycare.example")
        assert find_therapist("book with Dr. Rao", [RAO, namesake]) == RAO

    def test_no_match(self):
        assert find_therapist("book with Dr. Who", THERAPISTS) is None


class TestParseTime:
    """Tests for natural-language time parsing."""

    def test_month_day_and_hour(self):
        assert parse_time("book with Dr. Rao on Sep 17 3pm", NOW) == datetime(2025, 9, 17, 15, 0)

    def test_time_only_defaults_to_today(self):
        assert parse_time("book with Dr. Rao at 4pm", NOW) == datetime(2025, 9, 1, 16, 0)

    def test_no_time(self):
        assert parse_time("book with Dr. Rao", NOW) is None

    def test_tomorrow_is_relative_to_now(self):
        assert parse_time("book with Dr. Rao tomorrow at 5pm", NOW) == datetime(2025, 9, 2, 17, 0)

    def test_weekday_resolves_forward(self):
        wednesday = datetime(2025, 9, 3, 9, 30)
        assert parse_time("book with Dr. Rao next Monday 3pm", wednesday) == datetime(2025, 9, 8, 15, 0)

    def test_unrelated_number_is_not_a_time(self):
        assert parse_time("book with Dr. Rao, I'm in hostel block 12", NOW) is None

    def test_minutes_kept(self):
        assert parse_time("book with Dr. Rao on Sep 17 at 3:45pm", NOW) == datetime(2025, 9, 17, 15, 45)


class TestBook:
    """Tests for BookingResolver.book."""

    def test_no_therapist_is_not_booking(self, resolver, store):
        result = resolver.book("s1", "book an appointment please", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.NOT_BOOKING
        assert store.all() == []

    def test_needs_time(self, resolver, store):
        result = resolver.book("s1", "book with Dr. Rao", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.NEEDS_TIME
        assert result.therapist == RAO
        assert store.all() == []

    def test_stray_number_needs_time(self, resolver, store):
        result = resolver.book("s1", "book with Dr. Rao, I'm in hostel block 12", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.NEEDS_TIME
        assert store.all() == []

    def test_booked(self, resolver, store):
        result = resolver.book("s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.BOOKED
        assert result.appointment.therapist_id == "t_rao"
        assert result.appointment.student_id == "s1"
        assert result.appointment.appointment_time == datetime(2025, 9, 17, 15, 0)
        assert result.appointment.duration == 30
        assert len(store.all()) == 1

    def test_caller_supplied_duration(self, resolver):
        result = resolver.book(
            "s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, duration_minutes=50, now=NOW,
        )
        assert result.appointment.duration == 50

    def test_conflict(self, resolver, store):
        resolver.book("s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)

        result = resolver.book("s2", "schedule Dr. Rao Sep 17 at 3pm", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.CONFLICT
        assert result.time == datetime(2025, 9, 17, 15, 0)
        assert len(store.all()) == 1

    def test_same_time_other_therapist_is_free(self, resolver, store):
        resolver.book("s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)

        result = resolver.book("s2", "book with Dr. Mehta on Sep 17 3pm", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.BOOKED
        assert len(store.all()) == 2

    def test_persistence_failure(self):
        failing = MagicMock(spec=AppointmentStore)
        failing.insert.side_effect = RepositoryError("db down")
        resolver = BookingResolver(failing)

        result = resolver.book("s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)

        assert result.outcome == BookingOutcome.FAILED
        assert result.therapist == RAO

    def test_insert_is_the_only_slot_check(self):
        tracking = MagicMock(spec=AppointmentStore)
        tracking.insert.side_effect = lambda appointment: appointment
        resolver = BookingResolver(tracking)

        resolver.book("s1", "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)

        tracking.exists.assert_not_called()
        tracking.insert.assert_called_once()

    def test_concurrent_requests_one_success(self, resolver, store):
        outcomes = []
        barrier = threading.Barrier(2)

        def attempt(student_id):
            barrier.wait()
            result = resolver.book(student_id, "book with Dr. Rao on Sep 17 3pm", THERAPISTS, now=NOW)
            outcomes.append(result.outcome)

        threads = [threading.Thread(target=attempt, args=(s,)) for s in ("s1", "s2")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(o.value for o in outcomes) == ["booked", "conflict"]
        assert len(store.all()) == 1
