"""Tests for the in-memory stores."""
import threading
import pytest
from datetime import datetime, timedelta

from psycare.shared.database import (
    DuplicateError,
    InMemoryAppointmentStore,
    InMemoryConversationStore,
    InMemoryUserStore,
)
from psycare.shared.models import Appointment, ConversationTurn, UserProfile


SLOT = datetime(2025, 9, 17, 15, 0)


class TestInMemoryUserStore:
    """Tests for InMemoryUserStore."""

    def test_find_by_role(self):
        store = InMemoryUserStore([
            UserProfile(id="t1", name="Dr. Rao", role="psychologist"),
            UserProfile(id="s1", name="Asha"),
        ])

        therapists = store.find_by_role("psychologist")

        assert [u.id for u in therapists] == ["t1"]

    def test_get_by_id(self):
        store = InMemoryUserStore()
        store.add(UserProfile(id="s1", name="Asha"))

        assert store.get_by_id("s1").name == "Asha"
        assert store.get_by_id("missing") is None


class TestInMemoryAppointmentStore:
    """Tests for InMemoryAppointmentStore."""

    def test_insert_then_exists(self):
        store = InMemoryAppointmentStore()
        store.insert(Appointment(student_id="s1", therapist_id="t1", appointment_time=SLOT))

        assert store.exists("t1", SLOT) is True
        assert store.exists("t2", SLOT) is False

    def test_taken_slot_raises_duplicate(self):
        store = InMemoryAppointmentStore()
        store.insert(Appointment(student_id="s1", therapist_id="t1", appointment_time=SLOT))

        with pytest.raises(DuplicateError):
            store.insert(Appointment(student_id="s2", therapist_id="t1", appointment_time=SLOT))

        assert len(store.all()) == 1

    def test_concurrent_inserts_single_winner(self):
        store = InMemoryAppointmentStore()
        results = []
        barrier = threading.Barrier(8)

        def book(student_id):
            barrier.wait()
            try:
                store.insert(Appointment(
                    student_id=student_id, therapist_id="t1", appointment_time=SLOT,
                ))
                results.append("booked")
            except DuplicateError:
                results.append("conflict")

        threads = [threading.Thread(target=book, args=(f"s{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("booked") == 1
        assert results.count("conflict") == 7


class TestInMemoryConversationStore:
    """Tests for InMemoryConversationStore."""

    def test_list_ordered_by_created_at(self):
        store = InMemoryConversationStore()
        now = datetime(2025, 9, 17, 12, 0)
        later = ConversationTurn(user_id="u1", message="2", reply="b", created_at=now + timedelta(seconds=5))
        earlier = ConversationTurn(user_id="u1", message="1", reply="a", created_at=now)
        store.append(later)
        store.append(earlier)

        assert [t.message for t in store.list_ordered("u1")] == ["1", "2"]

    def test_equal_timestamps_keep_append_order(self):
        store = InMemoryConversationStore()
        now = datetime(2025, 9, 17, 12, 0)
        for text in ("a", "b", "c"):
            store.append(ConversationTurn(user_id="u1", message=text, reply="r", created_at=now))

        assert [t.message for t in store.list_ordered("u1")] == ["a", "b", "c"]

    def test_users_are_isolated(self):
        store = InMemoryConversationStore()
        store.append(ConversationTurn(user_id="u1", message="hi", reply="hello"))

        assert store.list_ordered("u2") == []

    def test_returned_list_is_a_copy(self):
        store = InMemoryConversationStore()
        store.append(ConversationTurn(user_id="u1", message="hi", reply="hello"))

        store.list_ordered("u1").clear()

        assert len(store.list_ordered("u1")) == 1
