"""User, appointment and conversation stores.

Each store is an abstract capability so the chat router can run against
PostgreSQL in production and the in-memory variants in development and
tests. Both variants give the same guarantees:

- ConversationStore is append-only and lists turns in creation order.
- AppointmentStore.insert is an atomic check-and-insert on
  (therapist_id, appointment_time); a taken slot raises DuplicateError.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from psycare.shared.models import (
    Appointment,
    AppointmentStatus,
    ConversationTurn,
    UserProfile,
)
from .connection import ConnectionManager
from .repository import BaseRepository, DuplicateError

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    mobile TEXT,
    role TEXT NOT NULL DEFAULT 'student'
);

CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    student_id TEXT NOT NULL,
    therapist_id TEXT NOT NULL,
    appointment_time TIMESTAMP NOT NULL,
    duration INTEGER NOT NULL DEFAULT 30,
    status TEXT NOT NULL DEFAULT 'confirmed',
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    CONSTRAINT appointments_slot_unique UNIQUE (therapist_id, appointment_time)
);

CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    message TEXT NOT NULL,
    reply TEXT NOT NULL,
    escalated BOOLEAN NOT NULL DEFAULT FALSE,
    severity_tag TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS conversations_user_created_idx
    ON conversations (user_id, created_at);
"""


def ensure_schema(connection_manager: ConnectionManager) -> None:
    """Create the tables and the slot uniqueness constraint if missing."""
    with connection_manager.transaction() as cur:
        cur.execute(SCHEMA_SQL)
    logger.info("DATABASE_SCHEMA_ENSURED")


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class UserStore(ABC):
    """Read access to user profiles."""

    @abstractmethod
    def find_by_role(self, role: str) -> List[UserProfile]:
        pass

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        pass


class AppointmentStore(ABC):
    """Appointment slots with a uniqueness guarantee per (therapist, time)."""

    @abstractmethod
    def exists(self, therapist_id: str, appointment_time: datetime) -> bool:
        pass

    @abstractmethod
    def insert(self, appointment: Appointment) -> Appointment:
        """Atomically insert unless the slot is taken.

        Raises:
            DuplicateError: The slot already has an appointment
            RepositoryError: The write failed
        """
        pass


class ConversationStore(ABC):
    """Append-only per-user conversation log."""

    @abstractmethod
    def append(self, turn: ConversationTurn) -> ConversationTurn:
        pass

    @abstractmethod
    def list_ordered(self, user_id: str) -> List[ConversationTurn]:
        pass


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------

class UserRepository(BaseRepository[UserProfile], UserStore):
    """Users table. Read-only from the chat router's point of view."""

    columns = ("id", "name", "email", "mobile", "role")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "users")

    def _row_to_entity(self, row: tuple) -> UserProfile:
        return UserProfile(id=row[0], name=row[1], email=row[2], mobile=row[3], role=row[4])

    def _entity_to_params(self, entity: UserProfile) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "email": entity.email,
            "mobile": entity.mobile,
            "role": entity.role,
        }

    def find_by_role(self, role: str) -> List[UserProfile]:
        return self._fetch_all("role = %s", (role,), order_by="name, id")

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        return self.find_by_id(user_id)


class AppointmentRepository(BaseRepository[Appointment], AppointmentStore):
    """Appointments table, guarded by the appointments_slot_unique constraint."""

    columns = (
        "id", "student_id", "therapist_id", "appointment_time",
        "duration", "status", "created_at",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "appointments")

    def _row_to_entity(self, row: tuple) -> Appointment:
        return Appointment(
            appointment_id=row[0],
            student_id=row[1],
            therapist_id=row[2],
            appointment_time=row[3],
            duration=row[4],
            status=AppointmentStatus(row[5]),
            created_at=row[6],
        )

    def _entity_to_params(self, entity: Appointment) -> Dict[str, Any]:
        return {
            "id": entity.appointment_id,
            "student_id": entity.student_id,
            "therapist_id": entity.therapist_id,
            "appointment_time": entity.appointment_time,
            "duration": entity.duration,
            "status": entity.status.value,
            "created_at": entity.created_at,
        }

    def exists(self, therapist_id: str, appointment_time: datetime) -> bool:
        found = self._fetch_all(
            "therapist_id = %s AND appointment_time = %s",
            (therapist_id, appointment_time),
        )
        return bool(found)

    def insert(self, appointment: Appointment) -> Appointment:
        return super().insert(appointment, conflict_target="therapist_id, appointment_time")


class ConversationRepository(BaseRepository[ConversationTurn], ConversationStore):
    """Conversations table. Rows are only ever inserted."""

    columns = ("id", "user_id", "message", "reply", "escalated", "severity_tag", "created_at")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "conversations")

    def _row_to_entity(self, row: tuple) -> ConversationTurn:
        return ConversationTurn(
            turn_id=row[0],
            user_id=row[1],
            message=row[2],
            reply=row[3],
            escalated=row[4],
            severity_tag=row[5],
            created_at=row[6],
        )

    def _entity_to_params(self, entity: ConversationTurn) -> Dict[str, Any]:
        return {
            "id": entity.turn_id,
            "user_id": entity.user_id,
            "message": entity.message,
            "reply": entity.reply,
            "escalated": entity.escalated,
            "severity_tag": entity.severity_tag,
            "created_at": entity.created_at,
        }

    def append(self, turn: ConversationTurn) -> ConversationTurn:
        return self.insert(turn)

    def list_ordered(self, user_id: str) -> List[ConversationTurn]:
        return self._fetch_all("user_id = %s", (user_id,), order_by="created_at, id")


# ---------------------------------------------------------------------------
# In-memory (development and tests)
# ---------------------------------------------------------------------------

class InMemoryUserStore(UserStore):
    """Dictionary-backed user store."""

    def __init__(self, users: Iterable[UserProfile] = ()):
        self._users: Dict[str, UserProfile] = {u.id: u for u in users}
        self._lock = threading.Lock()

    def add(self, user: UserProfile) -> None:
        with self._lock:
            self._users[user.id] = user

    def find_by_role(self, role: str) -> List[UserProfile]:
        with self._lock:
            return [u for u in self._users.values() if u.role == role]

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._users.get(user_id)


class InMemoryAppointmentStore(AppointmentStore):
    """Slot-keyed appointment store; check and insert share one lock."""

    def __init__(self):
        self._by_slot: Dict[tuple, Appointment] = {}
        self._lock = threading.Lock()

    def exists(self, therapist_id: str, appointment_time: datetime) -> bool:
        with self._lock:
            return (therapist_id, appointment_time) in self._by_slot

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.slot in self._by_slot:
                raise DuplicateError(
                    f"Slot already booked for therapist {appointment.therapist_id}"
                )
            self._by_slot[appointment.slot] = appointment
        return appointment

    def all(self) -> List[Appointment]:
        with self._lock:
            return list(self._by_slot.values())


class InMemoryConversationStore(ConversationStore):
    """Per-user append-only lists."""

    def __init__(self):
        self._turns: Dict[str, List[ConversationTurn]] = {}
        self._lock = threading.Lock()

    def append(self, turn: ConversationTurn) -> ConversationTurn:
        with self._lock:
            self._turns.setdefault(turn.user_id, []).append(turn)
        return turn

    def list_ordered(self, user_id: str) -> List[ConversationTurn]:
        with self._lock:
            turns = list(self._turns.get(user_id, []))
        # stable sort keeps append order for equal timestamps
        return sorted(turns, key=lambda t: t.created_at)
