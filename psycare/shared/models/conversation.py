"""Conversation, appointment and directory domain models.

Persisted records (ConversationTurn, Appointment) are frozen dataclasses:
the chat router appends them and never changes them afterwards.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import uuid


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class AppointmentStatus(Enum):
    """Lifecycle states of an appointment.

    The chat router only ever creates CONFIRMED appointments; the other
    states belong to the cancel/clear flows.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Message:
    """One inbound chat message. Transient, never stored on its own."""
    text: str
    sender_id: str
    lang: str = "en"
    location: Optional[str] = None     # "lat,lon", consent-gated
    received_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class ConversationTurn:
    """A single user message and the reply that was given to it.

    Append-only. Ordering by created_at is the model context order.
    """
    user_id: str
    message: str
    reply: str
    escalated: bool = False
    severity_tag: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    turn_id: str = field(default_factory=lambda: _new_id("turn"))


@dataclass(frozen=True)
class Appointment:
    """A booked (therapist, time) slot.

    At most one appointment may exist per (therapist_id, appointment_time).
    """
    student_id: str
    therapist_id: str
    appointment_time: datetime
    duration: int = 30                  # minutes
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    appointment_id: str = field(default_factory=lambda: _new_id("appt"))
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")

    @property
    def slot(self) -> tuple:
        return (self.therapist_id, self.appointment_time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.appointment_id,
            "studentId": self.student_id,
            "therapistId": self.therapist_id,
            "appointmentTime": self.appointment_time.isoformat(),
            "duration": self.duration,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class TherapistDirectoryEntry:
    """Read-only projection of a user with the therapist role."""
    id: str
    name: str
    email: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class UserProfile:
    """Contact details of a user as held by the user store.

    Any field may be missing; consumers substitute placeholders.
    """
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    role: str = "student"

    def to_directory_entry(self) -> TherapistDirectoryEntry:
        return TherapistDirectoryEntry(
            id=self.id,
            name=self.name or "",
            email=self.email or "",
        )
