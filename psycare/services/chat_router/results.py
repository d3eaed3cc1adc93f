"""Tagged results of one routed chat request.

The router returns exactly one of these per request and branches on
`kind`; the JSON body the client sees is produced only here, by
to_response().
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from psycare.shared.models import Appointment, TherapistDirectoryEntry
from .booking_resolver import BookingOutcome


class ResultKind(Enum):
    BOOKING = "booking"
    CRISIS = "crisis"
    CHAT = "chat"
    ERROR = "error"


@dataclass(frozen=True)
class BookingReply:
    """needsTime | conflict | booked | failed."""
    outcome: BookingOutcome
    message: str
    appointment: Optional[Appointment] = None

    kind = ResultKind.BOOKING

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        if self.outcome == BookingOutcome.NEEDS_TIME:
            return {"bookingRequiredTime": True, "message": self.message}, 200
        if self.outcome == BookingOutcome.BOOKED:
            return {
                "bookingSuccess": True,
                "message": self.message,
                "appointment": self.appointment.to_dict(),
            }, 200
        # conflict and persistence failure look the same to the client
        return {"bookingSuccess": False, "message": self.message}, 200


@dataclass(frozen=True)
class CrisisReply:
    """Emergency response assembled by the escalation orchestrator."""
    emergency_message: str
    hotlines: List[Dict[str, str]]
    therapists: List[TherapistDirectoryEntry]
    sos_mail_sent: bool
    degraded: bool = False
    turn_recorded: bool = True

    kind = ResultKind.CRISIS

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        return {
            "escalate": True,
            "emergencyMessage": self.emergency_message,
            "hotlines": self.hotlines,
            "therapists": [t.to_dict() for t in self.therapists],
            "sosMailSent": self.sos_mail_sent,
        }, 200


@dataclass(frozen=True)
class ChatReply:
    """Generated reply, or the canned busy text when overloaded."""
    reply: str
    overloaded: bool = False

    kind = ResultKind.CHAT

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        return {"reply": self.reply}, 200


@dataclass(frozen=True)
class ErrorReply:
    """Request-level failure."""
    error: str
    status_code: int = 500

    kind = ResultKind.ERROR

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        return {"error": self.error}, self.status_code
