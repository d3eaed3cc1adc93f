"""Booking Resolver - turns free text into a (therapist, time) booking.

Stateless two-step flow: a message naming a therapist but no time gets a
prompt for the time, and the follow-up message has to name the therapist
again. Nothing is remembered between the two.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from dateparser.search import search_dates

from psycare.shared.database import AppointmentStore
from psycare.shared.errors import DuplicateError, PersistenceFailure
from psycare.shared.models import Appointment, TherapistDirectoryEntry
from psycare.shared.utils import hash_pii

logger = logging.getLogger(__name__)


class BookingOutcome(Enum):
    """Results of a booking attempt."""
    NOT_BOOKING = "not_booking"   # No therapist named; fall through to crisis/chat
    NEEDS_TIME = "needs_time"
    CONFLICT = "conflict"
    BOOKED = "booked"
    FAILED = "failed"             # Persistence failure on insert


@dataclass(frozen=True)
class BookingTarget:
    """What the message asks for."""
    therapist: TherapistDirectoryEntry
    time: Optional[datetime] = None


@dataclass(frozen=True)
class BookingResult:
    outcome: BookingOutcome
    therapist: Optional[TherapistDirectoryEntry] = None
    time: Optional[datetime] = None
    appointment: Optional[Appointment] = None


def find_therapist(
    message: str,
    therapists: Sequence[TherapistDirectoryEntry],
) -> Optional[TherapistDirectoryEntry]:
    """First therapist whose name occurs in message (case-insensitive)."""
    lowered = message.lower()
    for therapist in therapists:
        if therapist.name and therapist.name.lower() in lowered:
            return therapist
    return None


# A search hit only counts when it carries one of these; bare numbers
# ("block 12", "2 sessions") are not times.
DATE_TOKEN = re.compile(
    r"\b(today|tonight|tomorrow|noon|midnight|week"
    r"|mon(day)?|tue(s|sday)?|wed(nesday)?|thu(r|rs|rsday)?|fri(day)?|sat(urday)?|sun(day)?"
    r"|jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|may|june?|july?|aug(ust)?"
    r"|sep(t|tember)?|oct(ober)?|nov(ember)?|dec(ember)?)\b"
    r"|\b\d{1,2}(:\d{2})?\s*(am|pm)\b"
    r"|\b\d{1,2}:\d{2}\b"
    r"|\b\d{1,4}[/-]\d{1,2}([/-]\d{1,4})?\b"
    r"|\b\d{1,2}(st|nd|rd|th)\b"
    r"|\bin\s+\d+\s+(minute|hour|day|week)s?\b",
    re.IGNORECASE,
)


def parse_time(message: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """First date/time expressed anywhere in message, or None.

    Relative phrases ("tomorrow at 5pm", "next Monday 3pm") are resolved
    against `now` and prefer the future. Seconds and microseconds are
    zeroed so that equal wording yields an equal slot.
    """
    settings = {
        "PREFER_DATES_FROM": "future",
        "RELATIVE_BASE": (now or datetime.utcnow()).replace(second=0, microsecond=0),
        "RETURN_AS_TIMEZONE_AWARE": False,
    }
    matches = search_dates(message, languages=["en"], settings=settings) or []

    for text, value in matches:
        if DATE_TOKEN.search(text):
            return value.replace(tzinfo=None, second=0, microsecond=0)
    return None


class BookingResolver:
    """Resolves booking targets and books free slots."""

    def __init__(
        self,
        appointment_store: AppointmentStore,
        default_duration_minutes: int = 30,
    ):
        self.appointment_store = appointment_store
        self.default_duration_minutes = default_duration_minutes

    def resolve(
        self,
        message: str,
        known_therapists: Sequence[TherapistDirectoryEntry],
        now: Optional[datetime] = None,
    ) -> Optional[BookingTarget]:
        """Find the therapist and time a message refers to.

        Returns None when no known therapist is named.
        """
        therapist = find_therapist(message, known_therapists)
        if therapist is None:
            return None
        return BookingTarget(therapist=therapist, time=parse_time(message, now))

    def book(
        self,
        student_id: str,
        message: str,
        known_therapists: Sequence[TherapistDirectoryEntry],
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> BookingResult:
        """Resolve and, when complete, book the slot.

        The slot check and the write are one atomic store operation; a
        pre-check with exists() is not used so two concurrent requests for
        the same slot cannot both succeed.
        """
        target = self.resolve(message, known_therapists, now=now)
        if target is None:
            return BookingResult(outcome=BookingOutcome.NOT_BOOKING)

        if target.time is None:
            logger.info(
                "BOOKING_NEEDS_TIME",
                extra={"student_id_hash": hash_pii(student_id), "therapist_id": target.therapist.id}
            )
            return BookingResult(outcome=BookingOutcome.NEEDS_TIME, therapist=target.therapist)

        appointment = Appointment(
            student_id=student_id,
            therapist_id=target.therapist.id,
            appointment_time=target.time,
            duration=duration_minutes or self.default_duration_minutes,
        )

        try:
            saved = self.appointment_store.insert(appointment)
        except DuplicateError:
            logger.info(
                "BOOKING_CONFLICT",
                extra={
                    "student_id_hash": hash_pii(student_id),
                    "therapist_id": target.therapist.id,
                    "appointment_time": target.time.isoformat(),
                }
            )
            return BookingResult(
                outcome=BookingOutcome.CONFLICT,
                therapist=target.therapist,
                time=target.time,
            )
        except PersistenceFailure as e:
            logger.error(
                "BOOKING_PERSISTENCE_FAILED",
                extra={
                    "student_id_hash": hash_pii(student_id),
                    "therapist_id": target.therapist.id,
                    "error": str(e),
                }
            )
            return BookingResult(
                outcome=BookingOutcome.FAILED,
                therapist=target.therapist,
                time=target.time,
            )

        logger.info(
            "BOOKING_CREATED",
            extra={
                "appointment_id": saved.appointment_id,
                "student_id_hash": hash_pii(student_id),
                "therapist_id": saved.therapist_id,
                "appointment_time": saved.appointment_time.isoformat(),
                "duration": saved.duration,
            }
        )
        return BookingResult(
            outcome=BookingOutcome.BOOKED,
            therapist=target.therapist,
            time=saved.appointment_time,
            appointment=saved,
        )
