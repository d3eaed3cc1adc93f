"""Intent router - one inbound message, one outcome.

Per-request state machine (no memory across requests beyond the stores):

    START -> booking gate + therapist named -> BOOKING -> END
    START -> crisis (Tier 1, optionally Tier 2) -> ESCALATE -> END
    START -> CHAT -> END

Booking is checked first, so a message that names a therapist and also
contains crisis language is handled as a booking.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from psycare.shared.errors import ValidationError
from psycare.shared.models import Message
from psycare.shared.utils import hash_pii, hash_text_for_audit
from .booking_resolver import BookingOutcome, BookingResolver, BookingResult
from .chat_pipeline import ChatPipeline
from .config import (
    BOOKING_CONFIRMED_TEMPLATE,
    BOOKING_CONFLICT_TEMPLATE,
    BOOKING_FAILED_TEMPLATE,
    BOOKING_NEEDS_TIME_TEMPLATE,
    RouterConfig,
)
from .directory import TherapistDirectory
from .escalation import CrisisEscalationOrchestrator
from .intent_classifier import IntentClassifier
from .localization import LocalizationAdapter
from .results import BookingReply, ChatReply, CrisisReply, ErrorReply, ResultKind

logger = logging.getLogger(__name__)

RouteResult = Union[BookingReply, CrisisReply, ChatReply, ErrorReply]

MESSAGE_REQUIRED = "Message is required"
INTERNAL_ERROR = "AI Chatbot error"

_BOOKING_TEMPLATES = {
    BookingOutcome.NEEDS_TIME: BOOKING_NEEDS_TIME_TEMPLATE,
    BookingOutcome.CONFLICT: BOOKING_CONFLICT_TEMPLATE,
    BookingOutcome.BOOKED: BOOKING_CONFIRMED_TEMPLATE,
    BookingOutcome.FAILED: BOOKING_FAILED_TEMPLATE,
}


@dataclass(frozen=True)
class ChatRequest:
    """Validated request body."""
    message: Message
    duration_minutes: Optional[int] = None


def parse_request(
    user_id: str,
    body: Optional[Mapping[str, Any]],
    default_lang: str = "en",
) -> ChatRequest:
    """Validate a request body.

    Raises:
        ValidationError: message missing/blank, or a malformed optional field
    """
    body = body or {}

    text = body.get("message")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(MESSAGE_REQUIRED)

    lang = body.get("lang") or default_lang
    if not isinstance(lang, str):
        raise ValidationError("lang must be a string")

    location = body.get("location") or None
    if location is not None and not isinstance(location, str):
        raise ValidationError("location must be a \"lat,lon\" string")

    duration = body.get("duration")
    if duration is not None:
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            raise ValidationError("duration must be a whole number of minutes")
        if duration <= 0:
            raise ValidationError("duration must be a whole number of minutes")

    return ChatRequest(
        message=Message(text=text, sender_id=user_id, lang=lang, location=location),
        duration_minutes=duration,
    )


class IntentRouter:
    """Dispatches a message to the booking, crisis or chat pipeline."""

    def __init__(
        self,
        classifier: IntentClassifier,
        booking_resolver: BookingResolver,
        escalation: CrisisEscalationOrchestrator,
        chat_pipeline: ChatPipeline,
        directory: TherapistDirectory,
        localization: LocalizationAdapter,
        config: Optional[RouterConfig] = None,
    ):
        self.classifier = classifier
        self.booking_resolver = booking_resolver
        self.escalation = escalation
        self.chat_pipeline = chat_pipeline
        self.directory = directory
        self.localization = localization
        self.config = config or RouterConfig()

        logger.info(
            "INTENT_ROUTER_INITIALIZED",
            extra={
                "tier2_enabled": self.config.confirm_with_model,
                "pattern_version": self.config.pattern_version,
            }
        )

    async def route(
        self,
        user_id: str,
        body: Optional[Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> RouteResult:
        """Handle one request body and return its tagged result.

        Never raises: validation problems become a 400 ErrorReply and any
        other failure a 500 ErrorReply.
        """
        user_id_hash = hash_pii(user_id)

        try:
            request = parse_request(user_id, body, self.config.default_lang)
        except ValidationError as e:
            logger.warning(
                "CHAT_REQUEST_INVALID",
                extra={"user_id_hash": user_id_hash, "reason": str(e)}
            )
            return ErrorReply(error=str(e), status_code=400)

        message = request.message
        logger.info(
            "CHAT_REQUEST_RECEIVED",
            extra={
                "user_id_hash": user_id_hash,
                "text_hash": hash_text_for_audit(message.text),
                "message_length": len(message.text),
                "lang": message.lang,
            }
        )

        try:
            result = await self._dispatch(request, now)
        except Exception as e:
            logger.error(
                "CHAT_REQUEST_FAILED",
                extra={
                    "user_id_hash": user_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return ErrorReply(error=INTERNAL_ERROR, status_code=500)

        logger.info(
            "CHAT_REQUEST_ROUTED",
            extra={"user_id_hash": user_id_hash, **describe(result)}
        )
        return result

    async def _dispatch(self, request: ChatRequest, now: Optional[datetime]) -> RouteResult:
        message = request.message

        if self.classifier.classify_booking(message.text):
            booking = self.booking_resolver.book(
                student_id=message.sender_id,
                message=message.text,
                known_therapists=self.directory.list_therapists(),
                duration_minutes=request.duration_minutes,
                now=now or message.received_at,
            )
            if booking.outcome != BookingOutcome.NOT_BOOKING:
                return await self._booking_reply(booking, message.lang)

        verdict = await self.classifier.classify_crisis(message.text)
        if verdict.is_crisis:
            return await self.escalation.escalate(
                user_id=message.sender_id,
                message=message.text,
                lang=message.lang,
                verdict=verdict,
                location=message.location,
            )

        return await self.chat_pipeline.respond(
            user_id=message.sender_id,
            message=message.text,
            lang=message.lang,
        )

    async def _booking_reply(self, booking: BookingResult, lang: str) -> BookingReply:
        template = _BOOKING_TEMPLATES[booking.outcome]
        text = template.format(
            name=booking.therapist.name,
            time=booking.time.isoformat() if booking.time else "",
        )
        return BookingReply(
            outcome=booking.outcome,
            message=await self.localization.translate(text, lang),
            appointment=booking.appointment,
        )


def describe(result: RouteResult) -> Dict[str, Any]:
    """Compact, PII-free summary of a result for logs and metrics."""
    summary: Dict[str, Any] = {"route": result.kind.value}
    if result.kind == ResultKind.BOOKING:
        summary["outcome"] = result.outcome.value
    elif result.kind == ResultKind.CRISIS:
        summary["sos_mail_sent"] = result.sos_mail_sent
        summary["degraded"] = result.degraded
    elif result.kind == ResultKind.CHAT:
        summary["overloaded"] = result.overloaded
    else:
        summary["status_code"] = result.status_code
    return summary
