"""Chat Router: one endpoint, three outcomes.

Every message is checked for a booking request first, then for crisis
language, and otherwise answered by the reply provider. Crisis messages
never reach the reply provider.

Components:
- text_normalizer.py: Canonical form for Tier 1 phrase matching
- intent_classifier.py: Booking gate and two-tier crisis classification
- booking_resolver.py: Therapist/time extraction and atomic slot booking
- escalation.py: Crisis side effects and the emergency response
- chat_pipeline.py: History, reply generation and persistence
- localization.py: Best-effort reply translation
- router.py: IntentRouter, request validation and dispatch
- handler.py: Flask HTTP endpoints (/health, /ready, /api/chat)

Usage:
    # As HTTP service
    POST /api/chat {"message": "...", "lang": "hi"}  (X-User-Id header)

    # Direct import
    from psycare.services.chat_router.handler import build_router
    router = build_router()
    result = await router.route(user_id, {"message": "..."})
"""

from .booking_resolver import BookingOutcome, BookingResolver, BookingResult
from .chat_pipeline import ChatPipeline
from .config import RouterConfig
from .directory import TherapistDirectory
from .escalation import CrisisEscalationOrchestrator
from .intent_classifier import CrisisLevel, CrisisVerdict, IntentClassifier
from .localization import LocalizationAdapter
from .results import BookingReply, ChatReply, CrisisReply, ErrorReply, ResultKind
from .router import ChatRequest, IntentRouter, parse_request
from .text_normalizer import TextNormalizer, normalize_text

__all__ = [
    "BookingOutcome",
    "BookingResolver",
    "BookingResult",
    "ChatPipeline",
    "RouterConfig",
    "TherapistDirectory",
    "CrisisEscalationOrchestrator",
    "CrisisLevel",
    "CrisisVerdict",
    "IntentClassifier",
    "LocalizationAdapter",
    "BookingReply",
    "ChatReply",
    "CrisisReply",
    "ErrorReply",
    "ResultKind",
    "ChatRequest",
    "IntentRouter",
    "parse_request",
    "TextNormalizer",
    "normalize_text",
]
