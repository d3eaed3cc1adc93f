"""Chat Router HTTP handler - the single chat endpoint.

Every inbound chat message enters through POST /api/chat. The handler only
authenticates, hands the body to the IntentRouter and serializes the tagged
result; all routing decisions live in router.py.

Identity is established upstream: the authenticating gateway forwards the
caller's user id in the X-User-Id header. Requests without it are rejected
before anything else runs.
"""
import logging
import os
from typing import Optional

from flask import Flask, request, jsonify

from psycare.services.llm_service import (
    ClassifierConfig,
    LLMConfig,
    SuicidalityClassifier,
    create_reply_provider,
)
from psycare.services.notification_service import MailerConfig, SosMailer
from psycare.services.translation_service import AwsTranslator, TranslatorConfig
from psycare.shared.database import (
    AppointmentRepository,
    ConversationRepository,
    InMemoryAppointmentStore,
    InMemoryConversationStore,
    InMemoryUserStore,
    UserRepository,
    ensure_schema,
    get_connection_manager,
)
from psycare.shared.utils import configure_pii_salt
from .booking_resolver import BookingResolver
from .chat_pipeline import ChatPipeline
from .config import RouterConfig
from .directory import TherapistDirectory
from .escalation import CrisisEscalationOrchestrator
from .intent_classifier import IntentClassifier
from .localization import LocalizationAdapter
from .router import INTERNAL_ERROR, IntentRouter

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"

# Initialize Flask app
app = Flask(__name__)

# Configure PII salt from environment
pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

_router: Optional[IntentRouter] = None


def build_router(config: Optional[RouterConfig] = None) -> IntentRouter:
    """Wire an IntentRouter from environment configuration.

    Stores are PostgreSQL-backed when DB_HOST is set and in-memory
    otherwise. Tier 2 is only constructed when CONFIRM_WITH_MODEL is on.
    """
    config = config or RouterConfig.from_env()

    if os.getenv("DB_HOST"):
        connection_manager = get_connection_manager()
        connection_manager.initialize()
        ensure_schema(connection_manager)
        user_store = UserRepository(connection_manager)
        appointment_store = AppointmentRepository(connection_manager)
        conversation_store = ConversationRepository(connection_manager)
    else:
        logger.warning("CHAT_ROUTER_IN_MEMORY_STORES", extra={"reason": "DB_HOST not set"})
        user_store = InMemoryUserStore()
        appointment_store = InMemoryAppointmentStore()
        conversation_store = InMemoryConversationStore()

    translator_config = TranslatorConfig.from_env()
    localization = LocalizationAdapter(
        translator=AwsTranslator(translator_config),
        default_lang=config.default_lang,
        timeout_seconds=translator_config.timeout_seconds,
    )

    model_classifier = None
    if config.confirm_with_model:
        model_classifier = SuicidalityClassifier(ClassifierConfig.from_env())

    mailer_config = MailerConfig.from_env()
    directory = TherapistDirectory(user_store, role=config.therapist_role)

    return IntentRouter(
        classifier=IntentClassifier(
            model_classifier=model_classifier,
            confirm_with_model=config.confirm_with_model,
        ),
        booking_resolver=BookingResolver(
            appointment_store,
            default_duration_minutes=config.default_duration_minutes,
        ),
        escalation=CrisisEscalationOrchestrator(
            conversation_store=conversation_store,
            user_store=user_store,
            notifier=SosMailer(mailer_config),
            directory=directory,
            localization=localization,
            parallel_fanout=config.parallel_crisis_fanout,
            sos_timeout_seconds=mailer_config.timeout_seconds + 5,
        ),
        chat_pipeline=ChatPipeline(
            conversation_store=conversation_store,
            reply_provider=create_reply_provider(LLMConfig.from_env()),
            localization=localization,
        ),
        directory=directory,
        localization=localization,
        config=config,
    )


def get_router() -> IntentRouter:
    """Get or build the process-wide router."""
    global _router

    if _router is None:
        _router = build_router()

    return _router


def configure_router(router: Optional[IntentRouter]) -> None:
    """Replace the process-wide router (None forces a rebuild)."""
    global _router
    _router = router


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for ECS/ALB.

    Returns:
        200 with service status
    """
    return jsonify({
        "status": "healthy",
        "service": "chat-router",
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies the router can be built.

    Returns:
        200 if ready, 503 if not
    """
    try:
        router = get_router()
    except Exception as e:
        logger.error(
            "CHAT_ROUTER_NOT_READY",
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return jsonify({"status": "not_ready", "reason": "router_not_initialized"}), 503

    return jsonify({
        "status": "ready",
        "pattern_version": router.config.pattern_version,
    }), 200


@app.route("/api/chat", methods=["POST"])
async def chat():
    """Route one chat message.

    Request Body:
        {
            "message": "I want to book with Dr. Rao on Sep 17 3pm",
            "lang": "en" (optional),
            "location": "12.97,77.59" (optional),
            "duration": 30 (optional, minutes)
        }

    Response (one of):
        {"bookingRequiredTime": true, "message": ...}
        {"bookingSuccess": true|false, "message": ..., "appointment": {...}}
        {"escalate": true, "emergencyMessage": ..., "hotlines": [...],
         "therapists": [...], "sosMailSent": true|false}
        {"reply": ...}
        {"error": ...} with 400 / 401 / 500
    """
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not user_id:
        logger.warning("CHAT_REQUEST_UNAUTHORIZED", extra={"reason": "missing_user_id"})
        return jsonify({"error": "Unauthorized"}), 401

    try:
        router = get_router()
    except Exception as e:
        logger.error(
            "CHAT_ROUTER_INIT_FAILED",
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return jsonify({"error": INTERNAL_ERROR}), 500

    result = await router.route(user_id, request.get_json(silent=True))
    body, status = result.to_response()
    return jsonify(body), status


if __name__ == "__main__":
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    port = int(os.getenv("PORT", "8003"))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("DEBUG", "false").lower() == "true")
