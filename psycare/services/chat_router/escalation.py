"""Crisis Escalation Orchestrator - the "kill switch" response path.

Once a message is classified as a crisis, the chat model is bypassed and
this orchestrator runs four steps, each fail-soft:

1. Record an escalated ConversationTurn carrying the static emergency
   reply. This happens before any network call so a durable record
   exists even if everything after it fails.
2. Resolve the requester's contact profile; missing fields become
   placeholders.
3. Dispatch the SOS notification (profile, optional location, message).
   Only a boolean status comes back; failures are logged, never raised.
4. Assemble the localized emergency message, the hotline directory and a
   freshly queried therapist directory.

Steps 3 and 4 have no ordering dependency and run concurrently unless
parallel fan-out is disabled. Escalations are not deduplicated: every
crisis message re-runs the whole sequence.
"""
import asyncio
import logging
from typing import List, Optional

from psycare.services.notification_service import NotificationSender
from psycare.shared.database import ConversationStore, UserStore
from psycare.shared.models import ConversationTurn, TherapistDirectoryEntry, UserProfile
from psycare.shared.utils import hash_pii
from .config import (
    DEGRADED_DETECTION_NOTICE,
    EMERGENCY_REPLY,
    SEVERITY_SUICIDAL,
    UNKNOWN_PROFILE_VALUE,
    hotline_directory,
)
from .directory import TherapistDirectory
from .intent_classifier import CrisisVerdict
from .localization import LocalizationAdapter
from .results import CrisisReply

logger = logging.getLogger(__name__)


class CrisisEscalationOrchestrator:
    """Runs the crisis side effects and builds the emergency response."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        user_store: UserStore,
        notifier: NotificationSender,
        directory: TherapistDirectory,
        localization: LocalizationAdapter,
        parallel_fanout: bool = True,
        sos_timeout_seconds: float = 15.0,
    ):
        """Initialize orchestrator with its collaborators.

        Args:
            conversation_store: Where the escalated turn is recorded
            user_store: Source of the requester's contact profile
            notifier: SOS notification sender
            directory: Therapist directory, queried per escalation
            localization: Translator for the emergency message
            parallel_fanout: Run SOS, directory and translation concurrently
            sos_timeout_seconds: Upper bound for the SOS dispatch
        """
        self.conversation_store = conversation_store
        self.user_store = user_store
        self.notifier = notifier
        self.directory = directory
        self.localization = localization
        self.parallel_fanout = parallel_fanout
        self.sos_timeout_seconds = sos_timeout_seconds

        logger.info(
            "ESCALATION_ORCHESTRATOR_INITIALIZED",
            extra={"parallel_fanout": parallel_fanout}
        )

    async def escalate(
        self,
        user_id: str,
        message: str,
        lang: Optional[str],
        verdict: CrisisVerdict,
        location: Optional[str] = None,
    ) -> CrisisReply:
        """Run the escalation sequence for one crisis message.

        Args:
            user_id: Requester identifier
            message: The message classified as a crisis
            lang: Requested response language
            verdict: Classification result; degraded verdicts get a notice
            location: Optional "lat,lon" shared with consent

        Returns:
            CrisisReply, always; no step failure propagates
        """
        user_id_hash = hash_pii(user_id)

        logger.critical(
            "CRISIS_ESCALATION_STARTED",
            extra={
                "user_id_hash": user_id_hash,
                "degraded": verdict.degraded,
                "match_count": len(verdict.matched_patterns),
                "location_shared": bool(location),
                "action": "IMMEDIATE_ESCALATION",
            }
        )

        turn_recorded = self._record_turn(user_id, message, user_id_hash)
        profile = self._resolve_profile(user_id, user_id_hash)

        emergency_text = EMERGENCY_REPLY
        if verdict.degraded:
            emergency_text = f"{EMERGENCY_REPLY}\n\n{DEGRADED_DETECTION_NOTICE}"

        if self.parallel_fanout:
            sos_sent, therapists, emergency_message = await asyncio.gather(
                self._dispatch_sos(profile, location, message, user_id_hash),
                self._load_therapists(user_id_hash),
                self.localization.translate(emergency_text, lang),
            )
        else:
            sos_sent = await self._dispatch_sos(profile, location, message, user_id_hash)
            therapists = await self._load_therapists(user_id_hash)
            emergency_message = await self.localization.translate(emergency_text, lang)

        logger.critical(
            "CRISIS_ESCALATION_COMPLETED",
            extra={
                "user_id_hash": user_id_hash,
                "turn_recorded": turn_recorded,
                "sos_mail_sent": sos_sent,
                "therapist_count": len(therapists),
                "degraded": verdict.degraded,
            }
        )

        return CrisisReply(
            emergency_message=emergency_message,
            hotlines=hotline_directory(),
            therapists=therapists,
            sos_mail_sent=sos_sent,
            degraded=verdict.degraded,
            turn_recorded=turn_recorded,
        )

    def _record_turn(self, user_id: str, message: str, user_id_hash: str) -> bool:
        turn = ConversationTurn(
            user_id=user_id,
            message=message,
            reply=EMERGENCY_REPLY,
            escalated=True,
            severity_tag=SEVERITY_SUICIDAL,
        )
        try:
            self.conversation_store.append(turn)
        except Exception as e:
            # the response still goes out; this crisis is unrecorded
            logger.critical(
                "CRISIS_TURN_PERSIST_FAILED",
                extra={
                    "user_id_hash": user_id_hash,
                    "turn_id": turn.turn_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return False

        logger.info(
            "CRISIS_TURN_RECORDED",
            extra={"user_id_hash": user_id_hash, "turn_id": turn.turn_id}
        )
        return True

    def _resolve_profile(self, user_id: str, user_id_hash: str) -> UserProfile:
        stored: Optional[UserProfile] = None
        try:
            stored = self.user_store.get_by_id(user_id)
        except Exception as e:
            logger.error(
                "CRISIS_PROFILE_LOOKUP_FAILED",
                extra={"user_id_hash": user_id_hash, "error": str(e)}
            )

        if stored is None:
            logger.warning("CRISIS_PROFILE_MISSING", extra={"user_id_hash": user_id_hash})

        return UserProfile(
            id=user_id,
            name=(stored and stored.name) or UNKNOWN_PROFILE_VALUE,
            email=(stored and stored.email) or UNKNOWN_PROFILE_VALUE,
            mobile=(stored and stored.mobile) or UNKNOWN_PROFILE_VALUE,
            role=stored.role if stored else "student",
        )

    async def _dispatch_sos(
        self,
        profile: UserProfile,
        location: Optional[str],
        message: str,
        user_id_hash: str,
    ) -> bool:
        try:
            sent = await asyncio.wait_for(
                asyncio.to_thread(self.notifier.send_crisis_alert, profile, location, message),
                timeout=self.sos_timeout_seconds,
            )
        except Exception as e:
            logger.critical(
                "SOS_DISPATCH_FAILED",
                extra={
                    "user_id_hash": user_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return False
        return bool(sent)

    async def _load_therapists(self, user_id_hash: str) -> List[TherapistDirectoryEntry]:
        try:
            return await asyncio.to_thread(self.directory.list_therapists)
        except Exception as e:
            logger.error(
                "CRISIS_DIRECTORY_LOOKUP_FAILED",
                extra={"user_id_hash": user_id_hash, "error": str(e)}
            )
            return []
