"""Chat Pipeline - the default path for ordinary conversation.

Loads the user's turns oldest-first, asks the reply provider for the next
reply, appends the new turn and localizes the reply. Provider overload is
answered with a canned busy reply and nothing is stored.
"""
import logging

from psycare.services.llm_service import ReplyProvider
from psycare.shared.database import ConversationStore
from psycare.shared.errors import ProviderOverloaded
from psycare.shared.models import ConversationTurn
from psycare.shared.utils import hash_pii
from .config import BUSY_REPLY, SYSTEM_PROMPT
from .localization import LocalizationAdapter
from .results import ChatReply

logger = logging.getLogger(__name__)


class ChatPipeline:
    """Generates, records and localizes ordinary chat replies."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        reply_provider: ReplyProvider,
        localization: LocalizationAdapter,
        system_prompt: str = SYSTEM_PROMPT,
        busy_reply: str = BUSY_REPLY,
    ):
        self.conversation_store = conversation_store
        self.reply_provider = reply_provider
        self.localization = localization
        self.system_prompt = system_prompt
        self.busy_reply = busy_reply

    async def respond(self, user_id: str, message: str, lang: str) -> ChatReply:
        """Produce the reply for one chat message.

        Raises:
            ProviderUnavailable: Reply provider failed for a reason other
                than overload
            RepositoryError: History could not be read or the turn written
        """
        user_id_hash = hash_pii(user_id)
        history = self.conversation_store.list_ordered(user_id)

        try:
            reply = await self.reply_provider.complete(history, self.system_prompt, message)
        except ProviderOverloaded:
            logger.warning(
                "CHAT_PROVIDER_OVERLOADED",
                extra={"user_id_hash": user_id_hash, "action": "BUSY_REPLY_NOT_PERSISTED"}
            )
            return ChatReply(reply=self.busy_reply, overloaded=True)

        turn = self.conversation_store.append(
            ConversationTurn(user_id=user_id, message=message, reply=reply)
        )

        logger.info(
            "CHAT_TURN_RECORDED",
            extra={
                "user_id_hash": user_id_hash,
                "turn_id": turn.turn_id,
                "history_length": len(history),
            }
        )

        return ChatReply(reply=await self.localization.translate(reply, lang))
