"""Tests for the default chat pipeline."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from psycare.services.chat_router.chat_pipeline import ChatPipeline
from psycare.services.chat_router.config import BUSY_REPLY, SYSTEM_PROMPT
from psycare.services.chat_router.localization import LocalizationAdapter
from psycare.services.llm_service import ReplyProvider
from psycare.services.translation_service import Translator
from psycare.shared.database import InMemoryConversationStore
from psycare.shared.errors import ProviderOverloaded, ProviderUnavailable
from psycare.shared.models import ConversationTurn
from psycare.shared.utils import configure_pii_salt


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def provider():
    provider = MagicMock(spec=ReplyProvider)
    provider.complete = AsyncMock(return_value="That sounds hard. Want to talk about it?")
    return provider


@pytest.fixture
def translator():
    translator = MagicMock(spec=Translator)
    translator.translate.side_effect = lambda text, lang: f"[{lang}] {text}"
    return translator


@pytest.fixture
def pipeline(store, provider, translator):
    return ChatPipeline(store, provider, LocalizationAdapter(translator))


class TestChatPipeline:
    """Tests for ChatPipeline.respond."""

    @pytest.mark.asyncio
    async def test_reply_persisted_and_returned(self, pipeline, store):
        result = await pipeline.respond("u1", "I feel low", "en")

        assert result.reply == "That sounds hard. Want to talk about it?"
        assert result.overloaded is False
        turns = store.list_ordered("u1")
        assert len(turns) == 1
        assert turns[0].message == "I feel low"
        assert turns[0].escalated is False

    @pytest.mark.asyncio
    async def test_history_passed_oldest_first(self, pipeline, store, provider):
        store.append(ConversationTurn(user_id="u1", message="first", reply="one"))
        store.append(ConversationTurn(user_id="u1", message="second", reply="two"))

        await pipeline.respond("u1", "third", "en")

        history, system_prompt, message = provider.complete.call_args.args
        assert [t.message for t in history] == ["first", "second"]
        assert system_prompt == SYSTEM_PROMPT
        assert message == "third"

    @pytest.mark.asyncio
    async def test_history_is_append_only(self, pipeline, store):
        for i in range(3):
            await pipeline.respond("u1", f"message {i}", "en")

        turns = store.list_ordered("u1")
        assert [t.message for t in turns] == ["message 0", "message 1", "message 2"]

    @pytest.mark.asyncio
    async def test_overload_returns_busy_reply_without_persisting(self, pipeline, store, provider):
        provider.complete.side_effect = ProviderOverloaded("openai")

        result = await pipeline.respond("u1", "hello", "hi")

        assert result.reply == BUSY_REPLY
        assert result.overloaded is True
        assert store.list_ordered("u1") == []

    @pytest.mark.asyncio
    async def test_other_provider_failure_propagates(self, pipeline, store, provider):
        provider.complete.side_effect = ProviderUnavailable("openai", "500")

        with pytest.raises(ProviderUnavailable):
            await pipeline.respond("u1", "hello", "en")
        assert store.list_ordered("u1") == []

    @pytest.mark.asyncio
    async def test_reply_localized_but_stored_untranslated(self, pipeline, store):
        result = await pipeline.respond("u1", "hello", "hi")

        assert result.reply == "[hi] That sounds hard. Want to talk about it?"
        assert store.list_ordered("u1")[0].reply == "That sounds hard. Want to talk about it?"

    @pytest.mark.asyncio
    async def test_translation_failure_returns_original(self, pipeline, translator):
        translator.translate.side_effect = Exception("Translate down")

        result = await pipeline.respond("u1", "hello", "hi")

        assert result.reply == "That sounds hard. Want to talk about it?"
