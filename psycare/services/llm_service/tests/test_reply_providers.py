"""Tests for reply providers."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import openai

from psycare.services.llm_service import (
    HuggingFaceReplyProvider,
    LLMConfig,
    LLMProvider,
    OpenAIReplyProvider,
    create_reply_provider,
)
from psycare.shared.errors import ProviderOverloaded, ProviderUnavailable
from psycare.shared.models import ConversationTurn


@pytest.fixture
def config():
    return LLMConfig(provider=LLMProvider.OPENAI, model_name="gpt-4o-mini", api_key="sk-test")


def completion(text):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    response.usage.total_tokens = 42
    return response


def status_error(status_code):
    return openai.APIStatusError(
        "upstream error",
        response=MagicMock(status_code=status_code),
        body=None,
    )


class TestBuildMessages:
    """Tests for prompt assembly."""

    def test_history_in_order_between_system_and_message(self):
        history = [
            ConversationTurn(user_id="u1", message="first", reply="one"),
            ConversationTurn(user_id="u1", message="second", reply="two"),
        ]

        messages = OpenAIReplyProvider.build_messages(history, "be kind", "third")

        assert [m["role"] for m in messages] == [
            "system", "user", "assistant", "user", "assistant", "user",
        ]
        assert [m["content"] for m in messages] == [
            "be kind", "first", "one", "second", "two", "third",
        ]

    def test_huggingface_prompt_ends_with_assistant_cue(self):
        prompt = HuggingFaceReplyProvider.build_prompt([], "be kind", "hello")
        assert prompt.endswith("User: hello\nAssistant:")


class TestOpenAIReplyProvider:
    """Tests for OpenAIReplyProvider."""

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAIReplyProvider(LLMConfig(provider=LLMProvider.OPENAI, model_name="gpt-4o-mini"))

    @pytest.mark.asyncio
    async def test_complete_returns_text(self, config):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=completion("I'm here for you."))
        provider = OpenAIReplyProvider(config, client=client)

        reply = await provider.complete([], "be kind", "I feel low")

        assert reply == "I'm here for you."
        call_kwargs = client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["messages"][-1] == {"role": "user", "content": "I feel low"}

    @pytest.mark.asyncio
    async def test_503_maps_to_overloaded(self, config):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=status_error(503))
        provider = OpenAIReplyProvider(config, client=client)

        with pytest.raises(ProviderOverloaded):
            await provider.complete([], "be kind", "hello")

    @pytest.mark.asyncio
    async def test_other_status_maps_to_unavailable(self, config):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=status_error(500))
        provider = OpenAIReplyProvider(config, client=client)

        with pytest.raises(ProviderUnavailable) as exc_info:
            await provider.complete([], "be kind", "hello")
        assert not isinstance(exc_info.value, ProviderOverloaded)

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_unavailable(self, config):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=MagicMock())
        )
        provider = OpenAIReplyProvider(config, client=client)

        with pytest.raises(ProviderUnavailable):
            await provider.complete([], "be kind", "hello")

    @pytest.mark.asyncio
    async def test_fresh_client_per_call(self, config):
        opened = []

        def open_client(**kwargs):
            client = MagicMock()
            client.__aenter__.return_value = client
            client.chat.completions.create = AsyncMock(return_value=completion("hi"))
            opened.append(client)
            return client

        provider = OpenAIReplyProvider(config)
        with patch.object(openai, "AsyncOpenAI", side_effect=open_client) as client_cls:
            await provider.complete([], "be kind", "one")
            await provider.complete([], "be kind", "two")

        assert len(opened) == 2
        assert client_cls.call_args.kwargs["api_key"] == "sk-test"
        for client in opened:
            client.__aexit__.assert_awaited_once()


class TestCreateReplyProvider:
    """Tests for the provider factory."""

    def test_openai(self, config):
        assert isinstance(create_reply_provider(config), OpenAIReplyProvider)

    def test_huggingface_requires_endpoint(self):
        with pytest.raises(ValueError):
            create_reply_provider(LLMConfig(provider=LLMProvider.HUGGINGFACE, model_name="m"))

    def test_huggingface(self):
        provider = create_reply_provider(LLMConfig(
            provider=LLMProvider.HUGGINGFACE,
            model_name="m",
            endpoint="https://example.invalid/generate",
        ))
        assert isinstance(provider, HuggingFaceReplyProvider)
