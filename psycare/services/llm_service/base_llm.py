"""Generative-reply providers for the chat pipeline.

A ReplyProvider turns (history, system prompt, new message) into reply
text. Implementations translate provider failures into the shared
taxonomy: HTTP 503 becomes ProviderOverloaded, anything else
ProviderUnavailable.
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import aiohttp
import openai

from psycare.shared.errors import ProviderOverloaded, ProviderUnavailable
from psycare.shared.models import ConversationTurn

logger = logging.getLogger(__name__)

OVERLOADED_STATUS = 503


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for reply generation."""
    provider: LLMProvider
    model_name: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create config from LLM_* environment variables."""
        return cls(
            provider=LLMProvider(os.getenv("LLM_PROVIDER", "openai")),
            model_name=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            endpoint=os.getenv("LLM_ENDPOINT") or None,
            api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "512")),
            timeout_seconds=int(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
        )


class ReplyProvider(ABC):
    """Abstract generative-reply provider."""

    def __init__(self, config: LLMConfig):
        self.config = config
        logger.info(
            "REPLY_PROVIDER_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name,
            }
        )

    @abstractmethod
    async def complete(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        message: str,
    ) -> str:
        """Generate a reply to message given the prior turns.

        Raises:
            ProviderOverloaded: The provider reported it is overloaded
            ProviderUnavailable: Any other provider failure
        """
        pass

    def _log_success(self, started: float, **extra) -> None:
        logger.info(
            "REPLY_GENERATED",
            extra={
                "provider": self.config.provider.value,
                "model": self.config.model_name,
                "latency_ms": (time.perf_counter() - started) * 1000,
                **extra,
            }
        )


class OpenAIReplyProvider(ReplyProvider):
    """Chat completions via the OpenAI API."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None):
        super().__init__(config)

        if client is None and not config.api_key:
            raise ValueError("OpenAI API key required")

        self.client = client

    def _open_client(self) -> openai.AsyncOpenAI:
        # Bound to the running event loop; async views get a new loop per request
        return openai.AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.endpoint,
            timeout=self.config.timeout_seconds,
        )

    async def _create(self, client: openai.AsyncOpenAI, messages: List[Dict[str, str]]):
        return await client.chat.completions.create(
            model=self.config.model_name,
            messages=messages,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
        )

    @staticmethod
    def build_messages(
        history: Sequence[ConversationTurn],
        system_prompt: str,
        message: str,
    ) -> List[Dict[str, str]]:
        """System prompt, then each past turn as a user/assistant pair."""
        messages = [{"role": "system", "content": system_prompt}]
        for turn in history:
            messages.append({"role": "user", "content": turn.message})
            messages.append({"role": "assistant", "content": turn.reply})
        messages.append({"role": "user", "content": message})
        return messages

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        message: str,
    ) -> str:
        messages = self.build_messages(history, system_prompt, message)
        started = time.perf_counter()

        try:
            if self.client is not None:
                response = await self._create(self.client, messages)
            else:
                async with self._open_client() as client:
                    response = await self._create(client, messages)
        except openai.APIStatusError as e:
            if e.status_code == OVERLOADED_STATUS:
                logger.warning(
                    "REPLY_PROVIDER_OVERLOADED",
                    extra={"provider": "openai", "status": e.status_code}
                )
                raise ProviderOverloaded("openai") from e
            logger.error(
                "REPLY_PROVIDER_FAILED",
                extra={"provider": "openai", "status": e.status_code, "error": str(e)}
            )
            raise ProviderUnavailable("openai", str(e)) from e
        except openai.OpenAIError as e:
            logger.error(
                "REPLY_PROVIDER_FAILED",
                extra={"provider": "openai", "error": str(e), "error_type": type(e).__name__}
            )
            raise ProviderUnavailable("openai", str(e)) from e

        text = response.choices[0].message.content or ""
        self._log_success(
            started,
            tokens_used=response.usage.total_tokens if response.usage else None,
        )
        return text


class HuggingFaceReplyProvider(ReplyProvider):
    """Text generation via a HuggingFace inference endpoint."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.endpoint:
            raise ValueError("HuggingFace endpoint required")

        self.endpoint = config.endpoint
        self.headers = {}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    @staticmethod
    def build_prompt(
        history: Sequence[ConversationTurn],
        system_prompt: str,
        message: str,
    ) -> str:
        lines = [system_prompt, ""]
        for turn in history:
            lines.append(f"User: {turn.message}")
            lines.append(f"Assistant: {turn.reply}")
        lines.append(f"User: {message}")
        lines.append("Assistant:")
        return "\n".join(lines)

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        message: str,
    ) -> str:
        payload = {
            "inputs": self.build_prompt(history, system_prompt, message),
            "parameters": {
                "max_new_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "top_p": self.config.top_p,
                "return_full_text": False,
            },
        }
        started = time.perf_counter()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                ) as response:
                    if response.status == OVERLOADED_STATUS:
                        logger.warning(
                            "REPLY_PROVIDER_OVERLOADED",
                            extra={"provider": "huggingface", "status": response.status}
                        )
                        raise ProviderOverloaded("huggingface")
                    response.raise_for_status()
                    result = await response.json()
        except ProviderOverloaded:
            raise
        except Exception as e:
            logger.error(
                "REPLY_PROVIDER_FAILED",
                extra={"provider": "huggingface", "error": str(e), "error_type": type(e).__name__}
            )
            raise ProviderUnavailable("huggingface", str(e)) from e

        if isinstance(result, list) and result:
            text = result[0].get("generated_text", "")
        elif isinstance(result, dict):
            text = result.get("generated_text", "")
        else:
            raise ProviderUnavailable("huggingface", "Unexpected response payload")

        self._log_success(started)
        return text.strip()


def create_reply_provider(config: LLMConfig) -> ReplyProvider:
    """Factory for the configured reply provider.

    Raises:
        ValueError: If provider not supported
    """
    if config.provider == LLMProvider.OPENAI:
        return OpenAIReplyProvider(config)
    elif config.provider == LLMProvider.HUGGINGFACE:
        return HuggingFaceReplyProvider(config)
    else:
        raise ValueError(f"Unsupported provider: {config.provider}")
