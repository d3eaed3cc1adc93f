"""Translation provider backed by AWS Translate.

Raises on failure; best-effort semantics (fall back to the original text)
belong to the chat router's Localization Adapter, not to this client.
"""
import logging
from abc import ABC, abstractmethod
import os
import threading
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

from psycare.shared.errors import ProviderUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslatorConfig:
    """Configuration for the translation client."""
    region: str = "us-east-1"
    source_lang: str = "auto"
    enabled: bool = True
    timeout_seconds: int = 5

    @classmethod
    def from_env(cls) -> "TranslatorConfig":
        """Create config from environment variables.

        Environment variables:
            AWS_REGION: Region of the Translate endpoint
            TRANSLATION_ENABLED: "false" disables translation
            TRANSLATION_TIMEOUT_SECONDS: Per-call timeout (default 5)
        """
        return cls(
            region=os.getenv("AWS_REGION", "us-east-1"),
            enabled=os.getenv("TRANSLATION_ENABLED", "true").lower() == "true",
            timeout_seconds=int(os.getenv("TRANSLATION_TIMEOUT_SECONDS", "5")),
        )


class Translator(ABC):
    """Translation capability consumed by the Localization Adapter."""

    @abstractmethod
    def translate(self, text: str, lang: str) -> str:
        """Translate text into lang; raise on failure."""
        pass


class AwsTranslator(Translator):
    """Translates text with AWS Translate."""

    def __init__(self, config: Optional[TranslatorConfig] = None):
        self.config = config or TranslatorConfig()
        # The default boto3 session is not safe to share across worker threads
        self._session = boto3.session.Session(region_name=self.config.region)
        self._client_lock = threading.Lock()
        self._translate_client = None

        logger.info(
            "TRANSLATOR_INITIALIZED",
            extra={"region": self.config.region, "enabled": self.config.enabled}
        )

    @property
    def translate_client(self):
        """Lazy initialization of the Translate client."""
        if self._translate_client is None and self.config.enabled:
            with self._client_lock:
                if self._translate_client is None:
                    self._translate_client = self._session.client(
                        "translate",
                        config=Config(
                            connect_timeout=self.config.timeout_seconds,
                            read_timeout=self.config.timeout_seconds,
                            retries={"max_attempts": 1},
                        ),
                    )
        return self._translate_client

    def translate(self, text: str, lang: str) -> str:
        """Translate text into lang.

        Raises:
            ProviderUnavailable: Translation disabled or the call failed
        """
        if not self.config.enabled:
            raise ProviderUnavailable("aws_translate", "Translation disabled")

        try:
            response = self.translate_client.translate_text(
                Text=text,
                SourceLanguageCode=self.config.source_lang,
                TargetLanguageCode=lang,
            )
        except Exception as e:
            logger.error(
                "TRANSLATION_REQUEST_FAILED",
                extra={
                    "target_lang": lang,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise ProviderUnavailable("aws_translate", str(e)) from e

        return response["TranslatedText"]
