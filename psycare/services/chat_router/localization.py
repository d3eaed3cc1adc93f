"""Localization Adapter - best-effort translation of outbound text.

Never fails: a missing translator, a provider error or a timeout all
return the original text. The user may therefore receive English when
another language was requested; that is accepted and only logged.
"""
import asyncio
import logging
from typing import Optional

from psycare.services.translation_service import Translator

logger = logging.getLogger(__name__)


class LocalizationAdapter:
    """Wraps a Translator with no-op and fallback rules."""

    def __init__(
        self,
        translator: Optional[Translator] = None,
        default_lang: str = "en",
        timeout_seconds: float = 5.0,
    ):
        self.translator = translator
        self.default_lang = default_lang
        self.timeout_seconds = timeout_seconds

    def needs_translation(self, lang: Optional[str]) -> bool:
        return bool(lang) and lang != self.default_lang

    async def translate(self, text: str, lang: Optional[str]) -> str:
        """Translate text into lang, or return it unchanged."""
        if not text or not self.needs_translation(lang) or self.translator is None:
            return text

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.translator.translate, text, lang),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "TRANSLATION_FALLBACK",
                extra={
                    "target_lang": lang,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "RETURNING_ORIGINAL_TEXT",
                }
            )
            return text
