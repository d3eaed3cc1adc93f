"""Tests for the localization adapter.

Translation failures must never reach the caller: the original text is
returned instead.
"""
import time
import pytest
from unittest.mock import MagicMock

from psycare.services.chat_router.localization import LocalizationAdapter
from psycare.services.translation_service import Translator
from psycare.shared.errors import ProviderUnavailable


@pytest.fixture
def translator():
    translator = MagicMock(spec=Translator)
    translator.translate.side_effect = lambda text, lang: f"[{lang}] {text}"
    return translator


class TestLocalizationAdapter:
    """Tests for LocalizationAdapter.translate."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lang", [None, "", "en"])
    async def test_default_language_is_noop(self, translator, lang):
        adapter = LocalizationAdapter(translator)

        assert await adapter.translate("Hello", lang) == "Hello"
        translator.translate.assert_not_called()

    @pytest.mark.asyncio
    async def test_translates_other_language(self, translator):
        adapter = LocalizationAdapter(translator)

        assert await adapter.translate("Hello", "hi") == "[hi] Hello"
        translator.translate.assert_called_once_with("Hello", "hi")

    @pytest.mark.asyncio
    async def test_provider_failure_returns_original(self, translator):
        translator.translate.side_effect = ProviderUnavailable("aws_translate", "Throttled")
        adapter = LocalizationAdapter(translator)

        assert await adapter.translate("Hello", "hi") == "Hello"

    @pytest.mark.asyncio
    async def test_unexpected_failure_returns_original(self, translator):
        translator.translate.side_effect = KeyError("TranslatedText")
        adapter = LocalizationAdapter(translator)

        assert await adapter.translate("Hello", "hi") == "Hello"

    @pytest.mark.asyncio
    async def test_timeout_returns_original(self, translator):
        translator.translate.side_effect = lambda text, lang: time.sleep(0.5) or "late"
        adapter = LocalizationAdapter(translator, timeout_seconds=0.05)

        assert await adapter.translate("Hello", "hi") == "Hello"

    @pytest.mark.asyncio
    async def test_without_translator(self):
        adapter = LocalizationAdapter(None)

        assert await adapter.translate("Hello", "hi") == "Hello"

    def test_custom_default_language(self):
        adapter = LocalizationAdapter(None, default_lang="hi")

        assert adapter.needs_translation("hi") is False
        assert adapter.needs_translation("en") is True
