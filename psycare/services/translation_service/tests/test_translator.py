"""Tests for the AWS Translate client."""
import boto3
import pytest
from unittest.mock import patch, MagicMock

from psycare.services.translation_service import AwsTranslator, TranslatorConfig
from psycare.shared.errors import ProviderUnavailable


class TestTranslatorConfig:
    """Tests for TranslatorConfig."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "ap-south-1")
        monkeypatch.setenv("TRANSLATION_ENABLED", "false")

        config = TranslatorConfig.from_env()

        assert config.region == "ap-south-1"
        assert config.enabled is False
        assert config.source_lang == "auto"


class TestAwsTranslator:
    """Tests for AwsTranslator."""

    def test_translate_success(self):
        translator = AwsTranslator(TranslatorConfig())
        mock_client = MagicMock()
        mock_client.translate_text.return_value = {"TranslatedText": "नमस्ते"}
        translator._translate_client = mock_client

        result = translator.translate("Hello", "hi")

        assert result == "नमस्ते"
        call_kwargs = mock_client.translate_text.call_args.kwargs
        assert call_kwargs["TargetLanguageCode"] == "hi"
        assert call_kwargs["SourceLanguageCode"] == "auto"

    def test_translate_failure_raises_provider_unavailable(self):
        translator = AwsTranslator(TranslatorConfig())
        mock_client = MagicMock()
        mock_client.translate_text.side_effect = Exception("Throttled")
        translator._translate_client = mock_client

        with pytest.raises(ProviderUnavailable) as exc_info:
            translator.translate("Hello", "hi")
        assert exc_info.value.provider == "aws_translate"

    def test_disabled_raises_without_client(self):
        translator = AwsTranslator(TranslatorConfig(enabled=False))

        with pytest.raises(ProviderUnavailable):
            translator.translate("Hello", "hi")
        assert translator.translate_client is None

    @patch("boto3.session.Session")
    def test_client_created_lazily(self, mock_session_cls):
        translator = AwsTranslator(TranslatorConfig(region="eu-west-1"))
        session = mock_session_cls.return_value
        session.client.assert_not_called()

        translator.translate_client
        translator.translate_client

        mock_session_cls.assert_called_once_with(region_name="eu-west-1")
        session.client.assert_called_once()
        assert session.client.call_args.args[0] == "translate"

    def test_own_session_per_translator(self):
        first = AwsTranslator(TranslatorConfig())
        second = AwsTranslator(TranslatorConfig())

        assert first._session is not second._session
        assert first._session is not boto3.DEFAULT_SESSION
