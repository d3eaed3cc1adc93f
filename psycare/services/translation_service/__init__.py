"""Translation Service: AWS Translate client used to localize replies."""

from .translator import AwsTranslator, Translator, TranslatorConfig

__all__ = ["AwsTranslator", "Translator", "TranslatorConfig"]
