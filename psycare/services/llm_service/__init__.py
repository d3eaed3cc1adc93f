"""LLM Service for PsyCare.

Generative-reply providers for the chat pipeline and the hosted
suicidality classifier used to confirm crisis matches.
"""

from .base_llm import (
    LLMConfig,
    LLMProvider,
    ReplyProvider,
    OpenAIReplyProvider,
    HuggingFaceReplyProvider,
    create_reply_provider,
)
from .suicidality_classifier import (
    ClassifierConfig,
    ClassifierLabel,
    SuicidalityClassifier,
)

__all__ = [
    "LLMConfig",
    "LLMProvider",
    "ReplyProvider",
    "OpenAIReplyProvider",
    "HuggingFaceReplyProvider",
    "create_reply_provider",
    "ClassifierConfig",
    "ClassifierLabel",
    "SuicidalityClassifier",
]
