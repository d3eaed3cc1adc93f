"""Tier 2 crisis confirmation via a hosted suicidality classifier.

Calls a HuggingFace inference endpoint serving a binary text classifier
(default: sentinet/suicidality, where LABEL_1 means suicidal). This client
never raises: overload, timeouts, HTTP errors and unexpected payloads all
come back as ClassifierLabel.UNAVAILABLE so the caller can fall back to
the Tier 1 result.
"""
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import aiohttp

from psycare.shared.utils import hash_text_for_audit

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://router.huggingface.co/hf-inference/models/sentinet/suicidality"


class ClassifierLabel(Enum):
    """Tier 2 outcomes."""
    SUICIDAL = "suicidal"
    NOT_SUICIDAL = "not_suicidal"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ClassifierConfig:
    """Configuration for the hosted classifier."""
    endpoint: str = DEFAULT_ENDPOINT
    api_key: Optional[str] = None
    positive_label: str = "LABEL_1"
    negative_label: str = "LABEL_0"
    timeout_seconds: int = 10

    @classmethod
    def from_env(cls) -> "ClassifierConfig":
        """Create config from CLASSIFIER_* / HF_API_KEY environment variables."""
        return cls(
            endpoint=os.getenv("CLASSIFIER_ENDPOINT", DEFAULT_ENDPOINT),
            api_key=os.getenv("HF_API_KEY"),
            timeout_seconds=int(os.getenv("CLASSIFIER_TIMEOUT_SECONDS", "10")),
        )


class SuicidalityClassifier:
    """Binary suicidality classifier client."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self.headers = {}
        if self.config.api_key:
            self.headers["Authorization"] = f"Bearer {self.config.api_key}"

        logger.info(
            "SUICIDALITY_CLASSIFIER_INITIALIZED",
            extra={
                "endpoint": self.config.endpoint,
                "timeout_seconds": self.config.timeout_seconds,
            }
        )

    async def classify(self, text: str) -> ClassifierLabel:
        """Classify text as suicidal / not_suicidal, or report unavailable."""
        text_hash = hash_text_for_audit(text)
        started = time.perf_counter()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.config.endpoint,
                    headers=self.headers,
                    json={"inputs": text},
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                ) as response:
                    if response.status == 503:
                        logger.warning(
                            "CLASSIFIER_OVERLOADED",
                            extra={"text_hash": text_hash, "status": response.status}
                        )
                        return ClassifierLabel.UNAVAILABLE
                    response.raise_for_status()
                    payload = await response.json()
        except Exception as e:
            logger.error(
                "CLASSIFIER_REQUEST_FAILED",
                extra={
                    "text_hash": text_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return ClassifierLabel.UNAVAILABLE

        label = self.parse_label(payload)
        logger.info(
            "CLASSIFIER_COMPLETED",
            extra={
                "text_hash": text_hash,
                "label": label.value,
                "latency_ms": (time.perf_counter() - started) * 1000,
            }
        )
        return label

    def parse_label(self, payload: Any) -> ClassifierLabel:
        """Pick the top-scoring label from an inference payload.

        The endpoint answers either [{label, score}, ...] or, batched,
        [[{label, score}, ...]].
        """
        candidates = payload
        if isinstance(candidates, list) and candidates and isinstance(candidates[0], list):
            candidates = candidates[0]

        if not isinstance(candidates, list) or not candidates:
            logger.error("CLASSIFIER_PAYLOAD_INVALID", extra={"payload_type": type(payload).__name__})
            return ClassifierLabel.UNAVAILABLE

        try:
            top = max(candidates, key=lambda c: float(c.get("score", 0.0)))
            label = top["label"]
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.error("CLASSIFIER_PAYLOAD_INVALID", extra={"payload_type": "list"})
            return ClassifierLabel.UNAVAILABLE

        if label == self.config.positive_label:
            return ClassifierLabel.SUICIDAL
        if label == self.config.negative_label:
            return ClassifierLabel.NOT_SUICIDAL

        logger.error("CLASSIFIER_LABEL_UNKNOWN", extra={"label": label})
        return ClassifierLabel.UNAVAILABLE
