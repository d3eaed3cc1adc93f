"""Intent classification: booking gate and two-tier crisis detection.

Tier 1 is a deterministic phrase match over normalized text. Tier 2 is an
optional model confirmation that only ever runs after Tier 1 fired; it can
confirm a crisis, overrule it, or be unavailable, in which case the Tier 1
result stands and the verdict is marked degraded.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from psycare.services.llm_service.suicidality_classifier import (
    ClassifierLabel,
    SuicidalityClassifier,
)
from psycare.shared.utils import hash_text_for_audit
from .config import BOOKING_KEYWORDS, CRISIS_PATTERNS, PATTERN_VERSION
from .text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)


class CrisisLevel(Enum):
    """Outcome of crisis classification."""
    CERTAIN = "certain"     # Tier 1 fired and was confirmed (or Tier 2 is off)
    DEGRADED = "degraded"   # Tier 1 fired, Tier 2 unavailable
    NONE = "none"


@dataclass(frozen=True)
class CrisisVerdict:
    """Crisis classification with the evidence behind it."""
    level: CrisisLevel
    matched_patterns: List[str] = field(default_factory=list)
    tier2_label: Optional[ClassifierLabel] = None
    pattern_version: str = PATTERN_VERSION

    @property
    def is_crisis(self) -> bool:
        return self.level != CrisisLevel.NONE

    @property
    def degraded(self) -> bool:
        return self.level == CrisisLevel.DEGRADED


class IntentClassifier:
    """Categorizes messages as booking, crisis or ordinary chat."""

    def __init__(
        self,
        model_classifier: Optional[SuicidalityClassifier] = None,
        confirm_with_model: bool = False,
        crisis_patterns: Sequence[str] = CRISIS_PATTERNS,
        normalizer: Optional[TextNormalizer] = None,
    ):
        """Initialize classifier.

        Args:
            model_classifier: Tier 2 classifier, required if confirm_with_model
            confirm_with_model: Feature gate for Tier 2
            crisis_patterns: Tier 1 regexes over normalized text
            normalizer: Text normalizer for Tier 1
        """
        if confirm_with_model and model_classifier is None:
            raise ValueError("confirm_with_model requires a model_classifier")

        self.model_classifier = model_classifier
        self.confirm_with_model = confirm_with_model
        self._normalizer = normalizer or TextNormalizer()
        self._crisis_patterns = [re.compile(p) for p in crisis_patterns]
        self._booking_pattern = re.compile(
            "|".join(sorted(BOOKING_KEYWORDS)), re.IGNORECASE
        )

        logger.info(
            "INTENT_CLASSIFIER_INITIALIZED",
            extra={
                "crisis_pattern_count": len(self._crisis_patterns),
                "tier2_enabled": confirm_with_model,
            }
        )

    def classify_booking(self, text: str) -> bool:
        """Keyword pre-filter for booking requests.

        Matches the book/appointment/schedule/slot/reserve family anywhere
        in the text ("booking", "rescheduled" included).
        """
        return bool(text) and self._booking_pattern.search(text) is not None

    def match_crisis_phrases(self, text: str) -> List[str]:
        """Tier 1: return the crisis patterns matching the normalized text."""
        normalized = self._normalizer.normalize(text)
        if not normalized:
            return []
        return [p.pattern for p in self._crisis_patterns if p.search(normalized)]

    async def classify_crisis(self, text: str) -> CrisisVerdict:
        """Two-tier crisis classification.

        Tier 2 is consulted only when Tier 1 matched and the gate is on.
        A not_suicidal label overrules Tier 1 entirely.
        """
        matches = self.match_crisis_phrases(text)
        if not matches:
            return CrisisVerdict(level=CrisisLevel.NONE)

        text_hash = hash_text_for_audit(text)
        logger.warning(
            "CRISIS_TIER1_MATCHED",
            extra={"text_hash": text_hash, "match_count": len(matches)}
        )

        if not self.confirm_with_model:
            return CrisisVerdict(level=CrisisLevel.CERTAIN, matched_patterns=matches)

        label = await self.model_classifier.classify(text)

        if label == ClassifierLabel.SUICIDAL:
            level = CrisisLevel.CERTAIN
        elif label == ClassifierLabel.NOT_SUICIDAL:
            level = CrisisLevel.NONE
            logger.warning(
                "CRISIS_TIER2_OVERRULED",
                extra={"text_hash": text_hash, "match_count": len(matches)}
            )
        else:
            level = CrisisLevel.DEGRADED
            logger.error(
                "CRISIS_TIER2_UNAVAILABLE",
                extra={"text_hash": text_hash, "action": "USING_TIER1_RESULT"}
            )

        return CrisisVerdict(level=level, matched_patterns=matches, tier2_label=label)
