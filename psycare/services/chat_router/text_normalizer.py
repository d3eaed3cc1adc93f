"""Text normalization for Tier 1 crisis matching.

Crisis phrases are matched against a canonical form of the message so that
case, curly quotes, punctuation and spacing do not hide a match:

    "I want to DIE!!!"          -> "i want to die"
    "I can’t go on..."          -> "i can't go on"
    "kill<ZWSP> myself"        -> "kill myself"

Apostrophes survive so that contractions ("can't", "i'm") stay matchable.
"""
import logging
import re
import unicodedata
from typing import FrozenSet, Optional

logger = logging.getLogger(__name__)


# Typographic quotes folded to a plain apostrophe
QUOTE_CHARS: FrozenSet[str] = frozenset({
    "\u2018",  # Left single quotation mark
    "\u2019",  # Right single quotation mark
    "\u201c",  # Left double quotation mark
    "\u201d",  # Right double quotation mark
    "\u02bc",  # Modifier letter apostrophe
    "`",
})

# Zero-width and invisible characters, dropped outright
STRIP_CHARS: FrozenSet[str] = frozenset({
    "\u200b",  # Zero-width space
    "\u200c",  # Zero-width non-joiner
    "\u200d",  # Zero-width joiner
    "\ufeff",  # Byte order mark
    "\u00ad",  # Soft hyphen
    "\u2060",  # Word joiner
})


class TextNormalizer:
    """Canonicalizes message text before phrase matching."""

    def __init__(self):
        # Anything that is not a word character, whitespace or apostrophe
        self._punctuation_pattern = re.compile(r"[^\w\s']")
        self._whitespace_pattern = re.compile(r"\s+")

        logger.info(
            "TEXT_NORMALIZER_INITIALIZED",
            extra={"quote_chars": len(QUOTE_CHARS), "strip_chars": len(STRIP_CHARS)}
        )

    def normalize(self, text: Optional[str]) -> str:
        """Normalize text for matching.

        Applies, in order:
        1. Drop invisible characters
        2. Fold typographic quotes to an apostrophe
        3. Decompose accented letters (NFKD) and drop combining marks
        4. Lowercase
        5. Replace punctuation other than apostrophes with a space
        6. Collapse whitespace and trim
        """
        if not text:
            return ""

        result = "".join(
            "'" if c in QUOTE_CHARS else c
            for c in text
            if c not in STRIP_CHARS
        )
        result = "".join(
            c for c in unicodedata.normalize("NFKD", result)
            if unicodedata.category(c) != "Mn"
        )
        result = result.lower()
        result = self._punctuation_pattern.sub(" ", result)
        result = self._whitespace_pattern.sub(" ", result)
        return result.strip()


_normalizer: Optional[TextNormalizer] = None


def get_normalizer() -> TextNormalizer:
    """Get the shared TextNormalizer instance."""
    global _normalizer
    if _normalizer is None:
        _normalizer = TextNormalizer()
    return _normalizer


def normalize_text(text: Optional[str]) -> str:
    """Convenience wrapper around the shared normalizer."""
    return get_normalizer().normalize(text)
