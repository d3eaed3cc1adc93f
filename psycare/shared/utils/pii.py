"""Identifier hashing so that user ids and message bodies never reach logs.

Every module that logs about a user calls hash_pii() on the id first, and
hash_text_for_audit() on any message body it wants to correlate.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32

_PII_SALT: Optional[str] = None


def configure_pii_salt(salt: str) -> None:
    """Set the process-wide salt used by hash_pii().

    Args:
        salt: Secret salt, at least MIN_SALT_LENGTH characters

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "salt_too_short", "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: Optional[str]) -> str:
    """Salted SHA-256 of a user identifier, e-mail or phone number.

    Raises:
        RuntimeError: If configure_pii_salt() was never called
    """
    if _PII_SALT is None:
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    return hashlib.sha256(f"{_PII_SALT}{value or ''}".encode()).hexdigest()


def hash_text_for_audit(text: str) -> str:
    """Unsalted fingerprint of a message body for log correlation."""
    return hashlib.sha256((text or "").encode()).hexdigest()
