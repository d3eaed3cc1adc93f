"""Chat router configuration, phrase lists and static response texts.

The Tier 1 crisis phrases and the hotline directory are curated lists; any
change to them must be reviewed like a code change and bumps
PATTERN_VERSION so that logs show which list produced a decision.
"""
import os
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple


PATTERN_VERSION = "2025.09.17"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class RouterConfig:
    """Behaviour switches for the intent router."""

    # Tier 2 model confirmation of Tier 1 crisis matches
    confirm_with_model: bool = False

    # Language that needs no translation
    default_lang: str = "en"

    # Booking defaults
    default_duration_minutes: int = 30
    therapist_role: str = "psychologist"

    # Run SOS dispatch, directory lookup and translation concurrently
    parallel_crisis_fanout: bool = True

    pattern_version: str = PATTERN_VERSION

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """Create config from environment variables.

        Environment variables:
            CONFIRM_WITH_MODEL: "true" enables Tier 2 (default false)
            DEFAULT_LANG: Untranslated language tag (default en)
            DEFAULT_APPOINTMENT_MINUTES: Booking duration (default 30)
            THERAPIST_ROLE: User role listed as therapists (default psychologist)
            PARALLEL_CRISIS_FANOUT: "false" runs crisis side effects in order
        """
        return cls(
            confirm_with_model=_env_flag("CONFIRM_WITH_MODEL"),
            default_lang=os.getenv("DEFAULT_LANG", "en"),
            default_duration_minutes=int(os.getenv("DEFAULT_APPOINTMENT_MINUTES", "30")),
            therapist_role=os.getenv("THERAPIST_ROLE", "psychologist"),
            parallel_crisis_fanout=_env_flag("PARALLEL_CRISIS_FANOUT", "true"),
        )


# Booking keyword gate. Cheap pre-filter only; a booking also needs a
# resolvable therapist.
BOOKING_KEYWORDS: FrozenSet[str] = frozenset({
    "book",
    "appointment",
    "schedule",
    "slot",
    "reserve",
})

# Tier 1: explicit self-harm / suicidal phrasings. Matched against
# normalized text (lowercase, quotes folded, punctuation stripped).
CRISIS_PATTERNS: Tuple[str, ...] = (
    r"\bkill(ing)?\s+my\s*self\b",
    r"\bkill\s+myself\b",
    r"\bi\s+feel\s+like\s+killing\s+my\s*self\b",
    r"\bi\s+want\s+to\s+die\b",
    r"\bi\s+want\s+to\s+kill\s+myself\b",
    r"\bi('?m| am)\s+going\s+to\s+kill\s+myself\b",
    r"\bend\s+my\s+life\b",
    r"\bi\s+can('?t|not| not)\s+go\s+on\b",
    r"\bsuicidal\b",
    r"\bi\s+wish\s+i\s+was\s+dead\b",
    r"\bi\s+want\s+to\s+end\s+it\b",
    r"\bwant\s+to\s+die\b",
    r"\bcommit\s+suicide\b",
    r"\bi\s+want\s+to\s+commit\s+suicide\b",
)

SEVERITY_SUICIDAL = "suicidal"

EMERGENCY_REPLY = (
    "Your life matters, and I want you to get help immediately.\n"
    "I am an AI and cannot offer the support you need.\n"
    "**Please call emergency services or go to the nearest emergency room right now.**\n"
    "If you are in the US, dial 911.\n"
    "If you are elsewhere, search online for your local emergency number.\n"
    "There are people who want to help you. Please, please seek help immediately."
)

DEGRADED_DETECTION_NOTICE = "AI service is busy, using basic detection."

BUSY_REPLY = (
    "AI service is busy, please try again later. "
    "You can still use basic features or talk to a human therapist."
)

HOTLINES: Tuple[Dict[str, str], ...] = (
    {"name": "Local Emergency", "phone": "112"},
    {"name": "KIRAN (24x7 Mental Health Helpline - India)", "phone": "1800-599-0019"},
    {"name": "iCALL (TISS)", "phone": "9152987821"},
    {"name": "AASRA (NGO)", "website": "https://www.aasra.info/"},
)

SYSTEM_PROMPT = (
    "You are PsyCare, an empathetic mental health chatbot for students. "
    "Respond with compassion, suggest relaxation tips, and guide them to "
    "tests if needed. Escalate to human therapists if suicidal intent is detected."
)

# Booking replies; {name} is the therapist, {time} the ISO slot time
BOOKING_NEEDS_TIME_TEMPLATE = (
    "I recognized your request to book with {name}. "
    'Please provide the appointment time (e.g., "Sep 17 3pm").'
)
BOOKING_CONFLICT_TEMPLATE = "❌ {name} is already booked at {time}. Please choose another time."
BOOKING_CONFIRMED_TEMPLATE = "✅ Appointment confirmed with {name} at {time}."
BOOKING_FAILED_TEMPLATE = (
    "We could not save your appointment with {name} at {time}. Please try again in a moment."
)

# Placeholder for profile fields the user store does not have
UNKNOWN_PROFILE_VALUE = "Unknown"


def hotline_directory() -> List[Dict[str, str]]:
    """Fresh copy of the hotline directory for a response body."""
    return [dict(entry) for entry in HOTLINES]
