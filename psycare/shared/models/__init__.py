"""Shared domain models for the PsyCare platform."""
from .conversation import (
    Message,
    ConversationTurn,
    Appointment,
    AppointmentStatus,
    TherapistDirectoryEntry,
    UserProfile,
)

__all__ = [
    "Message",
    "ConversationTurn",
    "Appointment",
    "AppointmentStatus",
    "TherapistDirectoryEntry",
    "UserProfile",
]
