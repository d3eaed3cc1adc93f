"""Therapist directory - users with the therapist role, queried per call."""
import logging
from typing import List

from psycare.shared.database import UserStore
from psycare.shared.models import TherapistDirectoryEntry

logger = logging.getLogger(__name__)


class TherapistDirectory:
    """Read-only projection of the user store. Never cached."""

    def __init__(self, user_store: UserStore, role: str = "psychologist"):
        self.user_store = user_store
        self.role = role

    def list_therapists(self) -> List[TherapistDirectoryEntry]:
        entries = [u.to_directory_entry() for u in self.user_store.find_by_role(self.role)]
        logger.debug("THERAPIST_DIRECTORY_LOADED", extra={"count": len(entries)})
        return entries
