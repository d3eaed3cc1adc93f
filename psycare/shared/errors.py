"""Error taxonomy shared by the chat router and its collaborators.

ValidationError is surfaced to the client verbatim. ProviderOverloaded and
ProviderUnavailable come from remote collaborators; whether they are
surfaced depends on the path (only the chat reply is critical).
Persistence failures use the repository taxonomy.
"""
from psycare.shared.database.repository import DuplicateError, RepositoryError

# Storage write or read failed
PersistenceFailure = RepositoryError


class ChatRouterError(Exception):
    """Base exception for chat router errors."""
    pass


class ValidationError(ChatRouterError):
    """The request is malformed; message is safe to show the client."""
    pass


class ProviderError(ChatRouterError):
    """A remote collaborator failed."""

    def __init__(self, provider: str, message: str = ""):
        self.provider = provider
        super().__init__(message or f"{provider} failed")


class ProviderOverloaded(ProviderError):
    """The collaborator reported it is overloaded (HTTP 503)."""
    pass


class ProviderUnavailable(ProviderError):
    """The collaborator could not be reached or returned an error."""
    pass


__all__ = [
    "ChatRouterError",
    "ValidationError",
    "ProviderError",
    "ProviderOverloaded",
    "ProviderUnavailable",
    "PersistenceFailure",
    "DuplicateError",
]
