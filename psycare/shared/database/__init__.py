"""Persistence for PsyCare: connection pooling, repositories and stores."""

from .connection import (
    DatabaseConfig,
    ConnectionManager,
    get_connection_manager,
)
from .repository import (
    BaseRepository,
    RepositoryError,
    DuplicateError,
)
from .stores import (
    UserStore,
    AppointmentStore,
    ConversationStore,
    UserRepository,
    AppointmentRepository,
    ConversationRepository,
    InMemoryUserStore,
    InMemoryAppointmentStore,
    InMemoryConversationStore,
    SCHEMA_SQL,
    ensure_schema,
)

__all__ = [
    "DatabaseConfig",
    "ConnectionManager",
    "get_connection_manager",
    "BaseRepository",
    "RepositoryError",
    "DuplicateError",
    "UserStore",
    "AppointmentStore",
    "ConversationStore",
    "UserRepository",
    "AppointmentRepository",
    "ConversationRepository",
    "InMemoryUserStore",
    "InMemoryAppointmentStore",
    "InMemoryConversationStore",
    "SCHEMA_SQL",
    "ensure_schema",
]
