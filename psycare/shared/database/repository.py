"""Base repository pattern for PostgreSQL-backed stores.

Subclasses declare their table, column order and row mapping; the base
class owns connection handling and the persistence error taxonomy.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class DuplicateError(RepositoryError):
    """A record with the same unique key already exists."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common operations."""

    columns: Sequence[str] = ()

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        """Initialize repository.

        Args:
            connection_manager: Database connection manager
            table_name: Name of the database table
        """
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert a row (in `columns` order) to an entity."""
        pass

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Convert an entity to a column -> value mapping."""
        pass

    @property
    def _select_list(self) -> str:
        return ", ".join(self.columns)

    def _fetch_all(self, where: str, params: tuple, order_by: str = "") -> List[T]:
        query = f"SELECT {self._select_list} FROM {self.table_name} WHERE {where}"
        if order_by:
            query += f" ORDER BY {order_by}"

        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except Exception as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Query on {self.table_name} failed") from e

        return [self._row_to_entity(row) for row in rows]

    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID, or None."""
        found = self._fetch_all("id = %s", (entity_id,))
        return found[0] if found else None

    def insert(self, entity: T, conflict_target: Optional[str] = None) -> T:
        """Insert a new row in one statement.

        With conflict_target set, the insert is `ON CONFLICT (...) DO NOTHING`
        and a missing RETURNING row means the unique key was already taken.

        Raises:
            DuplicateError: The unique key already exists
            RepositoryError: Any other database failure
        """
        params = self._entity_to_params(entity)
        columns = list(params.keys())
        placeholders = ", ".join(["%s"] * len(columns))

        query = (
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) "
            f"VALUES ({placeholders})"
        )
        if conflict_target:
            query += f" ON CONFLICT ({conflict_target}) DO NOTHING"
        query += f" RETURNING {self._select_list}"

        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, list(params.values()))
                row = cur.fetchone()
        except Exception as e:
            logger.error(
                "REPOSITORY_INSERT_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Insert into {self.table_name} failed") from e

        if row is None:
            raise DuplicateError(f"Duplicate key in {self.table_name} on ({conflict_target})")

        return self._row_to_entity(row)
