"""PostgreSQL connection management for PsyCare stores.

Wraps a psycopg2 ThreadedConnectionPool so that concurrent chat requests
each borrow their own connection. Every write goes through transaction(),
which commits on success and rolls back on any exception.
"""
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from psycopg2 import pool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration."""
    host: str
    port: int = 5432
    database: str = "psycare"
    username: str = ""
    password: str = ""
    min_connections: int = 2
    max_connections: int = 10
    connect_timeout: int = 10
    ssl_mode: str = "prefer"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from DB_* environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "psycare"),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            min_connections=int(os.getenv("DB_MIN_CONN", "2")),
            max_connections=int(os.getenv("DB_MAX_CONN", "10")),
            connect_timeout=int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
            ssl_mode=os.getenv("DB_SSL_MODE", "prefer"),
        )


class ConnectionManager:
    """Hands out pooled connections and health information."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pool.ThreadedConnectionPool] = None

        logger.info(
            "CONNECTION_MANAGER_CREATED",
            extra={
                "host": config.host,
                "database": config.database,
                "max_connections": config.max_connections,
            }
        )

    def initialize(self) -> None:
        """Create the pool. Safe to call more than once."""
        if self._pool is not None:
            return

        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=self.config.min_connections,
                maxconn=self.config.max_connections,
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.username,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout,
                sslmode=self.config.ssl_mode,
            )
        except Exception as e:
            logger.error(
                "CONNECTION_POOL_INIT_FAILED",
                extra={"error": str(e), "host": self.config.host}
            )
            raise

        logger.info(
            "CONNECTION_POOL_INITIALIZED",
            extra={"host": self.config.host, "database": self.config.database}
        )

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a connection from the pool for the duration of the block."""
        if self._pool is None:
            self.initialize()

        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Yield a cursor inside a transaction.

        Usage:
            with manager.transaction() as cur:
                cur.execute("INSERT ...")
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def health_check(self) -> Dict[str, Any]:
        """Run SELECT 1 and report connectivity."""
        if self._pool is None:
            return {"status": "not_initialized", "healthy": False}

        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
        except Exception as e:
            logger.error("DATABASE_HEALTH_CHECK_FAILED", extra={"error": str(e)})
            return {"status": "error", "healthy": False, "error": str(e)}

        return {
            "status": "connected",
            "healthy": True,
            "host": self.config.host,
            "database": self.config.database,
        }

    def close(self) -> None:
        """Close all pooled connections."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("CONNECTION_POOL_CLOSED")


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get or create the process-wide connection manager."""
    global _connection_manager

    if _connection_manager is None:
        _connection_manager = ConnectionManager(DatabaseConfig.from_env())

    return _connection_manager
