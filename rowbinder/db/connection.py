"""
rowbinder/db/connection.py
--------------------------
Connection provider capability and the PostgreSQL implementation.

The engine never holds a connection past a single operation: it asks a
provider for one, uses it, and hands it back on every exit path.
Uses psycopg2's ThreadedConnectionPool so one provider can serve callers
on several threads.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Protocol, Union

import psycopg2
from psycopg2 import pool

from rowbinder.config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from rowbinder.utils.exceptions import DatabaseConnectionError
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionProvider(Protocol):
    """
    What the engine needs from a connection source.

    Attributes:
        paramstyle: DB-API paramstyle of the driver ("qmark" or "format").
        supports_returning: Driver can report generated keys via RETURNING.
        driver_error: Exception class (or tuple) raised by the driver.
    """
    paramstyle: str
    supports_returning: bool
    driver_error: Union[type[BaseException], tuple[type[BaseException], ...]]

    def get_connection(self, database_name: str) -> Any:
        """Return an open DB-API connection or raise DatabaseConnectionError."""
        ...

    def release_connection(self, conn: Any) -> None:
        """Give a connection obtained from get_connection back."""
        ...


@contextmanager
def connection_scope(provider: ConnectionProvider, database_name: str) -> Iterator[Any]:
    """
    Acquire a connection for one operation and always release it.

    Raises:
        DatabaseConnectionError: If the provider fails or returns no connection.
    """
    try:
        conn = provider.get_connection(database_name)
    except DatabaseConnectionError:
        raise
    except Exception as e:
        logger.error(f"Failed to acquire connection for '{database_name}': {e}")
        raise DatabaseConnectionError(f"Cannot connect to '{database_name}': {e}") from e
    if conn is None:
        raise DatabaseConnectionError(f"Provider returned no connection for '{database_name}'")
    try:
        yield conn
    finally:
        provider.release_connection(conn)


class PostgresConnectionProvider:
    """
    Pooled PostgreSQL connections.

    The record's database name is used as the schema qualifier in SQL, so
    every record type is served from the one database in ``dsn``.
    """

    paramstyle = "format"
    supports_returning = True
    driver_error = psycopg2.Error

    def __init__(self, dsn: str = DATABASE_URL, min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX):
        self.dsn = dsn
        self.min_conn = min_conn
        self.max_conn = max_conn
        self._pool: pool.ThreadedConnectionPool | None = None
        self._lock = threading.Lock()

    def init_pool(self) -> None:
        """
        Initialize the connection pool if it is not open yet.

        Raises:
            DatabaseConnectionError: If the database is unreachable.
        """
        with self._lock:
            if self._pool is not None:
                return
            try:
                self._pool = pool.ThreadedConnectionPool(self.min_conn, self.max_conn, self.dsn)
                logger.info("Database connection pool initialized successfully.")
            except psycopg2.OperationalError as e:
                logger.error(f"Failed to initialize database pool: {e}")
                raise DatabaseConnectionError(f"Failed to initialize database pool: {e}") from e

    def get_connection(self, database_name: str) -> Any:
        """
        Get a connection from the pool, opening the pool on first use.

        Args:
            database_name: Schema the caller is about to query (logged only).

        Raises:
            DatabaseConnectionError: If the pool is exhausted or the server is unreachable.
        """
        if self._pool is None:
            self.init_pool()
        try:
            return self._pool.getconn()
        except (psycopg2.Error, pool.PoolError) as e:
            logger.error(f"Failed to get connection for schema '{database_name}': {e}")
            raise DatabaseConnectionError(str(e)) from e

    def release_connection(self, conn: Any) -> None:
        """Return a connection back to the pool."""
        if self._pool is not None:
            self._pool.putconn(conn)

    def close(self) -> None:
        """Close all connections in the pool."""
        with self._lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.info("Database connection pool closed.")
