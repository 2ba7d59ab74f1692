"""
rowbinder/db/executor.py
------------------------
Execution engine: runs a Statement on a scoped connection.

Each call acquires its own connection from the provider and releases it
before returning, whether the statement succeeded or not. Writes are
committed; any driver failure is rolled back and re-raised as
QueryExecutionError with the driver exception chained.
"""

from contextlib import closing
from typing import Any, Optional

from rowbinder.db.connection import ConnectionProvider, connection_scope
from rowbinder.db.sql_builder import Statement
from rowbinder.utils.exceptions import QueryExecutionError
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)


class Executor:
    """Runs statements against a connection provider."""

    def __init__(self, provider: ConnectionProvider):
        self.provider = provider

    def _render(self, statement: Statement) -> str:
        if self.provider.paramstyle == "format":
            return statement.sql.replace("?", "%s")
        return statement.sql

    def _fail(self, conn: Any, statement: Statement, error: BaseException) -> QueryExecutionError:
        try:
            conn.rollback()
        except self.provider.driver_error as rollback_error:
            logger.warning(f"Rollback failed: {rollback_error}")
        logger.error(f"Statement failed: {statement.sql} | {error}")
        return QueryExecutionError(
            f"Statement failed: {error}", sql=statement.sql, detail=str(error)
        )

    def fetch_all(self, database_name: str, statement: Statement) -> list[tuple]:
        """
        Run a query and return every row.

        Raises:
            DatabaseConnectionError: If no connection could be acquired.
            QueryExecutionError: If the database rejects the statement.
        """
        logger.debug(f"Query on {database_name}: {statement}")
        with connection_scope(self.provider, database_name) as conn:
            try:
                with closing(conn.cursor()) as cur:
                    cur.execute(self._render(statement), statement.params)
                    return [tuple(row) for row in cur.fetchall()]
            except self.provider.driver_error as e:
                raise self._fail(conn, statement, e) from e

    def execute(self, database_name: str, statement: Statement) -> int:
        """
        Run a write statement and commit.

        Returns:
            The number of rows affected.
        """
        logger.debug(f"Execute on {database_name}: {statement}")
        with connection_scope(self.provider, database_name) as conn:
            try:
                with closing(conn.cursor()) as cur:
                    cur.execute(self._render(statement), statement.params)
                    affected = cur.rowcount
                conn.commit()
                return max(affected, 0)
            except self.provider.driver_error as e:
                raise self._fail(conn, statement, e) from e

    def insert(self, database_name: str, statement: Statement, returning: bool = False) -> Optional[Any]:
        """
        Run an INSERT and commit.

        Args:
            database_name: Database the statement targets.
            statement: The INSERT statement.
            returning: The statement ends in ``RETURNING <pk>``.

        Returns:
            The generated key when the driver reports one, else None.
        """
        logger.debug(f"Insert on {database_name}: {statement}")
        with connection_scope(self.provider, database_name) as conn:
            try:
                with closing(conn.cursor()) as cur:
                    cur.execute(self._render(statement), statement.params)
                    if returning:
                        row = cur.fetchone()
                        key = row[0] if row else None
                    else:
                        key = getattr(cur, "lastrowid", None)
                conn.commit()
                return key
            except self.provider.driver_error as e:
                raise self._fail(conn, statement, e) from e
