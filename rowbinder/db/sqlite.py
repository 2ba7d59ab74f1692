"""
rowbinder/db/sqlite.py
----------------------
SQLite connection provider.

Each record database name maps to a file ``<directory>/<name>.db`` that is
ATTACHed under that name, so ``database.table`` in generated SQL resolves
the same way it does on a server engine. A fresh connection is opened for
every operation and closed on release.
"""

import os
import sqlite3
from datetime import date, datetime
from decimal import Decimal

from rowbinder.config import SQLITE_DIRECTORY
from rowbinder.models.metadata import validate_identifier
from rowbinder.utils.exceptions import DatabaseConnectionError
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)

sqlite3.register_adapter(date, date.isoformat)
sqlite3.register_adapter(datetime, datetime.isoformat)
sqlite3.register_adapter(Decimal, str)


class SQLiteConnectionProvider:
    """Open-per-call SQLite connections rooted in one directory."""

    paramstyle = "qmark"
    supports_returning = False
    driver_error = sqlite3.Error

    def __init__(self, directory: str = SQLITE_DIRECTORY):
        self.directory = directory

    def path_for(self, database_name: str) -> str:
        return os.path.join(self.directory, f"{database_name}.db")

    def get_connection(self, database_name: str) -> sqlite3.Connection:
        """
        Open a connection with ``database_name`` attached.

        Raises:
            DatabaseConnectionError: If the file cannot be opened or attached.
        """
        validate_identifier(database_name, "database name")
        conn = None
        try:
            conn = sqlite3.connect(self.path_for("main"))
            if database_name not in ("main", "temp"):
                conn.execute(f"ATTACH DATABASE ? AS {database_name}", (self.path_for(database_name),))
            return conn
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            logger.error(f"Failed to open SQLite database '{database_name}': {e}")
            raise DatabaseConnectionError(f"Cannot open SQLite database '{database_name}': {e}") from e

    def release_connection(self, conn: sqlite3.Connection) -> None:
        conn.close()
