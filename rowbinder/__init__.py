"""
rowbinder
=========
Record-to-row mapping core: declare dataclass records, then insert,
select, update, delete, search and deep-fetch them through a connection
provider.
"""

from rowbinder.db.connection import ConnectionProvider, PostgresConnectionProvider
from rowbinder.db.search import Connective, Operator, SearchExpression
from rowbinder.db.sqlite import SQLiteConnectionProvider
from rowbinder.models.fields import (
    column,
    composition,
    excluded,
    foreign_key,
    foreign_key_list,
    table,
)
from rowbinder.models.metadata import resolve
from rowbinder.models.record import Record
from rowbinder.repositories.record_repo import RecordRepository
from rowbinder.utils.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    DatabaseConnectionError,
    DataIntegrityError,
    MappingError,
    QueryExecutionError,
    RowBinderError,
    ValidationError,
)

__all__ = [
    "AccessDeniedError",
    "ConfigurationError",
    "ConnectionProvider",
    "Connective",
    "DatabaseConnectionError",
    "DataIntegrityError",
    "MappingError",
    "Operator",
    "PostgresConnectionProvider",
    "QueryExecutionError",
    "Record",
    "RecordRepository",
    "RowBinderError",
    "SQLiteConnectionProvider",
    "SearchExpression",
    "ValidationError",
    "column",
    "composition",
    "excluded",
    "foreign_key",
    "foreign_key_list",
    "resolve",
    "table",
]
