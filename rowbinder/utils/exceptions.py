"""
rowbinder/utils/exceptions.py
-----------------------------
Error taxonomy for the mapping core.

Zero-row outcomes (record not found, nothing updated or deleted) are
ordinary return values and never raise.
"""

from typing import Any, Optional


class RowBinderError(Exception):
    """Base class for every error raised by rowbinder."""


class ConfigurationError(RowBinderError):
    """A record type carries missing or inconsistent mapping metadata."""


class DatabaseConnectionError(RowBinderError):
    """The connection provider could not hand out a usable connection."""


class QueryExecutionError(RowBinderError):
    """
    The database rejected a statement.

    Attributes:
        sql: The statement text that failed.
        detail: The driver's own error message.
    """

    def __init__(self, message: str, sql: str = "", detail: str = ""):
        super().__init__(message)
        self.sql = sql
        self.detail = detail


class MappingError(RowBinderError):
    """
    A result column could not be coerced to its declared field type.

    Attributes:
        row_index: Position of the failing row in the result set.
        column: Mapped column name that failed.
        mapped: Instances built from the rows before the failing one.
    """

    def __init__(
        self,
        message: str,
        row_index: int = 0,
        column: Optional[str] = None,
        mapped: Optional[dict[Any, Any]] = None,
    ):
        super().__init__(message)
        self.row_index = row_index
        self.column = column
        self.mapped = mapped if mapped is not None else {}


class DataIntegrityError(RowBinderError):
    """A primary-key lookup matched more than one row."""


class AccessDeniedError(RowBinderError):
    """A caller asked to expose or filter on a column above its privilege level."""


class ValidationError(RowBinderError):
    """A record value is not acceptable for its column (e.g. pseudo-enum)."""
