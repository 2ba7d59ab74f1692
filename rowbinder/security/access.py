"""
rowbinder/security/access.py
----------------------------
Column-level access control.

Privilege levels are integers where a LOWER number means MORE privilege
(level 0 is the most sensitive tier). A column declared with
``read_level=1`` is readable at levels 0 and 1 only. A caller level of
None is fully privileged.

Policy:
    - Write: columns the caller may not write are silently left out of the
      INSERT/UPDATE statement.
    - Read: columns the caller may not read are left out of the mapped
      result. Asking to select by, or search on, such a column raises
      AccessDeniedError.
"""

from enum import Enum
from typing import Optional

from rowbinder.models.descriptor import ColumnDescriptor, RecordDescriptor
from rowbinder.utils.exceptions import AccessDeniedError
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)


class Intent(Enum):
    READ = "read"
    WRITE = "write"


def can_access(column: ColumnDescriptor, level: Optional[int], intent: Intent) -> bool:
    """Return True if ``level`` satisfies the column's threshold for ``intent``."""
    if intent is Intent.READ:
        return column.readable_at(level)
    return column.writable_at(level)


def filter_columns(
    descriptor: RecordDescriptor, level: Optional[int], intent: Intent
) -> tuple[ColumnDescriptor, ...]:
    """
    Narrow a descriptor's columns to those the caller may use.

    Args:
        descriptor: The record type's descriptor.
        level: Caller privilege level (None = unrestricted).
        intent: Intent.READ or Intent.WRITE.

    Returns:
        The permitted columns, in declaration order.
    """
    allowed = tuple(c for c in descriptor.columns if can_access(c, level, intent))
    if len(allowed) != len(descriptor.columns):
        logger.debug(
            f"Level {level} {intent.value} on {descriptor.qualified_table}: "
            f"{len(descriptor.columns) - len(allowed)} column(s) filtered"
        )
    return allowed


def require_readable(column: ColumnDescriptor, level: Optional[int]) -> None:
    """
    Reject explicit exposure of a column above the caller's level.

    Raises:
        AccessDeniedError: If the column is not readable at ``level``.
    """
    if not column.readable_at(level):
        logger.warning(f"Access denied: level {level} may not read column '{column.column_name}'")
        raise AccessDeniedError(
            f"Level {level} may not read column '{column.column_name}' "
            f"(requires {column.min_read_level} or lower)"
        )
