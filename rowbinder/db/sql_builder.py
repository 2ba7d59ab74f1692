"""
rowbinder/db/sql_builder.py
---------------------------
Renders parameterized SQL for record operations.

Identifiers come from the resolved descriptor (validated at resolution
time); every value is bound through a ``?`` placeholder and never
interpolated into the statement text.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from rowbinder.db.search import SearchExpression, compile_where
from rowbinder.models.descriptor import ColumnDescriptor, RecordDescriptor


@dataclass(frozen=True)
class Statement:
    """SQL text and the values bound to its placeholders, in order."""
    sql: str
    params: tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.sql} -- {list(self.params)!r}"


def _names(columns: Sequence[ColumnDescriptor]) -> str:
    return ", ".join(c.column_name for c in columns)


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def selected_columns(
    descriptor: RecordDescriptor, readable: Sequence[ColumnDescriptor]
) -> tuple[ColumnDescriptor, ...]:
    """Primary key first (always needed for keys), then the readable columns."""
    pk = descriptor.primary_key
    return (pk,) + tuple(c for c in readable if c is not pk)


# ── INSERT ────────────────────────────────────────────────

def build_insert(
    descriptor: RecordDescriptor,
    columns: Sequence[ColumnDescriptor],
    values: Mapping[str, Any],
    returning: bool = False,
) -> Statement:
    """
    INSERT of the write-permitted, non-automatic, assigned columns.

    Args:
        descriptor: Record descriptor.
        columns: Columns the caller may write.
        values: Column name -> value (already JSON-encoded where needed).
        returning: Append ``RETURNING <pk>`` for an automatic primary key.
    """
    cols = [c for c in columns if not c.automatic and values.get(c.column_name) is not None]
    if cols:
        sql = (
            f"INSERT INTO {descriptor.qualified_table} ({_names(cols)}) "
            f"VALUES ({_placeholders(len(cols))})"
        )
    else:
        sql = f"INSERT INTO {descriptor.qualified_table} DEFAULT VALUES"
    if returning and descriptor.primary_key.automatic:
        sql += f" RETURNING {descriptor.primary_key.column_name}"
    return Statement(sql, tuple(values[c.column_name] for c in cols))


# ── UPDATE ────────────────────────────────────────────────

def build_update(
    descriptor: RecordDescriptor,
    columns: Sequence[ColumnDescriptor],
    values: Mapping[str, Any],
    key: Any,
) -> Optional[Statement]:
    """
    UPDATE of the write-permitted, assigned, non-key columns.

    Returns:
        The statement, or None when there is nothing to set.
    """
    cols = [c for c in columns if not c.primary_key and values.get(c.column_name) is not None]
    if not cols:
        return None
    assignments = ", ".join(f"{c.column_name} = ?" for c in cols)
    sql = (
        f"UPDATE {descriptor.qualified_table} SET {assignments} "
        f"WHERE {descriptor.primary_key.column_name} = ?"
    )
    return Statement(sql, tuple(values[c.column_name] for c in cols) + (key,))


# ── SELECT ────────────────────────────────────────────────

def build_select_by_pk(
    descriptor: RecordDescriptor, columns: Sequence[ColumnDescriptor], key: Any
) -> Statement:
    sql = (
        f"SELECT {_names(columns)} FROM {descriptor.qualified_table} "
        f"WHERE {descriptor.primary_key.column_name} = ?"
    )
    return Statement(sql, (key,))


def build_select_by_column(
    descriptor: RecordDescriptor,
    columns: Sequence[ColumnDescriptor],
    column: ColumnDescriptor,
    value: Any,
) -> Statement:
    """Equality on one column; a None value matches NULL."""
    base = f"SELECT {_names(columns)} FROM {descriptor.qualified_table}"
    if value is None:
        return Statement(f"{base} WHERE {column.column_name} IS NULL")
    return Statement(f"{base} WHERE {column.column_name} = ?", (value,))


def build_select_by_keys(
    descriptor: RecordDescriptor, columns: Sequence[ColumnDescriptor], keys: Sequence[Any]
) -> Statement:
    """Batched primary-key lookup used for foreign key lists."""
    sql = (
        f"SELECT {_names(columns)} FROM {descriptor.qualified_table} "
        f"WHERE {descriptor.primary_key.column_name} IN ({_placeholders(len(keys))})"
    )
    return Statement(sql, tuple(keys))


def build_search(
    descriptor: RecordDescriptor,
    columns: Sequence[ColumnDescriptor],
    expressions: Sequence[SearchExpression],
    offset: int = 0,
    limit: Optional[int] = None,
    paramstyle: str = "qmark",
) -> Statement:
    """
    Predicate search ordered by primary key, with optional paging.

    ``limit``/``offset`` are bound as ``LIMIT ? OFFSET ?``. SQLite requires a
    LIMIT before OFFSET, so an offset without a limit renders ``LIMIT -1``
    on qmark drivers; ``format`` drivers (PostgreSQL) get ``OFFSET ?`` alone.
    """
    fragment, params = compile_where(expressions)
    sql = f"SELECT {_names(columns)} FROM {descriptor.qualified_table}"
    if fragment:
        sql += f" WHERE {fragment}"
    sql += f" ORDER BY {descriptor.primary_key.column_name}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    elif offset and paramstyle == "qmark":
        sql += " LIMIT -1"
    if offset:
        sql += " OFFSET ?"
        params.append(offset)
    return Statement(sql, tuple(params))


# ── DELETE ────────────────────────────────────────────────

def build_delete(descriptor: RecordDescriptor, key: Any) -> Statement:
    sql = f"DELETE FROM {descriptor.qualified_table} WHERE {descriptor.primary_key.column_name} = ?"
    return Statement(sql, (key,))
