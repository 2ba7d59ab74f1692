"""
rowbinder/repositories/record_repo.py
-------------------------------------
Generic data access for any record type declared with ``@table``.
"""

from dataclasses import replace
from typing import Any, Iterable, Optional, Sequence

from rowbinder.db.connection import ConnectionProvider
from rowbinder.db.executor import Executor
from rowbinder.db.mapper import RowMapper
from rowbinder.db.search import UNSET, SearchExpression
from rowbinder.db import sql_builder
from rowbinder.models.descriptor import ColumnDescriptor, RecordDescriptor
from rowbinder.models.metadata import resolve
from rowbinder.security.access import Intent, filter_columns, require_readable
from rowbinder.services.deep_fetch import DeepFetchService
from rowbinder.utils.coercion import coerce
from rowbinder.utils.exceptions import DataIntegrityError, ValidationError
from rowbinder.utils.json_codec import JsonCodec, default_codec
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)


class RecordRepository:
    """
    Runs insert/select/update/delete/search/deep-fetch for record instances.

    The repository keeps no reference to the records it handles; the only
    shared state is the per-type descriptor cache.

    Args:
        provider: Connection provider used for every statement.
        codec: JSON codec for ``json=True`` columns.
    """

    def __init__(self, provider: ConnectionProvider, codec: JsonCodec = default_codec):
        self.provider = provider
        self.executor = Executor(provider)
        self.codec = codec

    # ── CREATE ────────────────────────────────────────────

    def insert(self, record: Any, level: Optional[int] = None) -> Any:
        """
        Insert a record.

        Columns the caller may not write at ``level`` are silently left out.
        An automatic primary key is written back onto the record.

        Args:
            record: The record instance to persist.
            level: Caller privilege level (None = unrestricted).

        Returns:
            The record's primary key value (generated or assigned).

        Raises:
            ValidationError: If a pseudo-enum column holds an unaccepted value.
        """
        descriptor = resolve(type(record))
        descriptor.validate(record)
        values = self._write_values(descriptor, record)
        writable = filter_columns(descriptor, level, Intent.WRITE)
        returning = self.provider.supports_returning and descriptor.primary_key.automatic
        statement = sql_builder.build_insert(descriptor, writable, values, returning=returning)

        key = self.executor.insert(descriptor.database_name, statement, returning=returning)
        pk = descriptor.primary_key
        if pk.automatic and key is not None:
            setattr(record, pk.field_name, coerce(key, pk.annotation))
        logger.info(f"Inserted into {descriptor.qualified_table}: {pk.column_name}={descriptor.primary_key_value(record)}")
        return descriptor.primary_key_value(record)

    # ── READ ──────────────────────────────────────────────

    def select(self, record: Any, level: Optional[int] = None) -> bool:
        """
        Load a record in place by its primary key.

        Columns above the caller's read level are not assigned.

        Returns:
            True if the row exists, False if not.

        Raises:
            DataIntegrityError: If the key matches more than one row.
        """
        descriptor = resolve(type(record))
        key = self._require_key(descriptor, record)
        readable = filter_columns(descriptor, level, Intent.READ)
        selected = sql_builder.selected_columns(descriptor, readable)
        statement = sql_builder.build_select_by_pk(descriptor, selected, key)

        rows = self.executor.fetch_all(descriptor.database_name, statement)
        if not rows:
            return False
        if len(rows) > 1:
            raise DataIntegrityError(
                f"{descriptor.qualified_table}: primary key {key!r} matched {len(rows)} rows"
            )
        RowMapper(descriptor, selected, readable, self.codec).map_row(rows[0], instance=record)
        return True

    def select_by(self, record: Any, level: Optional[int], column: str) -> dict[Any, Any]:
        """
        Fetch every row whose ``column`` equals the record's value for it.

        Args:
            record: Instance carrying the value to match.
            level: Caller privilege level.
            column: Field or column name to match on.

        Returns:
            Ordered ``{primary_key: new_instance}`` in result-set order.

        Raises:
            AccessDeniedError: If the caller may not read ``column``.
        """
        descriptor = resolve(type(record))
        target = self._column(descriptor, column)
        require_readable(target, level)
        value = self._write_values(descriptor, record)[target.column_name]
        readable = filter_columns(descriptor, level, Intent.READ)
        selected = sql_builder.selected_columns(descriptor, readable)
        statement = sql_builder.build_select_by_column(descriptor, selected, target, value)

        rows = self.executor.fetch_all(descriptor.database_name, statement)
        return RowMapper(descriptor, selected, readable, self.codec).map_rows(rows)

    def search_by(
        self,
        record: Any,
        level: Optional[int],
        template: Optional[Any] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        expressions: Sequence[SearchExpression] = (),
    ) -> dict[Any, Any]:
        """
        Search with an ordered list of predicate expressions.

        Expressions are combined strictly left to right (see
        ``rowbinder.db.search``). An expression without a value takes it
        from ``template`` (defaults to ``record``).

        Returns:
            Ordered ``{primary_key: new_instance}``, sorted by primary key.

        Raises:
            AccessDeniedError: If an expression filters on an unreadable column.
        """
        descriptor = resolve(type(record))
        template = record if template is None else template
        if type(template) is not descriptor.record_type:
            raise ValidationError(
                f"Template must be a {descriptor.record_type.__name__}, got {type(template).__name__}"
            )
        template_values = self._write_values(descriptor, template)
        compiled = []
        for expr in expressions:
            target = self._column(descriptor, expr.column)
            require_readable(target, level)
            value = template_values[target.column_name] if expr.value is UNSET else expr.value
            compiled.append(replace(expr, column=target.column_name, value=value))

        readable = filter_columns(descriptor, level, Intent.READ)
        selected = sql_builder.selected_columns(descriptor, readable)
        statement = sql_builder.build_search(
            descriptor, selected, compiled, offset=offset, limit=limit, paramstyle=self.provider.paramstyle
        )

        rows = self.executor.fetch_all(descriptor.database_name, statement)
        return RowMapper(descriptor, selected, readable, self.codec).map_rows(rows)

    def fetch_by_key(self, record_type: type, key: Any, level: Optional[int] = None) -> Optional[Any]:
        """Load a fresh instance of ``record_type`` by key, or None if absent."""
        descriptor = resolve(record_type)
        instance = descriptor.new_instance()
        setattr(instance, descriptor.primary_key.field_name, key)
        if not self.select(instance, level):
            return None
        if not descriptor.primary_key.readable_at(level):
            setattr(instance, descriptor.primary_key.field_name, None)
        return instance

    def fetch_by_keys(self, record_type: type, keys: Iterable[Any], level: Optional[int] = None) -> dict[Any, Any]:
        """
        Load several instances of ``record_type`` in one query.

        Returns:
            ``{primary_key: instance}`` for the keys that exist.
        """
        keys = list(keys)
        if not keys:
            return {}
        descriptor = resolve(record_type)
        readable = filter_columns(descriptor, level, Intent.READ)
        selected = sql_builder.selected_columns(descriptor, readable)
        statement = sql_builder.build_select_by_keys(descriptor, selected, keys)
        rows = self.executor.fetch_all(descriptor.database_name, statement)
        return RowMapper(descriptor, selected, readable, self.codec).map_rows(rows)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, record: Any, level: Optional[int] = None) -> int:
        """
        Update the record's row by primary key.

        Only assigned (non-None) columns the caller may write are set;
        others keep their stored value.

        Returns:
            Number of rows affected (0 when nothing matched or nothing to set).
        """
        descriptor = resolve(type(record))
        key = self._require_key(descriptor, record)
        descriptor.validate(record)
        values = self._write_values(descriptor, record)
        writable = filter_columns(descriptor, level, Intent.WRITE)
        statement = sql_builder.build_update(descriptor, writable, values, key)
        if statement is None:
            logger.debug(f"Nothing to update on {descriptor.qualified_table} for key {key!r} at level {level}")
            return 0

        updated = self.executor.execute(descriptor.database_name, statement)
        logger.info(f"Updated {descriptor.qualified_table} #{key}: {updated} row(s)")
        return updated

    # ── DELETE ────────────────────────────────────────────

    def delete(self, record: Any) -> int:
        """
        Delete the record's row by primary key.

        Returns:
            Number of rows deleted (0 if the key did not exist).
        """
        descriptor = resolve(type(record))
        key = self._require_key(descriptor, record)
        statement = sql_builder.build_delete(descriptor, key)
        deleted = self.executor.execute(descriptor.database_name, statement)
        if deleted:
            logger.info(f"Deleted {descriptor.qualified_table} #{key}")
        return deleted

    # ── RELATIONSHIPS ─────────────────────────────────────

    def deep_fetch(
        self,
        record: Any,
        level: Optional[int],
        max_depth: int,
        fields: Optional[Iterable[str]] = None,
    ) -> None:
        """Resolve relationships in place; see `DeepFetchService.fetch`."""
        DeepFetchService(self).fetch(record, level, max_depth, fields)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _require_key(descriptor: RecordDescriptor, record: Any) -> Any:
        key = descriptor.primary_key_value(record)
        if key is None:
            raise ValidationError(
                f"{descriptor.record_type.__name__}.{descriptor.primary_key.field_name} must be set"
            )
        return key

    @staticmethod
    def _column(descriptor: RecordDescriptor, name: str) -> ColumnDescriptor:
        try:
            return descriptor.column(name)
        except KeyError:
            raise ValidationError(f"{descriptor.record_type.__name__} has no column '{name}'") from None

    def _write_values(self, descriptor: RecordDescriptor, record: Any) -> dict[str, Any]:
        """Column values ready for binding: compositions decomposed, JSON encoded."""
        values = descriptor.extract(record)
        for col in descriptor.columns:
            if col.json:
                values[col.column_name] = self.codec.encode(values[col.column_name])
        return values
