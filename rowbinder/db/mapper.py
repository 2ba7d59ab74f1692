"""
rowbinder/db/mapper.py
----------------------
Maps result rows back onto record instances.

Per column: skip it if the caller may not read it, decode JSON through
the codec, coerce to the declared field type. Composition fields are
rebuilt once their member columns are in, and relationship fields are
left untouched until a deep fetch asks for them.
"""

from typing import Any, Optional, Sequence

from rowbinder.models.descriptor import ColumnDescriptor, RecordDescriptor
from rowbinder.utils.coercion import coerce, unwrap_optional
from rowbinder.utils.exceptions import MappingError
from rowbinder.utils.json_codec import JsonCodec


class RowMapper:
    """
    Builds instances from rows shaped like ``selected``.

    Args:
        descriptor: Descriptor of the target record type.
        selected: Columns in the order they appear in each row.
        exposed: Columns the caller may read; others are not assigned.
        codec: JSON codec for ``json=True`` columns.
    """

    def __init__(
        self,
        descriptor: RecordDescriptor,
        selected: Sequence[ColumnDescriptor],
        exposed: Sequence[ColumnDescriptor],
        codec: JsonCodec,
    ):
        self.descriptor = descriptor
        self.selected = tuple(selected)
        self.exposed = {c.column_name for c in exposed}
        self.codec = codec

    def _convert(self, column: ColumnDescriptor, raw: Any) -> Any:
        try:
            if column.json:
                target = unwrap_optional(column.annotation)
                return self.codec.decode(raw, target if isinstance(target, type) else None)
            return coerce(raw, column.annotation)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise MappingError(
                f"Column '{column.column_name}' value {raw!r} does not fit "
                f"{self.descriptor.record_type.__name__}.{column.field_name}: {e}",
                column=column.column_name,
            ) from e

    def map_row(self, row: Sequence[Any], instance: Optional[Any] = None) -> tuple[Any, Any]:
        """
        Map one row.

        Args:
            row: Values in ``selected`` order.
            instance: Existing instance to fill; a fresh one is created if None.

        Returns:
            ``(primary_key_value, instance)``.

        Raises:
            MappingError: If a value cannot be coerced.
        """
        if instance is None:
            instance = self.descriptor.new_instance()
        pk = self.descriptor.primary_key
        key = None
        values: dict[str, Any] = {}
        members: dict[str, dict[str, Any]] = {}
        for column, raw in zip(self.selected, row):
            if column is pk:
                key = self._convert(column, raw)
            if column.column_name not in self.exposed:
                continue
            value = key if column is pk else self._convert(column, raw)
            if column.is_composite_member:
                members.setdefault(column.field_name, {})[column.column_name] = value
            else:
                values[column.field_name] = value
        for field_name, member_values in members.items():
            values[field_name] = self.descriptor.compositions[field_name].compose(member_values)
        # Nothing is assigned until every column has converted.
        for field_name, value in values.items():
            setattr(instance, field_name, value)
        return key, instance

    def map_rows(self, rows: Sequence[Sequence[Any]]) -> dict[Any, Any]:
        """
        Map a result set into ``{primary_key: instance}`` in row order.

        Raises:
            MappingError: On the first failing row; ``error.mapped`` holds
                the rows mapped before it, ``error.row_index`` its position.
        """
        result: dict[Any, Any] = {}
        for index, row in enumerate(rows):
            try:
                key, instance = self.map_row(row)
            except MappingError as e:
                raise MappingError(
                    f"Row {index}: {e}", row_index=index, column=e.column, mapped=dict(result)
                ) from e
            result[key] = instance
        return result
