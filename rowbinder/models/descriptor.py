"""
rowbinder/models/descriptor.py
------------------------------
Immutable structural metadata for a record type. Built once per type by
`rowbinder.models.metadata.resolve` and shared by every operation.
"""

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from rowbinder.models.fields import TABLE_ATTRIBUTE, lookup_record_type
from rowbinder.utils.exceptions import ConfigurationError, ValidationError

if TYPE_CHECKING:
    from rowbinder.models.composition import CompositionDescriptor


def _allows(threshold: Optional[int], level: Optional[int]) -> bool:
    # Lower level = more privilege; None on either side means unrestricted.
    return threshold is None or level is None or level <= threshold


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    One mapped column.

    Attributes:
        field_name: Attribute on the record (the composition field for members).
        column_name: Column in the table.
        annotation: Declared Python type, used for coercion.
        primary_key: True for the record's single key column.
        automatic: Generated by the database; never part of INSERT.
        min_read_level: Least privileged level still allowed to read (None = all).
        min_write_level: Least privileged level still allowed to write (None = all).
        accepts: Pseudo-enum values, or None.
        json: Value travels through the JSON codec.
        member: Member name inside the composite, for composition columns.
    """
    field_name: str
    column_name: str
    annotation: Any = None
    primary_key: bool = False
    automatic: bool = False
    min_read_level: Optional[int] = None
    min_write_level: Optional[int] = None
    accepts: Optional[frozenset] = None
    json: bool = False
    member: Optional[str] = None

    @property
    def is_composite_member(self) -> bool:
        return self.member is not None

    def readable_at(self, level: Optional[int]) -> bool:
        return _allows(self.min_read_level, level)

    def writable_at(self, level: Optional[int]) -> bool:
        return _allows(self.min_write_level, level)


@dataclass(frozen=True)
class RelationshipDescriptor:
    """A foreign key (``many=False``) or foreign key list (``many=True``)."""
    field_name: str
    target: Union[type, str]
    local_field: str
    always_fetch: bool = False
    many: bool = False

    def target_type(self) -> type:
        """Resolve the related record class, following string references."""
        target = self.target
        if isinstance(target, str):
            resolved = lookup_record_type(target)
            if resolved is None:
                raise ConfigurationError(
                    f"Relationship '{self.field_name}' references unknown record type '{target}'"
                )
            target = resolved
        if not hasattr(target, TABLE_ATTRIBUTE):
            raise ConfigurationError(
                f"Relationship '{self.field_name}' target {target!r} is not a record type"
            )
        return target


@dataclass(frozen=True)
class RecordDescriptor:
    """Everything the engine needs to know about one record type."""
    record_type: type
    database_name: str
    table_name: str
    primary_key: ColumnDescriptor
    columns: tuple[ColumnDescriptor, ...]
    relationships: Mapping[str, RelationshipDescriptor] = field(default_factory=dict)
    compositions: Mapping[str, "CompositionDescriptor"] = field(default_factory=dict)
    excluded: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "relationships", MappingProxyType(dict(self.relationships)))
        object.__setattr__(self, "compositions", MappingProxyType(dict(self.compositions)))

    @property
    def qualified_table(self) -> str:
        return f"{self.database_name}.{self.table_name}"

    def column(self, name: str) -> ColumnDescriptor:
        """
        Look up a column by field name or mapped column name.

        Raises:
            KeyError: If no plain column matches.
        """
        for col in self.columns:
            if not col.is_composite_member and col.field_name == name:
                return col
        for col in self.columns:
            if col.column_name == name:
                return col
        raise KeyError(name)

    def new_instance(self) -> Any:
        """Create an empty instance with dataclass defaults, bypassing __init__."""
        instance = self.record_type.__new__(self.record_type)
        for f in dataclasses.fields(self.record_type):
            if f.default is not dataclasses.MISSING:
                value = f.default
            elif f.default_factory is not dataclasses.MISSING:
                value = f.default_factory()
            else:
                value = None
            object.__setattr__(instance, f.name, value)
        return instance

    def primary_key_value(self, instance: Any) -> Any:
        return getattr(instance, self.primary_key.field_name)

    def extract(self, instance: Any) -> dict[str, Any]:
        """
        Read every column value off an instance, decomposing compositions.

        Returns:
            Mapping of column name to in-memory value (JSON not yet encoded).
        """
        values: dict[str, Any] = {}
        for name, comp in self.compositions.items():
            values.update(comp.decompose(getattr(instance, name)))
        for col in self.columns:
            if not col.is_composite_member:
                values[col.column_name] = getattr(instance, col.field_name)
        return values

    def validate(self, instance: Any) -> None:
        """
        Check pseudo-enum columns.

        Raises:
            ValidationError: If an assigned value is outside its accepted set.
        """
        values = self.extract(instance)
        for col in self.columns:
            if col.accepts is None:
                continue
            value = values.get(col.column_name)
            if value is not None and value not in col.accepts:
                allowed = ", ".join(sorted(col.accepts))
                raise ValidationError(
                    f"{self.record_type.__name__}.{col.field_name} = {value!r} "
                    f"is not one of: {allowed}"
                )
