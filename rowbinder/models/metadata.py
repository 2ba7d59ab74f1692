"""
rowbinder/models/metadata.py
----------------------------
Metadata resolver. Turns a decorated record dataclass into a
`RecordDescriptor` once and caches it for the life of the process.

The cache is the only process-wide mutable state in rowbinder. Lookups are
lock-free after warm-up; the first resolution of a type happens under a
lock so concurrent first callers wait and then see the cached result.
"""

import dataclasses
import re
import sys
import threading
import typing
from collections import Counter
from typing import Any

from rowbinder.models.composition import CompositionDescriptor
from rowbinder.models.descriptor import ColumnDescriptor, RecordDescriptor, RelationshipDescriptor
from rowbinder.models.fields import (
    METADATA_KEY,
    TABLE_ATTRIBUTE,
    ColumnSpec,
    CompositionSpec,
    ExcludedSpec,
    ForeignKeySpec,
    _registry,
)
from rowbinder.utils.exceptions import ConfigurationError
from rowbinder.utils.logger import get_logger

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_cache: dict[type, RecordDescriptor] = {}
_resolutions: Counter = Counter()
_lock = threading.Lock()


def validate_identifier(name: str, context: str) -> str:
    """
    Ensure a name is safe to place verbatim in SQL.

    Raises:
        ConfigurationError: If the name is not a plain identifier.
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ConfigurationError(f"Invalid SQL {context}: {name!r}")
    return name


def resolve(record_type: type) -> RecordDescriptor:
    """
    Get the descriptor for a record type, introspecting it on first use.

    Args:
        record_type: A class decorated with ``@table`` and ``@dataclass``.

    Returns:
        The cached RecordDescriptor (same object on every call).

    Raises:
        ConfigurationError: If the type's mapping metadata is missing or inconsistent.
    """
    descriptor = _cache.get(record_type)
    if descriptor is not None:
        return descriptor
    with _lock:
        descriptor = _cache.get(record_type)
        if descriptor is None:
            descriptor = _introspect(record_type)
            _cache[record_type] = descriptor
            _resolutions[record_type] += 1
            logger.debug(
                f"Resolved {record_type.__name__} -> {descriptor.qualified_table} "
                f"({len(descriptor.columns)} columns)"
            )
    return descriptor


def resolution_count(record_type: type) -> int:
    """How many times ``record_type`` has been introspected (0 or 1)."""
    return _resolutions[record_type]


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        pass
    # Some annotation names a type that is not importable at runtime (a
    # TYPE_CHECKING-only import). Resolve field by field so only those
    # fields keep their raw string annotation.
    namespace = {name: record for name, record in _registry.items() if "." not in name}
    namespace[cls.__name__] = cls
    module = sys.modules.get(cls.__module__)
    if module is not None:
        namespace.update(vars(module))
    hints: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        hint = f.type
        if isinstance(hint, str):
            try:
                hint = eval(hint, namespace)
            except (NameError, TypeError, AttributeError, SyntaxError) as e:
                logger.debug(f"{cls.__name__}.{f.name}: annotation {hint!r} left unresolved ({e})")
        hints[f.name] = hint
    return hints


def _introspect(record_type: type) -> RecordDescriptor:
    name = getattr(record_type, "__name__", repr(record_type))
    table_spec = getattr(record_type, TABLE_ATTRIBUTE, None)
    if table_spec is None:
        raise ConfigurationError(f"{name} has no @table declaration")
    if not dataclasses.is_dataclass(record_type):
        raise ConfigurationError(f"{name} must be a dataclass")

    database = validate_identifier(table_spec.database, f"database name on {name}")
    table_name = validate_identifier(table_spec.name, f"table name on {name}")
    hints = _type_hints(record_type)

    columns: list[ColumnDescriptor] = []
    relationships: dict[str, RelationshipDescriptor] = {}
    compositions: dict[str, CompositionDescriptor] = {}
    excluded: list[str] = []
    foreign_keys: dict[str, ForeignKeySpec] = {}

    for f in dataclasses.fields(record_type):
        spec = f.metadata.get(METADATA_KEY)
        if spec is None:
            spec = ColumnSpec()

        if isinstance(spec, ExcludedSpec):
            excluded.append(f.name)
        elif isinstance(spec, ForeignKeySpec):
            foreign_keys[f.name] = spec
        elif isinstance(spec, CompositionSpec):
            compositions[f.name] = _composition(name, f.name, spec)
            columns.extend(compositions[f.name].columns)
        elif isinstance(spec, ColumnSpec):
            if spec.accepts is not None and spec.json:
                raise ConfigurationError(f"{name}.{f.name}: accepts= cannot be combined with json=True")
            columns.append(ColumnDescriptor(
                field_name=f.name,
                column_name=validate_identifier(spec.name or f.name, f"column name on {name}.{f.name}"),
                annotation=hints.get(f.name),
                primary_key=spec.primary_key,
                automatic=spec.automatic,
                min_read_level=spec.read_level,
                min_write_level=spec.write_level,
                accepts=spec.accepts,
                json=spec.json,
            ))
        else:
            raise ConfigurationError(f"{name}.{f.name}: unknown mapping metadata {spec!r}")

    keys = [c for c in columns if c.primary_key]
    if len(keys) != 1:
        found = ", ".join(c.field_name for c in keys) or "none"
        raise ConfigurationError(f"{name} must declare exactly one primary key (found: {found})")

    duplicates = [col for col, n in Counter(c.column_name for c in columns).items() if n > 1]
    if duplicates:
        raise ConfigurationError(f"{name} maps several fields to column(s): {', '.join(duplicates)}")

    plain = {c.field_name: c for c in columns if not c.is_composite_member}
    for field_name, spec in foreign_keys.items():
        local = plain.get(spec.column)
        if local is None:
            raise ConfigurationError(
                f"{name}.{field_name}: foreign key column '{spec.column}' is not a mapped column field"
            )
        if not spec.many and local.json:
            raise ConfigurationError(f"{name}.{field_name}: single foreign key column cannot be JSON")
        if isinstance(spec.target, type) and not hasattr(spec.target, TABLE_ATTRIBUTE):
            raise ConfigurationError(f"{name}.{field_name}: target {spec.target.__name__} has no @table")
        relationships[field_name] = RelationshipDescriptor(
            field_name=field_name,
            target=spec.target,
            local_field=spec.column,
            always_fetch=spec.always_fetch,
            many=spec.many,
        )

    return RecordDescriptor(
        record_type=record_type,
        database_name=database,
        table_name=table_name,
        primary_key=keys[0],
        columns=tuple(columns),
        relationships=relationships,
        compositions=compositions,
        excluded=tuple(excluded),
    )


def _composition(owner: str, field_name: str, spec: CompositionSpec) -> CompositionDescriptor:
    composite = spec.composite_type
    if not (isinstance(composite, type) and dataclasses.is_dataclass(composite)):
        raise ConfigurationError(f"{owner}.{field_name}: composition type must be a dataclass")
    validate_identifier(spec.prefix, f"composition prefix on {owner}.{field_name}")
    hints = _type_hints(composite)
    members = tuple(
        ColumnDescriptor(
            field_name=field_name,
            column_name=validate_identifier(
                f"{spec.prefix}_{m.name}", f"composition column on {owner}.{field_name}"
            ),
            annotation=hints.get(m.name),
            min_read_level=spec.read_level,
            min_write_level=spec.write_level,
            member=m.name,
        )
        for m in dataclasses.fields(composite)
    )
    return CompositionDescriptor(field_name, composite, spec.prefix, members)
