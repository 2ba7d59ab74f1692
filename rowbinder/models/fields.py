"""
rowbinder/models/fields.py
--------------------------
Declarative mapping metadata for record dataclasses.

Usage:
    @table(database="shop", name="customers")
    @dataclass
    class Customer(Record):
        id: Optional[int] = column(primary_key=True, automatic=True)
        name: Optional[str] = None
        password: Optional[str] = column(name="pass_hash", read_level=0, write_level=0)
        status: Optional[str] = column(accepts={"active", "blocked"})
        address: Optional[Address] = composition(Address, prefix="addr")
        group_id: Optional[int] = None
        group: Optional["Group"] = foreign_key("Group", column="group_id")
        scratch: Optional[dict] = excluded()

Every helper returns a ``dataclasses.field`` whose metadata carries one of
the metadata objects below. Fields without rowbinder metadata map to a column
named after the field.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

METADATA_KEY = "rowbinder"
TABLE_ATTRIBUTE = "__rowbinder_table__"

# Record classes by name, so relationships can reference types declared later.
_registry: dict[str, type] = {}


@dataclass(frozen=True)
class TableSpec:
    database: str
    name: str


@dataclass(frozen=True)
class ColumnSpec:
    name: Optional[str] = None
    primary_key: bool = False
    automatic: bool = False
    read_level: Optional[int] = None
    write_level: Optional[int] = None
    accepts: Optional[frozenset] = None
    json: bool = False


@dataclass(frozen=True)
class ExcludedSpec:
    pass


@dataclass(frozen=True)
class ForeignKeySpec:
    target: Union[type, str]
    column: str
    always_fetch: bool = False
    many: bool = False


@dataclass(frozen=True)
class CompositionSpec:
    composite_type: type
    prefix: str
    read_level: Optional[int] = None
    write_level: Optional[int] = None


def _field(spec: Any, default: Any, default_factory: Optional[Callable[[], Any]]) -> Any:
    if default_factory is not None:
        return dataclasses.field(default_factory=default_factory, metadata={METADATA_KEY: spec})
    return dataclasses.field(default=default, metadata={METADATA_KEY: spec})


def table(database: str, name: Optional[str] = None) -> Callable[[type], type]:
    """
    Class decorator binding a record dataclass to ``database.name``.

    Args:
        database: Database (or schema) identifier used in generated SQL.
        name: Table name; defaults to the lower-cased class name.
    """
    def decorator(cls: type) -> type:
        setattr(cls, TABLE_ATTRIBUTE, TableSpec(database, name or cls.__name__.lower()))
        _registry[cls.__name__] = cls
        _registry[f"{cls.__module__}.{cls.__qualname__}"] = cls
        return cls

    return decorator


def lookup_record_type(name: str) -> Optional[type]:
    """Return the record class registered under ``name`` (simple or dotted)."""
    return _registry.get(name)


def column(
    name: Optional[str] = None,
    *,
    primary_key: bool = False,
    automatic: bool = False,
    read_level: Optional[int] = None,
    write_level: Optional[int] = None,
    accepts: Optional[Iterable[str]] = None,
    json: bool = False,
    default: Any = None,
    default_factory: Optional[Callable[[], Any]] = None,
) -> Any:
    """
    Declare a mapped column.

    Args:
        name: Column name in the table (defaults to the field name).
        primary_key: Marks the single primary-key column.
        automatic: Value is generated by the database; left out of INSERT.
        read_level: Highest (least privileged) level allowed to read.
        write_level: Highest (least privileged) level allowed to write.
        accepts: Pseudo-enum; the only string values the column accepts.
        json: Store the value as JSON text through the codec.
    """
    spec = ColumnSpec(
        name=name,
        primary_key=primary_key,
        automatic=automatic,
        read_level=read_level,
        write_level=write_level,
        accepts=frozenset(accepts) if accepts is not None else None,
        json=json,
    )
    return _field(spec, default, default_factory)


def excluded(default: Any = None, default_factory: Optional[Callable[[], Any]] = None) -> Any:
    """Declare a field that is never mapped to the table."""
    return _field(ExcludedSpec(), default, default_factory)


def foreign_key(target: Union[type, str], column: str, always_fetch: bool = False) -> Any:
    """
    Declare a single related record.

    Args:
        target: Related record class, or its name for forward references.
        column: Name of the local field holding the related primary key.
        always_fetch: Resolve on every deep fetch, not only when requested.
    """
    return _field(ForeignKeySpec(target, column, always_fetch, many=False), None, None)


def foreign_key_list(target: Union[type, str], column: str, always_fetch: bool = False) -> Any:
    """
    Declare a list of related records.

    The local field named by ``column`` holds the related primary keys as a
    list, a JSON array, or a delimited string.
    """
    return _field(ForeignKeySpec(target, column, always_fetch, many=True), None, None)


def composition(
    composite_type: type,
    prefix: str,
    read_level: Optional[int] = None,
    write_level: Optional[int] = None,
) -> Any:
    """
    Declare an embedded dataclass stored as ``<prefix>_<field>`` columns.

    A composite whose members are all None is indistinguishable from a missing
    one once stored: it reads back as None, not as an instance of None fields.
    """
    return _field(CompositionSpec(composite_type, prefix, read_level, write_level), None, None)
