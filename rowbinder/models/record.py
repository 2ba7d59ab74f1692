"""
rowbinder/models/record.py
--------------------------
`Record` mixin: the per-instance operation surface.

A record is a plain dataclass; mixing in `Record` adds persistence and
JSON export methods that delegate to `RecordRepository`. The connection
provider is passed to each call instead of being stored anywhere.

Example:
    provider = SQLiteConnectionProvider("/var/data")
    user = User(name="Ada")
    user.insert(provider)
    user.select(provider, level=1)
"""

import dataclasses
from typing import Any, Iterable, Optional, Sequence

from rowbinder.db.connection import ConnectionProvider
from rowbinder.db.search import SearchExpression
from rowbinder.models.metadata import resolve
from rowbinder.repositories.record_repo import RecordRepository
from rowbinder.utils.json_codec import JsonCodec, default_codec


class Record:
    """Persistence and JSON capabilities for ``@table`` dataclasses."""

    # ── Persistable ───────────────────────────────────────

    def insert(self, provider: ConnectionProvider, level: Optional[int] = None) -> Any:
        """Insert this record; returns its primary key."""
        return RecordRepository(provider).insert(self, level)

    def select(self, provider: ConnectionProvider, level: Optional[int] = None) -> bool:
        """Load this record by primary key; returns False if not found."""
        return RecordRepository(provider).select(self, level)

    def select_by(self, provider: ConnectionProvider, level: Optional[int], column: str) -> dict[Any, Any]:
        """All records whose ``column`` equals this record's value, keyed by primary key."""
        return RecordRepository(provider).select_by(self, level, column)

    def update(self, provider: ConnectionProvider, level: Optional[int] = None) -> int:
        """Update this record's row; returns the affected row count."""
        return RecordRepository(provider).update(self, level)

    def delete(self, provider: ConnectionProvider) -> int:
        """Delete this record's row; returns the affected row count."""
        return RecordRepository(provider).delete(self)

    def search_by(
        self,
        provider: ConnectionProvider,
        level: Optional[int],
        template: Optional[Any] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        expressions: Sequence[SearchExpression] = (),
    ) -> dict[Any, Any]:
        """Predicate search; see `RecordRepository.search_by`."""
        return RecordRepository(provider).search_by(self, level, template, offset, limit, expressions)

    def deep_fetch(
        self,
        provider: ConnectionProvider,
        level: Optional[int],
        max_depth: int,
        fields: Optional[Iterable[str]] = None,
    ) -> None:
        """Resolve relationship fields in place, up to ``max_depth`` hops."""
        RecordRepository(provider).deep_fetch(self, level, max_depth, fields)

    def validate(self) -> None:
        """Raise ValidationError if a pseudo-enum column holds an unaccepted value."""
        resolve(type(self)).validate(self)

    # ── JsonEncodable ─────────────────────────────────────

    def to_dict(self, level: Optional[int] = None) -> dict[str, Any]:
        """
        Export the fields visible at ``level`` as a plain dict.

        Unreadable columns and excluded fields are left out; resolved
        relationships are exported recursively, unresolved ones omitted.
        """
        descriptor = resolve(type(self))
        data: dict[str, Any] = {}
        for col in descriptor.columns:
            if col.is_composite_member or not col.readable_at(level):
                continue
            data[col.field_name] = getattr(self, col.field_name)
        for name, comp in descriptor.compositions.items():
            if all(c.readable_at(level) for c in comp.columns):
                value = getattr(self, name)
                data[name] = dataclasses.asdict(value) if value is not None else None
        for name, rel in descriptor.relationships.items():
            value = getattr(self, name)
            if value is None:
                continue
            if rel.many:
                data[name] = [item.to_dict(level) for item in value]
            else:
                data[name] = value.to_dict(level)
        return data

    def to_json(self, level: Optional[int] = None, codec: JsonCodec = default_codec) -> str:
        """`to_dict` serialized through the JSON codec."""
        return codec.encode(self.to_dict(level))
