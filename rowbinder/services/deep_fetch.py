"""
rowbinder/services/deep_fetch.py
--------------------------------
Bounded-depth resolution of foreign-key and foreign-key-list fields.

Workflow:
    1. For each relationship on the record that is ``always_fetch`` or was
       requested by name, read the related key(s) from the local column.
    2. Load the related record(s): one select by key, or one batched
       ``IN (...)`` select for a list.
    3. Assign the result to the relationship field and recurse into each
       loaded record with one less level of depth.

Every ``(record type, primary key)`` met during one call is remembered.
Meeting it again stops that branch and leaves the field unresolved, so
cyclic references (A -> B -> A) terminate with a partial result instead
of an error. Only the relationship fields themselves are ever assigned.
"""

import json
from typing import TYPE_CHECKING, Any, Iterable, Optional

from rowbinder.config import FK_LIST_DELIMITER
from rowbinder.models.descriptor import ColumnDescriptor, RelationshipDescriptor
from rowbinder.models.metadata import resolve
from rowbinder.utils.coercion import coerce
from rowbinder.utils.exceptions import MappingError, ValidationError
from rowbinder.utils.logger import get_logger

if TYPE_CHECKING:
    from rowbinder.repositories.record_repo import RecordRepository

logger = get_logger(__name__)


def split_keys(value: Any, delimiter: str = FK_LIST_DELIMITER) -> list[Any]:
    """
    Normalize a foreign-key-list column value into a list of keys.

    Accepts a list/tuple/set, a JSON array string, or a delimited string.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    text = str(value).strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return parsed
    return [part.strip() for part in text.split(delimiter) if part.strip()]


def _key(raw: Any, pk: ColumnDescriptor, rel: RelationshipDescriptor) -> Any:
    try:
        return coerce(raw, pk.annotation)
    except (ValueError, TypeError) as e:
        raise MappingError(
            f"Relationship '{rel.field_name}' holds invalid key {raw!r}: {e}",
            column=rel.local_field,
        ) from e


class DeepFetchService:
    """Resolves relationships of a record in place through a repository."""

    def __init__(self, repository: "RecordRepository"):
        self.repo = repository

    def fetch(
        self,
        record: Any,
        level: Optional[int],
        max_depth: int,
        fields: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Resolve relationships of ``record`` up to ``max_depth`` levels deep.

        Args:
            record: Record whose relationship fields are filled in.
            level: Caller privilege level used for every related select.
            max_depth: 0 resolves nothing; 1 resolves only ``record``'s own
                relationships; each extra level follows one more hop.
            fields: Relationship names to resolve on ``record`` even when
                not ``always_fetch``. Nested records follow ``always_fetch`` only.

        Raises:
            ValidationError: If ``fields`` names an unknown relationship.
        """
        descriptor = resolve(type(record))
        requested = frozenset(fields or ())
        unknown = requested - set(descriptor.relationships)
        if unknown:
            raise ValidationError(
                f"{descriptor.record_type.__name__} has no relationship(s): {', '.join(sorted(unknown))}"
            )
        visited = {(descriptor.record_type, descriptor.primary_key_value(record))}
        self._expand(record, level, max_depth, visited, requested)

    def _expand(self, record: Any, level: Optional[int], depth: int, visited: set, requested: frozenset) -> None:
        if depth <= 0:
            return
        descriptor = resolve(type(record))
        for rel in descriptor.relationships.values():
            if not (rel.always_fetch or rel.field_name in requested):
                continue
            if rel.many:
                children = self._fetch_list(record, rel, level, visited)
            else:
                children = self._fetch_single(record, rel, level, visited)
            for child in children:
                self._expand(child, level, depth - 1, visited, frozenset())

    def _fetch_single(self, record: Any, rel: RelationshipDescriptor, level: Optional[int], visited: set) -> list:
        target = rel.target_type()
        pk = resolve(target).primary_key
        raw = getattr(record, rel.local_field)
        if raw is None:
            return []
        key = _key(raw, pk, rel)
        if (target, key) in visited:
            logger.debug(f"Deep fetch: {target.__name__} #{key} already visited, stopping branch")
            return []
        visited.add((target, key))
        child = self.repo.fetch_by_key(target, key, level)
        setattr(record, rel.field_name, child)
        return [child] if child is not None else []

    def _fetch_list(self, record: Any, rel: RelationshipDescriptor, level: Optional[int], visited: set) -> list:
        target = rel.target_type()
        pk = resolve(target).primary_key
        keys = []
        for raw in split_keys(getattr(record, rel.local_field)):
            key = _key(raw, pk, rel)
            if (target, key) in visited:
                logger.debug(f"Deep fetch: {target.__name__} #{key} already visited, skipping")
                continue
            visited.add((target, key))
            keys.append(key)
        found = self.repo.fetch_by_keys(target, keys, level)
        children = [found[k] for k in keys if k in found]
        setattr(record, rel.field_name, children)
        return children
