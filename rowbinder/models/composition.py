"""
rowbinder/models/composition.py
-------------------------------
Composition codec: flattens an embedded dataclass into prefixed columns
on the owning table and rebuilds it from a result row.

Example:
    address: Address = composition(Address, prefix="addr")
    # Address(street="Main St", city="Oslo")
    #   <-> {"addr_street": "Main St", "addr_city": "Oslo"}

A composite whose members are all None is stored and read back as None.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from rowbinder.models.descriptor import ColumnDescriptor


@dataclass(frozen=True)
class CompositionDescriptor:
    """Resolved layout of one composition field."""
    field_name: str
    composite_type: type
    prefix: str
    columns: tuple[ColumnDescriptor, ...]

    def decompose(self, value: Any) -> dict[str, Any]:
        """
        Split a composite value into its prefixed columns.

        Args:
            value: An instance of ``composite_type`` or None.

        Returns:
            Mapping of column name to member value (all None for None).
        """
        if value is None:
            return {c.column_name: None for c in self.columns}
        if not isinstance(value, self.composite_type):
            raise TypeError(
                f"{self.field_name} expects {self.composite_type.__name__}, "
                f"got {type(value).__name__}"
            )
        return {c.column_name: getattr(value, c.member) for c in self.columns}

    def compose(self, row: Mapping[str, Any]) -> Optional[Any]:
        """
        Rebuild the composite from prefixed columns.

        Args:
            row: Mapping of column name to (already coerced) value.

        Returns:
            A new ``composite_type`` instance, or None when every member is None.
        """
        members = {c.member: row.get(c.column_name) for c in self.columns}
        if all(v is None for v in members.values()):
            return None
        init_members = {
            f.name: members[f.name]
            for f in dataclasses.fields(self.composite_type)
            if f.init and f.name in members
        }
        return self.composite_type(**init_members)
