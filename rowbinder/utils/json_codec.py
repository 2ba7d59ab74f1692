"""
rowbinder/utils/json_codec.py
-----------------------------
JSON codec used for list, dict and custom-object typed columns.

The codec is a small capability object so callers can swap in their own
implementation (any object with ``encode`` and ``decode`` works).
"""

import dataclasses
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional


def _default(value: Any) -> Any:
    """Fallback serializer for types the json module does not know."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonCodec:
    """Default codec built on the standard json module."""

    def encode(self, value: Any) -> Optional[str]:
        """
        Serialize a value to JSON text.

        Args:
            value: Any JSON-compatible value, dataclass, date or Decimal.

        Returns:
            The JSON string, or None when value is None.
        """
        if value is None:
            return None
        return json.dumps(value, default=_default)

    def decode(self, text: Any, target_type: Optional[type] = None) -> Any:
        """
        Parse JSON text back into a Python value.

        Args:
            text: JSON string (bytes are decoded as UTF-8).
            target_type: When a dataclass type, the parsed object is
                passed to its constructor as keyword arguments.

        Returns:
            The decoded value, or None when text is None.

        Raises:
            ValueError: If the text is not valid JSON or does not fit target_type.
        """
        if text is None:
            return None
        if isinstance(text, (bytes, bytearray)):
            text = text.decode("utf-8")
        if not isinstance(text, str):
            # Drivers such as psycopg2 already decode json/jsonb columns.
            data = text
        else:
            data = json.loads(text)
        if target_type is not None and dataclasses.is_dataclass(target_type) and isinstance(data, dict):
            try:
                return target_type(**data)
            except TypeError as e:
                raise ValueError(f"Cannot build {target_type.__name__} from JSON: {e}") from e
        return data


default_codec = JsonCodec()
