"""
rowbinder/utils/coercion.py
---------------------------
Converts raw driver values into the Python types declared on record fields.
Drivers differ (SQLite hands back ISO strings for dates, PostgreSQL hands
back Decimal for NUMERIC), so every mapped value passes through here.
"""

import types
import typing
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union


def unwrap_optional(annotation: Any) -> Any:
    """Return ``X`` for ``Optional[X]`` / ``X | None``, else the annotation unchanged."""
    origin = typing.get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "t", "yes", "y"):
            return True
        if lowered in ("0", "false", "f", "no", "n"):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    raise TypeError(f"cannot convert {type(value).__name__} to bool")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, Decimal) and value != value.to_integral_value():
        raise ValueError(f"not an integer: {value!r}")
    return int(value)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"cannot convert {type(value).__name__} to datetime")


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"cannot convert {type(value).__name__} to date")


_CONVERTERS = {
    bool: _to_bool,
    int: _to_int,
    float: float,
    Decimal: lambda v: Decimal(str(v)),
    str: lambda v: v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v),
    datetime: _to_datetime,
    date: _to_date,
}


def coerce(value: Any, annotation: Optional[Any]) -> Any:
    """
    Coerce a driver value to a declared field type.

    Args:
        value: Raw value from the result row.
        annotation: The field's type annotation (Optional is unwrapped).

    Returns:
        The converted value. Types without a known converter pass through.

    Raises:
        ValueError, TypeError: If the value cannot be represented as the type.
    """
    if value is None or annotation is None:
        return value
    target = unwrap_optional(annotation)
    converter = _CONVERTERS.get(target)
    if converter is None:
        return value
    # Exact match only: bool is an int subclass and datetime a date subclass.
    if type(value) is target:
        return value
    return converter(value)
