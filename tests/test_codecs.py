"""Tests for value coercion and the JSON codec."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from rowbinder.utils.coercion import coerce, unwrap_optional
from rowbinder.utils.json_codec import JsonCodec


@dataclass
class Point:
    x: int
    y: int


class TestCoerce:
    """Tests for coerce()."""

    def test_unwrap_optional(self):
        assert unwrap_optional(Optional[int]) is int
        assert unwrap_optional(int | None) is int
        assert unwrap_optional(str) is str

    @pytest.mark.parametrize("value, annotation, expected", [
        ("26", Optional[int], 26),
        (26.0, int, 26),
        (Decimal("12.50"), float, 12.5),
        (12.5, Decimal, Decimal("12.5")),
        (1, Optional[bool], True),
        ("false", bool, False),
        ("2024-03-01", Optional[date], date(2024, 3, 1)),
        ("2024-03-01T10:30:00", datetime, datetime(2024, 3, 1, 10, 30)),
        (datetime(2024, 3, 1, 10, 30), date, date(2024, 3, 1)),
        (b"raw", str, "raw"),
    ])
    def test_conversions(self, value, annotation, expected):
        assert coerce(value, annotation) == expected

    def test_none_passes_through(self):
        assert coerce(None, int) is None

    def test_unknown_type_passes_through(self):
        marker = object()
        assert coerce(marker, Point) is marker

    @pytest.mark.parametrize("value, annotation", [
        ("abc", int),
        (2.5, int),
        ("maybe", bool),
        ("not a date", date),
    ])
    def test_failures(self, value, annotation):
        with pytest.raises((ValueError, TypeError)):
            coerce(value, annotation)


class TestJsonCodec:
    """Tests for the default JSON codec."""

    def test_encode_none(self):
        assert JsonCodec().encode(None) is None

    def test_encode_special_types(self):
        text = JsonCodec().encode({"when": date(2024, 1, 2), "cost": Decimal("1.10"), "p": Point(1, 2)})
        assert text == '{"when": "2024-01-02", "cost": "1.10", "p": {"x": 1, "y": 2}}'

    def test_decode_list(self):
        assert JsonCodec().decode('["a", "b"]', list) == ["a", "b"]

    def test_decode_dataclass(self):
        assert JsonCodec().decode('{"x": 3, "y": 4}', Point) == Point(3, 4)

    def test_decode_already_parsed(self):
        assert JsonCodec().decode({"x": 1}) == {"x": 1}

    def test_decode_invalid(self):
        with pytest.raises(ValueError):
            JsonCodec().decode("{not json", list)
