"""Tests for the composition codec."""

import pytest

from rowbinder import resolve
from sample_records import Address, Person


@pytest.fixture
def codec():
    return resolve(Person).compositions["address"]


class TestComposition:
    """Tests for decompose() and compose()."""

    def test_decompose(self, codec):
        flat = codec.decompose(Address(street="Main St 1", city="Oslo", zip_code="0150"))
        assert flat == {"addr_street": "Main St 1", "addr_city": "Oslo", "addr_zip_code": "0150"}

    def test_decompose_none(self, codec):
        assert codec.decompose(None) == {"addr_street": None, "addr_city": None, "addr_zip_code": None}

    @pytest.mark.parametrize("address", [
        Address(street="Main St 1", city="Oslo", zip_code="0150"),
        Address(city="Bergen"),
        Address(street="", city=None, zip_code="5003"),
    ])
    def test_round_trip(self, codec, address):
        assert codec.compose(codec.decompose(address)) == address

    def test_all_none_composes_to_none(self, codec):
        assert codec.compose({"addr_street": None, "addr_city": None}) is None

    def test_ignores_unrelated_columns(self, codec):
        composed = codec.compose({"addr_city": "Oslo", "name": "Ada"})
        assert composed == Address(city="Oslo")

    def test_wrong_type(self, codec):
        with pytest.raises(TypeError, match="Address"):
            codec.decompose("Main St 1")

    def test_extract_flattens_composition(self):
        person = Person(name="Ada", address=Address(city="Oslo"))
        values = resolve(Person).extract(person)
        assert values["addr_city"] == "Oslo"
        assert values["addr_street"] is None
        assert "address" not in values
