"""Tests for descriptor resolution and its cache."""

import threading
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pytest

from rowbinder import ConfigurationError, column, foreign_key, resolve, table
from rowbinder.models.metadata import resolution_count
from sample_crews import Crew
from sample_records import Address, Person, Team


class TestResolve:
    """Tests for resolve() on well-formed record types."""

    def test_resolve_is_cached(self):
        """Resolving twice returns the same descriptor without re-introspection."""
        first = resolve(Person)
        second = resolve(Person)
        assert first is second
        assert resolution_count(Person) == 1

    def test_table_and_database(self):
        descriptor = resolve(Person)
        assert descriptor.database_name == "shop"
        assert descriptor.table_name == "people"
        assert descriptor.qualified_table == "shop.people"

    def test_columns_keep_declaration_order(self):
        """Composition members expand in place; relationships and excluded fields are not columns."""
        names = [c.column_name for c in resolve(Person).columns]
        assert names == [
            "id", "name", "age", "email", "salary", "role", "tags", "joined",
            "addr_street", "addr_city", "addr_zip_code", "team_id", "friend_ids",
        ]

    def test_primary_key(self):
        pk = resolve(Person).primary_key
        assert pk.field_name == "id"
        assert pk.automatic is True

    def test_mapped_column_name(self):
        from sample_records import LedgerLine

        descriptor = resolve(LedgerLine)
        assert descriptor.primary_key.field_name == "line_id"
        assert descriptor.primary_key.column_name == "id"
        assert descriptor.column("id") is descriptor.column("line_id")

    def test_access_levels_and_accepts(self):
        descriptor = resolve(Person)
        assert descriptor.column("email").min_read_level == 1
        assert descriptor.column("salary").min_write_level == 0
        assert descriptor.column("name").min_read_level is None
        assert descriptor.column("role").accepts == frozenset({"admin", "member", "guest"})
        assert descriptor.column("tags").json is True

    def test_relationships(self):
        descriptor = resolve(Person)
        team = descriptor.relationships["team"]
        friends = descriptor.relationships["friends"]
        assert team.local_field == "team_id"
        assert team.always_fetch is True
        assert team.many is False
        assert team.target_type() is Team
        assert friends.many is True
        assert friends.target_type() is Person

    def test_forward_reference_resolves(self):
        assert resolve(Team).relationships["lead"].target_type() is Person

    def test_composition_descriptor(self):
        comp = resolve(Person).compositions["address"]
        assert comp.composite_type is Address
        assert [c.member for c in comp.columns] == ["street", "city", "zip_code"]

    def test_excluded_field(self):
        descriptor = resolve(Person)
        assert descriptor.excluded == ("session_token",)
        with pytest.raises(KeyError):
            descriptor.column("session_token")

    def test_descriptor_is_immutable(self):
        descriptor = resolve(Person)
        with pytest.raises(TypeError):
            descriptor.relationships["extra"] = None

    def test_concurrent_first_use_resolves_once(self):
        """Threads racing on an unresolved type all get the same descriptor."""

        @table(database="shop", name="race")
        @dataclass
        class Race:
            id: Optional[int] = column(primary_key=True)

        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(resolve(Race))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is results[0] for r in results)
        assert resolution_count(Race) == 1

    def test_type_checking_forward_reference(self):
        """Only the annotation naming an unimportable class stays unresolved."""
        descriptor = resolve(Crew)
        assert descriptor.column("active").annotation == Optional[bool]
        assert descriptor.column("joined").annotation == Optional[date]
        assert descriptor.column("ship_id").annotation == Optional[int]
        assert descriptor.relationships["ship"].local_field == "ship_id"


class TestConfigurationErrors:
    """Tests for metadata that must fail fast."""

    def test_missing_table_decorator(self):
        @dataclass
        class Plain:
            id: Optional[int] = column(primary_key=True)

        with pytest.raises(ConfigurationError, match="no @table"):
            resolve(Plain)

    def test_not_a_dataclass(self):
        @table(database="shop")
        class NotData:
            id = None

        with pytest.raises(ConfigurationError, match="dataclass"):
            resolve(NotData)

    def test_no_primary_key(self):
        @table(database="shop")
        @dataclass
        class NoKey:
            name: Optional[str] = None

        with pytest.raises(ConfigurationError, match="exactly one primary key"):
            resolve(NoKey)

    def test_two_primary_keys(self):
        @table(database="shop")
        @dataclass
        class TwoKeys:
            a: Optional[int] = column(primary_key=True)
            b: Optional[int] = column(primary_key=True)

        with pytest.raises(ConfigurationError, match="found: a, b"):
            resolve(TwoKeys)

    def test_invalid_identifier(self):
        @table(database="shop; DROP TABLE x", name="bad")
        @dataclass
        class BadName:
            id: Optional[int] = column(primary_key=True)

        with pytest.raises(ConfigurationError, match="Invalid SQL database name"):
            resolve(BadName)

    def test_duplicate_column_names(self):
        @table(database="shop")
        @dataclass
        class Dupes:
            id: Optional[int] = column(primary_key=True)
            a: Optional[int] = column(name="x")
            x: Optional[int] = None

        with pytest.raises(ConfigurationError, match="x"):
            resolve(Dupes)

    def test_foreign_key_without_local_column(self):
        @table(database="shop")
        @dataclass
        class Dangling:
            id: Optional[int] = column(primary_key=True)
            team: Optional[Team] = foreign_key(Team, column="team_id")

        with pytest.raises(ConfigurationError, match="team_id"):
            resolve(Dangling)

    def test_foreign_key_target_without_table(self):
        @dataclass
        class Unmapped:
            id: Optional[int] = None

        @table(database="shop")
        @dataclass
        class PointsNowhere:
            id: Optional[int] = column(primary_key=True)
            other_id: Optional[int] = None
            other: Optional[Unmapped] = foreign_key(Unmapped, column="other_id")

        with pytest.raises(ConfigurationError, match="no @table"):
            resolve(PointsNowhere)

    def test_accepts_with_json(self):
        @table(database="shop")
        @dataclass
        class Conflicted:
            id: Optional[int] = column(primary_key=True)
            kind: Optional[str] = column(accepts={"a"}, json=True)

        with pytest.raises(ConfigurationError, match="accepts"):
            resolve(Conflicted)

    def test_unknown_string_target(self):
        @table(database="shop")
        @dataclass
        class Orphan:
            id: Optional[int] = column(primary_key=True)
            parent_id: Optional[int] = None
            parent: Optional[object] = foreign_key("NoSuchRecord", column="parent_id")

        relationship = resolve(Orphan).relationships["parent"]
        with pytest.raises(ConfigurationError, match="NoSuchRecord"):
            relationship.target_type()
