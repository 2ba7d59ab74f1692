"""Tests for column access control."""

import pytest

from rowbinder import AccessDeniedError, resolve
from rowbinder.security.access import Intent, can_access, filter_columns, require_readable
from sample_records import Person


def _names(columns):
    return [c.column_name for c in columns]


class TestFilterColumns:
    """Tests for filter_columns()."""

    def test_unrestricted_level_sees_everything(self):
        descriptor = resolve(Person)
        assert filter_columns(descriptor, None, Intent.READ) == descriptor.columns

    def test_most_privileged_level(self):
        names = _names(filter_columns(resolve(Person), 0, Intent.READ))
        assert "email" in names
        assert "salary" in names

    def test_middle_level(self):
        names = _names(filter_columns(resolve(Person), 1, Intent.WRITE))
        assert "email" in names
        assert "salary" not in names

    def test_least_privileged_level(self):
        names = _names(filter_columns(resolve(Person), 5, Intent.READ))
        assert "email" not in names
        assert "salary" not in names
        assert "name" in names

    def test_order_is_preserved(self):
        descriptor = resolve(Person)
        filtered = filter_columns(descriptor, 5, Intent.READ)
        expected = [c for c in descriptor.columns if c.column_name not in ("email", "salary")]
        assert list(filtered) == expected

    def test_pure_function(self):
        descriptor = resolve(Person)
        assert filter_columns(descriptor, 1, Intent.READ) == filter_columns(descriptor, 1, Intent.READ)
        assert len(descriptor.columns) == 13


class TestCanAccess:
    @pytest.mark.parametrize("level, allowed", [(0, True), (1, True), (2, False)])
    def test_threshold_boundary(self, level, allowed):
        email = resolve(Person).column("email")
        assert can_access(email, level, Intent.READ) is allowed
        assert can_access(email, level, Intent.WRITE) is allowed


class TestRequireReadable:
    def test_allowed(self):
        require_readable(resolve(Person).column("email"), 1)

    def test_escalation_is_rejected(self):
        with pytest.raises(AccessDeniedError, match="salary"):
            require_readable(resolve(Person).column("salary"), 1)
