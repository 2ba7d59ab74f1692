"""Tests for search expressions and the WHERE compiler."""

import pytest

from rowbinder import Connective, Operator, SearchExpression, ValidationError
from rowbinder.db.search import compile_where, escape_like


class TestOperatorParsing:
    """Tests for operator and connective lookup."""

    @pytest.mark.parametrize("text, expected", [
        ("equals", Operator.EQUALS),
        ("=", Operator.EQUALS),
        ("==", Operator.EQUALS),
        ("!=", Operator.NOT_EQUALS),
        ("contains", Operator.CONTAINS),
        ("LIKE", Operator.CONTAINS),
        ("greater_equal", Operator.GREATER_EQUAL),
        ("<", Operator.LESS),
    ])
    def test_parse(self, text, expected):
        assert Operator.parse(text) is expected

    def test_unknown_operator(self):
        with pytest.raises(ValidationError):
            SearchExpression("age", "between", 1)

    def test_connective_parse(self):
        assert SearchExpression("a", "=", 1, "or").connective is Connective.OR
        assert SearchExpression("a", "=", 1).connective is Connective.AND
        with pytest.raises(ValidationError):
            SearchExpression("a", "=", 1, "XOR")


class TestCompileWhere:
    """Tests for compile_where()."""

    def test_empty_list(self):
        assert compile_where([]) == ("", [])

    def test_single_equality(self):
        assert compile_where([SearchExpression("age", "equals", 26)]) == ("age = ?", [26])

    def test_left_to_right_without_parentheses(self):
        """Each clause's own connective joins it to the next; the last one is ignored."""
        sql, params = compile_where([
            SearchExpression("age", "=", 26, "OR"),
            SearchExpression("name", "=", "Jo", "AND"),
            SearchExpression("city", "=", "Oslo", "OR"),
        ])
        assert sql == "age = ? OR name = ? AND city = ?"
        assert "(" not in sql
        assert params == [26, "Jo", "Oslo"]

    def test_contains_pattern(self):
        sql, params = compile_where([SearchExpression("name", "contains", "John")])
        assert sql == "name LIKE ? ESCAPE '\\'"
        assert params == ["%John%"]

    def test_starts_and_ends_with(self):
        _, starts = compile_where([SearchExpression("name", Operator.STARTS_WITH, "Jo")])
        _, ends = compile_where([SearchExpression("name", Operator.ENDS_WITH, "hn")])
        assert starts == ["Jo%"]
        assert ends == ["%hn"]

    def test_like_wildcards_are_escaped(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
        _, params = compile_where([SearchExpression("note", "contains", "50%")])
        assert params == ["%50\\%%"]

    def test_none_becomes_is_null(self):
        assert compile_where([SearchExpression("email", "=", None)]) == ("email IS NULL", [])
        assert compile_where([SearchExpression("email", "!=", None)]) == ("email IS NOT NULL", [])

    def test_none_with_ordering_operator(self):
        with pytest.raises(ValidationError):
            compile_where([SearchExpression("age", ">", None)])

    def test_missing_value(self):
        with pytest.raises(ValidationError, match="no value"):
            compile_where([SearchExpression("age")])

    def test_values_are_never_inlined(self):
        sql, params = compile_where([SearchExpression("name", "=", "x'; DROP TABLE people; --")])
        assert "DROP" not in sql
        assert params == ["x'; DROP TABLE people; --"]
