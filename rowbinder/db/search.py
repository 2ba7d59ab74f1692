"""
rowbinder/db/search.py
----------------------
Search expressions and the WHERE-clause compiler.

Expressions are joined strictly left to right using each expression's
trailing connective; the last expression's connective is ignored. No
parentheses are added, so ``a OR b AND c`` carries the database's own
AND-before-OR precedence exactly as if the clause had been typed by hand:

    [SearchExpression("age", "=", 26, "OR"),
     SearchExpression("name", "contains", "Jo", "AND"),
     SearchExpression("active", "=", 1)]
    ->  age = ? OR name LIKE ? ESCAPE '\\' AND active = ?
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from rowbinder.utils.exceptions import ValidationError


class Operator(Enum):
    EQUALS = "="
    NOT_EQUALS = "<>"
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"

    @classmethod
    def parse(cls, value: "Operator | str") -> "Operator":
        """Accept an Operator, its symbol, or its name in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for op in cls:
            if text == op.value or text.upper() == op.name:
                return op
        aliases = {"==": cls.EQUALS, "!=": cls.NOT_EQUALS, "LIKE": cls.CONTAINS}
        if text.upper() in aliases:
            return aliases[text.upper()]
        raise ValidationError(f"Unknown search operator: {value!r}")

    @property
    def is_like(self) -> bool:
        return self in (Operator.CONTAINS, Operator.STARTS_WITH, Operator.ENDS_WITH)


class Connective(Enum):
    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: "Connective | str") -> "Connective":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown connective: {value!r}") from None


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class SearchExpression:
    """
    One predicate clause.

    Attributes:
        column: Field or column name.
        operator: Comparison to apply (Operator or its name/symbol).
        value: Bound value; UNSET means "take it from the template record".
        connective: How this clause joins the NEXT one (default AND).
    """
    column: str
    operator: Operator = Operator.EQUALS
    value: Any = UNSET
    connective: Connective = field(default=Connective.AND)

    def __post_init__(self):
        object.__setattr__(self, "operator", Operator.parse(self.operator))
        object.__setattr__(self, "connective", Connective.parse(self.connective))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _clause(expr: SearchExpression) -> tuple[str, list[Any]]:
    op, value = expr.operator, expr.value
    if value is UNSET:
        raise ValidationError(f"Search on '{expr.column}' has no value")
    if value is None:
        if op is Operator.EQUALS:
            return f"{expr.column} IS NULL", []
        if op is Operator.NOT_EQUALS:
            return f"{expr.column} IS NOT NULL", []
        raise ValidationError(f"Operator {op.name} cannot compare '{expr.column}' with NULL")
    if op.is_like:
        pattern = escape_like(str(value))
        if op is Operator.CONTAINS:
            pattern = f"%{pattern}%"
        elif op is Operator.STARTS_WITH:
            pattern = f"{pattern}%"
        else:
            pattern = f"%{pattern}"
        return f"{expr.column} LIKE ? ESCAPE '\\'", [pattern]
    return f"{expr.column} {op.value} ?", [value]


def compile_where(expressions: Sequence[SearchExpression]) -> tuple[str, list[Any]]:
    """
    Compile expressions into a WHERE fragment (without the WHERE keyword).

    Args:
        expressions: Clauses whose ``column`` is already a mapped column name
            and whose ``value`` is set.

    Returns:
        ``(fragment, params)``; an empty fragment for an empty list.
    """
    parts: list[str] = []
    params: list[Any] = []
    for i, expr in enumerate(expressions):
        if i > 0:
            parts.append(expressions[i - 1].connective.value)
        clause, values = _clause(expr)
        parts.append(clause)
        params.extend(values)
    return " ".join(parts), params
