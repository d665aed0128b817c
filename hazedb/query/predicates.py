"""
Predicate catalogue for where-clauses.

Each Operator maps to a function (document, field, value) -> bool.
Comparisons are strict: booleans are never equal to numbers, and values
that cannot be ordered against each other (e.g. a string and a number)
never match an ordering operator.

Invariants:
    - An absent field never matches, except for nexists
    - exists/nexists ignore the comparison value
    - Text operators match the comparison value literally, not as a pattern
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

Predicate = Callable[[Mapping[str, Any], str, Any], bool]


class Operator(Enum):
    """Where-clause operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    IN = "in"
    NIN = "nin"
    EXISTS = "exists"
    NEXISTS = "nexists"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    CONTAINS = "contains"
    IPREFIX = "iprefix"
    ISUFFIX = "isuffix"
    ICONTAINS = "icontains"

    @classmethod
    def lookup(cls, name: Any) -> Optional[Operator]:
        """Operator for a clause's operator text, or None if unknown."""
        try:
            return cls(name)
        except (ValueError, TypeError):
            return None


def strict_equal(a: Any, b: Any) -> bool:
    """Equality that keeps booleans apart from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return a == b


def as_text(value: Any) -> str:
    """Render a field value as text for the text operators."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _compare(op: Callable[[Any, Any], bool]) -> Predicate:
    def predicate(doc: Mapping[str, Any], key: str, value: Any) -> bool:
        if key not in doc:
            return False
        field_value = doc[key]
        if isinstance(field_value, bool) != isinstance(value, bool):
            return False
        try:
            return bool(op(field_value, value))
        except TypeError:
            # Incomparable types
            return False

    return predicate


def _eq(doc: Mapping[str, Any], key: str, value: Any) -> bool:
    return key in doc and strict_equal(doc[key], value)


def _neq(doc: Mapping[str, Any], key: str, value: Any) -> bool:
    return key in doc and not strict_equal(doc[key], value)


def _member(doc: Mapping[str, Any], key: str, value: Any) -> Optional[bool]:
    if key not in doc or not isinstance(value, (list, tuple, set, frozenset)):
        return None
    return any(strict_equal(doc[key], item) for item in value)


def _in(doc: Mapping[str, Any], key: str, value: Any) -> bool:
    return _member(doc, key, value) is True


def _nin(doc: Mapping[str, Any], key: str, value: Any) -> bool:
    return _member(doc, key, value) is False


def _exists(doc: Mapping[str, Any], key: str, value: Any = None) -> bool:
    return key in doc


def _nexists(doc: Mapping[str, Any], key: str, value: Any = None) -> bool:
    return key not in doc


def _text(test: Callable[[str, str], bool], fold: bool = False) -> Predicate:
    def predicate(doc: Mapping[str, Any], key: str, value: Any) -> bool:
        if key not in doc:
            return False
        text, pattern = as_text(doc[key]), as_text(value)
        if fold:
            text, pattern = text.casefold(), pattern.casefold()
        return test(text, pattern)

    return predicate


def _startswith(text: str, pattern: str) -> bool:
    return text.startswith(pattern)


def _endswith(text: str, pattern: str) -> bool:
    return text.endswith(pattern)


def _contains(text: str, pattern: str) -> bool:
    return pattern in text


PREDICATES: Dict[Operator, Predicate] = {
    Operator.EQ: _eq,
    Operator.NEQ: _neq,
    Operator.GT: _compare(lambda a, b: a > b),
    Operator.GE: _compare(lambda a, b: a >= b),
    Operator.LT: _compare(lambda a, b: a < b),
    Operator.LE: _compare(lambda a, b: a <= b),
    Operator.IN: _in,
    Operator.NIN: _nin,
    Operator.EXISTS: _exists,
    Operator.NEXISTS: _nexists,
    Operator.PREFIX: _text(_startswith),
    Operator.SUFFIX: _text(_endswith),
    Operator.CONTAINS: _text(_contains),
    Operator.IPREFIX: _text(_startswith, fold=True),
    Operator.ISUFFIX: _text(_endswith, fold=True),
    Operator.ICONTAINS: _text(_contains, fold=True),
}


def get_predicate(operator: Any) -> Optional[Predicate]:
    """Predicate function for an operator name, or None if unknown."""
    op = operator if isinstance(operator, Operator) else Operator.lookup(operator)
    if op is None:
        return None
    return PREDICATES[op]
