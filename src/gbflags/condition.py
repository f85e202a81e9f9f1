"""Condition evaluation over nested attribute mappings.

A condition is a decoded JSON object. Its top level is either a logical
combinator (``$or``, ``$nor``, ``$and``, ``$not``) or a mapping of dotted
attribute paths to condition values. A condition value is matched according
to its shape: an operator object (every key starts with ``$``), an array,
an object, or a literal.

Every operator returns ``False`` for operands it cannot compare, so a broken
rule denies rather than grants.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Final

import structlog

from ._text import json_text
from .version import padded_version_string

logger = structlog.stdlib.get_logger(__name__)


class _Missing:
    """Sentinel for an attribute path that does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()

_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")


class ConditionShape(Enum):
    """Shape of a condition value, decides how it is matched."""

    OPERATORS = "operators"
    ARRAY = "array"
    OBJECT = "object"
    LITERAL = "literal"


def _shape_of(value: Any) -> ConditionShape:
    if isinstance(value, Mapping):
        if is_operator_object(value):
            return ConditionShape.OPERATORS
        return ConditionShape.OBJECT
    if isinstance(value, (list, tuple)):
        return ConditionShape.ARRAY
    return ConditionShape.LITERAL


def is_operator_object(obj: Mapping[str, Any]) -> bool:
    """True for a non-empty mapping whose keys all start with ``$``."""
    return bool(obj) and all(isinstance(k, str) and k.startswith("$") for k in obj)


def _is_missing(value: Any) -> bool:
    return value is MISSING or value is None


def _looks_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and _NUMBER_RE.match(value) is not None


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


# ------------------------------------------------------------------
# Path resolution
# ------------------------------------------------------------------


def get_path(attributes: Any, path: str) -> Any:
    """Resolve a dotted ``path`` in ``attributes``.

    Returns ``MISSING`` as soon as a segment is not a key of a mapping.
    """
    current = attributes
    for segment in path.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return MISSING
    return current


def get_type(value: Any) -> str:
    """Coarse JSON type tag used by ``$type``."""
    if _is_missing(value):
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return "unknown"


# ------------------------------------------------------------------
# Comparison helpers
# ------------------------------------------------------------------


def compare(a: Any, b: Any) -> int | None:
    """Three-way compare two attribute values.

    A missing side counts as ``0`` when the other side is numeric and as an
    empty string otherwise. Returns None when the values cannot be compared.
    """
    if _is_missing(a) and _looks_numeric(b):
        a = 0
    if _is_missing(b) and _looks_numeric(a):
        b = 0
    if _looks_numeric(a) and _looks_numeric(b):
        x, y = float(a), float(b)
        return (x > y) - (x < y)
    if _is_missing(a):
        a = ""
    if _is_missing(b):
        b = ""
    if not (_is_scalar(a) and _is_scalar(b)):
        return None
    s, t = json_text(a), json_text(b)
    return (s > t) - (s < t)


def _literal_equals(expected: Any, actual: Any) -> bool:
    if actual is MISSING:
        return expected is None
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool) and expected == actual
    if (
        isinstance(expected, (int, float)) or isinstance(actual, (int, float))
    ) and _looks_numeric(expected) and _looks_numeric(actual):
        return float(expected) == float(actual)
    if type(expected) is not type(actual) and not (
        isinstance(expected, str) and isinstance(actual, str)
    ):
        return False
    return bool(expected == actual)


def _is_in(values: list[Any], actual: Any) -> bool:
    if _is_missing(actual):
        return False
    if isinstance(actual, (list, tuple)):
        return any(_literal_equals(v, item) for item in actual for v in values)
    return any(_literal_equals(v, actual) for v in values)


# ------------------------------------------------------------------
# Field operators
# ------------------------------------------------------------------

OperatorFn = Callable[[Any, Any], bool]


def _op_eq(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c == 0


def _op_ne(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c != 0


def _op_lt(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c < 0


def _op_lte(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c <= 0


def _op_gt(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c > 0


def _op_gte(actual: Any, expected: Any) -> bool:
    c = compare(actual, expected)
    return c is not None and c >= 0


def _op_veq(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) == padded_version_string(expected)


def _op_vne(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) != padded_version_string(expected)


def _op_vlt(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) < padded_version_string(expected)


def _op_vlte(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) <= padded_version_string(expected)


def _op_vgt(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) > padded_version_string(expected)


def _op_vgte(actual: Any, expected: Any) -> bool:
    return padded_version_string(actual) >= padded_version_string(expected)


def _op_regex(actual: Any, pattern: Any) -> bool:
    if not isinstance(pattern, str):
        return False
    if not _is_scalar(actual):
        return False
    try:
        compiled = re.compile(pattern)
    except re.error:
        return False
    return compiled.search(json_text(actual)) is not None


def _op_in(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)):
        return False
    return _is_in(list(expected), actual)


def _op_nin(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)):
        return False
    return not _is_in(list(expected), actual)


def _op_elem_match(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, (list, tuple)):
        return False
    as_operators = _shape_of(expected) is ConditionShape.OPERATORS
    for item in actual:
        if as_operators:
            if eval_condition_value(expected, item):
                return True
        elif eval_condition(item, expected):
            return True
    return False


def _op_size(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, (list, tuple)):
        return False
    return eval_condition_value(expected, len(actual))


def _op_all(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, (list, tuple)) or not isinstance(expected, (list, tuple)):
        return False
    return all(any(eval_condition_value(cond, item) for item in actual) for cond in expected)


def _op_exists(actual: Any, expected: Any) -> bool:
    if not expected:
        return _is_missing(actual)
    return not _is_missing(actual)


def _op_type(actual: Any, expected: Any) -> bool:
    return get_type(actual) == expected


def _op_not(actual: Any, expected: Any) -> bool:
    return not eval_condition_value(expected, actual)


_OPERATORS: dict[str, OperatorFn] = {
    "$eq": _op_eq,
    "$ne": _op_ne,
    "$lt": _op_lt,
    "$lte": _op_lte,
    "$gt": _op_gt,
    "$gte": _op_gte,
    "$veq": _op_veq,
    "$vne": _op_vne,
    "$vlt": _op_vlt,
    "$vlte": _op_vlte,
    "$vgt": _op_vgt,
    "$vgte": _op_vgte,
    "$regex": _op_regex,
    "$in": _op_in,
    "$nin": _op_nin,
    "$elemMatch": _op_elem_match,
    "$size": _op_size,
    "$all": _op_all,
    "$exists": _op_exists,
    "$type": _op_type,
    "$not": _op_not,
}

SUPPORTED_OPERATORS: Final = frozenset(_OPERATORS)


def eval_operator_condition(operator: str, attribute_value: Any, condition_value: Any) -> bool:
    """Apply one field operator. Unknown operators never match."""
    fn = _OPERATORS.get(operator)
    if fn is None:
        logger.debug("unknown_operator", operator=operator)
        return False
    return fn(attribute_value, condition_value)


# ------------------------------------------------------------------
# Condition trees
# ------------------------------------------------------------------


def eval_condition_value(condition_value: Any, attribute_value: Any) -> bool:
    """Match one condition value against one resolved attribute value."""
    shape = _shape_of(condition_value)

    if shape is ConditionShape.OPERATORS:
        return all(
            eval_operator_condition(op, attribute_value, operand)
            for op, operand in condition_value.items()
        )

    if shape is ConditionShape.ARRAY:
        if not isinstance(attribute_value, (list, tuple)):
            return False
        if len(condition_value) != len(attribute_value):
            return False
        return all(
            eval_condition_value(c, a) for c, a in zip(condition_value, attribute_value)
        )

    if shape is ConditionShape.OBJECT:
        if not isinstance(attribute_value, Mapping):
            return False
        if len(condition_value) != len(attribute_value):
            return False
        return all(
            key in attribute_value and eval_condition_value(value, attribute_value[key])
            for key, value in condition_value.items()
        )

    return _literal_equals(condition_value, attribute_value)


def _as_condition_list(conditions: Any) -> list[Any] | None:
    if isinstance(conditions, Mapping):
        return [conditions]
    if isinstance(conditions, (list, tuple)):
        return list(conditions)
    return None


def _eval_or(attributes: Any, conditions: Any) -> bool:
    items = _as_condition_list(conditions)
    if items is None:
        return False
    if not items:
        return True
    return any(eval_condition(attributes, c) for c in items)


def _eval_and(attributes: Any, conditions: Any) -> bool:
    items = _as_condition_list(conditions)
    if items is None:
        return False
    return all(eval_condition(attributes, c) for c in items)


def eval_condition(attributes: Any, condition: Any) -> bool:
    """Evaluate a condition tree against ``attributes``.

    Combinators are checked in the order ``$or``, ``$nor``, ``$and``,
    ``$not``; the first one present decides. Otherwise every path in the
    condition must match (implicit AND).
    """
    if not isinstance(condition, Mapping):
        return False
    if "$or" in condition:
        return _eval_or(attributes, condition["$or"])
    if "$nor" in condition:
        return not _eval_or(attributes, condition["$nor"])
    if "$and" in condition:
        return _eval_and(attributes, condition["$and"])
    if "$not" in condition:
        return not eval_condition(attributes, condition["$not"])

    for path, value in condition.items():
        if not isinstance(path, str):
            return False
        if not eval_condition_value(value, get_path(attributes, path)):
            return False
    return True
