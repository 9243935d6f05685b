"""
localcontent/filters.py -- Declarative entry filters.

A filter is a dict.  Each top-level key is either a field path or a
logical group, and all of them must match::

    {
        "status": "published",                   # equality
        "views": {"gte": 100, "lt": 1000},       # operators (AND-ed)
        "author.id": "jane",                     # dotted path
        "OR": [{"tags": {"contains": "python"}},
               {"featured": True}],
        "NOT": {"draft": True},
    }

Operators: ``eq ne gt gte lt lte in nin contains startsWith endsWith
exists``.  A condition dict with no operator keys is compared for
equality as a whole, which is how reference values are matched.

Evaluation never raises.  Unknown operators, missing fields and
type-incompatible comparisons are simply a non-match, so a bad filter
cannot break a listing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from localcontent.utils import as_timestamp, is_number, parse_iso_datetime

logger = logging.getLogger(__name__)

MAX_DEPTH = 32

_MISSING = object()


def _resolve_path(entry: Any, path: str) -> Any:
    if isinstance(entry, dict) and path in entry:
        return entry[path]
    current: Any = entry
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _comparable(left: Any, right: Any) -> tuple[Any, Any] | None:
    """Return a pair of mutually orderable keys, or None."""
    if is_number(left) and is_number(right):
        return left, right
    left_ts, right_ts = as_timestamp(left), as_timestamp(right)
    if left_ts is not None and right_ts is not None:
        return left_ts, right_ts
    if isinstance(left, str) and isinstance(right, str):
        left_dt, right_dt = parse_iso_datetime(left), parse_iso_datetime(right)
        if left_dt is not None and right_dt is not None:
            return left_dt.timestamp(), right_dt.timestamp()
        return left, right
    # datetime against ISO string
    if left_ts is not None and isinstance(right, str):
        right_dt = parse_iso_datetime(right)
        return (left_ts, right_dt.timestamp()) if right_dt else None
    if right_ts is not None and isinstance(left, str):
        left_dt = parse_iso_datetime(left)
        return (left_dt.timestamp(), right_ts) if left_dt else None
    return None


def _ordered(check: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def _op(value: Any, operand: Any) -> bool:
        pair = _comparable(value, operand)
        return pair is not None and check(*pair)
    return _op


def _contains(value: Any, operand: Any) -> bool:
    if isinstance(value, str) and isinstance(operand, str):
        return operand in value
    if isinstance(value, list):
        return operand in value
    return False


def _in(value: Any, operand: Any) -> bool:
    if not isinstance(operand, (list, tuple, set)):
        return False
    if isinstance(value, list):
        return any(item in operand for item in value)
    return value in operand


def _starts_with(value: Any, operand: Any) -> bool:
    return isinstance(value, str) and isinstance(operand, str) and value.startswith(operand)


def _ends_with(value: Any, operand: Any) -> bool:
    return isinstance(value, str) and isinstance(operand, str) and value.endswith(operand)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": lambda value, operand: value == operand,
    "ne": lambda value, operand: value != operand,
    "gt": _ordered(lambda a, b: a > b),
    "gte": _ordered(lambda a, b: a >= b),
    "lt": _ordered(lambda a, b: a < b),
    "lte": _ordered(lambda a, b: a <= b),
    "in": _in,
    "nin": lambda value, operand: isinstance(operand, (list, tuple, set)) and not _in(value, operand),
    "contains": _contains,
    "startsWith": _starts_with,
    "endsWith": _ends_with,
}


def _match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition:
        op_keys = [k for k in condition if k in _OPERATORS or k == "exists"]
        if not op_keys:
            return value is not _MISSING and value == condition
        if len(op_keys) != len(condition):
            # mixed operator and non-operator keys
            return False
        for op, operand in condition.items():
            if op == "exists":
                present = value is not _MISSING and value is not None
                if present != bool(operand):
                    return False
                continue
            if value is _MISSING:
                return False
            try:
                if not _OPERATORS[op](value, operand):
                    return False
            except TypeError:
                return False
        return True
    if value is _MISSING:
        return False
    return value == condition


def _match(entry: Any, spec: Any, depth: int) -> bool:
    if depth > MAX_DEPTH:
        logger.warning("Filter nesting deeper than %d levels; treating as no match", MAX_DEPTH)
        return False
    if not isinstance(spec, dict):
        return False

    for key, condition in spec.items():
        if key == "AND":
            groups = condition if isinstance(condition, list) else [condition]
            if not all(_match(entry, g, depth + 1) for g in groups):
                return False
        elif key == "OR":
            groups = condition if isinstance(condition, list) else [condition]
            if not any(_match(entry, g, depth + 1) for g in groups):
                return False
        elif key == "NOT":
            if not isinstance(condition, dict) or _match(entry, condition, depth + 1):
                return False
        elif not _match_condition(_resolve_path(entry, key), condition):
            return False
    return True


def does_match_filter(entry: Any, filter_spec: dict | None) -> bool:
    """Return True if *entry* satisfies every constraint in *filter_spec*.

    An empty or missing filter matches everything.
    """
    if not filter_spec:
        return True
    return _match(entry, filter_spec, 1)
