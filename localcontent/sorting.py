"""
localcontent/sorting.py -- Sorting for entry listings.

Each ``(field, direction)`` pair is applied as its own stable sort pass,
in the order given.  Because every pass keeps the order of equal elements
from the pass before it, the *last* key is the most significant one.
List keys from least to most significant when combining several.
"""

from __future__ import annotations

import functools
import unicodedata
from typing import Any, Iterable, Sequence

from localcontent.utils import as_timestamp, is_number, parse_iso_datetime

ASCENDING = "asc"
DESCENDING = "desc"


def _sign(number: float) -> int:
    return (number > 0) - (number < 0)


def collation_key(text: str) -> tuple[str, str, str]:
    """Sort key for human-readable text.

    Letters compare first without accents or case, then accented after
    unaccented, then lowercase before uppercase: ``a < A < b < émile < zed``.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), decomposed.casefold(), text.swapcase())


def compare_values(a: Any, b: Any) -> int:
    """Ascending three-way comparison of two non-null field values.

    Numbers compare numerically, dates by timestamp, strings that both
    parse as ISO dates as dates, everything else by ``collation_key``.
    """
    if is_number(a) and is_number(b):
        return _sign(a - b)

    a_ts, b_ts = as_timestamp(a), as_timestamp(b)
    if a_ts is not None and b_ts is not None:
        return _sign(a_ts - b_ts)

    if isinstance(a, str) and isinstance(b, str):
        a_dt, b_dt = parse_iso_datetime(a), parse_iso_datetime(b)
        if a_dt is not None and b_dt is not None:
            return _sign(a_dt.timestamp() - b_dt.timestamp())

    key_a, key_b = collation_key(str(a)), collation_key(str(b))
    return (key_a > key_b) - (key_a < key_b)


def _field_comparator(field: str, direction: str):
    descending = direction == DESCENDING

    def _compare(left: Any, right: Any) -> int:
        a = left.get(field) if isinstance(left, dict) else None
        b = right.get(field) if isinstance(right, dict) else None
        # None sorts first ascending, last descending
        if a is None and b is None:
            return 0
        if a is None:
            return 1 if descending else -1
        if b is None:
            return -1 if descending else 1
        result = compare_values(a, b)
        return -result if descending else result

    return _compare


def sort_entries(entries: list, sort: Iterable[Sequence[str]] | None) -> list:
    """Sort *entries* in place, one stable pass per sort key, and return it.

    Parameters
    ----------
    entries : list[dict]
    sort : iterable of (field, direction)
        ``direction`` is ``"asc"`` or ``"desc"``; anything else is treated
        as ascending.
    """
    for field, direction in sort or ():
        entries.sort(key=functools.cmp_to_key(_field_comparator(field, direction)))
    return entries
