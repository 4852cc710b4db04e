"""Lookup formula functions: VLOOKUP, HLOOKUP, MATCH, INDEX.

Tables are ranges, evaluated to a list of rows.  Approximate matching
orders keys with the rules of the ``<=`` operator (numeric if either side
is numeric, otherwise case-insensitive text).  Exact matching is stricter
than ``=``: blanks never match and non-numeric text never matches a
number.
"""

from __future__ import annotations

from typing import Any

from sheetcalc.formulas.errors import NA, REF
from sheetcalc.formulas.values import (
    arg,
    comparable,
    first_value,
    flat_all,
    is_blank,
    is_truthy,
    looks_numeric,
    to_num,
)


def _as_rows(value: Any) -> list[list[Any]]:
    """Normalise a lookup table argument to a list of rows."""
    if not isinstance(value, list):
        return [[value]]
    return [row if isinstance(row, list) else [row] for row in value]


def _transpose(rows: list[list[Any]]) -> list[list[Any]]:
    width = max((len(r) for r in rows), default=0)
    return [[r[c] if c < len(r) else None for r in rows] for c in range(width)]


def _equal(left: Any, right: Any) -> bool:
    """Exact-match test.

    Blanks never match.  A number only matches text that is itself a
    number literal, so ``"x"`` does not equal ``0`` the way it would under
    ``=``.  Otherwise the ``=`` rules apply.
    """
    if is_blank(left) or is_blank(right):
        return False
    if isinstance(left, str) != isinstance(right, str):
        text = left if isinstance(left, str) else right
        if not looks_numeric(text):
            return False
    lhs, rhs = comparable(left, right)
    return lhs == rhs


def _not_above(value: Any, key: Any) -> bool:
    lhs, rhs = comparable(value, key)
    try:
        return lhs <= rhs
    except TypeError:
        return False


def _find_row(keys: list[Any], key: Any, approximate: bool) -> int | None:
    """Index of the matching key, or ``None``.

    Exact mode returns the first equal key.  Approximate mode assumes keys
    sorted ascending and returns the last key ``<= key`` before the first
    one that exceeds it.
    """
    if not approximate:
        for i, candidate in enumerate(keys):
            if _equal(candidate, key):
                return i
        return None
    found = None
    for i, candidate in enumerate(keys):
        if is_blank(candidate):
            continue
        if not _not_above(candidate, key):
            break
        found = i
    return found


def _table_lookup(rows: list[list[Any]], args: list) -> Any:
    key = first_value(arg(args, 0))
    index = int(to_num(arg(args, 2)))
    approximate = is_truthy(arg(args, 3)) if len(args) > 3 else True
    if not rows:
        return NA
    found = _find_row([row[0] if row else None for row in rows], key, approximate)
    if found is None:
        return NA
    row = rows[found]
    if index < 1 or index > len(row):
        return REF
    return row[index - 1]


def _fn_vlookup(args: list, ctx: Any) -> Any:
    """VLOOKUP(key, table, col_index [, approximate]).

    Scans the first column of *table* and returns column *col_index*
    (1-based) of the matching row.  Approximate match is the default.
    """
    return _table_lookup(_as_rows(arg(args, 1)), args)


def _fn_hlookup(args: list, ctx: Any) -> Any:
    """HLOOKUP(key, table, row_index [, approximate]) -- VLOOKUP along the first row."""
    return _table_lookup(_transpose(_as_rows(arg(args, 1))), args)


def _fn_match(args: list, ctx: Any) -> Any:
    """MATCH(key, range [, type]) -- 1-based position of key in a range.

    type 1 (default): largest value <= key, data sorted ascending.
    type 0: first exact match.
    type -1: smallest value >= key, data sorted descending.
    """
    key = first_value(arg(args, 0))
    values = flat_all([arg(args, 1)])
    match_type = int(to_num(arg(args, 2, 1.0)))

    if match_type == 0:
        found = _find_row(values, key, approximate=False)
    elif match_type > 0:
        found = _find_row(values, key, approximate=True)
    else:
        found = None
        for i, candidate in enumerate(values):
            if is_blank(candidate):
                continue
            lhs, rhs = comparable(candidate, key)
            if lhs < rhs:
                break
            found = i
    return NA if found is None else found + 1


def _fn_index(args: list, ctx: Any) -> Any:
    """INDEX(range, row [, col]) -- cell at a 1-based position, #REF! outside the range."""
    rows = _as_rows(arg(args, 0))
    row_num = int(to_num(arg(args, 1)))
    col_num = int(to_num(arg(args, 2, 1.0)))
    # A single-row range indexed with one number walks along the row.
    if len(args) < 3 and len(rows) == 1:
        row_num, col_num = 1, row_num
    if row_num < 1 or row_num > len(rows):
        return REF
    row = rows[row_num - 1]
    if col_num < 1 or col_num > len(row):
        return REF
    return row[col_num - 1]


LOOKUP_FUNCTIONS: dict[str, Any] = {
    "VLOOKUP": _fn_vlookup,
    "HLOOKUP": _fn_hlookup,
    "MATCH": _fn_match,
    "INDEX": _fn_index,
}
