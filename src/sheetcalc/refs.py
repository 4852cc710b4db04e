"""A1-style reference helpers: column letters, cell keys and ranges.

Column letters form a bijective base-26 numeral (``A`` = 0, ``Z`` = 25,
``AA`` = 26).  ``$`` absolute markers are accepted everywhere and ignored:
they carry no meaning for values.
"""

from __future__ import annotations

import re

_CELL_REF_RE = re.compile(r"^\$?([A-Za-z]+)\$?(\d+)$")


def col_letters_to_index(letters: str) -> int:
    """Convert column letter(s) to a 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters.replace("$", "").upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letters(idx: int) -> str:
    """Convert a 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def parse_cell_ref(ref: str) -> tuple[int, int] | None:
    """Parse ``'A1'``, ``'$B$3'``, ``'aa12'`` into ``(row, col)``, both 0-based.

    Returns ``None`` when *ref* is not a cell reference.  Callers treat that
    as "some other identifier", never as an error.
    """
    m = _CELL_REF_RE.match(ref)
    if not m:
        return None
    return int(m.group(2)) - 1, col_letters_to_index(m.group(1))


def make_key(row: int, col: int) -> str:
    """Build a cell key from 0-based row/col."""
    return f"{index_to_col_letters(col)}{row + 1}"


def to_cell_key(ref: str) -> str:
    """Canonicalize a reference into the exact Cell Store key (``$b$3`` -> ``B3``)."""
    m = _CELL_REF_RE.match(ref)
    if not m:
        return ref.upper()
    return f"{m.group(1).upper()}{m.group(2)}"


def range_shape(start: str, end: str) -> tuple[int, int]:
    """Return ``(n_rows, n_cols)`` of the rectangle spanned by two corners.

    ``(0, 0)`` if either corner is not a cell reference.
    """
    s = parse_cell_ref(start)
    e = parse_cell_ref(end)
    if s is None or e is None:
        return 0, 0
    return abs(s[0] - e[0]) + 1, abs(s[1] - e[1]) + 1


def expand_range(start: str, end: str) -> list[str]:
    """Expand a rectangular range into cell keys, row-major, corners inclusive.

    The corners may be given in any order; both axes are normalised.

    Args:
        start: One corner, e.g. ``"A1"``.
        end: The opposite corner, e.g. ``"C3"``.

    Returns:
        Flat list of cell keys, or ``[]`` if a corner is not a reference.
    """
    s = parse_cell_ref(start)
    e = parse_cell_ref(end)
    if s is None or e is None:
        return []
    r0, r1 = sorted((s[0], e[0]))
    c0, c1 = sorted((s[1], e[1]))
    return [make_key(r, c) for r in range(r0, r1 + 1) for c in range(c0, c1 + 1)]
