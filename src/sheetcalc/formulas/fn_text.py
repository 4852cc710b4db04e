"""Text formula functions."""

from __future__ import annotations

import re
from typing import Any

from sheetcalc.formulas.errors import VALUE
from sheetcalc.formulas.values import (
    arg,
    flat_all,
    is_number,
    looks_numeric,
    parse_number_prefix,
    to_num,
    to_text,
)


def _fn_concat(args: list, ctx: Any) -> str:
    """CONCAT(v1, ...) / CONCATENATE -- ranges contribute every cell."""
    return "".join(to_text(v) for v in flat_all(args))


def _fn_len(args: list, ctx: Any) -> int:
    return len(to_text(arg(args, 0)))


def _fn_upper(args: list, ctx: Any) -> str:
    return to_text(arg(args, 0)).upper()


def _fn_lower(args: list, ctx: Any) -> str:
    return to_text(arg(args, 0)).lower()


def _fn_proper(args: list, ctx: Any) -> str:
    return to_text(arg(args, 0)).title()


def _fn_trim(args: list, ctx: Any) -> str:
    """TRIM(text) -- strip both ends and collapse inner runs of spaces."""
    return re.sub(r" {2,}", " ", to_text(arg(args, 0)).strip())


def _count(args: list, index: int) -> int:
    """Character count argument; defaults to 1, negative is #VALUE!."""
    n = int(to_num(arg(args, index, 1.0)))
    if n < 0:
        raise ValueError("negative count")
    return n


def _fn_left(args: list, ctx: Any) -> Any:
    try:
        n = _count(args, 1)
    except ValueError:
        return VALUE
    return to_text(arg(args, 0))[:n]


def _fn_right(args: list, ctx: Any) -> Any:
    try:
        n = _count(args, 1)
    except ValueError:
        return VALUE
    text = to_text(arg(args, 0))
    return text[max(len(text) - n, 0):] if n else ""


def _fn_mid(args: list, ctx: Any) -> Any:
    """MID(text, start, count) -- start is 1-indexed."""
    start = int(to_num(arg(args, 1)))
    count = int(to_num(arg(args, 2)))
    if start < 1 or count < 0:
        return VALUE
    return to_text(arg(args, 0))[start - 1:start - 1 + count]


def _fn_substitute(args: list, ctx: Any) -> str:
    """SUBSTITUTE(text, old, new [, instance]) -- every occurrence unless instance given."""
    text = to_text(arg(args, 0))
    old = to_text(arg(args, 1))
    new = to_text(arg(args, 2))
    if not old:
        return text
    if len(args) < 4 or arg(args, 3) is None:
        return text.replace(old, new)
    instance = int(to_num(args[3]))
    pos = -1
    for _ in range(max(instance, 0)):
        pos = text.find(old, pos + 1)
        if pos < 0:
            return text
    if pos < 0:
        return text
    return text[:pos] + new + text[pos + len(old):]


def _fn_replace(args: list, ctx: Any) -> Any:
    """REPLACE(text, start, count, new) -- start is 1-indexed."""
    text = to_text(arg(args, 0))
    start = int(to_num(arg(args, 1))) - 1
    count = int(to_num(arg(args, 2)))
    if start < 0 or count < 0:
        return VALUE
    return text[:start] + to_text(arg(args, 3)) + text[start + count:]


def _fn_rept(args: list, ctx: Any) -> str:
    return to_text(arg(args, 0)) * max(0, int(to_num(arg(args, 1))))


def _fn_exact(args: list, ctx: Any) -> bool:
    return to_text(arg(args, 0)) == to_text(arg(args, 1))


def _search(args: list, fold_case: bool) -> Any:
    needle = to_text(arg(args, 0))
    haystack = to_text(arg(args, 1))
    start = int(to_num(args[2])) - 1 if len(args) > 2 and args[2] is not None else 0
    if start < 0:
        return VALUE
    if fold_case:
        needle, haystack = needle.lower(), haystack.lower()
    idx = haystack.find(needle, start)
    return idx + 1 if idx >= 0 else VALUE


def _fn_find(args: list, ctx: Any) -> Any:
    """FIND(needle, haystack [, start]) -- case-sensitive, 1-indexed result."""
    return _search(args, fold_case=False)


def _fn_search(args: list, ctx: Any) -> Any:
    """SEARCH(needle, haystack [, start]) -- case-insensitive FIND."""
    return _search(args, fold_case=True)


_FORMAT_RE = re.compile(r"^(#,##)?0(\.(0+))?(%)?$")


def _fn_text(args: list, ctx: Any) -> str:
    """TEXT(value [, format]).

    Formats understood: ``0``, ``0.00``, ``#,##0``, ``#,##0.00`` and the same
    with a trailing ``%``.  Without a (recognised) format, numbers are shown
    with thousands separators and up to three decimals.  Text passes through.
    """
    value = arg(args, 0)
    if isinstance(value, str) and looks_numeric(value):
        value = float(value)
    if not is_number(value):
        return to_text(value)
    m = _FORMAT_RE.match(to_text(arg(args, 1)).strip())
    if not m:
        text = f"{value:,.3f}".rstrip("0").rstrip(".")
        return "0" if text == "-0" else text
    grouping = "," if m.group(1) else ""
    decimals = len(m.group(3) or "")
    if m.group(4):
        return f"{value * 100:{grouping}.{decimals}f}%"
    return f"{value:{grouping}.{decimals}f}"


def _fn_value(args: list, ctx: Any) -> Any:
    """VALUE(text) -- leading number of the text, #VALUE! if there is none."""
    value = arg(args, 0)
    if is_number(value):
        return value
    if not isinstance(value, str):
        return VALUE
    parsed = parse_number_prefix(value)
    return VALUE if parsed is None else parsed


def _fn_char(args: list, ctx: Any) -> Any:
    code = int(to_num(arg(args, 0)))
    if code < 1 or code > 255:
        return VALUE
    return chr(code)


def _fn_code(args: list, ctx: Any) -> Any:
    text = to_text(arg(args, 0))
    return ord(text[0]) if text else VALUE


TEXT_FUNCTIONS: dict[str, Any] = {
    "CONCAT": _fn_concat,
    "CONCATENATE": _fn_concat,
    "LEN": _fn_len,
    "UPPER": _fn_upper,
    "LOWER": _fn_lower,
    "PROPER": _fn_proper,
    "TRIM": _fn_trim,
    "LEFT": _fn_left,
    "RIGHT": _fn_right,
    "MID": _fn_mid,
    "SUBSTITUTE": _fn_substitute,
    "REPLACE": _fn_replace,
    "REPT": _fn_rept,
    "EXACT": _fn_exact,
    "FIND": _fn_find,
    "SEARCH": _fn_search,
    "TEXT": _fn_text,
    "VALUE": _fn_value,
    "CHAR": _fn_char,
    "CODE": _fn_code,
}
