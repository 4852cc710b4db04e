"""Value coercion shared by the evaluator and the function library.

A formula value is ``float | int | str | bool | None`` or a (possibly
nested) list of those while a range is in flight.  Coercion is lenient:
text that does not start with a number is ``0``, blanks are ``0`` or
``""``, and nothing here raises.
"""

from __future__ import annotations

import math
import re
from typing import Any

# Longest numeric prefix, the way spreadsheet UIs read "12px" as 12.
_NUM_PREFIX_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def is_number(value: Any) -> bool:
    """True for int/float values (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def looks_numeric(text: str) -> bool:
    """True if the whole of *text* is a number literal."""
    return bool(_NUMERIC_RE.match(text))


def parse_number_prefix(text: str) -> float | None:
    """Parse the longest leading number in *text*, or ``None``."""
    m = _NUM_PREFIX_RE.match(text)
    if not m:
        return None
    return float(m.group(0))


def first_value(value: Any) -> Any:
    """The first scalar of a (nested) list; scalars are returned as-is."""
    while isinstance(value, list):
        if not value:
            return None
        value = value[0]
    return value


def to_num(value: Any) -> float:
    """Numeric coercion: bool -> 1/0, blank -> 0, text -> numeric prefix or 0."""
    value = first_value(value)
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return value
    if value is None:
        return 0.0
    parsed = parse_number_prefix(str(value))
    return 0.0 if parsed is None else parsed


def format_number(value: float) -> str:
    """Render a number for display: integral floats lose their ``.0``."""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def to_text(value: Any) -> str:
    """Text coercion: blank -> ``""``, booleans -> ``TRUE``/``FALSE``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return ",".join(to_text(v) for v in flat_all([value]))
    return str(value)


def is_truthy(value: Any) -> bool:
    """Condition test used by IF and friends: ``0``, ``""``, blank, FALSE are false."""
    value = first_value(value)
    if value is None or value == "":
        return False
    if isinstance(value, str):
        upper = value.strip().upper()
        if upper == "FALSE":
            return False
        return True
    return bool(value)


def is_blank(value: Any) -> bool:
    return value is None or value == ""


def arg(args: list, index: int, default: Any = None) -> Any:
    """Argument *index*, or *default* when it was not supplied.

    Missing arguments are tolerated everywhere: ``LEFT("abc")`` and
    ``ABS()`` evaluate instead of failing.
    """
    if index < len(args):
        return args[index]
    return default


def flat_all(args: list) -> list:
    """Flatten nested lists depth-first, keeping every entry including blanks."""
    out: list = []
    for a in args:
        if isinstance(a, list):
            out.extend(flat_all(a))
        else:
            out.append(a)
    return out


def flat_nums(args: list) -> list[float]:
    """Flatten depth-first and keep only numeric entries.

    Numbers and booleans count; numeric-looking text counts (cells hold
    text until coerced); blanks and other text are dropped.
    """
    out: list[float] = []
    for a in flat_all(args):
        if is_blank(a):
            continue
        if isinstance(a, str):
            if looks_numeric(a):
                out.append(float(a))
            continue
        out.append(to_num(a))
    return out


def comparable(left: Any, right: Any) -> tuple[Any, Any]:
    """Coerce two operands to a common comparable form.

    Numeric if either side is a number or boolean, else case-insensitive text.
    """
    left = first_value(left)
    right = first_value(right)
    if isinstance(left, (int, float)) or isinstance(right, (int, float)):
        return to_num(left), to_num(right)
    return to_text(left).lower(), to_text(right).lower()
