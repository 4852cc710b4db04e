"""Type-check formula functions: ISNUMBER, ISTEXT, ISBLANK, ISERROR, ISNA, ..."""

from __future__ import annotations

from typing import Any

from sheetcalc.formulas.errors import NA, VALUE, is_error
from sheetcalc.formulas.values import arg, first_value, is_blank, is_number, looks_numeric, to_num


def _single(args: list) -> Any:
    return first_value(arg(args, 0))


def _fn_isnumber(args: list, ctx: Any) -> bool:
    """ISNUMBER(v) -- numbers and numeric-looking text."""
    value = _single(args)
    return is_number(value) or (isinstance(value, str) and looks_numeric(value))


def _fn_istext(args: list, ctx: Any) -> bool:
    value = _single(args)
    return isinstance(value, str) and not looks_numeric(value) and not is_error(value)


def _fn_isblank(args: list, ctx: Any) -> bool:
    return is_blank(_single(args))


def _fn_iserror(args: list, ctx: Any) -> bool:
    """ISERROR(v) -- TRUE for any error sentinel."""
    return is_error(_single(args))


def _fn_isna(args: list, ctx: Any) -> bool:
    return _single(args) == NA


def _fn_islogical(args: list, ctx: Any) -> bool:
    return isinstance(_single(args), bool)


def _parity(args: list) -> Any:
    value = _single(args)
    if isinstance(value, str) and not looks_numeric(value) and value != "":
        return None
    return int(to_num(value)) % 2


def _fn_iseven(args: list, ctx: Any) -> Any:
    parity = _parity(args)
    return VALUE if parity is None else parity == 0


def _fn_isodd(args: list, ctx: Any) -> Any:
    parity = _parity(args)
    return VALUE if parity is None else parity == 1


INFO_FUNCTIONS: dict[str, Any] = {
    "ISNUMBER": _fn_isnumber,
    "ISTEXT": _fn_istext,
    "ISBLANK": _fn_isblank,
    "ISERROR": _fn_iserror,
    "ISNA": _fn_isna,
    "ISLOGICAL": _fn_islogical,
    "ISEVEN": _fn_iseven,
    "ISODD": _fn_isodd,
}
