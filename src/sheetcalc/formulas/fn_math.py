"""Math formula functions: SUM, PRODUCT, ROUND family, logs, trig and aliases."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sheetcalc.formulas.errors import DIV0, NUM
from sheetcalc.formulas.values import arg, flat_nums, to_num


def _fn_sum(args: list, ctx: Any) -> float:
    return sum(flat_nums(args))


def _fn_product(args: list, ctx: Any) -> float:
    """PRODUCT(n1, ...) -- also serves MULTIPLY."""
    return math.prod(flat_nums(args))


def _fn_abs(args: list, ctx: Any) -> float:
    return abs(to_num(arg(args, 0)))


def _fn_sqrt(args: list, ctx: Any) -> Any:
    n = to_num(arg(args, 0))
    if n < 0:
        return NUM
    return math.sqrt(n)


def _fn_power(args: list, ctx: Any) -> float:
    return math.pow(to_num(arg(args, 0)), to_num(arg(args, 1)))


def _fn_mod(args: list, ctx: Any) -> Any:
    """MOD(n, d) -- result takes the sign of the divisor, like Excel."""
    divisor = to_num(arg(args, 1))
    if divisor == 0:
        return DIV0
    return to_num(arg(args, 0)) % divisor


def _fn_int(args: list, ctx: Any) -> float:
    return float(math.floor(to_num(arg(args, 0))))


def _fn_trunc(args: list, ctx: Any) -> float:
    factor = 10 ** int(to_num(arg(args, 1)))
    return math.trunc(to_num(arg(args, 0)) * factor) / factor


def _round_half_away(value: float, digits: int) -> float:
    """Round half away from zero (spreadsheet rounding, not banker's)."""
    if not math.isfinite(value) or (digits >= 0 and abs(value) >= 1e15):
        return value
    # Decimal of the shortest repr keeps 1.005 -> 1.01 instead of 1.0
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def _fn_round(args: list, ctx: Any) -> float:
    return _round_half_away(to_num(arg(args, 0)), int(to_num(arg(args, 1))))


def _scaled(value: float, factor: float) -> float:
    # Trim float noise so ROUNDUP(1.1, 1) stays 1.1 rather than 1.2
    return round(abs(value) * factor, 9)


def _fn_roundup(args: list, ctx: Any) -> float:
    """ROUNDUP(n, digits) -- away from zero."""
    value = to_num(arg(args, 0))
    factor = 10 ** int(to_num(arg(args, 1)))
    return math.copysign(math.ceil(_scaled(value, factor)) / factor, value)


def _fn_rounddown(args: list, ctx: Any) -> float:
    """ROUNDDOWN(n, digits) -- toward zero."""
    value = to_num(arg(args, 0))
    factor = 10 ** int(to_num(arg(args, 1)))
    return math.copysign(math.floor(_scaled(value, factor)) / factor, value)


def _fn_ceiling(args: list, ctx: Any) -> float:
    """CEILING(n, significance) -- significance defaults to 1."""
    significance = to_num(arg(args, 1)) or 1
    return math.ceil(to_num(arg(args, 0)) / significance) * significance


def _fn_floor(args: list, ctx: Any) -> float:
    significance = to_num(arg(args, 1)) or 1
    return math.floor(to_num(arg(args, 0)) / significance) * significance


def _fn_pi(args: list, ctx: Any) -> float:
    return math.pi


def _fn_exp(args: list, ctx: Any) -> float:
    return math.exp(to_num(arg(args, 0)))


def _fn_ln(args: list, ctx: Any) -> float:
    return math.log(to_num(arg(args, 0)))


def _fn_log(args: list, ctx: Any) -> float:
    """LOG(n [, base]) -- base defaults to 10."""
    base = to_num(args[1]) if len(args) > 1 and args[1] is not None else 10
    return math.log(to_num(arg(args, 0)), base)


def _fn_log10(args: list, ctx: Any) -> float:
    return math.log10(to_num(arg(args, 0)))


def _fn_sin(args: list, ctx: Any) -> float:
    return math.sin(to_num(arg(args, 0)))


def _fn_cos(args: list, ctx: Any) -> float:
    return math.cos(to_num(arg(args, 0)))


def _fn_tan(args: list, ctx: Any) -> float:
    return math.tan(to_num(arg(args, 0)))


def _fn_sign(args: list, ctx: Any) -> int:
    n = to_num(arg(args, 0))
    return (n > 0) - (n < 0)


def _fn_divide(args: list, ctx: Any) -> Any:
    divisor = to_num(arg(args, 1))
    if divisor == 0:
        return DIV0
    return to_num(arg(args, 0)) / divisor


def _fn_difference(args: list, ctx: Any) -> float:
    return to_num(arg(args, 0)) - to_num(arg(args, 1))


MATH_FUNCTIONS: dict[str, Any] = {
    "SUM": _fn_sum,
    "PRODUCT": _fn_product,
    "ABS": _fn_abs,
    "SQRT": _fn_sqrt,
    "POWER": _fn_power,
    "MOD": _fn_mod,
    "INT": _fn_int,
    "TRUNC": _fn_trunc,
    "ROUND": _fn_round,
    "ROUNDUP": _fn_roundup,
    "ROUNDDOWN": _fn_rounddown,
    "CEILING": _fn_ceiling,
    "FLOOR": _fn_floor,
    "PI": _fn_pi,
    "EXP": _fn_exp,
    "LN": _fn_ln,
    "LOG": _fn_log,
    "LOG10": _fn_log10,
    "SIN": _fn_sin,
    "COS": _fn_cos,
    "TAN": _fn_tan,
    "SIGN": _fn_sign,
    "MULTIPLY": _fn_product,
    "DIVIDE": _fn_divide,
    "DIFFERENCE": _fn_difference,
}
