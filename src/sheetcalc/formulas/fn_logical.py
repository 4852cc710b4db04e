"""Logical formula functions: IF, IFS, IFERROR, IFNA, SWITCH, AND, OR, NOT, XOR.

IF, IFS, IFERROR, IFNA and SWITCH are lazy: they receive unevaluated AST
nodes and only evaluate the branch they return.
"""

from __future__ import annotations

from typing import Any

from sheetcalc.formulas.errors import NA, is_error
from sheetcalc.formulas.values import comparable, flat_all, is_truthy


def _evaluate(node: Any, ctx: Any) -> Any:
    # Local import to avoid circular dependency
    from sheetcalc.formulas.evaluator import _eval

    return _eval(node, ctx)


def _fn_if(raw_args: list, ctx: Any) -> Any:
    """IF(condition, then_value [, else_value]) -- missing branches are blank."""
    if not raw_args:
        return None
    if is_truthy(_evaluate(raw_args[0], ctx)):
        return _evaluate(raw_args[1], ctx) if len(raw_args) > 1 else None
    return _evaluate(raw_args[2], ctx) if len(raw_args) > 2 else None


def _fn_ifs(raw_args: list, ctx: Any) -> Any:
    """IFS(cond1, value1, cond2, value2, ...) -- first truthy condition wins."""
    for i in range(0, len(raw_args) - 1, 2):
        if is_truthy(_evaluate(raw_args[i], ctx)):
            return _evaluate(raw_args[i + 1], ctx)
    return NA


def _fn_iferror(raw_args: list, ctx: Any) -> Any:
    """IFERROR(value, fallback) -- fallback when value is an error sentinel."""
    if not raw_args:
        return None
    value = _evaluate(raw_args[0], ctx)
    if is_error(value):
        return _evaluate(raw_args[1], ctx) if len(raw_args) > 1 else ""
    return value


def _fn_ifna(raw_args: list, ctx: Any) -> Any:
    """IFNA(value, fallback) -- like IFERROR but only for #N/A."""
    if not raw_args:
        return None
    value = _evaluate(raw_args[0], ctx)
    if value == NA:
        return _evaluate(raw_args[1], ctx) if len(raw_args) > 1 else ""
    return value


def _fn_switch(raw_args: list, ctx: Any) -> Any:
    """SWITCH(expr, case1, value1, ... [, default]) -- #N/A without a match or default."""
    if not raw_args:
        return NA
    subject = _evaluate(raw_args[0], ctx)
    cases = raw_args[1:]
    for i in range(0, len(cases) - 1, 2):
        lhs, rhs = comparable(subject, _evaluate(cases[i], ctx))
        if lhs == rhs:
            return _evaluate(cases[i + 1], ctx)
    if len(cases) % 2 == 1:
        return _evaluate(cases[-1], ctx)
    return NA


def _fn_and(args: list, ctx: Any) -> bool:
    return all(is_truthy(a) for a in flat_all(args))


def _fn_or(args: list, ctx: Any) -> bool:
    return any(is_truthy(a) for a in flat_all(args))


def _fn_not(args: list, ctx: Any) -> bool:
    return not is_truthy(args[0] if args else None)


def _fn_xor(args: list, ctx: Any) -> bool:
    """XOR(v1, ...) -- TRUE when an odd number of arguments are truthy."""
    return sum(1 for a in flat_all(args) if is_truthy(a)) % 2 == 1


LOGICAL_FUNCTIONS: dict[str, Any] = {
    "IF": _fn_if,
    "IFS": _fn_ifs,
    "IFERROR": _fn_iferror,
    "IFNA": _fn_ifna,
    "SWITCH": _fn_switch,
    "AND": _fn_and,
    "OR": _fn_or,
    "NOT": _fn_not,
    "XOR": _fn_xor,
}

LOGICAL_LAZY_FUNCTIONS: set[str] = {"IF", "IFS", "IFERROR", "IFNA", "SWITCH"}
