"""Tree-walking evaluator for parsed formula expressions.

Cell storage is reached only through a ``FormulaContext``; the evaluator
itself holds no state between calls.  Errors are values: operators and
functions return sentinel strings, and ``evaluate_tree`` converts any
internal exception (except a detected cycle) into ``#ERROR!``.
"""

from __future__ import annotations

import math
import traceback
from typing import Any, Protocol

from lark import Tree

from sheetcalc.formulas.errors import (
    DIV0,
    ERROR,
    NUM,
    CellCycleError,
    FormulaError,
    name_error,
)
from sheetcalc.formulas.fn_date import DATE_FUNCTIONS
from sheetcalc.formulas.fn_info import INFO_FUNCTIONS
from sheetcalc.formulas.fn_logical import LOGICAL_FUNCTIONS, LOGICAL_LAZY_FUNCTIONS
from sheetcalc.formulas.fn_lookup import LOOKUP_FUNCTIONS
from sheetcalc.formulas.fn_math import MATH_FUNCTIONS
from sheetcalc.formulas.fn_stats import STAT_FUNCTIONS
from sheetcalc.formulas.fn_text import TEXT_FUNCTIONS
from sheetcalc.formulas.values import comparable, flat_all, to_num, to_text
from sheetcalc.logging.events import EventType, emit_warning
from sheetcalc.refs import range_shape


# ---------------------------------------------------------------------------
# Context protocol -- the only seam between the evaluator and cell storage
# ---------------------------------------------------------------------------


class FormulaContext(Protocol):
    """Protocol for resolving cell references and ranges."""

    def get_cell_value(self, cell_id: str) -> Any:
        """Resolve a cell value (may trigger recursive evaluation)."""
        ...

    def get_range_values(self, start: str, end: str) -> list[Any]:
        """Resolve a rectangular range to a flat list of values (row-major)."""
        ...


def evaluate_tree(tree: Tree, ctx: FormulaContext) -> Any:
    """Evaluate a parsed formula tree and reduce the result to a scalar.

    Args:
        tree: Tree from ``parse_formula()`` / ``parse_expression()``.
        ctx: Cell resolver.

    Returns:
        ``float | int | str | bool | None``.  Error sentinels are strings.

    Raises:
        CellCycleError: If resolution ran into a circular reference.  Host
            entry points convert it to ``#CIRC!``.
        RecursionError: If a reference chain outgrew the interpreter stack.
            Host entry points convert it to ``#ERROR!`` for the whole
            formula, not just the cell that hit the limit.
    """
    try:
        return reduce_result(_eval(tree, ctx))
    except (CellCycleError, RecursionError):
        raise
    except FormulaError as exc:
        return exc.code
    except Exception:
        emit_warning(
            EventType.formula_exception,
            "Formula evaluation failed",
            {"traceback": traceback.format_exc(limit=3)},
            error_code=ERROR,
        )
        return ERROR


def reduce_result(value: Any) -> Any:
    """Collapse a range result to a scalar.

    A one-cell range is that cell's value; an empty range is blank; a larger
    range reduces to its first cell.
    """
    if isinstance(value, list):
        flat = flat_all([value])
        return flat[0] if flat else None
    return value


def _eval(node: Tree, ctx: FormulaContext) -> Any:
    """Recursively evaluate a tree node."""
    rule = node.data
    children = node.children

    if rule in _BINARY_OPS:
        return _BINARY_OPS[rule](_eval(children[0], ctx), _eval(children[1], ctx))

    if rule == "neg":
        return -to_num(_eval(children[0], ctx))
    if rule == "pos":
        return to_num(_eval(children[0], ctx))
    if rule == "percent":
        return to_num(_eval(children[0], ctx)) / 100

    # Literals
    if rule in ("number", "string", "boolean"):
        return children[0]
    if rule == "blank":
        return None

    if rule == "cell_ref":
        return ctx.get_cell_value(children[0])
    if rule == "range":
        return _eval_range(children[0], children[1], ctx)
    if rule == "name":
        # Unknown bare identifiers are blank, not errors.
        return None

    if rule == "func_call":
        return _eval_func(node, ctx)

    raise FormulaError(f"Unknown node type: {rule}")


def _eval_range(start: str, end: str, ctx: FormulaContext) -> list[list[Any]]:
    """Evaluate a range to a list of rows."""
    n_rows, n_cols = range_shape(start, end)
    if not n_rows:
        return []
    flat = ctx.get_range_values(start, end)
    return [flat[r * n_cols:(r + 1) * n_cols] for r in range(n_rows)]


# ---------- Operators ----------


def _div(left: Any, right: Any) -> Any:
    divisor = to_num(right)
    if divisor == 0:
        return DIV0
    return to_num(left) / divisor


def _pow(left: Any, right: Any) -> Any:
    try:
        return math.pow(to_num(left), to_num(right))
    except (ValueError, OverflowError, ZeroDivisionError):
        return NUM


def _compare(op):
    def compare(left: Any, right: Any) -> bool:
        lhs, rhs = comparable(left, right)
        return op(lhs, rhs)
    return compare


_BINARY_OPS: dict[str, Any] = {
    "add": lambda a, b: to_num(a) + to_num(b),
    "sub": lambda a, b: to_num(a) - to_num(b),
    "mul": lambda a, b: to_num(a) * to_num(b),
    "div": _div,
    "pow": _pow,
    "concat": lambda a, b: to_text(a) + to_text(b),
    "eq": _compare(lambda a, b: a == b),
    "neq": _compare(lambda a, b: a != b),
    "lt": _compare(lambda a, b: a < b),
    "gt": _compare(lambda a, b: a > b),
    "lte": _compare(lambda a, b: a <= b),
    "gte": _compare(lambda a, b: a >= b),
}


# ---------- Function dispatch ----------

_FUNC_TABLE: dict[str, Any] = {
    **MATH_FUNCTIONS,
    **STAT_FUNCTIONS,
    **TEXT_FUNCTIONS,
    **LOGICAL_FUNCTIONS,
    **INFO_FUNCTIONS,
    **DATE_FUNCTIONS,
    **LOOKUP_FUNCTIONS,
}


def function_names() -> list[str]:
    """Sorted names of every built-in function."""
    return sorted(_FUNC_TABLE)


def _eval_func(node: Tree, ctx: FormulaContext) -> Any:
    """Evaluate a function call node."""
    func_name = node.children[0]
    raw_args = node.children[1].children

    if func_name not in _FUNC_TABLE:
        return name_error(func_name)

    try:
        # Lazy functions receive unevaluated AST nodes
        if func_name in LOGICAL_LAZY_FUNCTIONS:
            return _FUNC_TABLE[func_name](raw_args, ctx)
        evaluated_args = [_eval(arg, ctx) for arg in raw_args]
        return _FUNC_TABLE[func_name](evaluated_args, ctx)
    except CellCycleError:
        raise
    except FormulaError as exc:
        return exc.code
    except (ValueError, ArithmeticError):
        return NUM
