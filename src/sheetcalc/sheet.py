"""Cell resolution, whole-sheet recalculation and display formatting.

A Cell Store is any mapping from cell key (``"B12"``) to raw content.
Content is normally a string; legacy object-shaped values with a
``value`` field are read through that field.  Nothing here mutates the
store.

Two resolution modes share ``SheetContext``:

- Single-formula evaluation (``evaluate_formula``) resolves each referenced
  formula cell once, deepest dependency first, tracking the cells being
  evaluated so a circular reference becomes ``#CIRC!`` instead of
  unbounded recursion.
- Whole-sheet recalculation (``recalculate``) evaluates every formula
  cell once per pass against the values computed so far and repeats
  until a pass changes nothing or the iteration cap is reached.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from lark import Tree
from pydantic import BaseModel

from sheetcalc.config import DEFAULT_CONFIG
from sheetcalc.formulas.errors import CIRC, ERROR, CellCycleError, FormulaError
from sheetcalc.formulas.evaluator import evaluate_tree
from sheetcalc.formulas.parser import parse_expression, tree_references
from sheetcalc.formulas.values import looks_numeric, to_text
from sheetcalc.logging.events import EventType, emit_info, emit_warning
from sheetcalc.refs import expand_range, to_cell_key

# ``NAME(`` with no closing paren anywhere: the user is still typing a call.
_CALL_START_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*\(")


def raw_content(store: Mapping[str, Any], key: str) -> str:
    """Raw content of a cell as text; missing cells are ``""``."""
    value = store.get(key)
    if isinstance(value, Mapping):
        value = value.get("value")
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return to_text(value)


def plain_value(raw: str) -> Any:
    """Value of non-formula content: a number if it looks numeric, else the text.

    Empty content is blank (``None``).
    """
    if raw == "":
        return None
    if looks_numeric(raw):
        return float(raw)
    return raw


class SheetContext:
    """``FormulaContext`` over a Cell Store.

    In single-formula mode each formula cell is evaluated at most once per
    context: the store is a fixed snapshot, so a resolved value is reused by
    every later reference.  ``resolve_ahead`` evaluates a formula's
    dependency chain bottom-up without recursion, so long chains
    (``A400 = A399 + 1`` ...) never approach the interpreter stack limit.

    Args:
        store: The Cell Store to read.
        computed: During recalculation, the values computed so far in this
            pass.  References to formula cells read from it instead of
            re-evaluating; missing entries are blank.
    """

    def __init__(self, store: Mapping[str, Any], computed: dict[str, Any] | None = None) -> None:
        self._store = store
        self._computed = computed
        self._stack: list[str] = []
        self._resolved: dict[str, Any] = {}
        self._trees: dict[str, Tree] = {}

    def _formula_tree(self, key: str) -> Tree | None:
        """Parsed body of a formula cell; ``None`` for plain or bare-``=`` cells."""
        if key not in self._trees:
            raw = raw_content(self._store, key)
            body = raw[1:].strip() if raw.startswith("=") else ""
            self._trees[key] = parse_expression(body) if body else None
        return self._trees[key]

    def get_cell_value(self, cell_id: str) -> Any:
        key = to_cell_key(cell_id)
        raw = raw_content(self._store, key)
        if not raw.startswith("="):
            return plain_value(raw)
        if self._computed is not None:
            return self._computed.get(key)
        if key in self._resolved:
            return self._resolved[key]

        if key in self._stack:
            raise CellCycleError(self._stack[self._stack.index(key):] + [key])
        self._stack.append(key)
        try:
            tree = self._formula_tree(key)
            value = None if tree is None else evaluate_tree(tree, self)
        finally:
            self._stack.pop()
        self._resolved[key] = value
        return value

    def get_range_values(self, start: str, end: str) -> list[Any]:
        return [self.get_cell_value(key) for key in expand_range(start, end)]

    def resolve_ahead(self, tree: Tree) -> None:
        """Evaluate the formula cells *tree* depends on, deepest first.

        Dependencies are walked with an explicit stack and evaluated in
        post-order, so each evaluation only meets references that are
        already resolved.  Cells caught in a cycle are left unresolved;
        lazy evaluation decides later whether the formula ever reaches
        them.
        """
        if self._computed is not None:
            return
        order: list[str] = []
        seen: set[str] = set()
        pending: list[tuple[str, bool]] = [(key, False) for key in reversed(tree_references(tree))]
        while pending:
            key, expanded = pending.pop()
            if expanded:
                order.append(key)
                continue
            if key in seen:
                continue
            seen.add(key)
            dep_tree = self._formula_tree(key)
            if dep_tree is None:
                continue
            pending.append((key, True))
            for dep in reversed(tree_references(dep_tree)):
                if dep not in seen:
                    pending.append((dep, False))

        for key in order:
            try:
                self.get_cell_value(key)
            except CellCycleError:
                continue


def _evaluate_body(body: str, ctx: SheetContext) -> Any:
    """Outermost evaluation boundary: nothing raises past this point."""
    try:
        tree = parse_expression(body)
        ctx.resolve_ahead(tree)
        return evaluate_tree(tree, ctx)
    except CellCycleError as exc:
        emit_warning(
            EventType.formula_cycle,
            str(exc),
            {"cycle": exc.cycle_path},
            error_code=CIRC,
        )
        return CIRC
    except FormulaError as exc:
        return exc.code
    except Exception as exc:
        emit_warning(
            EventType.formula_exception,
            f"Formula evaluation failed: {type(exc).__name__}",
            {"formula": body},
            error_code=ERROR,
        )
        return ERROR


# ---------------------------------------------------------------------------
# Public host functions
# ---------------------------------------------------------------------------


def evaluate_formula(formula: str, store: Mapping[str, Any]) -> Any:
    """Evaluate one formula against a Cell Store.

    Args:
        formula: Raw content.  Text not starting with ``=`` is returned
            unchanged.
        store: Mapping of cell key to raw content.

    Returns:
        The scalar result: ``float | str | bool | None``.  Errors are
        sentinel strings such as ``"#DIV/0!"``; this function never raises
        for a formula.
    """
    if not isinstance(formula, str) or not formula.startswith("="):
        return formula
    body = formula[1:].strip()
    if not body:
        return None
    return _evaluate_body(body, SheetContext(store))


def is_formula_complete(formula: str) -> bool:
    """Editing heuristic: should pressing Enter commit this content?

    Non-formula text is always complete.  A formula needs a non-empty body
    and no unclosed ``(``.
    """
    if not formula.startswith("="):
        return True
    body = formula[1:].strip()
    if not body:
        return False
    return body.count("(") - body.count(")") <= 0


def get_display_value(store: Mapping[str, Any], key: str) -> str:
    """The string a grid shows for one cell.

    Plain content is shown verbatim.  A bare ``=`` or a function call that
    is still being typed shows nothing.  Errors are shown as their sentinel.
    """
    raw = raw_content(store, to_cell_key(key))
    if not raw.startswith("="):
        return raw
    body = raw[1:].strip()
    if not body:
        return ""
    if _CALL_START_RE.search(body) and ")" not in body:
        return ""
    return to_text(evaluate_formula(raw, store))


# ---------------------------------------------------------------------------
# Whole-sheet recalculation
# ---------------------------------------------------------------------------


class RecalcResult(BaseModel):
    """Outcome of ``recalculate``.

    Attributes:
        values: Every store key mapped to its value: evaluated results for
            formula cells, raw text for the others.
        iterations: Number of full passes performed.
        converged: ``False`` when the iteration cap stopped recalculation
            while values were still changing.
    """

    values: dict[str, Any]
    iterations: int
    converged: bool


def _same(old: Any, new: Any) -> bool:
    if type(old) is not type(new):
        return False
    if isinstance(new, float) and math.isnan(new) and math.isnan(old):
        return True
    return old == new


def recalculate(store: Mapping[str, Any], *, max_iterations: int | None = None) -> RecalcResult:
    """Recompute every formula cell until values settle.

    Each pass evaluates the formula cells in store order.  A reference to a
    formula cell reads the latest value computed so far (blank before its
    first evaluation), so a pass sees updates made earlier in the same pass.

    Args:
        store: Mapping of cell key to raw content.  Not mutated.
        max_iterations: Hard cap on passes; defaults to the configured
            ``max_iterations``.

    Returns:
        A ``RecalcResult``.  A self-referencing cell such as ``=A1+1`` keeps
        changing and is reported with ``converged=False`` at the cap.

    Raises:
        ValueError: If *max_iterations* is not positive.
    """
    cap = DEFAULT_CONFIG["max_iterations"] if max_iterations is None else max_iterations
    if cap < 1:
        raise ValueError(f"max_iterations must be positive, got {cap}")

    raws = {key: raw_content(store, key) for key in store}
    formulas = {key: raw[1:].strip() for key, raw in raws.items() if raw.startswith("=")}
    emit_info(
        EventType.recalc_started,
        "Recalculation started",
        {"cells": len(raws), "formula_cells": len(formulas), "max_iterations": cap},
    )

    computed: dict[str, Any] = {}
    ctx = SheetContext(store, computed=computed)
    iterations = 0
    converged = False
    while iterations < cap:
        iterations += 1
        changed = False
        for key, body in formulas.items():
            value = _evaluate_body(body, ctx) if body else None
            if not _same(computed.get(key), value):
                changed = True
            computed[key] = value
        if not changed:
            converged = True
            break

    values = {key: computed[key] if key in formulas else raw for key, raw in raws.items()}
    context = {"iterations": iterations, "formula_cells": len(formulas)}
    if converged:
        emit_info(EventType.recalc_completed, "Recalculation completed", context)
    else:
        emit_warning(
            EventType.recalc_capped,
            f"Recalculation stopped at the {cap}-pass cap without settling",
            context,
        )
    return RecalcResult(values=values, iterations=iterations, converged=converged)
