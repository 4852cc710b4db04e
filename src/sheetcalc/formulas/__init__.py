"""Excel-like formula tokenizing, parsing and evaluation.

Public API::

    from sheetcalc.formulas import parse_formula, evaluate_tree, extract_cell_references
"""

from sheetcalc.formulas.errors import (
    CIRC,
    DIV0,
    ERROR,
    NA,
    NUM,
    REF,
    VALUE,
    CellCycleError,
    FormulaError,
    FormulaParseError,
    FormulaValueError,
    is_error,
    name_error,
)
from sheetcalc.formulas.evaluator import FormulaContext, evaluate_tree, function_names
from sheetcalc.formulas.lexer import tokenize
from sheetcalc.formulas.parser import (
    extract_cell_references,
    extract_range_references,
    parse_expression,
    parse_formula,
    referenced_cells,
)

__all__ = [
    "CIRC",
    "DIV0",
    "ERROR",
    "NA",
    "NUM",
    "REF",
    "VALUE",
    "CellCycleError",
    "FormulaContext",
    "FormulaError",
    "FormulaParseError",
    "FormulaValueError",
    "evaluate_tree",
    "extract_cell_references",
    "extract_range_references",
    "function_names",
    "is_error",
    "name_error",
    "parse_expression",
    "parse_formula",
    "referenced_cells",
    "tokenize",
]
