"""sheetcalc -- spreadsheet formula evaluation engine."""

__version__ = "0.1.0"

from sheetcalc.formulas.parser import extract_cell_references, referenced_cells
from sheetcalc.refs import expand_range, parse_cell_ref
from sheetcalc.sheet import (
    RecalcResult,
    evaluate_formula,
    get_display_value,
    is_formula_complete,
    recalculate,
)

__all__ = [
    "RecalcResult",
    "__version__",
    "evaluate_formula",
    "expand_range",
    "extract_cell_references",
    "get_display_value",
    "is_formula_complete",
    "parse_cell_ref",
    "recalculate",
    "referenced_cells",
]
