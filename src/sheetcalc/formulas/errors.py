"""Error sentinels and internal exception types for formula evaluation.

Errors reach callers as *values*: strings starting with ``#``.  The
exception classes below only travel inside the engine; each carries the
sentinel ``code`` it turns into once caught at an evaluation boundary.
"""

from __future__ import annotations

from typing import Any

ERROR = "#ERROR!"
DIV0 = "#DIV/0!"
NA = "#N/A"
VALUE = "#VALUE!"
NUM = "#NUM!"
REF = "#REF!"
CIRC = "#CIRC!"


def name_error(func_name: str) -> str:
    """Sentinel for an unknown function, e.g. ``#NAME?(FOO)``."""
    return f"#NAME?({func_name})"


def is_error(value: Any) -> bool:
    """True if *value* is an error sentinel."""
    return isinstance(value, str) and value.startswith("#")


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        code: The sentinel string this error evaluates to.
    """

    code: str = ERROR

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character position where the error was detected.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaValueError(FormulaError):
    """A function received input it could not coerce meaningfully."""

    code = VALUE


class CellCycleError(FormulaError):
    """Raised when a reference leads back into a cell being evaluated.

    Attributes:
        cycle_path: Cell keys from the first visit of the repeated cell
            to its second visit.
    """

    code = CIRC

    def __init__(self, cycle_path: list[str]) -> None:
        self.cycle_path = cycle_path
        super().__init__(f"Circular cell reference: {' -> '.join(cycle_path)}")
