"""Statistical formula functions: aggregates, dispersion, order statistics, *IF.

Dispersion and quantiles are computed on a polars Series so sample vs
population divisors (``ddof``) and linear-interpolated percentiles match
the spreadsheet definitions.
"""

from __future__ import annotations

import operator
from collections import Counter
from typing import Any, Callable

import polars as pl

from sheetcalc.formulas.errors import DIV0, NA, NUM
from sheetcalc.formulas.values import (
    arg,
    comparable,
    flat_all,
    flat_nums,
    is_blank,
    is_number,
    looks_numeric,
    to_num,
    to_text,
)


def _series(nums: list[float]) -> pl.Series:
    return pl.Series("values", nums, dtype=pl.Float64)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def _fn_average(args: list, ctx: Any) -> float:
    """AVERAGE(n1, ...) -- 0 for an empty set."""
    nums = flat_nums(args)
    return sum(nums) / len(nums) if nums else 0


def _fn_count(args: list, ctx: Any) -> int:
    """COUNT(v1, ...) -- numeric entries only."""
    return len(flat_nums(args))


def _fn_counta(args: list, ctx: Any) -> int:
    return sum(1 for v in flat_all(args) if not is_blank(v))


def _fn_countblank(args: list, ctx: Any) -> int:
    return sum(1 for v in flat_all(args) if is_blank(v))


def _fn_max(args: list, ctx: Any) -> float:
    nums = flat_nums(args)
    return max(nums) if nums else 0


def _fn_min(args: list, ctx: Any) -> float:
    nums = flat_nums(args)
    return min(nums) if nums else 0


def _fn_median(args: list, ctx: Any) -> float:
    nums = flat_nums(args)
    if not nums:
        return 0
    return _series(nums).median()


def _fn_mode(args: list, ctx: Any) -> Any:
    """MODE(n1, ...) -- most frequent value, first seen wins ties; #N/A if none repeats."""
    counts = Counter(flat_nums(args))
    if not counts:
        return NA
    value, freq = counts.most_common(1)[0]
    if freq < 2:
        return NA
    return value


def _dispersion(kind: str, sample: bool) -> Callable[[list, Any], Any]:
    """Build STDEV/STDEVP/VAR/VARP."""

    def fn(args: list, ctx: Any) -> Any:
        nums = flat_nums(args)
        if not nums:
            return 0
        ddof = 1 if sample else 0
        if len(nums) <= ddof:
            return DIV0
        series = _series(nums)
        return series.std(ddof=ddof) if kind == "std" else series.var(ddof=ddof)

    return fn


# ---------------------------------------------------------------------------
# Order statistics
# ---------------------------------------------------------------------------


def _fn_large(args: list, ctx: Any) -> Any:
    """LARGE(range, k) -- k-th largest, 1-indexed."""
    nums = sorted(flat_nums([arg(args, 0)]), reverse=True)
    k = int(to_num(arg(args, 1)))
    if k < 1 or k > len(nums):
        return NUM
    return nums[k - 1]


def _fn_small(args: list, ctx: Any) -> Any:
    nums = sorted(flat_nums([arg(args, 0)]))
    k = int(to_num(arg(args, 1)))
    if k < 1 or k > len(nums):
        return NUM
    return nums[k - 1]


def _fn_rank(args: list, ctx: Any) -> Any:
    """RANK(value, range [, order]) -- order 0/omitted ranks descending."""
    value = to_num(arg(args, 0))
    ascending = bool(to_num(arg(args, 2)))
    nums = sorted(flat_nums([arg(args, 1)]), reverse=not ascending)
    if value not in nums:
        return NA
    return nums.index(value) + 1


def _fn_percentile(args: list, ctx: Any) -> Any:
    """PERCENTILE(range, p) -- inclusive, linear interpolation, p in [0, 1]."""
    nums = flat_nums([arg(args, 0)])
    p = to_num(arg(args, 1))
    if not nums:
        return 0
    if p < 0 or p > 1:
        return NUM
    return _series(nums).quantile(p, interpolation="linear")


def _fn_sumproduct(args: list, ctx: Any) -> float:
    """SUMPRODUCT(range1, range2, ...) -- parallel multiply, then sum.

    Shorter arrays are padded with zeros.
    """
    arrays = [
        [to_num(v) for v in flat_all([a])] if isinstance(a, list) else [to_num(a)]
        for a in args
    ]
    if not arrays:
        return 0
    total = 0.0
    for i in range(len(arrays[0])):
        prod = 1.0
        for values in arrays:
            prod *= values[i] if i < len(values) else 0
        total += prod
    return total


# ---------------------------------------------------------------------------
# Conditional aggregates
# ---------------------------------------------------------------------------

_CRITERIA_OPS = (
    (">=", operator.ge),
    ("<=", operator.le),
    ("<>", operator.ne),
    (">", operator.gt),
    ("<", operator.lt),
    ("=", operator.eq),
)


def criteria_matcher(criteria: Any) -> Callable[[Any], bool]:
    """Compile a SUMIF-style criterion such as ``">5"``, ``"<>x"`` or ``7``.

    Numeric operands only match numeric cells; text operands compare
    case-insensitively.  A bare value means equality.
    """
    if not isinstance(criteria, str):
        return lambda v: not is_blank(v) and _equal(v, criteria)

    op, operand = operator.eq, criteria
    for prefix, fn in _CRITERIA_OPS:
        if criteria.startswith(prefix):
            op, operand = fn, criteria[len(prefix):]
            break

    if looks_numeric(operand):
        target = float(operand)

        def match_number(v: Any) -> bool:
            if isinstance(v, str) and looks_numeric(v):
                v = float(v)
            if not is_number(v):
                return op is operator.ne
            return op(v, target)

        return match_number

    if operand == "" and op in (operator.eq, operator.ne):
        return lambda v: is_blank(v) == (op is operator.eq)

    target_text = operand.lower()

    def match_text(v: Any) -> bool:
        return op(to_text(v).lower(), target_text)

    return match_text


def _equal(left: Any, right: Any) -> bool:
    lhs, rhs = comparable(left, right)
    return lhs == rhs


def _conditional_pairs(args: list) -> list[tuple[Any, Any]]:
    """Pair criteria-range cells with sum-range cells (defaults to itself)."""
    tested = flat_all([arg(args, 0)])
    summed = flat_all([arg(args, 2)]) if len(args) > 2 else tested
    return [(t, summed[i] if i < len(summed) else None) for i, t in enumerate(tested)]


def _fn_sumif(args: list, ctx: Any) -> float:
    """SUMIF(range, criteria [, sum_range])."""
    match = criteria_matcher(arg(args, 1))
    return sum(flat_nums([s for t, s in _conditional_pairs(args) if match(t)]))


def _fn_countif(args: list, ctx: Any) -> int:
    match = criteria_matcher(arg(args, 1))
    return sum(1 for v in flat_all([arg(args, 0)]) if match(v))


def _fn_averageif(args: list, ctx: Any) -> Any:
    match = criteria_matcher(arg(args, 1))
    nums = flat_nums([s for t, s in _conditional_pairs(args) if match(t)])
    if not nums:
        return DIV0
    return sum(nums) / len(nums)


STAT_FUNCTIONS: dict[str, Any] = {
    "AVERAGE": _fn_average,
    "AVG": _fn_average,
    "COUNT": _fn_count,
    "COUNTA": _fn_counta,
    "COUNTBLANK": _fn_countblank,
    "MAX": _fn_max,
    "MIN": _fn_min,
    "MEDIAN": _fn_median,
    "MODE": _fn_mode,
    "STDEV": _dispersion("std", sample=True),
    "STDEVP": _dispersion("std", sample=False),
    "VAR": _dispersion("var", sample=True),
    "VARP": _dispersion("var", sample=False),
    "LARGE": _fn_large,
    "SMALL": _fn_small,
    "RANK": _fn_rank,
    "PERCENTILE": _fn_percentile,
    "SUMPRODUCT": _fn_sumproduct,
    "SUMIF": _fn_sumif,
    "COUNTIF": _fn_countif,
    "AVERAGEIF": _fn_averageif,
}
