"""Date formula functions: TODAY, NOW, DATE, YEAR, MONTH, DAY, WEEKDAY, DATEDIF, ...

Dates travel between cells as display text (``DATE_FORMAT``, day first).
Date arguments also accept ISO strings and Excel serial numbers.
"""

from __future__ import annotations

import calendar
import datetime
from typing import Any

from sheetcalc.formulas.errors import NUM, VALUE, FormulaValueError
from sheetcalc.formulas.values import arg, first_value, is_number, looks_numeric, to_num, to_text

DATE_FORMAT = "%d/%m/%Y"
DATETIME_FORMAT = "%d/%m/%Y, %H:%M:%S"

# Excel epoch: 1899-12-30 (Excel incorrectly treats 1900 as a leap year,
# so serial number 1 = 1900-01-01, and we use the standard offset)
_EXCEL_EPOCH = datetime.date(1899, 12, 30)

_TEXT_FORMATS = (DATE_FORMAT, DATETIME_FORMAT, "%Y/%m/%d", "%d-%m-%Y")


def _coerce_date(val: Any) -> datetime.date:
    """Convert a value to a datetime.date.

    Accepts:
    - datetime.date / datetime.datetime objects
    - ISO format strings ("YYYY-MM-DD", optionally with a time)
    - ``DATE_FORMAT`` / ``DATETIME_FORMAT`` strings as produced by DATE/NOW
    - Excel serial numbers (int or float, or numeric text)

    Raises:
        FormulaValueError: If the value is not a recognisable date.
    """
    val = first_value(val)
    if isinstance(val, datetime.datetime):
        return val.date()
    if isinstance(val, datetime.date):
        return val
    if isinstance(val, str) and looks_numeric(val):
        val = float(val)
    if is_number(val):
        serial = int(val)
        if serial < 1:
            raise FormulaValueError(f"Invalid Excel serial number: {serial}")
        return _EXCEL_EPOCH + datetime.timedelta(days=serial)
    text = to_text(val).strip()
    try:
        return datetime.datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _TEXT_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise FormulaValueError(f"Cannot parse date: {text!r}")


def format_date(value: datetime.date) -> str:
    return value.strftime(DATE_FORMAT)


def _fn_today(args: list, ctx: Any) -> str:
    return format_date(datetime.date.today())


def _fn_now(args: list, ctx: Any) -> str:
    return datetime.datetime.now().strftime(DATETIME_FORMAT)


def _fn_date(args: list, ctx: Any) -> str:
    """DATE(year, month, day) -- month and day overflow roll into the next unit.

    DATE(2024, 13, 1) => 01/01/2025, DATE(2024, 3, 0) => 29/02/2024.
    """
    year = int(to_num(arg(args, 0)))
    month = int(to_num(arg(args, 1)))
    day = int(to_num(arg(args, 2)))
    year, month0 = divmod(year * 12 + month - 1, 12)
    if not 1 <= year <= 9999:
        return NUM
    first = datetime.date(year, month0 + 1, 1)
    return format_date(first + datetime.timedelta(days=day - 1))


def _fn_year(args: list, ctx: Any) -> int:
    return _coerce_date(arg(args, 0)).year


def _fn_month(args: list, ctx: Any) -> int:
    return _coerce_date(arg(args, 0)).month


def _fn_day(args: list, ctx: Any) -> int:
    return _coerce_date(arg(args, 0)).day


def _fn_weekday(args: list, ctx: Any) -> int:
    """WEEKDAY(date) -- 1 = Sunday ... 7 = Saturday."""
    return _coerce_date(arg(args, 0)).isoweekday() % 7 + 1


def _months_between(start: datetime.date, end: datetime.date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


def _fn_datedif(args: list, ctx: Any) -> Any:
    """DATEDIF(start, end, unit) -- complete days ("D"), months ("M") or years ("Y")."""
    start = _coerce_date(arg(args, 0))
    end = _coerce_date(arg(args, 1))
    unit = to_text(arg(args, 2)).upper()
    if start > end:
        return NUM
    if unit == "D":
        return (end - start).days
    if unit == "M":
        return _months_between(start, end)
    if unit == "Y":
        return _months_between(start, end) // 12
    return VALUE


def _fn_days(args: list, ctx: Any) -> int:
    """DAYS(end, start) -- signed day count."""
    return (_coerce_date(arg(args, 0)) - _coerce_date(arg(args, 1))).days


def _fn_eomonth(args: list, ctx: Any) -> str:
    """EOMONTH(start_date, months) -- end of month, offset by months.

    EOMONTH("2024-01-15", 1) => 29/02/2024 (last day of Feb 2024).
    """
    start = _coerce_date(arg(args, 0))
    months_offset = int(to_num(arg(args, 1)))
    total_months = (start.year * 12 + start.month - 1) + months_offset
    target_year = total_months // 12
    target_month = total_months % 12 + 1
    last_day = calendar.monthrange(target_year, target_month)[1]
    return format_date(datetime.date(target_year, target_month, last_day))


DATE_FUNCTIONS: dict[str, Any] = {
    "TODAY": _fn_today,
    "NOW": _fn_now,
    "DATE": _fn_date,
    "YEAR": _fn_year,
    "MONTH": _fn_month,
    "DAY": _fn_day,
    "WEEKDAY": _fn_weekday,
    "DATEDIF": _fn_datedif,
    "DAYS": _fn_days,
    "EOMONTH": _fn_eomonth,
}
