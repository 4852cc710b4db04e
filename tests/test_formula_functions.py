"""Tests for the built-in function library, by category."""

from __future__ import annotations

import datetime
from typing import Any

import pytest

from sheetcalc import evaluate_formula


def _eval(formula: str, store: dict | None = None) -> Any:
    return evaluate_formula(formula, store or {})


# Five numbers, a blank, a text cell and a numeric-text cell.
COLUMN = {
    "A1": "4",
    "A2": "8",
    "A3": "15",
    "A4": "16",
    "A5": "23",
    "A7": "label",
}

# Price table: key, name, price.
TABLE = {
    "A1": "1", "B1": "apple", "C1": "0.5",
    "A2": "5", "B2": "banana", "C2": "0.25",
    "A3": "10", "B3": "cherry", "C3": "3",
    "A4": "20", "B4": "date", "C4": "6",
}


# ────────────────────────────────────────────────────────────────
# Aggregation
# ────────────────────────────────────────────────────────────────


class TestAggregation:
    def test_sum_over_range_and_scalars(self) -> None:
        assert _eval("=SUM(A1:A7, 10)", COLUMN) == 76

    def test_sum_counts_numeric_text(self) -> None:
        assert _eval('=SUM("3", 4)') == 7

    def test_product_and_multiply(self) -> None:
        assert _eval("=PRODUCT(2,3,4)") == 24
        assert _eval("=MULTIPLY(2,5)") == 10

    def test_average(self) -> None:
        assert _eval("=AVERAGE(A1:A7)", COLUMN) == pytest.approx(13.2)
        assert _eval("=AVG(2,4)") == 3

    def test_average_of_nothing_is_zero(self) -> None:
        assert _eval("=AVERAGE(B1:B3)", COLUMN) == 0

    def test_counts(self) -> None:
        assert _eval("=COUNT(A1:A7)", COLUMN) == 5
        assert _eval("=COUNTA(A1:A7)", COLUMN) == 6
        assert _eval("=COUNTBLANK(A1:A7)", COLUMN) == 1

    def test_max_min(self) -> None:
        assert _eval("=MAX(A1:A7)", COLUMN) == 23
        assert _eval("=MIN(A1:A7)", COLUMN) == 4
        assert _eval("=MAX()") == 0

    def test_median(self) -> None:
        assert _eval("=MEDIAN(A1:A7)", COLUMN) == 15
        assert _eval("=MEDIAN(1,2,3,4)") == 2.5

    def test_mode(self) -> None:
        assert _eval("=MODE(1,2,2,3,3)") == 2
        assert _eval("=MODE(1,2,3)") == "#N/A"

    def test_stdev_sample_vs_population(self) -> None:
        assert _eval("=STDEV(2,4,4,4,5,5,7,9)") == pytest.approx(2.13809, rel=1e-5)
        assert _eval("=STDEVP(2,4,4,4,5,5,7,9)") == pytest.approx(2.0)

    def test_var_sample_vs_population(self) -> None:
        assert _eval("=VAR(1,2,3,4)") == pytest.approx(1.666667, rel=1e-5)
        assert _eval("=VARP(1,2,3,4)") == pytest.approx(1.25)

    def test_sample_dispersion_of_one_value(self) -> None:
        assert _eval("=STDEV(5)") == "#DIV/0!"

    def test_large_small(self) -> None:
        assert _eval("=LARGE(A1:A5, 2)", COLUMN) == 16
        assert _eval("=SMALL(A1:A5, 1)", COLUMN) == 4
        assert _eval("=LARGE(A1:A5, 6)", COLUMN) == "#NUM!"
        assert _eval("=SMALL(A1:A5, 0)", COLUMN) == "#NUM!"

    def test_rank(self) -> None:
        assert _eval("=RANK(15, A1:A5)", COLUMN) == 3
        assert _eval("=RANK(15, A1:A5, 1)", COLUMN) == 3
        assert _eval("=RANK(23, A1:A5, 1)", COLUMN) == 5
        assert _eval("=RANK(99, A1:A5)", COLUMN) == "#N/A"

    def test_percentile(self) -> None:
        assert _eval("=PERCENTILE(A1:A5, 0.5)", COLUMN) == 15
        assert _eval("=PERCENTILE(A1:A5, 0.25)", COLUMN) == 8
        assert _eval("=PERCENTILE(A1:A5, 1.5)", COLUMN) == "#NUM!"

    def test_sumproduct(self) -> None:
        store = {"A1": "1", "A2": "2", "A3": "3", "B1": "4", "B2": "5", "B3": "6"}
        assert _eval("=SUMPRODUCT(A1:A3, B1:B3)", store) == 32

    def test_sumif_countif_averageif(self) -> None:
        assert _eval('=SUMIF(A1:A5, ">10")', COLUMN) == 54
        assert _eval('=COUNTIF(A1:A7, ">=15")', COLUMN) == 3
        assert _eval('=COUNTIF(A1:A7, "LABEL")', COLUMN) == 1
        assert _eval('=AVERAGEIF(A1:A5, "<10")', COLUMN) == 6
        assert _eval('=AVERAGEIF(A1:A5, ">100")', COLUMN) == "#DIV/0!"

    def test_sumif_with_sum_range(self) -> None:
        assert _eval('=SUMIF(B1:B4, "<>banana", C1:C4)', TABLE) == 9.5


# ────────────────────────────────────────────────────────────────
# Math
# ────────────────────────────────────────────────────────────────


class TestMath:
    def test_abs_sqrt_power(self) -> None:
        assert _eval("=ABS(-3)") == 3
        assert _eval("=SQRT(16)") == 4
        assert _eval("=SQRT(-1)") == "#NUM!"
        assert _eval("=POWER(2, 10)") == 1024

    def test_mod(self) -> None:
        assert _eval("=MOD(10, 3)") == 1
        assert _eval("=MOD(-3, 2)") == 1
        assert _eval("=MOD(1, 0)") == "#DIV/0!"

    def test_int_and_trunc(self) -> None:
        assert _eval("=INT(-2.5)") == -3
        assert _eval("=TRUNC(-2.5)") == -2
        assert _eval("=TRUNC(3.14159, 2)") == 3.14

    def test_round_family(self) -> None:
        assert _eval("=ROUND(2.5, 0)") == 3
        assert _eval("=ROUND(-2.5, 0)") == -3
        assert _eval("=ROUND(1.005, 2)") == 1.01
        assert _eval("=ROUND(1234.5, -2)") == 1200
        assert _eval("=ROUNDUP(3.14159, 2)") == 3.15
        assert _eval("=ROUNDUP(1.1, 1)") == 1.1
        assert _eval("=ROUNDUP(-3.14159, 2)") == -3.15
        assert _eval("=ROUNDDOWN(3.789, 1)") == 3.7
        assert _eval("=ROUNDDOWN(-3.789, 1)") == -3.7

    def test_ceiling_floor(self) -> None:
        assert _eval("=CEILING(4.2)") == 5
        assert _eval("=CEILING(4.2, 0.5)") == 4.5
        assert _eval("=FLOOR(4.8, 2)") == 4

    def test_logs_and_exponentials(self) -> None:
        assert _eval("=EXP(0)") == 1
        assert _eval("=LN(EXP(2))") == pytest.approx(2)
        assert _eval("=LOG(100)") == pytest.approx(2)
        assert _eval("=LOG(8, 2)") == pytest.approx(3)
        assert _eval("=LOG10(1000)") == pytest.approx(3)
        assert _eval("=LN(0)") == "#NUM!"

    def test_trig_and_pi(self) -> None:
        assert _eval("=PI()") == pytest.approx(3.14159265)
        assert _eval("=SIN(0)") == 0
        assert _eval("=COS(0)") == 1
        assert _eval("=TAN(0)") == 0

    def test_sign(self) -> None:
        assert _eval("=SIGN(-4)") == -1
        assert _eval("=SIGN(0)") == 0
        assert _eval("=SIGN(9)") == 1

    def test_aliases(self) -> None:
        assert _eval("=DIVIDE(9, 3)") == 3
        assert _eval("=DIVIDE(9, 0)") == "#DIV/0!"
        assert _eval("=DIFFERENCE(9, 3)") == 6


# ────────────────────────────────────────────────────────────────
# Text
# ────────────────────────────────────────────────────────────────


class TestText:
    def test_concat(self) -> None:
        assert _eval('=CONCAT("a", 1, TRUE)') == "a1TRUE"
        assert _eval("=CONCATENATE(A1:B1)", {"A1": "x", "B1": "y"}) == "xy"

    def test_len_upper_lower_proper(self) -> None:
        assert _eval('=LEN("hello")') == 5
        assert _eval('=UPPER("abc")') == "ABC"
        assert _eval('=LOWER("ABC")') == "abc"
        assert _eval('=PROPER("hello world")') == "Hello World"

    def test_trim(self) -> None:
        assert _eval('=TRIM("  a   b  ")') == "a b"

    def test_left_right_mid(self) -> None:
        assert _eval('=LEFT("hello")') == "h"
        assert _eval('=LEFT("hello", 2)') == "he"
        assert _eval('=RIGHT("hello", 3)') == "llo"
        assert _eval('=RIGHT("hello", 0)') == ""
        assert _eval('=RIGHT("hello", 10)') == "hello"
        assert _eval('=LEFT("hello", 10)') == "hello"
        assert _eval('=LEFT("hello", -1)') == "#VALUE!"
        assert _eval('=MID("hello", 2, 3)') == "ell"
        assert _eval('=MID("hello", 0, 3)') == "#VALUE!"

    def test_substitute(self) -> None:
        assert _eval('=SUBSTITUTE("a-b-c", "-", "+")') == "a+b+c"
        assert _eval('=SUBSTITUTE("a-b-c", "-", "+", 2)') == "a-b+c"
        assert _eval('=SUBSTITUTE("a-b-c", "-", "+", 5)') == "a-b-c"

    def test_replace_rept_exact(self) -> None:
        assert _eval('=REPLACE("abcdef", 2, 3, "X")') == "aXef"
        assert _eval('=REPT("ab", 3)') == "ababab"
        assert _eval('=EXACT("a", "A")') is False
        assert _eval('=EXACT("a", "a")') is True

    def test_find_and_search(self) -> None:
        assert _eval('=FIND("l", "hello")') == 3
        assert _eval('=FIND("L", "hello")') == "#VALUE!"
        assert _eval('=SEARCH("L", "hello")') == 3
        assert _eval('=FIND("l", "hello", 4)') == 4

    def test_text_formats(self) -> None:
        assert _eval('=TEXT(1234.567, "0.00")') == "1234.57"
        assert _eval('=TEXT(1234.567, "#,##0")') == "1,235"
        assert _eval('=TEXT(0.25, "0%")') == "25%"
        assert _eval("=TEXT(1234.5)") == "1,234.5"
        assert _eval('=TEXT("abc", "0")') == "abc"

    def test_value(self) -> None:
        assert _eval('=VALUE("42")') == 42
        assert _eval('=VALUE("3.5kg")') == 3.5
        assert _eval('=VALUE("abc")') == "#VALUE!"

    def test_char_code(self) -> None:
        assert _eval("=CHAR(65)") == "A"
        assert _eval('=CODE("A")') == 65
        assert _eval('=CODE("")') == "#VALUE!"


# ────────────────────────────────────────────────────────────────
# Logical
# ────────────────────────────────────────────────────────────────


class TestLogical:
    def test_if_with_cell_condition(self) -> None:
        assert _eval('=IF(A1>5,"big","small")', {"A1": "10"}) == "big"
        assert _eval('=IF(A1>5,"big","small")', {"A1": "1"}) == "small"

    @pytest.mark.parametrize("condition", ["0", '""', "A9", "FALSE", '"false"'])
    def test_if_falsy_conditions(self, condition: str) -> None:
        assert _eval(f'=IF({condition}, "t", "f")') == "f"

    def test_if_missing_else_is_blank(self) -> None:
        assert _eval("=IF(FALSE, 1)") is None

    def test_ifs(self) -> None:
        assert _eval('=IFS(A1>20, "high", A1>5, "mid", TRUE, "low")', {"A1": "10"}) == "mid"
        assert _eval("=IFS(FALSE, 1)") == "#N/A"

    def test_and_or_not_xor(self) -> None:
        assert _eval("=AND(TRUE, 1, 2>1)") is True
        assert _eval("=AND(TRUE, 0)") is False
        assert _eval("=OR(FALSE, 0, 1)") is True
        assert _eval("=NOT(0)") is True
        assert _eval("=XOR(TRUE, TRUE)") is False
        assert _eval("=XOR(TRUE, FALSE, FALSE)") is True

    def test_iferror(self) -> None:
        assert _eval('=IFERROR(1/0, "oops")') == "oops"
        assert _eval('=IFERROR(10/2, "oops")') == 5
        assert _eval('=IFERROR(NOPE(1), 0)') == 0

    def test_ifna(self) -> None:
        assert _eval('=IFNA(MODE(1,2), "none")') == "none"
        assert _eval('=IFNA(1/0, "none")') == "#DIV/0!"

    def test_switch(self) -> None:
        assert _eval('=SWITCH(2, 1, "one", 2, "two")') == "two"
        assert _eval('=SWITCH("B", "a", 1, "b", 2)') == 2
        assert _eval('=SWITCH(9, 1, "one", "other")') == "other"
        assert _eval('=SWITCH(9, 1, "one")') == "#N/A"


# ────────────────────────────────────────────────────────────────
# Type checks
# ────────────────────────────────────────────────────────────────


class TestTypeChecks:
    def test_isnumber(self) -> None:
        assert _eval("=ISNUMBER(A1)", {"A1": "12"}) is True
        assert _eval('=ISNUMBER("abc")') is False

    def test_istext(self) -> None:
        assert _eval('=ISTEXT("abc")') is True
        assert _eval("=ISTEXT(A1)", {"A1": "12"}) is False

    def test_isblank(self) -> None:
        assert _eval("=ISBLANK(A1)") is True
        assert _eval("=ISBLANK(A1)", {"A1": "x"}) is False

    def test_iserror_isna(self) -> None:
        assert _eval("=ISERROR(1/0)") is True
        assert _eval("=ISERROR(1)") is False
        assert _eval("=ISNA(MODE(1,2))") is True
        assert _eval("=ISNA(1/0)") is False

    def test_islogical_iseven_isodd(self) -> None:
        assert _eval("=ISLOGICAL(TRUE)") is True
        assert _eval("=ISLOGICAL(1)") is False
        assert _eval("=ISEVEN(4)") is True
        assert _eval("=ISODD(3)") is True
        assert _eval('=ISEVEN("x")') == "#VALUE!"


# ────────────────────────────────────────────────────────────────
# Dates
# ────────────────────────────────────────────────────────────────


class TestDates:
    def test_date_builds_display_string(self) -> None:
        assert _eval("=DATE(2024, 3, 15)") == "15/03/2024"

    def test_date_rolls_over(self) -> None:
        assert _eval("=DATE(2024, 13, 1)") == "01/01/2025"
        assert _eval("=DATE(2024, 3, 0)") == "29/02/2024"

    def test_today(self) -> None:
        assert _eval("=TODAY()") == datetime.date.today().strftime("%d/%m/%Y")

    def test_now_parses_back(self) -> None:
        assert _eval("=YEAR(NOW())") == datetime.date.today().year

    def test_parts(self) -> None:
        assert _eval('=YEAR("2024-03-15")') == 2024
        assert _eval('=MONTH("2024-03-15")') == 3
        assert _eval("=DAY(DATE(2024, 3, 15))") == 15

    def test_weekday_sunday_is_one(self) -> None:
        assert _eval('=WEEKDAY("2024-03-17")') == 1
        assert _eval('=WEEKDAY("2024-03-16")') == 7

    def test_excel_serial(self) -> None:
        assert _eval("=YEAR(45000)") == 2023

    def test_datedif(self) -> None:
        assert _eval('=DATEDIF("2024-01-01", "2024-03-01", "D")') == 60
        assert _eval('=DATEDIF("2024-01-31", "2024-03-30", "M")') == 1
        assert _eval('=DATEDIF("2020-06-15", "2024-06-14", "Y")') == 3
        assert _eval('=DATEDIF("2024-03-01", "2024-01-01", "D")') == "#NUM!"
        assert _eval('=DATEDIF("2024-01-01", "2024-03-01", "Q")') == "#VALUE!"

    def test_eomonth_and_days(self) -> None:
        assert _eval('=EOMONTH("2024-01-15", 1)') == "29/02/2024"
        assert _eval('=EOMONTH("2024-01-15", -1)') == "31/12/2023"
        assert _eval('=DAYS("2024-03-01", "2024-02-01")') == 29

    def test_unparseable_date(self) -> None:
        assert _eval('=YEAR("not a date")') == "#VALUE!"


# ────────────────────────────────────────────────────────────────
# Lookup
# ────────────────────────────────────────────────────────────────


class TestLookup:
    def test_vlookup_exact(self) -> None:
        assert _eval("=VLOOKUP(5, A1:C4, 2, FALSE)", TABLE) == "banana"
        assert _eval("=VLOOKUP(7, A1:C4, 2, FALSE)", TABLE) == "#N/A"

    def test_exact_match_keeps_kinds_apart(self) -> None:
        store = {"A1": "0", "B1": "zero", "A3": "7", "B3": "seven"}
        assert _eval('=VLOOKUP("x", A1:B3, 2, FALSE)', store) == "#N/A"
        assert _eval("=VLOOKUP(0, A1:B3, 2, FALSE)", store) == "zero"
        assert _eval('=VLOOKUP("7", A1:B3, 2, FALSE)', store) == "seven"
        assert _eval("=MATCH(0, B1:B3, 0)", store) == "#N/A"
        assert _eval("=MATCH(C9, A1:A3, 0)", store) == "#N/A"

    def test_vlookup_approximate_default(self) -> None:
        assert _eval("=VLOOKUP(7, A1:C4, 3)", TABLE) == 0.25
        assert _eval("=VLOOKUP(100, A1:C4, 2, TRUE)", TABLE) == "date"
        assert _eval("=VLOOKUP(0, A1:C4, 2)", TABLE) == "#N/A"

    def test_vlookup_bad_column(self) -> None:
        assert _eval("=VLOOKUP(5, A1:C4, 4, FALSE)", TABLE) == "#REF!"
        assert _eval("=VLOOKUP(5, A1:C4, 0, FALSE)", TABLE) == "#REF!"

    def test_vlookup_text_key_case_insensitive(self) -> None:
        assert _eval('=VLOOKUP("CHERRY", B1:C4, 2, FALSE)', TABLE) == 3

    def test_hlookup(self) -> None:
        store = {"A1": "q1", "B1": "q2", "A2": "100", "B2": "200"}
        assert _eval('=HLOOKUP("q2", A1:B2, 2, FALSE)', store) == 200
        assert _eval('=HLOOKUP("q3", A1:B2, 2, FALSE)', store) == "#N/A"

    def test_match(self) -> None:
        assert _eval("=MATCH(10, A1:A4, 0)", TABLE) == 3
        assert _eval("=MATCH(12, A1:A4)", TABLE) == 3
        assert _eval("=MATCH(12, A1:A4, 0)", TABLE) == "#N/A"
        assert _eval('=MATCH("date", B1:B4, 0)', TABLE) == 4

    def test_match_descending(self) -> None:
        store = {"A1": "30", "A2": "20", "A3": "10"}
        assert _eval("=MATCH(15, A1:A3, -1)", store) == 2

    def test_index(self) -> None:
        assert _eval("=INDEX(A1:C4, 2, 3)", TABLE) == 0.25
        assert _eval("=INDEX(A1:C4, 3)", TABLE) == 10
        assert _eval("=INDEX(A1:C4, 5, 1)", TABLE) == "#REF!"
        assert _eval("=INDEX(A1:C1, 2)", TABLE) == "apple"

    def test_index_match(self) -> None:
        assert _eval('=INDEX(C1:C4, MATCH("cherry", B1:B4, 0))', TABLE) == 3
