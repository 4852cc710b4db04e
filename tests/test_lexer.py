"""Tests for the formula tokenizer."""

from __future__ import annotations

from sheetcalc.formulas.lexer import tokenize


def _types(body: str) -> list[str]:
    return [t.type for t in tokenize(body)]


def _pairs(body: str) -> list[tuple[str, str]]:
    return [(t.type, str(t)) for t in tokenize(body)]


class TestTokenize:
    def test_empty_body_is_just_eof(self) -> None:
        assert _types("") == ["EOF"]

    def test_numbers(self) -> None:
        assert _pairs("1 2.5 .5 1e3 2.5E-2") == [
            ("NUMBER", "1"),
            ("NUMBER", "2.5"),
            ("NUMBER", ".5"),
            ("NUMBER", "1e3"),
            ("NUMBER", "2.5E-2"),
            ("EOF", ""),
        ]

    def test_string_with_escapes(self) -> None:
        assert _pairs(r'"a\"b"') == [("STRING", 'a"b'), ("EOF", "")]

    def test_unterminated_string_runs_to_end(self) -> None:
        assert _pairs('"abc') == [("STRING", "abc"), ("EOF", "")]

    def test_booleans_case_insensitive(self) -> None:
        assert _pairs("true FALSE") == [("BOOL", "TRUE"), ("BOOL", "FALSE"), ("EOF", "")]

    def test_identifiers_keep_spelling(self) -> None:
        assert _pairs("sum $A$1 Foo_2") == [
            ("IDENT", "sum"),
            ("IDENT", "$A$1"),
            ("IDENT", "Foo_2"),
            ("EOF", ""),
        ]

    def test_multi_char_operators_are_greedy(self) -> None:
        ops = [str(t) for t in tokenize("<= <> >= < > = + - * / ^ %") if t.type == "OP"]
        assert ops == ["<=", "<>", ">=", "<", ">", "=", "+", "-", "*", "/", "^", "%"]

    def test_punctuation(self) -> None:
        assert _types("(A1:B2,1;2)&") == [
            "LPAREN",
            "IDENT",
            "COLON",
            "IDENT",
            "COMMA",
            "NUMBER",
            "SEMICOLON",
            "NUMBER",
            "RPAREN",
            "AMPERSAND",
            "EOF",
        ]

    def test_unknown_characters_are_skipped(self) -> None:
        assert _pairs("1 @ # 2") == [("NUMBER", "1"), ("NUMBER", "2"), ("EOF", "")]

    def test_whitespace_ignored(self) -> None:
        assert _types("  1\t+\n2  ") == ["NUMBER", "OP", "NUMBER", "EOF"]
