"""Recursive-descent parser for spreadsheet formulas.

Builds a lark ``Tree`` per formula.  Operator precedence (lowest to highest):

    1. Comparison:      =  <>  <  >  <=  >=
    2. Concatenation:   &
    3. Additive:        +  -
    4. Multiplicative:  *  /
    5. Power:           ^        (left-associative: 2^3^2 = 64)
    6. Unary:           -x  +x   (binds tighter than ^: -2^2 = 4)
    7. Postfix percent: x%
    8. Primary:         literal, (expr), FUNC(args), A1:B2, A1, name

Node rule names and children:

    number [float]          string [str]         boolean [bool]
    cell_ref [key]          range [start, end]   name [text]
    blank []                func_call [NAME, args(*expr)]
    eq neq lt gt lte gte concat add sub mul div pow  [left, right]
    neg pos percent  [operand]

The parser is lenient: a missing ``)`` closes the call or group and
stray or trailing tokens are skipped.  It never raises on
a formula body.
"""

from __future__ import annotations

from lark import Token, Tree, Visitor

from sheetcalc.formulas.errors import FormulaParseError
from sheetcalc.formulas.lexer import tokenize
from sheetcalc.refs import expand_range, parse_cell_ref, to_cell_key

_COMPARISON_OPS = {
    "=": "eq",
    "<>": "neq",
    "<": "lt",
    ">": "gt",
    "<=": "lte",
    ">=": "gte",
}
_ADDITIVE_OPS = {"+": "add", "-": "sub"}
_MULTIPLICATIVE_OPS = {"*": "mul", "/": "div"}

_EOF = Token("EOF", "")


class _Parser:
    """One-shot parser over a token list."""

    __slots__ = ("tokens", "pos")

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _cur(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return _EOF

    def _eat(self) -> Token:
        tok = self._cur()
        if tok.type != "EOF":
            self.pos += 1
        return tok

    def _at(self, type_: str) -> bool:
        return self._cur().type == type_

    def _at_op(self, ops) -> bool:
        tok = self._cur()
        return tok.type == "OP" and str(tok) in ops

    def parse(self) -> Tree:
        return self._comparison()

    # -- binary levels -------------------------------------------------

    def _comparison(self) -> Tree:
        left = self._concat()
        while self._at_op(_COMPARISON_OPS):
            rule = _COMPARISON_OPS[str(self._eat())]
            left = Tree(rule, [left, self._concat()])
        return left

    def _concat(self) -> Tree:
        left = self._additive()
        while self._at("AMPERSAND"):
            self._eat()
            left = Tree("concat", [left, self._additive()])
        return left

    def _additive(self) -> Tree:
        left = self._multiplicative()
        while self._at_op(_ADDITIVE_OPS):
            rule = _ADDITIVE_OPS[str(self._eat())]
            left = Tree(rule, [left, self._multiplicative()])
        return left

    def _multiplicative(self) -> Tree:
        left = self._power()
        while self._at_op(_MULTIPLICATIVE_OPS):
            rule = _MULTIPLICATIVE_OPS[str(self._eat())]
            left = Tree(rule, [left, self._power()])
        return left

    def _power(self) -> Tree:
        left = self._unary()
        while self._at_op({"^"}):
            self._eat()
            left = Tree("pow", [left, self._unary()])
        return left

    # -- unary / postfix -----------------------------------------------

    def _unary(self) -> Tree:
        if self._at_op({"-"}):
            self._eat()
            return Tree("neg", [self._unary()])
        if self._at_op({"+"}):
            self._eat()
            return Tree("pos", [self._unary()])
        return self._percent()

    def _percent(self) -> Tree:
        node = self._primary()
        while self._at_op({"%"}):
            self._eat()
            node = Tree("percent", [node])
        return node

    # -- primary -------------------------------------------------------

    def _primary(self) -> Tree:
        tok = self._cur()

        if tok.type == "NUMBER":
            self._eat()
            return Tree("number", [float(tok)])
        if tok.type == "STRING":
            self._eat()
            return Tree("string", [str(tok)])
        if tok.type == "BOOL":
            self._eat()
            return Tree("boolean", [str(tok) == "TRUE"])

        if tok.type == "LPAREN":
            self._eat()
            node = self._comparison()
            if self._at("RPAREN"):
                self._eat()
            return node

        if tok.type == "IDENT":
            name = str(self._eat())
            if self._at("COLON"):
                self._eat()
                end = str(self._eat()) if self._at("IDENT") else ""
                return Tree("range", [to_cell_key(name), to_cell_key(end)])
            if self._at("LPAREN"):
                self._eat()
                return Tree("func_call", [name.upper(), Tree("args", self._arguments())])
            if parse_cell_ref(name) is not None:
                return Tree("cell_ref", [to_cell_key(name)])
            return Tree("name", [name])

        # Unexpected token: consume it so callers always make progress.
        self._eat()
        return Tree("blank", [])

    def _arguments(self) -> list[Tree]:
        """Parse call arguments up to ``)`` (optional) or end of input."""
        args: list[Tree] = []
        while not self._at("RPAREN") and not self._at("EOF"):
            before = self.pos
            if self._at("IDENT"):
                start = str(self._eat())
                if self._at("COLON"):
                    self._eat()
                    if self._at("IDENT"):
                        end = str(self._eat())
                        args.append(Tree("range", [to_cell_key(start), to_cell_key(end)]))
                        if self._at("COMMA") or self._at("SEMICOLON"):
                            self._eat()
                        continue
                # Not a range: rewind and parse the argument as an expression.
                self.pos = before
            args.append(self._comparison())
            if self._at("COMMA") or self._at("SEMICOLON"):
                self._eat()
        if self._at("RPAREN"):
            self._eat()
        return args


def parse_expression(body: str) -> Tree:
    """Parse a formula body (without the leading ``=``) into a tree."""
    return _Parser(tokenize(body)).parse()


def parse_formula(text: str) -> Tree:
    """Parse a formula string (must start with ``=``) into a lark Tree.

    Args:
        text: The formula text, e.g. ``"=SUM(A1:A3) * 2"``.

    Returns:
        The expression tree.

    Raises:
        FormulaParseError: If the text is not a formula.
    """
    if not text.startswith("="):
        raise FormulaParseError("Formula must start with '='", position=0)
    return parse_expression(text[1:].strip())


class _RefCollector(Visitor):
    """Visitor that collects references from a parse tree, in source order."""

    def __init__(self) -> None:
        self.cell_refs: list[str] = []
        self.ranges: list[tuple[str, str]] = []

    def cell_ref(self, tree: Tree) -> None:
        key = tree.children[0]
        if key not in self.cell_refs:
            self.cell_refs.append(key)

    def range(self, tree: Tree) -> None:
        corners = (tree.children[0], tree.children[1])
        if corners not in self.ranges:
            self.ranges.append(corners)


def _collect(formula: str) -> _RefCollector:
    collector = _RefCollector()
    if formula.startswith("="):
        collector.visit_topdown(parse_formula(formula))
    return collector


def extract_cell_references(formula: str) -> list[str]:
    """Return the de-duplicated bare cell references of a formula.

    Range corners are not included; text that is not a formula has none.
    """
    return _collect(formula).cell_refs


def extract_range_references(formula: str) -> list[tuple[str, str]]:
    """Return the de-duplicated ``(start, end)`` ranges of a formula."""
    return _collect(formula).ranges


def tree_references(tree: Tree) -> list[str]:
    """Every cell key a parsed expression reads: bare references plus range members."""
    collector = _RefCollector()
    collector.visit_topdown(tree)
    return _expand_collected(collector)


def referenced_cells(formula: str) -> list[str]:
    """Every cell key a formula reads: bare references plus range members."""
    return _expand_collected(_collect(formula))


def _expand_collected(collector: _RefCollector) -> list[str]:
    keys = list(collector.cell_refs)
    seen = set(keys)
    for start, end in collector.ranges:
        for key in expand_range(start, end):
            if key not in seen:
                seen.add(key)
                keys.append(key)
    return keys
