"""Tokenizer for formula bodies (the text after the leading ``=``).

Terminals are declared as a lark grammar and matched by lark's basic
lexer; the raw stream is then normalised into the engine's token types:

    NUMBER STRING BOOL IDENT LPAREN RPAREN COMMA COLON SEMICOLON OP
    AMPERSAND EOF

The tokenizer never raises.  Characters no terminal accepts are matched by
the catch-all ``ANY`` terminal and dropped.
"""

from __future__ import annotations

from lark import Lark, Token

# Every terminal must appear in ``start`` or lark drops it from the lexer.
# Real terminals carry priority 2 so the catch-all ANY (priority 0) only
# wins on characters nothing else accepts.  Multi-character operators are
# listed first inside OP so ``<=`` is never split into ``<`` ``=``.
GRAMMAR = r"""
start: (NUMBER | STRING | IDENT | OP | AMPERSAND | LPAREN | RPAREN
        | COMMA | SEMICOLON | COLON | ANY)*

NUMBER.2: /(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?/
STRING.2: /"(\\.|[^"\\])*"?/s
IDENT.2: /[A-Za-z$][A-Za-z0-9_$]*/
OP.2: /<=|<>|>=|[-+*\/^%=<>]/
AMPERSAND.2: "&"
LPAREN.2: "("
RPAREN.2: ")"
COMMA.2: ","
SEMICOLON.2: ";"
COLON.2: ":"
WHITESPACE.2: /\s+/
ANY: /./s

%ignore WHITESPACE
"""

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start")

_BOOLEANS = {"TRUE", "FALSE"}


def _unquote(text: str) -> str:
    """Strip the quotes of a STRING terminal and resolve backslash escapes.

    An unterminated literal runs to the end of the text.
    """
    out: list[str] = []
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            out.append(text[i + 1])
            i += 2
            continue
        if ch == '"':
            break
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize(body: str) -> list[Token]:
    """Convert a formula body into a token list terminated by an ``EOF`` token.

    Args:
        body: Formula text with the leading ``=`` already stripped.

    Returns:
        Lark ``Token`` objects.  ``STRING`` tokens hold the unescaped text,
        ``BOOL`` tokens hold ``"TRUE"``/``"FALSE"``, ``IDENT`` tokens keep
        their original spelling.
    """
    tokens: list[Token] = []
    last: Token | None = None
    for tok in _lexer.lex(body):
        last = tok
        if tok.type == "ANY":
            continue
        if tok.type == "STRING":
            tok = Token.new_borrow_pos("STRING", _unquote(str(tok)), tok)
        elif tok.type == "IDENT":
            keyword = str(tok).upper().replace("$", "")
            if keyword in _BOOLEANS:
                tok = Token.new_borrow_pos("BOOL", keyword, tok)
        tokens.append(tok)
    end = (last.end_pos or len(body)) if last is not None else 0
    tokens.append(Token("EOF", "", start_pos=end))
    return tokens
