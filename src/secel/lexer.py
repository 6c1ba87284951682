"""On-demand tokenization for SECEL source text.

The lexer is a cursor: the parser pulls one token at a time and backtracks by
saving and restoring the cursor position.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_INDEX = 255

_WINDOW = 4
_WHITESPACE = frozenset("\t\n\v\f\r ")
_DIGITS = frozenset("0123456789")
_NON_ZERO_DIGITS = frozenset("123456789")

# Longest keywords first; matching is on a prefix of the lookahead window.
_FIXED_TOKENS = (
    ("null", "NULL"),
    ("and", "AND"),
    ("if", "IF"),
    ("or", "OR"),
    ("<=", "LE"),
    (">=", "GE"),
    ("<>", "NQ"),
    ("=", "EQ"),
    ("<", "LT"),
    (">", "GT"),
    (";", "SEMI"),
    ("(", "LPAREN"),
    (")", "RPAREN"),
)

COMPARISON_KINDS = frozenset({"EQ", "NQ", "GE", "GT", "LE", "LT"})


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int
    index: int | None = None

    def describe(self) -> str:
        if self.kind == "NUMBER":
            return f"NUMBER({self.index})"
        if self.kind in {"EOF", "UNDEF"}:
            return self.kind
        return f"{self.kind}({self.text})"


class Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.position = 0

    def get_position(self) -> int:
        return self.position

    def set_position(self, position: int) -> None:
        if 0 <= position < len(self.text):
            self.position = position

    def remaining(self) -> str:
        return self.text[self.position :]

    def next_token(self) -> Token:
        """Consume and return the token at the cursor."""
        self._skip_whitespace()
        start = self.position
        window = self.text[start : start + _WINDOW].ljust(_WINDOW)

        if start >= len(self.text):
            return Token("EOF", "", start, start)

        for literal, kind in _FIXED_TOKENS:
            if window.startswith(literal):
                self.position = start + len(literal)
                return Token(kind, literal, start, self.position)

        if window[0] in _NON_ZERO_DIGITS:
            end = start
            while end < len(self.text) and self.text[end] in _DIGITS:
                end += 1
            digits = self.text[start:end]
            index = int(digits)
            if index <= MAX_INDEX:
                self.position = end
                return Token("NUMBER", digits, start, end, index=index)
            return Token("UNDEF", digits, start, end)

        return Token("UNDEF", window[0], start, start + 1)

    def _skip_whitespace(self) -> None:
        while self.position < len(self.text) and self.text[self.position] in _WHITESPACE:
            self.position += 1


def tokenize(text: str) -> list[Token]:
    """Return tokens up to and including the first EOF or UNDEF."""
    lexer = Lexer(text)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.kind in {"EOF", "UNDEF"}:
            return tokens
