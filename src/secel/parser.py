"""Recursive-descent parser for SECEL.

Grammar:

    statement      = if_expression
    if_expression  = "if" "(" condition ";" expression ";" expression ")"
    condition      = disjunction { "or" disjunction }
    disjunction    = conjunction { "and" conjunction }
    conjunction    = "(" condition ")" | comparison
    comparison     = value ("=" | "<>" | ">" | "<" | ">=" | "<=") value
    expression     = value | if_expression
    value          = NUMBER | NULL

Rules return either a node or a `ParseFailure`. Every rule that fails restores
the lexer to the position it started from, so callers can try the next
alternative from the same place.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from .ast import And, Eq, Expr, Ge, Gt, If, Le, Lt, Nq, Null, Number, Or
from .lexer import COMPARISON_KINDS, Lexer, Token

logger = logging.getLogger(__name__)

_PARSE_CACHE_MAX = max(1, int(os.environ.get("SECEL_PARSE_CACHE_MAX", "512")))
_ALLOW_TRAILING_INPUT = os.environ.get("SECEL_ALLOW_TRAILING_INPUT", "0") == "1"

_COMPARISON_NODES = {"EQ": Eq, "NQ": Nq, "GE": Ge, "GT": Gt, "LE": Le, "LT": Lt}


class ParseError(SyntaxError):
    def __init__(
        self,
        message: str,
        position: int,
        expected: tuple[str, ...] = (),
        found: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.position = position
        self.expected = expected
        self.found = found

    def __str__(self) -> str:
        expected_text = ""
        if self.expected:
            expected_text = f"; expected {', '.join(self.expected)}"
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found}"
        return f"{self.message} at position {self.position}{expected_text}{found_text}"


@dataclass(frozen=True)
class ParseFailure:
    """Result of a rule that did not match."""

    message: str
    position: int
    expected: tuple[str, ...] = ()
    found: str | None = None

    def to_error(self) -> ParseError:
        return ParseError(self.message, self.position, expected=self.expected, found=self.found)


def _furthest(first: ParseFailure, second: ParseFailure) -> ParseFailure:
    return first if first.position > second.position else second


class Parser:
    def __init__(self, text: str, *, allow_trailing: bool = False) -> None:
        self.lexer = Lexer(text)
        self.allow_trailing = allow_trailing

    def parse(self) -> Expr:
        """Parse one statement or raise `ParseError`."""
        result = self.parse_statement()
        if isinstance(result, ParseFailure):
            raise result.to_error()
        return result

    def parse_statement(self) -> Expr | ParseFailure:
        self._trace("statement")
        start = self.lexer.get_position()
        node = self.parse_if_expression()
        if isinstance(node, ParseFailure) or self.allow_trailing:
            return node
        tok = self.lexer.next_token()
        if tok.kind != "EOF":
            self.lexer.set_position(start)
            return self._failure("Unexpected trailing input", tok, expected=("EOF",))
        return node

    def parse_if_expression(self) -> Expr | ParseFailure:
        self._trace("if-expression")
        start = self.lexer.get_position()
        parts: list[Expr] = []
        for step in ("IF", "LPAREN", self.parse_condition, "SEMI", self.parse_expression, "SEMI", self.parse_expression, "RPAREN"):
            result = self.consume_token(step) if isinstance(step, str) else step()
            if isinstance(result, ParseFailure):
                self.lexer.set_position(start)
                return result
            if result is not None:
                parts.append(result)
        condition, then, otherwise = parts
        return If(condition, then, otherwise)

    def parse_condition(self) -> Expr | ParseFailure:
        self._trace("condition")
        return self._parse_left_fold("OR", Or, self.parse_disjunction)

    def parse_disjunction(self) -> Expr | ParseFailure:
        self._trace("disjunction")
        return self._parse_left_fold("AND", And, self.parse_conjunction)

    def parse_conjunction(self) -> Expr | ParseFailure:
        self._trace("conjunction")
        start = self.lexer.get_position()
        comparison = self.parse_comparison()
        if not isinstance(comparison, ParseFailure):
            return comparison
        self.lexer.set_position(start)

        failure = self.consume_token("LPAREN")
        if failure is None:
            node = self.parse_condition()
            if not isinstance(node, ParseFailure):
                failure = self.consume_token("RPAREN")
                if failure is None:
                    return node
            else:
                failure = node
        self.lexer.set_position(start)
        return _furthest(comparison, failure)

    def parse_comparison(self) -> Expr | ParseFailure:
        self._trace("comparison")
        start = self.lexer.get_position()
        left = self.parse_value()
        if isinstance(left, ParseFailure):
            return left
        tok = self.lexer.next_token()
        if tok.kind not in COMPARISON_KINDS:
            self.lexer.set_position(start)
            return self._failure(
                "Expected comparison operator",
                tok,
                expected=("=", "<>", ">", "<", ">=", "<="),
            )
        right = self.parse_value()
        if isinstance(right, ParseFailure):
            self.lexer.set_position(start)
            return right
        return _COMPARISON_NODES[tok.kind](left, right)

    def parse_expression(self) -> Expr | ParseFailure:
        self._trace("expression")
        start = self.lexer.get_position()
        value = self.parse_value()
        if not isinstance(value, ParseFailure):
            return value
        self.lexer.set_position(start)
        nested = self.parse_if_expression()
        if not isinstance(nested, ParseFailure):
            return nested
        self.lexer.set_position(start)
        if nested.position > value.position:
            return nested
        return ParseFailure(
            "Expected value or if expression",
            value.position,
            expected=("value", "if expression"),
            found=value.found,
        )

    def parse_value(self) -> Expr | ParseFailure:
        self._trace("value")
        start = self.lexer.get_position()
        tok = self.lexer.next_token()
        if tok.kind == "NULL":
            return Null()
        if tok.kind == "NUMBER":
            return Number(tok.index)
        self.lexer.set_position(start)
        return self._failure("Expected null or number", tok, expected=("NULL", "NUMBER"))

    def consume_token(self, expected: str) -> None | ParseFailure:
        start = self.lexer.get_position()
        tok = self.lexer.next_token()
        if tok.kind == expected:
            return None
        self.lexer.set_position(start)
        return self._failure("Unexpected token", tok, expected=(expected,))

    def _parse_left_fold(self, op_kind: str, node_type: type, operand) -> Expr | ParseFailure:
        start = self.lexer.get_position()
        left = operand()
        if isinstance(left, ParseFailure):
            return left
        while self.consume_token(op_kind) is None:
            right = operand()
            if isinstance(right, ParseFailure):
                self.lexer.set_position(start)
                return right
            left = node_type(left, right)
        return left

    def _failure(self, message: str, tok: Token, *, expected: tuple[str, ...] = ()) -> ParseFailure:
        return ParseFailure(message, tok.pos, expected=expected, found=tok.describe())

    def _trace(self, rule: str) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%-14s%4d | %s", rule, self.lexer.get_position(), self.lexer.remaining())


@lru_cache(maxsize=_PARSE_CACHE_MAX)
def _parse_cached(text: str, allow_trailing: bool) -> Expr:
    return Parser(text, allow_trailing=allow_trailing).parse()


def parse(text: str, *, allow_trailing: bool | None = None) -> Expr:
    """Parse a SECEL statement into its AST.

    Trailing input after the statement is rejected unless `allow_trailing` is
    set (or `SECEL_ALLOW_TRAILING_INPUT=1` when it is left as `None`).
    """
    if allow_trailing is None:
        allow_trailing = _ALLOW_TRAILING_INPUT
    return _parse_cached(text, allow_trailing)
