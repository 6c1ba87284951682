"""Structured error types for parse/runtime separation."""

from __future__ import annotations

from dataclasses import dataclass

from .parser import ParseError


class SecelError(Exception):
    """Base class for structured secel errors."""


@dataclass(frozen=True)
class SecelParseError(SecelError):
    """Wraps parser failures with explicit parse-stage typing."""

    message: str
    position: int
    expected: tuple[str, ...] = ()
    found: str | None = None

    @classmethod
    def from_parse_error(cls, err: ParseError) -> "SecelParseError":
        return cls(
            message=err.message,
            position=err.position,
            expected=err.expected,
            found=err.found,
        )

    def __str__(self) -> str:
        expected = ""
        if self.expected:
            expected = f"; expected {', '.join(self.expected)}"
        found = ""
        if self.found is not None:
            found = f"; found {self.found}"
        return f"{self.message} at position {self.position}{expected}{found}"


class SecelTypeError(SecelError, TypeError):
    """Invalid runtime value, slot key, or AST node."""


class SecelBatchError(SecelError, ValueError):
    """Malformed input for batch evaluation."""
