"""Closure-compiling evaluator builder for SECEL ASTs.

`compile_node` walks an AST once and returns a single composed closure. Each
node closes over the already-compiled closures of its children, so evaluation
never touches the AST again.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Callable

from .ast import And, Eq, Expr, Ge, Gt, If, Le, Lt, Nq, Null, Number, Or, slot_indices
from .errors import SecelParseError, SecelTypeError
from .lexer import MAX_INDEX
from .parser import ParseError, parse
from .values import NULL, BoolValue, NullValue, NumberValue, Value, as_value, boolean

logger = logging.getLogger(__name__)

EvalFn = Callable[[Mapping[int, Value]], Value]

_ORDERING = {Ge: operator.ge, Gt: operator.gt, Le: operator.le, Lt: operator.lt}


class IndexedValues(Mapping[int, Value]):
    """Validated slot-index to value mapping.

    Plain Python data is coerced with `as_value`, so `IndexedValues({1: 100, 2: None})`
    holds a number in slot 1 and null in slot 2.
    """

    def __init__(self, data: Mapping[int, object] | None = None) -> None:
        self._data: dict[int, Value] = {}
        for key, value in (data or {}).items():
            if isinstance(key, bool) or not isinstance(key, int) or not 0 <= key <= MAX_INDEX:
                raise SecelTypeError(f"slot index must be an integer in 0..{MAX_INDEX}, got {key!r}")
            try:
                self._data[key] = as_value(value, where=f"slot {key}")
            except TypeError as exc:
                raise SecelTypeError(str(exc)) from exc

    def __getitem__(self, key: int) -> Value:
        return self._data[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"IndexedValues({self._data!r})"


@dataclass(frozen=True)
class Evaluator:
    """Compiled, reusable form of one SECEL statement."""

    ast: Expr
    slots: tuple[int, ...]
    fn: EvalFn = field(repr=False, compare=False)
    source: str | None = None

    def __call__(self, values: Mapping[int, Value]) -> Value:
        return self.fn(values)


def _build_and(node: And) -> EvalFn:
    left = compile_node(node.left)
    right = compile_node(node.right)

    def _and(values: Mapping[int, Value]) -> Value:
        lhv = left(values)
        rhv = right(values)
        if isinstance(lhv, BoolValue) and isinstance(rhv, BoolValue):
            return boolean(lhv.value and rhv.value)
        return NULL

    return _and


def _build_or(node: Or) -> EvalFn:
    left = compile_node(node.left)
    right = compile_node(node.right)

    def _or(values: Mapping[int, Value]) -> Value:
        lhv = left(values)
        rhv = right(values)
        if isinstance(lhv, BoolValue) and isinstance(rhv, BoolValue):
            return boolean(lhv.value or rhv.value)
        return NULL

    return _or


def _equals(lhv: Value, rhv: Value) -> bool | None:
    # Null equals only null; None means the comparison is undefined.
    if isinstance(lhv, NumberValue):
        if isinstance(rhv, NumberValue):
            return lhv.value == rhv.value
        if isinstance(rhv, NullValue):
            return False
        return None
    if isinstance(lhv, NullValue):
        if isinstance(rhv, NumberValue):
            return False
        if isinstance(rhv, NullValue):
            return True
    return None


def _build_equality(node: Eq | Nq) -> EvalFn:
    left = compile_node(node.left)
    right = compile_node(node.right)
    negate = isinstance(node, Nq)

    def _equality(values: Mapping[int, Value]) -> Value:
        result = _equals(left(values), right(values))
        if result is None:
            return NULL
        return boolean(result != negate)

    return _equality


def _build_ordering(node: Ge | Gt | Le | Lt) -> EvalFn:
    left = compile_node(node.left)
    right = compile_node(node.right)
    compare = _ORDERING[type(node)]

    def _ordering(values: Mapping[int, Value]) -> Value:
        lhv = left(values)
        rhv = right(values)
        if isinstance(lhv, NumberValue) and isinstance(rhv, NumberValue):
            return boolean(compare(lhv.value, rhv.value))
        return NULL

    return _ordering


def _build_if(node: If) -> EvalFn:
    condition = compile_node(node.condition)
    then = compile_node(node.then)
    otherwise = compile_node(node.otherwise)

    def _if(values: Mapping[int, Value]) -> Value:
        flag = condition(values)
        if isinstance(flag, BoolValue):
            return then(values) if flag.value else otherwise(values)
        return NULL

    return _if


def _build_number(node: Number) -> EvalFn:
    key = node.index

    def _number(values: Mapping[int, Value]) -> Value:
        return values.get(key, NULL)

    return _number


def _build_null(_node: Null) -> EvalFn:
    def _null(_values: Mapping[int, Value]) -> Value:
        return NULL

    return _null


_BUILDERS: dict[type, Callable[..., EvalFn]] = {
    And: _build_and,
    Or: _build_or,
    Eq: _build_equality,
    Nq: _build_equality,
    Ge: _build_ordering,
    Gt: _build_ordering,
    Le: _build_ordering,
    Lt: _build_ordering,
    If: _build_if,
    Number: _build_number,
    Null: _build_null,
}


def compile_node(node: Expr) -> EvalFn:
    """Compile `node` into a closure mapping slot values to a `Value`."""
    builder = _BUILDERS.get(type(node))
    if builder is None:
        raise SecelTypeError(f"Unsupported AST node {type(node).__name__}")
    return builder(node)


def build_evaluator(source_or_node: str | Expr) -> Evaluator:
    """Parse (when given text) and compile a statement into an `Evaluator`."""
    source = source_or_node if isinstance(source_or_node, str) else None
    node = parse(source_or_node) if isinstance(source_or_node, str) else source_or_node
    fn = compile_node(node)
    slots = slot_indices(node)
    logger.debug("Built evaluator for %s over slots %s", type(node).__name__, slots)
    return Evaluator(ast=node, slots=slots, fn=fn, source=source)


def build_evaluator_with_errors(source: str) -> Evaluator:
    """Like `build_evaluator`, raising `SecelParseError` for malformed text."""
    try:
        return build_evaluator(source)
    except ParseError as err:
        raise SecelParseError.from_parse_error(err) from err


def evaluate(source_or_node: str | Expr | Evaluator, values: Mapping[int, Value] | None = None) -> Value:
    """One-shot helper: build (unless already built) and evaluate."""
    evaluator = source_or_node if isinstance(source_or_node, Evaluator) else build_evaluator(source_or_node)
    return evaluator({} if values is None else values)
