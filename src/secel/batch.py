"""JAX-backed batch evaluation of one SECEL statement over many environments.

The AST is lowered once into a function over *lanes*: one array entry per row.
Each node produces a `Lanes` tuple holding the value kind, the boolean payload,
the exact numeric rank and the slot that supplied the value. Numbers are never
converted to floating point: every distinct `Decimal` in the batch is replaced
by its dense sort rank, which preserves equality and ordering exactly.
"""

from __future__ import annotations

import logging
import operator
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Callable, NamedTuple

import jax
import jax.numpy as jnp

from .ast import And, Eq, Expr, Ge, Gt, If, Le, Lt, Nq, Null, Number, Or, slot_indices
from .errors import SecelBatchError, SecelTypeError
from .parser import parse
from .values import NULL, BoolValue, NullValue, NumberValue, Value, boolean

logger = logging.getLogger(__name__)

_DISABLE_JIT = os.environ.get("SECEL_BATCH_DISABLE_JIT", "0") == "1"

KIND_NULL = 0
KIND_BOOL = 1
KIND_NUMBER = 2

_ORDERING = {Ge: operator.ge, Gt: operator.gt, Le: operator.le, Lt: operator.lt}


class Lanes(NamedTuple):
    kind: jnp.ndarray
    flag: jnp.ndarray
    rank: jnp.ndarray
    src: jnp.ndarray


LaneFn = Callable[[jnp.ndarray, Mapping[int, Lanes]], Lanes]


def _null_lanes(base: jnp.ndarray) -> Lanes:
    return Lanes(
        kind=jnp.zeros(base.shape, dtype=jnp.int8),
        flag=jnp.zeros(base.shape, dtype=bool),
        rank=jnp.zeros(base.shape, dtype=jnp.int32),
        src=jnp.full(base.shape, -1, dtype=jnp.int32),
    )


def _bool_lanes(base: jnp.ndarray, defined: jnp.ndarray, flag: jnp.ndarray) -> Lanes:
    return Lanes(
        kind=jnp.where(defined, KIND_BOOL, KIND_NULL).astype(jnp.int8),
        flag=defined & flag,
        rank=jnp.zeros(base.shape, dtype=jnp.int32),
        src=jnp.full(base.shape, -1, dtype=jnp.int32),
    )


def _lower_logical(node: And | Or) -> LaneFn:
    left = lower_node(node.left)
    right = lower_node(node.right)
    combine = jnp.logical_and if isinstance(node, And) else jnp.logical_or

    def _logical(base, slots):
        lhs = left(base, slots)
        rhs = right(base, slots)
        both = (lhs.kind == KIND_BOOL) & (rhs.kind == KIND_BOOL)
        return _bool_lanes(base, both, combine(lhs.flag, rhs.flag))

    return _logical


def _lower_equality(node: Eq | Nq) -> LaneFn:
    left = lower_node(node.left)
    right = lower_node(node.right)
    negate = isinstance(node, Nq)

    def _equality(base, slots):
        lhs = left(base, slots)
        rhs = right(base, slots)
        numbers = (lhs.kind == KIND_NUMBER) & (rhs.kind == KIND_NUMBER)
        nulls = (lhs.kind == KIND_NULL) & (rhs.kind == KIND_NULL)
        mixed = ((lhs.kind == KIND_NUMBER) & (rhs.kind == KIND_NULL)) | ((lhs.kind == KIND_NULL) & (rhs.kind == KIND_NUMBER))
        equal = jnp.where(numbers, lhs.rank == rhs.rank, nulls)
        flag = jnp.logical_not(equal) if negate else equal
        return _bool_lanes(base, numbers | nulls | mixed, flag)

    return _equality


def _lower_ordering(node: Ge | Gt | Le | Lt) -> LaneFn:
    left = lower_node(node.left)
    right = lower_node(node.right)
    compare = _ORDERING[type(node)]

    def _ordering(base, slots):
        lhs = left(base, slots)
        rhs = right(base, slots)
        numbers = (lhs.kind == KIND_NUMBER) & (rhs.kind == KIND_NUMBER)
        return _bool_lanes(base, numbers, compare(lhs.rank, rhs.rank))

    return _ordering


def _lower_if(node: If) -> LaneFn:
    condition = lower_node(node.condition)
    then = lower_node(node.then)
    otherwise = lower_node(node.otherwise)

    def _if(base, slots):
        cond = condition(base, slots)
        yes = then(base, slots)
        no = otherwise(base, slots)
        is_bool = cond.kind == KIND_BOOL
        take_then = is_bool & cond.flag
        take_else = is_bool & jnp.logical_not(cond.flag)
        empty = _null_lanes(base)
        return Lanes(
            *(
                jnp.where(take_then, y, jnp.where(take_else, n, e))
                for y, n, e in zip(yes, no, empty)
            )
        )

    return _if


def _lower_number(node: Number) -> LaneFn:
    key = node.index

    def _number(base, slots):
        lanes = slots[key]
        return lanes._replace(src=jnp.where(lanes.kind != KIND_NULL, key, -1).astype(jnp.int32))

    return _number


def _lower_null(_node: Null) -> LaneFn:
    def _null(base, _slots):
        return _null_lanes(base)

    return _null


_LOWERINGS: dict[type, Callable[..., LaneFn]] = {
    And: _lower_logical,
    Or: _lower_logical,
    Eq: _lower_equality,
    Nq: _lower_equality,
    Ge: _lower_ordering,
    Gt: _lower_ordering,
    Le: _lower_ordering,
    Lt: _lower_ordering,
    If: _lower_if,
    Number: _lower_number,
    Null: _lower_null,
}


def lower_node(node: Expr) -> LaneFn:
    lowering = _LOWERINGS.get(type(node))
    if lowering is None:
        raise SecelTypeError(f"Unsupported AST node {type(node).__name__}")
    return lowering(node)


@dataclass(frozen=True)
class BatchResult:
    """Per-row output lanes, decoded lazily against the input rows."""

    kinds: tuple[int, ...]
    flags: tuple[bool, ...]
    sources: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.kinds)

    def to_values(self, rows: Sequence[Mapping[int, Value]]) -> list[Value]:
        if len(rows) != len(self.kinds):
            raise SecelBatchError(f"expected {len(self.kinds)} rows, got {len(rows)}")
        out: list[Value] = []
        for row, kind, flag, src in zip(rows, self.kinds, self.flags, self.sources):
            if kind == KIND_NULL:
                out.append(NULL)
            elif src >= 0:
                out.append(row[src])
            elif kind == KIND_BOOL:
                out.append(boolean(flag))
            else:
                raise SecelBatchError(f"number lane without a source slot (kind={kind})")
        return out


def _encode_rows(rows: Sequence[Mapping[int, Value]], slots: tuple[int, ...]) -> dict[int, Lanes]:
    numbers = set()
    for pos, row in enumerate(rows):
        for key in slots:
            value = row.get(key, NULL)
            if isinstance(value, NumberValue):
                numbers.add(value.value)
            elif not isinstance(value, (NullValue, BoolValue)):
                raise SecelBatchError(f"row {pos} slot {key} has unsupported runtime type {type(value).__name__}")
    ranks = {number: rank for rank, number in enumerate(sorted(numbers))}

    encoded: dict[int, Lanes] = {}
    for key in slots:
        kinds: list[int] = []
        flags: list[bool] = []
        order: list[int] = []
        for row in rows:
            value = row.get(key, NULL)
            if isinstance(value, NumberValue):
                kinds.append(KIND_NUMBER)
                flags.append(False)
                order.append(ranks[value.value])
            elif isinstance(value, BoolValue):
                kinds.append(KIND_BOOL)
                flags.append(value.value)
                order.append(0)
            else:
                kinds.append(KIND_NULL)
                flags.append(False)
                order.append(0)
        encoded[key] = Lanes(
            kind=jnp.asarray(kinds, dtype=jnp.int8),
            flag=jnp.asarray(flags, dtype=bool),
            rank=jnp.asarray(order, dtype=jnp.int32),
            src=jnp.full((len(rows),), -1, dtype=jnp.int32),
        )
    return encoded


@dataclass
class BatchEvaluator:
    """Vectorized evaluator; `evaluator(rows)` equals `[scalar(row) for row in rows]`."""

    ast: Expr
    source: str | None = None
    jit: bool = True
    slots: tuple[int, ...] = field(init=False)
    _fn: LaneFn = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.slots = slot_indices(self.ast)
        lowered = lower_node(self.ast)
        self._fn = jax.jit(lowered) if self.jit else lowered

    def run(self, rows: Sequence[Mapping[int, Value]]) -> BatchResult:
        if not rows:
            return BatchResult(kinds=(), flags=(), sources=())
        slots = _encode_rows(rows, self.slots)
        base = jnp.zeros((len(rows),), dtype=jnp.int32)
        out = self._fn(base, slots)
        return BatchResult(
            kinds=tuple(int(k) for k in out.kind.tolist()),
            flags=tuple(bool(f) for f in out.flag.tolist()),
            sources=tuple(int(s) for s in out.src.tolist()),
        )

    def __call__(self, rows: Sequence[Mapping[int, Value]]) -> list[Value]:
        return self.run(rows).to_values(rows)


def compile_batch(source_or_node: str | Expr, *, jit: bool | None = None) -> BatchEvaluator:
    """Parse (when given text) and lower a statement for batch evaluation."""
    source = source_or_node if isinstance(source_or_node, str) else None
    node = parse(source_or_node) if isinstance(source_or_node, str) else source_or_node
    use_jit = (not _DISABLE_JIT) if jit is None else jit
    evaluator = BatchEvaluator(ast=node, source=source, jit=use_jit)
    logger.debug("Lowered batch evaluator over slots %s (jit=%s)", evaluator.slots, use_jit)
    return evaluator
