"""AST nodes for SECEL statements, plus tree and source renderers."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Null:
    pass


@dataclass(frozen=True)
class Number:
    """Reference to the value stored in slot `index` of the environment."""

    index: int


@dataclass(frozen=True)
class And:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Or:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Eq:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Nq:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Ge:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Gt:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Le:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Lt:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class If:
    condition: "Expr"
    then: "Expr"
    otherwise: "Expr"


Comparison = Union[Eq, Nq, Ge, Gt, Le, Lt]
BinaryNode = Union[And, Or, Eq, Nq, Ge, Gt, Le, Lt]
Expr = Union[And, Or, Eq, Nq, Ge, Gt, Le, Lt, If, Number, Null]

BINARY_NODES = (And, Or, Eq, Nq, Ge, Gt, Le, Lt)
COMPARISON_OPERATORS = {Eq: "=", Nq: "<>", Ge: ">=", Gt: ">", Le: "<=", Lt: "<"}


def children(node: Expr) -> tuple[Expr, ...]:
    if isinstance(node, If):
        return (node.condition, node.then, node.otherwise)
    if isinstance(node, BINARY_NODES):
        return (node.left, node.right)
    return ()


def iter_nodes(node: Expr) -> Iterator[Expr]:
    """Yield `node` and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))


def slot_indices(node: Expr) -> tuple[int, ...]:
    return tuple(sorted({n.index for n in iter_nodes(node) if isinstance(n, Number)}))


def ast_to_tree(root: Expr) -> str:
    """Render `root` as a box-drawing tree.

    Lines start at column zero and are joined by ``\\n`` with no leading or
    trailing newline; indentation comes only from the tree connectors.

    ```
    If
    ├─ Eq
    │  ├─ Number
    │  │  └─ `1`
    │  └─ Null
    ├─ Number
    │  └─ `1`
    └─ Null
    ```
    """
    lines: list[str] = []
    _tree_lines(root, lines, head="", tail="")
    return "\n".join(lines)


def _tree_lines(node: Expr, lines: list[str], *, head: str, tail: str) -> None:
    if isinstance(node, Number):
        lines.append(f"{head}Number")
        lines.append(f"{tail}└─ `{node.index}`")
        return
    lines.append(f"{head}{type(node).__name__}")
    items = children(node)
    for pos, child in enumerate(items):
        if pos == len(items) - 1:
            _tree_lines(child, lines, head=f"{tail}└─ ", tail=f"{tail}   ")
        else:
            _tree_lines(child, lines, head=f"{tail}├─ ", tail=f"{tail}│  ")


def to_source(node: Expr) -> str:
    """Render `node` back to canonical SECEL text."""
    if isinstance(node, Null):
        return "null"
    if isinstance(node, Number):
        return str(node.index)
    if isinstance(node, If):
        return f"if({to_source(node.condition)};{to_source(node.then)};{to_source(node.otherwise)})"
    if isinstance(node, Or):
        return f"{_operand_source(node.left, Or, right=False)} or {_operand_source(node.right, Or, right=True)}"
    if isinstance(node, And):
        return f"{_operand_source(node.left, And, right=False)} and {_operand_source(node.right, And, right=True)}"
    op = COMPARISON_OPERATORS.get(type(node))
    if op is not None:
        return f"{to_source(node.left)}{op}{to_source(node.right)}"
    raise TypeError(f"Unsupported AST node {type(node).__name__}")


def _operand_source(node: Expr, parent: type, *, right: bool) -> str:
    text = to_source(node)
    if isinstance(node, Or) and (parent is And or right):
        return f"({text})"
    if isinstance(node, And) and parent is And and right:
        return f"({text})"
    return text
