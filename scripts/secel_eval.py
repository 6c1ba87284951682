"""Parse a SECEL statement, optionally print its tree, and evaluate it."""

from __future__ import annotations

import argparse
import logging
import sys

from secel import IndexedValues, ParseError, ast_to_tree, build_evaluator, to_source


def _parse_slot(text: str) -> tuple[int, object]:
    key, sep, raw = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected K=V, got {text!r}")
    try:
        index = int(key)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"slot index must be an integer, got {key!r}") from exc
    lowered = raw.strip().lower()
    if lowered == "null":
        return index, None
    if lowered in {"true", "false"}:
        return index, lowered == "true"
    return index, raw.strip()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("expression", help="SECEL statement, e.g. 'if(1=2;1;2)'")
    parser.add_argument(
        "--slot",
        action="append",
        default=[],
        type=_parse_slot,
        metavar="K=V",
        help="slot value: a decimal number, true, false or null (repeatable)",
    )
    parser.add_argument("--tree", action="store_true", help="print the AST as a tree")
    parser.add_argument("--source", action="store_true", help="print the canonical source text")
    parser.add_argument("--trace", action="store_true", help="log parser rule entries")
    args = parser.parse_args(argv)

    if args.trace:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        evaluator = build_evaluator(args.expression)
    except ParseError as err:
        print(f"parse error: {err}", file=sys.stderr)
        return 2

    if args.tree:
        print(ast_to_tree(evaluator.ast))
    if args.source:
        print(to_source(evaluator.ast))

    try:
        values = IndexedValues(dict(args.slot))
    except TypeError as err:
        print(f"invalid slot value: {err}", file=sys.stderr)
        return 2
    print(evaluator(values))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
