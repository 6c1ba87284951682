"""Build-once/call-many benchmarks for the scalar and batch evaluators."""

from __future__ import annotations

import argparse
import json
import random
from dataclasses import asdict, dataclass
from decimal import Decimal
from pathlib import Path

from secel import NULL, NumberValue, build_evaluator, compile_batch, parse
from _bench_utils import host_metadata, mean as _mean, percentile as _percentile, sample_ms, stddev as _stddev

CASES = {
    "single_compare": "if(1=2;1;2)",
    "or_chain": "if(1<2 or 3>4 or 5>=6;7;null)",
    "mixed_precedence": "if(1<2 or 3>4 and 5>=6;7;null)",
    "nested_if": "if((1<>2 and 3<=4) or 5=null;if(6>7;6;7);if(8<9;8;null))",
}


@dataclass(frozen=True)
class TimingStats:
    mean_ms: float
    stdev_ms: float
    p50_ms: float
    p95_ms: float


@dataclass(frozen=True)
class CaseRow:
    name: str
    expression: str
    parse_ms: float
    build: TimingStats
    call: TimingStats
    batch_call: TimingStats | None


def _summarize_ms(ms: list[float]) -> TimingStats:
    return TimingStats(
        mean_ms=_mean(ms),
        stdev_ms=_stddev(ms),
        p50_ms=_percentile(ms, 0.50),
        p95_ms=_percentile(ms, 0.95),
    )


def _random_rows(count: int, *, seed: int) -> list[dict[int, object]]:
    rng = random.Random(seed)
    rows = []
    for _ in range(count):
        row = {}
        for key in range(1, 10):
            if rng.random() < 0.1:
                row[key] = NULL
            else:
                row[key] = NumberValue(Decimal(rng.randint(0, 1000)) / 10)
        rows.append(row)
    return rows


def run_case(name: str, expression: str, *, rows: list[dict[int, object]], samples: int, repeats: int, batch: bool) -> CaseRow:
    parse_ms = _mean(sample_ms(parse, (expression,), repeats=1, warmup=0, samples=1))
    node = parse(expression)
    build = _summarize_ms(sample_ms(build_evaluator, (node,), repeats=repeats, warmup=1, samples=samples))
    evaluator = build_evaluator(node)
    call = _summarize_ms(sample_ms(evaluator, (rows[0],), repeats=repeats, warmup=1, samples=samples))
    batch_call = None
    if batch:
        batched = compile_batch(node)
        batch_call = _summarize_ms(sample_ms(batched, (rows,), repeats=1, warmup=1, samples=samples))
    return CaseRow(name=name, expression=expression, parse_ms=parse_ms, build=build, call=call, batch_call=batch_call)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--samples", type=int, default=5, help="timing sample count")
    parser.add_argument("--repeats", type=int, default=2000, help="calls per sample")
    parser.add_argument("--rows", type=int, default=10_000, help="rows per batch call")
    parser.add_argument("--no-batch", action="store_true", help="skip the jax batch evaluator")
    parser.add_argument("--seed", type=int, default=0, help="random seed for generated rows")
    parser.add_argument("--json-out", default="", help="optional path to write machine-readable results")
    args = parser.parse_args()

    rows = _random_rows(args.rows, seed=args.seed)
    results = [
        run_case(name, expression, rows=rows, samples=args.samples, repeats=args.repeats, batch=not args.no_batch)
        for name, expression in CASES.items()
    ]

    print(f"{'case':<18} {'build ms':>10} {'call ms':>10} {'batch ms':>10}")
    for row in results:
        batch_text = "-" if row.batch_call is None else f"{row.batch_call.mean_ms:.4f}"
        print(f"{row.name:<18} {row.build.mean_ms:>10.4f} {row.call.mean_ms:>10.4f} {batch_text:>10}")

    if args.json_out:
        out = Path(args.json_out)
        out.parent.mkdir(parents=True, exist_ok=True)
        payload = {"host": host_metadata(), "rows": args.rows, "cases": [asdict(row) for row in results]}
        out.write_text(json.dumps(payload, indent=2), encoding="utf-8")


if __name__ == "__main__":
    main()
