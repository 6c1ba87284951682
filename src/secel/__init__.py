"""secel public API."""

from .ast import ast_to_tree, to_source
from .errors import SecelBatchError, SecelError, SecelParseError, SecelTypeError
from .evaluator import (
    Evaluator,
    IndexedValues,
    build_evaluator,
    build_evaluator_with_errors,
    compile_node,
    evaluate,
)
from .parser import ParseError, parse
from .values import NULL, BoolValue, NullValue, NumberValue, Value, ValueKind

try:
    from .batch import BatchEvaluator, BatchResult, compile_batch
except ModuleNotFoundError as exc:
    if exc.name and exc.name.startswith("jax"):
        _jax_import_error = exc

        def compile_batch(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for compile_batch(). Install runtime deps first."
            ) from _jax_import_error

        class BatchEvaluator:  # pragma: no cover - import-time fallback
            def __init__(self, *_args, **_kwargs) -> None:
                raise ModuleNotFoundError(
                    "jax is required for BatchEvaluator(). Install runtime deps first."
                ) from _jax_import_error

        class BatchResult:  # pragma: no cover - import-time fallback
            def __init__(self, *_args, **_kwargs) -> None:
                raise ModuleNotFoundError(
                    "jax is required for BatchResult(). Install runtime deps first."
                ) from _jax_import_error

    else:
        raise

__all__ = [
    "parse",
    "ParseError",
    "ast_to_tree",
    "to_source",
    "build_evaluator",
    "build_evaluator_with_errors",
    "compile_node",
    "evaluate",
    "Evaluator",
    "IndexedValues",
    "compile_batch",
    "BatchEvaluator",
    "BatchResult",
    "Value",
    "ValueKind",
    "NullValue",
    "BoolValue",
    "NumberValue",
    "NULL",
    "SecelError",
    "SecelParseError",
    "SecelTypeError",
    "SecelBatchError",
]
