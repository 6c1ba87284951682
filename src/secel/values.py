"""Runtime value model for the three-valued SECEL evaluator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Final, Union


class ValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"


@dataclass(frozen=True)
class NullValue:
    def __str__(self) -> str:
        return "Null"


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError(f"BoolValue expects bool, got {type(self.value).__name__}")

    def __str__(self) -> str:
        return f"Bool: {'true' if self.value else 'false'}"


@dataclass(frozen=True)
class NumberValue:
    """Exact decimal number; ordering and equality follow `Decimal`."""

    value: Decimal

    def __post_init__(self) -> None:
        raw = self.value
        if isinstance(raw, Decimal):
            number = raw
        elif isinstance(raw, bool) or isinstance(raw, float):
            raise TypeError(f"NumberValue expects an exact number, got {type(raw).__name__}")
        elif isinstance(raw, (int, str)):
            try:
                number = Decimal(raw)
            except InvalidOperation as exc:
                raise TypeError(f"NumberValue cannot parse {raw!r}") from exc
        else:
            raise TypeError(f"NumberValue expects Decimal, int or str, got {type(raw).__name__}")
        if not number.is_finite():
            raise TypeError(f"NumberValue must be finite, got {raw!r}")
        object.__setattr__(self, "value", number)

    def __str__(self) -> str:
        return f"Number: {self.value}"


Value = Union[NullValue, BoolValue, NumberValue]

NULL: Final = NullValue()
TRUE: Final = BoolValue(True)
FALSE: Final = BoolValue(False)


def boolean(flag: bool) -> BoolValue:
    return TRUE if flag else FALSE


def is_value(value: object) -> bool:
    return isinstance(value, (NullValue, BoolValue, NumberValue))


def kind_of(value: Value) -> ValueKind:
    if isinstance(value, NullValue):
        return ValueKind.NULL
    if isinstance(value, BoolValue):
        return ValueKind.BOOL
    if isinstance(value, NumberValue):
        return ValueKind.NUMBER
    raise TypeError(f"unsupported runtime type {type(value).__name__}")


def as_value(obj: object, *, where: str = "value") -> Value:
    """Coerce plain Python data into a `Value`.

    `None` becomes null, `bool` a boolean, and `int`/`str`/`Decimal` a number.
    Floats are rejected because they cannot be represented exactly.
    """
    if is_value(obj):
        return obj  # type: ignore[return-value]
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return boolean(obj)
    try:
        return NumberValue(obj)  # type: ignore[arg-type]
    except TypeError as exc:
        raise TypeError(f"{where}: {exc}") from exc


def validate_value(value: object, *, where: str = "value") -> None:
    if not is_value(value):
        raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}")
