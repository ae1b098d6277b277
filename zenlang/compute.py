"""Binary operations on runtime values."""

from __future__ import annotations

import math
import operator
from enum import Enum

from zenlang.value import (
    VMError,
    equal,
    greater_equal,
    greater_than,
    is_number,
    less_equal,
    less_than,
)

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


class BinaryOp(Enum):
    """Binary operators understood by the virtual machine."""

    PLUS = "+"
    MINUS = "-"
    MUL = "*"
    DIV = "/"
    BITSHR = ">>"
    BITSHL = "<<"
    BITAND = "&"
    BITOR = "|"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="


def _to_i64(number: float) -> int:
    """Convert a float to a 64-bit integer, saturating; NaN becomes 0."""
    if math.isnan(number):
        return 0
    if number >= _I64_MAX:
        return _I64_MAX
    if number <= _I64_MIN:
        return _I64_MIN
    return int(number)


def _wrap_i64(n: int) -> int:
    return ((n - _I64_MIN) % (1 << 64)) + _I64_MIN


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        raise VMError("division by 0")
    return a / b


def _integer_op(func):
    def apply(a: float, b: float) -> float:
        return float(_wrap_i64(func(_to_i64(a), _to_i64(b))))

    return apply


_NUMERIC = {
    BinaryOp.PLUS: operator.add,
    BinaryOp.MINUS: operator.sub,
    BinaryOp.MUL: operator.mul,
    BinaryOp.DIV: _divide,
    BinaryOp.BITSHR: _integer_op(lambda a, b: a >> (b & 63)),
    BinaryOp.BITSHL: _integer_op(lambda a, b: a << (b & 63)),
    BinaryOp.BITAND: _integer_op(operator.and_),
    BinaryOp.BITOR: _integer_op(operator.or_),
}

_COMPARISONS = {
    BinaryOp.EQ: equal,
    BinaryOp.NEQ: lambda a, b: not equal(a, b),
    BinaryOp.LT: less_than,
    BinaryOp.GT: greater_than,
    BinaryOp.LE: less_equal,
    BinaryOp.GE: greater_equal,
}

_BOOLEAN = {
    BinaryOp.BITAND: lambda a, b: a and b,
    BinaryOp.BITOR: lambda a, b: a or b,
}


def compute(left, right, op: BinaryOp):
    """Apply ``op`` to two values; raise VMError on unsupported operands."""
    if op in _COMPARISONS:
        return _COMPARISONS[op](left, right)
    if is_number(left) and is_number(right):
        return _NUMERIC[op](float(left), float(right))
    if op in _BOOLEAN and isinstance(left, bool) and isinstance(right, bool):
        return float(_BOOLEAN[op](left, right))
    raise VMError("unmatched left and right value types")