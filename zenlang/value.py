"""Runtime values and the operations defined on them.

Values are plain Python objects: ``float`` numbers, ``str`` strings, ``bool``
booleans, ``list`` arrays, ``dict`` dictionaries (insertion ordered),
``None`` for null, and :class:`FunctionRef` for function references.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from zenlang.addr import high, low


class VMError(Exception):
    """An error raised while executing code in the virtual machine."""


@dataclass(frozen=True)
class FunctionRef:
    """A reference to a function: its packed address and argument count."""

    addr: int
    args_count: int


def is_number(value) -> bool:
    """Return True if ``value`` is a number value (not a boolean)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _both_numbers(a, b) -> bool:
    return is_number(a) and is_number(b)


def less_than(a, b) -> bool:
    """``a < b`` for numbers; False for any other operands."""
    return _both_numbers(a, b) and float(a) < float(b)


def greater_than(a, b) -> bool:
    """``a > b`` for numbers; False for any other operands."""
    return _both_numbers(a, b) and float(a) > float(b)


def less_equal(a, b) -> bool:
    """``a <= b`` for numbers; False for any other operands."""
    return _both_numbers(a, b) and float(a) <= float(b)


def greater_equal(a, b) -> bool:
    """``a >= b`` for numbers; False for any other operands."""
    return _both_numbers(a, b) and float(a) >= float(b)


def equal(a, b) -> bool:
    """Structural equality; dictionaries compare in key order."""
    if _both_numbers(a, b):
        return float(a) == float(b)
    if isinstance(a, bool) and isinstance(b, bool):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return len(a) == len(b) and all(
            ka == kb and equal(va, vb)
            for (ka, va), (kb, vb) in zip(a.items(), b.items())
        )
    if isinstance(a, FunctionRef) and isinstance(b, FunctionRef):
        return a == b
    return a is None and b is None


def _format_number(number) -> str:
    number = float(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _display_element(value) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return display(value)


def display(value) -> str:
    """Render a value the way the language prints it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return _format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "[" + ", ".join(_display_element(item) for item in value) + "]"
    if isinstance(value, dict):
        entries = (f"{key} = {_display_element(item)}" for key, item in value.items())
        return "{" + ", ".join(entries) + "}"
    if isinstance(value, FunctionRef):
        return (
            f"[function at 0x{low(value.addr)} in module {high(value.addr)}"
            f" with {value.args_count} arguments]"
        )
    raise TypeError(f"not a runtime value: {value!r}")


def ok(value) -> dict:
    """Wrap ``value`` as a successful result dictionary."""
    return {"_err": None, "_ok": value}


def err(value) -> dict:
    """Wrap ``value`` as a failed result dictionary."""
    return {"_err": value, "_ok": None}