"""Assignment into nested arrays and dictionaries."""

from __future__ import annotations

import math

from zenlang.value import VMError, is_number

_USIZE_MAX = (1 << 64) - 1


def _to_index(number) -> int:
    """Convert a number to an unsigned index, saturating; NaN becomes 0."""
    number = float(number)
    if math.isnan(number) or number <= 0:
        return 0
    if number >= _USIZE_MAX:
        return _USIZE_MAX
    return int(number)


def _assign_in_array(array: list, set_to, index: int, rest: list) -> list | None:
    array = list(array)
    if index == len(array):
        array.append(set_to)
        return array
    if index > len(array):
        raise VMError(
            f"aiafs failed: index ({index}) is larger or equal to array length ({len(array)})"
        )
    if not rest:
        array[index] = set_to
        return array
    inner = array[index]
    if isinstance(inner, (list, dict)):
        array[index] = assign_indexed(inner, set_to, rest)
        return array
    return None


def _assign_in_dict(dictionary: dict, set_to, key: str, rest: list) -> dict | None:
    if key not in dictionary:
        return None
    dictionary = dict(dictionary)
    if not rest:
        dictionary[key] = set_to
        return dictionary
    inner = dictionary[key]
    if isinstance(inner, (list, dict)):
        dictionary[key] = assign_indexed(inner, set_to, rest)
        return dictionary
    return None


def assign_indexed(value, set_to, indexes):
    """Return a copy of ``value`` with the element at ``indexes`` set to ``set_to``.

    Array indexes are numbers; an index equal to the array length appends.
    Dictionary indexes are strings naming existing keys. The original value
    is left untouched. Raises VMError when the assignment cannot be made.
    """
    indexes = list(indexes)
    if not indexes:
        raise VMError("aiafs failed: no indexes")
    first, rest = indexes[0], indexes[1:]

    result = None
    if isinstance(value, list) and is_number(first):
        result = _assign_in_array(value, set_to, _to_index(first), rest)
    elif isinstance(value, dict) and isinstance(first, str):
        result = _assign_in_dict(value, set_to, first, rest)

    if result is None:
        raise VMError("aiafs failed: invalid operand types")
    return result