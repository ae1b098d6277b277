"""Host calls made from running code, and the platform they talk to."""

from __future__ import annotations

import math
import sys
from pathlib import Path

from zenlang.value import VMError, display, err, is_number, ok

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


class Platform:
    """The host environment: console, files and module lookup.

    The default implementation uses the standard streams and the local file
    system and resolves no modules. Subclass it to change any of that.
    """

    def print(self, text: str) -> None:
        """Write ``text`` without a newline."""
        sys.stdout.write(text)
        sys.stdout.flush()

    def println(self, text: str) -> None:
        """Write ``text`` followed by a newline."""
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def get_string(self) -> str:
        """Read one line of input, without its line ending."""
        return sys.stdin.readline().rstrip("\r\n")

    def get_module(self, name: str):
        """Return the module called ``name``, or None if it cannot be found."""
        return None

    def read_file_bytes(self, name: str) -> bytes | None:
        """Return the contents of file ``name``, or None if it cannot be read."""
        try:
            return Path(name).read_bytes()
        except OSError:
            return None

    def write_file_bytes(self, name: str, data: bytes) -> None:
        """Write ``data`` to file ``name``."""
        Path(name).write_bytes(bytes(data))


def _pop(vm):
    if not vm.stack:
        raise VMError("vmcall: no value on stack")
    return vm.stack.pop()


def _pop_array(vm) -> list:
    value = _pop(vm)
    if not isinstance(value, list):
        raise VMError("vmcall: expected an array")
    return value


def _pop_string(vm) -> str:
    value = _pop(vm)
    if not isinstance(value, str):
        raise VMError("vmcall: expected a string")
    return value


def _pop_number(vm) -> float:
    value = _pop(vm)
    if not is_number(value):
        raise VMError("vmcall: expected a number")
    return float(value)


def _to_unsigned(number: float, limit: int) -> int:
    """Saturating float-to-unsigned conversion; NaN becomes 0."""
    if math.isnan(number) or number <= 0:
        return 0
    if number >= limit:
        return limit
    return int(number)


def _to_i64(number: float) -> int:
    if math.isnan(number):
        return 0
    return max(_I64_MIN, min(_I64_MAX, int(number))) if math.isfinite(number) else (
        _I64_MAX if number > 0 else _I64_MIN
    )


def _to_index(number: float) -> int:
    return _to_unsigned(number, (1 << 64) - 1)


def _parse_number(text: str) -> float:
    if not text:
        raise ValueError("cannot parse float from empty string")
    if text.isascii() and text == text.strip() and "_" not in text:
        try:
            return float(text)
        except ValueError:
            pass
    raise ValueError("invalid float literal")


def _split(text: str, delimiter: str) -> list[str]:
    if delimiter == "":
        return ["", *text, ""]
    return text.split(delimiter)


def _print(vm) -> None:
    if vm.platform is not None:
        vm.platform.print(display(_pop(vm)))


def _println(vm) -> None:
    if vm.platform is not None:
        vm.platform.println(display(_pop(vm)))


def _get_string(vm) -> None:
    if vm.platform is not None:
        vm.stack.append(str(vm.platform.get_string()))


def _load_module(vm) -> None:
    if vm.platform is None:
        return
    name = _pop_string(vm)
    module = vm.platform.get_module(name)
    if module is None:
        raise VMError(f"module not found: {name}")
    try:
        vm.load_module(module)
    except VMError:
        pass


def _array_size(vm) -> None:
    vm.stack.append(float(len(_pop_array(vm))))


def _array_push(vm) -> None:
    element = _pop(vm)
    array = _pop_array(vm)
    vm.stack.append([*array, element])


def _array_pop(vm) -> None:
    vm.stack.append(_pop_array(vm)[:-1])


def _array_remove(vm) -> None:
    at = _to_index(_pop_number(vm))
    array = _pop_array(vm)
    if at >= len(array):
        vm.stack.append(None)
        return
    vm.stack.append(array[:at] + array[at + 1:])


def _array_insert(vm) -> None:
    element = _pop(vm)
    at = _to_index(_pop_number(vm))
    array = _pop_array(vm)
    if at >= len(array):
        vm.stack.append(None)
        return
    vm.stack.append([*array[:at], element, *array[at:]])


def _str_split(vm) -> None:
    delimiter = _pop_string(vm)
    text = _pop_string(vm)
    vm.stack.append(_split(text, delimiter))


def _read_file_bytes(vm) -> None:
    name = _pop_string(vm)
    if vm.platform is None:
        return
    data = vm.platform.read_file_bytes(name)
    vm.stack.append(None if data is None else [float(byte) for byte in data])


def _read_file(vm) -> None:
    name = _pop_string(vm)
    if vm.platform is None:
        return
    data = vm.platform.read_file_bytes(name)
    vm.stack.append(None if data is None else bytes(data).decode("latin-1"))


def _write_file_bytes(vm) -> None:
    array = _pop(vm)
    if not isinstance(array, list):
        raise VMError("vmcall: expected a byte array")
    if not all(is_number(item) for item in array):
        raise VMError("vmcall: expected a number in a byte array")
    data = bytes(_to_unsigned(float(item), 0xFF) for item in array)
    name = _pop_string(vm)
    if vm.platform is not None:
        vm.platform.write_file_bytes(name, data)


def _write_file(vm) -> None:
    text = _pop_string(vm)
    data = bytes(ord(ch) & 0xFF for ch in text)
    name = _pop_string(vm)
    if vm.platform is not None:
        vm.platform.write_file_bytes(name, data)


def _ord(vm) -> None:
    text = _pop_string(vm)
    vm.stack.append(float(ord(text[0])) if text else None)


def _chr(vm) -> None:
    byte = _to_i64(_pop_number(vm)) & 0xFF
    vm.stack.append(chr(byte) if byte < 0x80 else "\ufffd")


def _stringify(vm) -> None:
    vm.stack.append(display(_pop(vm)))


def _number(vm) -> None:
    text = _pop_string(vm)
    try:
        vm.stack.append(ok(_parse_number(text)))
    except ValueError as error:
        vm.stack.append(err(str(error)))


_HANDLERS = {
    1: _print,
    2: _println,
    3: _get_string,
    4: _load_module,
    5: _array_size,
    6: _array_push,
    7: _array_pop,
    8: _array_remove,
    9: _array_insert,
    10: _str_split,
    11: _read_file_bytes,
    12: _read_file,
    13: _write_file_bytes,
    14: _write_file,
    15: _ord,
    16: _chr,
    17: _stringify,
    18: _number,
}


def vmcall(vm, index: int) -> None:
    """Perform host call ``index`` against the stack of ``vm``.

    ``vm`` needs a ``stack`` list, a ``platform`` (or None) and a
    ``load_module`` method. Raises VMError when the call fails.
    """
    handler = _HANDLERS.get(index)
    if handler is None:
        raise VMError(f"vmcall: invalid vmcall index {index}")
    handler(vm)