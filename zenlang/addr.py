"""Helpers for 64-bit code addresses.

An address packs a module index into its high 32 bits and an instruction
offset into its low 32 bits. All arithmetic on either half wraps at 32 bits.
"""

_MASK32 = 0xFFFFFFFF


def high(addr: int) -> int:
    """Return the high 32 bits (module index) of ``addr``."""
    return (addr >> 32) & _MASK32


def low(addr: int) -> int:
    """Return the low 32 bits (instruction offset) of ``addr``."""
    return addr & _MASK32


def pack(high: int, low: int) -> int:
    """Combine two 32-bit halves into one address."""
    return ((high & _MASK32) << 32) | (low & _MASK32)


def with_high(addr: int, n: int) -> int:
    """Return ``addr`` with its high half replaced by ``n``."""
    return pack(n, low(addr))


def with_low(addr: int, n: int) -> int:
    """Return ``addr`` with its low half replaced by ``n``."""
    return pack(high(addr), n)


def add_low(addr: int, n: int) -> int:
    """Add ``n`` to the low half, wrapping at 32 bits."""
    return with_low(addr, low(addr) + n)


def add_high(addr: int, n: int) -> int:
    """Add ``n`` to the high half, wrapping at 32 bits."""
    return with_high(addr, high(addr) + n)


def sub_low(addr: int, n: int) -> int:
    """Subtract ``n`` from the low half, wrapping at 32 bits."""
    return with_low(addr, low(addr) - n)


def sub_high(addr: int, n: int) -> int:
    """Subtract ``n`` from the high half, wrapping at 32 bits."""
    return with_high(addr, high(addr) - n)