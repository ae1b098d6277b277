"""Compiled modules: instructions plus a table of functions."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ModuleFunction:
    """A function entry: its name, start offset and argument count."""

    name: str
    addr: int
    args_count: int


@dataclass
class Module:
    """A unit of compiled code loaded into the virtual machine."""

    name: str = ""
    opcodes: list = field(default_factory=list)
    functions: list[ModuleFunction] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    def find_function(self, name: str) -> ModuleFunction | None:
        """Return the first function called ``name``, or None."""
        return next((function for function in self.functions if function.name == name), None)