"""A stack-based virtual machine for ZenLang modules, with values, instructions and host calls."""

__version__ = "0.1.0"