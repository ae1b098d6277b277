"""Variable scopes."""

from __future__ import annotations


class Scope:
    """A set of named variables belonging to one function call."""

    def __init__(self) -> None:
        self._vars: dict[str, object] = {}

    def get(self, name: str):
        """Return the value of ``name``; raise KeyError if it is not defined."""
        try:
            return self._vars[name]
        except KeyError:
            raise KeyError(f"no variable named {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._vars

    def create_if_missing(self, name: str) -> None:
        """Define ``name`` as null unless it already exists."""
        self._vars.setdefault(name, None)

    def set(self, name: str, value) -> None:
        """Assign ``value`` to ``name``, defining it if needed."""
        self._vars[name] = value

    def __repr__(self) -> str:
        return f"Scope({self._vars!r})"