"""Result type for explicit error handling.

Every fallible release step returns ``Result[T, E]`` instead of raising, so a
failure deep inside the dependency traversal reaches the CLI with its unit
name and context intact. Callers narrow with ``isinstance`` or ``match``.

Usage:
    def lookup(table: dict[str, str], name: str) -> Result[str, str]:
        if name not in table:
            return Err(f"unknown unit: {name}")
        return Ok(table[name])

    match lookup(addresses, "Exchange"):
        case Ok(address):
            print(address)
        case Err(error):
            print(error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]
