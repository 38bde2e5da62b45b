"""Result type for explicit error handling.

Every stage of the upgrade pipeline returns a ``Result``: either ``Ok`` with
the input for the next stage, or ``Err`` with a typed error value. The driver
inspects the outcome once instead of catching exceptions stage by stage.

Usage:
    match read_reltool_identity(Path("reltool.config")):
        case Ok(identity):
            print(f"{identity.name} {identity.version}")
        case Err(error):
            print(f"cannot read descriptor: {error.reason}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful result carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """A failed result carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Union[Ok[T], Err[E]]
