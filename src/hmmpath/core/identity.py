"""Identity contract for states and observations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Identified(Protocol):
    """Anything exposing a stable integer ``id``."""

    @property
    def id(self) -> int: ...


def identity_of(value: Any) -> int:
    """Return the integer identity of a state or observation."""

    ident = getattr(value, "id", None)
    if isinstance(ident, bool) or not isinstance(ident, int):
        raise TypeError(
            f"{type(value).__name__} must expose an integer 'id' attribute, got {ident!r}."
        )
    return ident


@dataclass(frozen=True)
class NamedState:
    """Hidden state with an integer identity and a display name."""

    id: int
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class NamedObservation:
    """Observed symbol with an integer identity and a display name."""

    id: int
    name: str

    def __str__(self) -> str:
        return self.name
