"""Tagged lookup results returned by resource stores.

Stores never signal "not found" by raising; callers branch on the result
variant instead of inspecting exception identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """The object exists."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """The object does not exist."""

    kind: str = ""
    namespace: str = ""
    name: str = ""


@dataclass(frozen=True)
class Failed:
    """The lookup itself failed (transient I/O, permissions, ...)."""

    detail: str
    cause: Exception | None = None


GetResult = Ok[T] | NotFound | Failed
