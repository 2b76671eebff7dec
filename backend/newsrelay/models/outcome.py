"""Tagged success/failure result for best-effort store calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from newsrelay.errors import StoreError

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Outcome(Generic[T]):
    """Result of a store operation.

    Call sites choose whether a failure degrades to a fallback (`value_or`)
    or propagates to the caller (`unwrap`).
    """

    value: T | None = None
    error: StoreError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: StoreError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the value or raise the carried `StoreError`."""
        if self.error is not None:
            raise self.error
        return self.value

    def value_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value
