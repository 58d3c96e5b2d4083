from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Tagged result of a best-effort call: either a value or the error that prevented it.
    """

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: Exception) -> "Outcome[T]":
        return cls(value=None, error=error)
