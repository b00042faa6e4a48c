"""
Result type returned by the submitting and watching steps.
"""
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from .exceptions import BonsolError

T = TypeVar('T')
U = TypeVar('U')


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Either a value or a BonsolError, never both.

    Use ``Outcome.success`` and ``Outcome.failure`` to construct one.
    """
    value: Optional[T] = None
    error: Optional[BonsolError] = None

    def __post_init__(self):
        if (self.value is None) == (self.error is None):
            raise ValueError("Outcome needs exactly one of value or error")

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BonsolError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """
        Return the value or raise the error.

        Raises:
            BonsolError: If the outcome is a failure
        """
        if self.error is not None:
            raise self.error
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Outcome[U]":
        if self.error is not None:
            return Outcome.failure(self.error)
        return Outcome.success(fn(self.value))
