"""Typed success-or-failure value returned by total operations."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from stockflow.exceptions import StockflowError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationOutcome(Generic[T]):
    """
    Result of an operation that never raises a domain error.

    Exactly one of value and error is meaningful: a successful outcome carries
    the value, a failed one carries the StockflowError that stopped it.
    """
    value: Optional[T] = None
    error: Optional[StockflowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value

    def __str__(self) -> str:
        if self.ok:
            return f"OperationOutcome: OK ({type(self.value).__name__})"
        return f"OperationOutcome: {type(self.error).__name__}: {self.error}"
