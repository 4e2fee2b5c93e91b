"""Error taxonomy for the inventory planning engine.

Every failure raised by the engine derives from StockflowError so that callers
(and the total operations in ``stockflow.api``) can distinguish domain failures
from programming errors.

Hierarchy:
    StockflowError
    ├── InvalidInput (also a ValueError)
    │   └── DivisionByZero
    ├── InfeasibleProblem
    ├── UnboundedProblem
    ├── ConsistencyError
    ├── CancellationRequested
    └── RunInProgressError
"""

from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from stockflow.models.optimization_result import OptimizationResult


class StockflowError(Exception):
    """Base class for all engine errors."""


class InvalidInput(StockflowError, ValueError):
    """Malformed or out-of-range input.

    Attributes:
        field: Name of the offending field, if a single field is at fault
        record_index: Position of the offending record in the input sequence
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        record_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.field = field
        self.record_index = record_index


class DivisionByZero(InvalidInput):
    """Non-positive holding cost reached the EOQ arithmetic."""


class InfeasibleProblem(StockflowError):
    """Aggregate demand exceeds aggregate supply.

    Attributes:
        shortfall: total_demand - total_supply (always > 0)
        total_supply: Sum of warehouse capacities
        total_demand: Sum of store requirements
        result: OptimizationResult with status INFEASIBLE and an empty assignment
    """

    def __init__(
        self,
        shortfall: float,
        total_supply: float,
        total_demand: float,
        result: Optional["OptimizationResult"] = None,
    ):
        super().__init__(
            f"Problem is infeasible: total demand {total_demand:,.2f} exceeds "
            f"total supply {total_supply:,.2f} (shortfall {shortfall:,.2f})"
        )
        self.shortfall = shortfall
        self.total_supply = total_supply
        self.total_demand = total_demand
        self.result = result


class UnboundedProblem(StockflowError):
    """Cost structure permits unbounded improvement (fatal to the run).

    Attributes:
        lanes: (warehouse_id, store_id, cost) triples that make the run unbounded
    """

    def __init__(self, message: str, lanes: Optional[List[Tuple[str, str, float]]] = None):
        super().__init__(message)
        self.lanes = lanes or []


class ConsistencyError(StockflowError):
    """An internal cross-check failed; results must not be presented.

    Attributes:
        check: Short identifier of the failed check
        expected: Value the check expected
        actual: Value that was observed
        details: Additional context
    """

    def __init__(
        self,
        message: str,
        check: str = "",
        expected: Any = None,
        actual: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.check = check
        self.expected = expected
        self.actual = actual
        self.details = details or {}


class CancellationRequested(StockflowError):
    """A cooperative stop was requested. Not a failure."""


class RunInProgressError(StockflowError):
    """A background run of the same kind is already in flight for this session."""
