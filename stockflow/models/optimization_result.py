"""Optimization result schema for the distribution optimizer.

This module defines the contract between the optimizer and its consumers
(aggregator, session, serializers). Results are immutable pydantic models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .assignment import Assignment


class FeasibilityStatus(str, Enum):
    """Standard linear-programming solution states."""
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"


class OptimizationResult(BaseModel):
    """
    Result of a distribution optimization run.

    Attributes:
        status: optimal, infeasible or unbounded
        total_cost: Σ cost[w][s] × x[w][s] over the assignment
        total_distance: Σ lane distance over lanes with flow (None without a distance model)
        total_items: Total units moved
        assignment: Lane quantities (empty unless optimal)
        shortfall: Unmet aggregate demand (infeasible runs only)
        initial_cost: Cost of the initial basic feasible solution
        iterations: Number of improvement pivots performed
        degenerate_pivots: Number of pivots with a zero step length
    """
    status: FeasibilityStatus
    total_cost: float = Field(0.0, allow_inf_nan=False)
    total_distance: Optional[float] = Field(None, ge=0)
    total_items: float = Field(0.0, ge=0)
    assignment: Assignment = Field(default_factory=Assignment)
    shortfall: Optional[float] = Field(None, ge=0)
    initial_cost: Optional[float] = None
    iterations: int = Field(0, ge=0)
    degenerate_pivots: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)

    def is_optimal(self) -> bool:
        return self.status == FeasibilityStatus.OPTIMAL

    def is_infeasible(self) -> bool:
        return self.status == FeasibilityStatus.INFEASIBLE

    def is_unbounded(self) -> bool:
        return self.status == FeasibilityStatus.UNBOUNDED

    def __str__(self) -> str:
        result = f"OptimizationResult: {self.status.value.upper()}"
        if self.is_optimal():
            result += f", cost = {self.total_cost:,.2f}, items = {self.total_items:,.0f}"
            if self.total_distance is not None:
                result += f", distance = {self.total_distance:,.1f}"
            result += f", iterations = {self.iterations}"
        elif self.shortfall is not None:
            result += f", shortfall = {self.shortfall:,.2f}"
        return result
