"""Total operations of the planning engine.

Each function returns an OperationOutcome instead of raising: domain failures
(any StockflowError, and pydantic validation errors on constructed models,
reported as InvalidInput) are captured in ``outcome.error``. Programming errors
still propagate.

    outcome = optimize_distribution(eoq_records, capacities, demands, cost_matrix)
    if outcome.ok:
        print(outcome.value.total_cost)
    elif isinstance(outcome.error, InfeasibleProblem):
        print(f"short by {outcome.error.shortfall}")
"""

import functools
import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from pydantic import ValidationError

from stockflow.costs.cost_breakdown import AggregateReport
from stockflow.costs.result_aggregator import ResultAggregator
from stockflow.eoq.calculator import EOQEngine
from stockflow.eoq.sensitivity import SensitivityAnalyzer, SensitivityGridConfig, SensitivitySurface
from stockflow.exceptions import InvalidInput, StockflowError
from stockflow.models.assignment import Assignment
from stockflow.models.inventory import EOQRecord, InventoryRecord
from stockflow.models.network_graph import NetworkGraph
from stockflow.models.optimization_result import OptimizationResult
from stockflow.network.layout import LayoutConfig, NetworkLayoutEngine
from stockflow.optimization.problem import CostMatrix, TransportationProblem
from stockflow.optimization.transportation import DistributionOptimizer
from stockflow.outcome import OperationOutcome
from stockflow.validation.record_validator import RecordValidator, ValidationReport

logger = logging.getLogger(__name__)


def _total(func):
    """Capture domain errors of func in an OperationOutcome."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> OperationOutcome:
        try:
            return OperationOutcome(value=func(*args, **kwargs))
        except StockflowError as e:
            logger.warning(f"{func.__name__} failed: {type(e).__name__}: {e}")
            return OperationOutcome(error=e)
        except ValidationError as e:
            logger.warning(f"{func.__name__} failed validation: {e.error_count()} errors")
            return OperationOutcome(error=InvalidInput(str(e)))
    return wrapper


@_total
def validate(rows: Union[Iterable[Mapping[str, Any]], pd.DataFrame]) -> ValidationReport:
    """Split raw rows into valid records and rejections."""
    validator = RecordValidator()
    if isinstance(rows, pd.DataFrame):
        return validator.validate_dataframe(rows)
    return validator.validate(rows)


@_total
def compute_eoq(records: Iterable[InventoryRecord]) -> List[EOQRecord]:
    """EOQ of every record; fails with InvalidInput on the first bad record."""
    return EOQEngine().compute(records)


@_total
def analyze_sensitivity(
    record: Union[InventoryRecord, Sequence[InventoryRecord]],
    grid_config: Optional[SensitivityGridConfig] = None,
) -> Union[SensitivitySurface, List[SensitivitySurface]]:
    """Sensitivity surface of one record, or one surface per record for a sequence."""
    analyzer = SensitivityAnalyzer()
    if isinstance(record, InventoryRecord):
        return analyzer.analyze(record, grid_config)
    return analyzer.analyze_all(record, grid_config)


@_total
def optimize_distribution(
    records_with_eoq: Sequence[EOQRecord],
    capacities: Optional[Mapping[str, Optional[float]]],
    demands: Optional[Mapping[str, float]],
    cost_matrix: CostMatrix,
    distances: Optional[CostMatrix] = None,
) -> OptimizationResult:
    """
    Minimum-cost distribution of EOQ-enriched records.

    Failures: InvalidInput, InfeasibleProblem (with shortfall), UnboundedProblem.
    """
    return DistributionOptimizer().optimize(
        records_with_eoq, capacities, cost_matrix, demands=demands, distances=distances
    )


@_total
def layout(graph: NetworkGraph, config: Optional[LayoutConfig] = None) -> NetworkGraph:
    """Positioned copy of graph."""
    return NetworkLayoutEngine(config).layout(graph).graph


@_total
def aggregate(
    assignment: Assignment,
    records: Optional[Sequence[InventoryRecord]] = None,
    reported: Optional[OptimizationResult] = None,
    problem: Optional[TransportationProblem] = None,
    graph: Optional[NetworkGraph] = None,
) -> AggregateReport:
    """Warehouse, store and network summaries (cross-checked; ConsistencyError on mismatch)."""
    return ResultAggregator().aggregate(
        assignment, records=records, reported=reported, problem=problem, graph=graph
    )
