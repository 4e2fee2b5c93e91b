"""Result aggregation and cross-checking.

Rolls an Assignment (and optionally the records, the problem definition and
the network graph behind it) into warehouse, store and network summaries.

The total cost is always recomputed here from lane quantities; it is never
read from the optimizer's result. A disagreement with the optimizer's reported
figures, or an assignment that violates a capacity or a requirement, means the
optimizer is wrong and raises ConsistencyError.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Optional, Sequence, Set

import networkx as nx

from stockflow.constants import COST_CHECK_ABS_TOL, COST_CHECK_REL_TOL
from stockflow.exceptions import ConsistencyError
from stockflow.models.assignment import Assignment
from stockflow.models.inventory import InventoryRecord
from stockflow.models.network_graph import NetworkGraph
from stockflow.models.optimization_result import FeasibilityStatus, OptimizationResult
from stockflow.optimization.problem import TransportationProblem
from .cost_breakdown import AggregateReport, GraphSummary, StoreSummary, WarehouseSummary

logger = logging.getLogger(__name__)


class ResultAggregator:
    """
    Builds summaries from an assignment and verifies the optimizer's figures.

    Example:
        aggregator = ResultAggregator()
        report = aggregator.aggregate(result.assignment, records=eoq_records,
                                      reported=result, problem=problem)
        print(report)
    """

    def __init__(self, rel_tol: float = COST_CHECK_REL_TOL, abs_tol: float = COST_CHECK_ABS_TOL):
        self.rel_tol = rel_tol
        self.abs_tol = abs_tol

    def aggregate(
        self,
        assignment: Assignment,
        records: Optional[Sequence[InventoryRecord]] = None,
        reported: Optional[OptimizationResult] = None,
        problem: Optional[TransportationProblem] = None,
        graph: Optional[NetworkGraph] = None,
    ) -> AggregateReport:
        """
        Summarize an assignment.

        Args:
            assignment: Lane quantities to summarize
            records: Input records (adds record demand and item counts)
            reported: The optimizer's result, whose cost and volume are cross-checked
            problem: Problem definition; lane costs are taken from it rather than
                from the assignment, and capacities/requirements are checked
            graph: Network graph built from the assignment

        Returns:
            AggregateReport

        Raises:
            ConsistencyError: If any cross-check fails
        """
        records = list(records or [])
        lane_costs = self._lane_costs(assignment, problem)

        total_cost = math.fsum(lane_costs.values())
        total_items = math.fsum(e.quantity for e in assignment.entries)

        if reported is not None:
            self._check_reported(reported, total_cost, total_items)
        if problem is not None:
            self._check_constraints(assignment, problem)

        result = self._overall_result(assignment, reported, problem, total_cost, total_items)
        report = AggregateReport(
            result=result,
            warehouses=self._warehouse_summaries(assignment, records, problem, lane_costs),
            stores=self._store_summaries(assignment, records, problem, lane_costs),
            graph=self._graph_summary(graph, assignment) if graph is not None else None,
        )
        logger.info(
            f"Aggregated {len(assignment)} lanes: cost {total_cost:,.2f}, "
            f"{len(report.warehouses)} warehouses, {len(report.stores)} stores"
        )
        return report

    # ------------------------------------------------------------------
    # Cross-checks
    # ------------------------------------------------------------------

    def _lane_costs(self, assignment: Assignment, problem: Optional[TransportationProblem]) -> Dict:
        costs = {}
        for entry in assignment.entries:
            unit_cost = entry.unit_cost
            if problem is not None:
                if entry.lane not in problem.costs:
                    raise ConsistencyError(
                        f"Assignment ships on unknown lane {entry.warehouse_id} → {entry.store_id}",
                        check='lane',
                        details={'lane': entry.lane},
                    )
                unit_cost = problem.cost(*entry.lane)
            costs[entry.lane] = entry.quantity * unit_cost
        return costs

    def _check_reported(self, reported: OptimizationResult, total_cost: float, total_items: float) -> None:
        if not reported.is_optimal():
            raise ConsistencyError(
                f"Cannot aggregate a {reported.status.value} result",
                check='status',
                expected=FeasibilityStatus.OPTIMAL.value,
                actual=reported.status.value,
            )
        for check, expected, actual in (
            ('total_cost', total_cost, reported.total_cost),
            ('total_items', total_items, reported.total_items),
        ):
            if not math.isclose(expected, actual, rel_tol=self.rel_tol, abs_tol=self.abs_tol):
                logger.error(f"Cross-check {check} failed: recomputed {expected!r}, reported {actual!r}")
                raise ConsistencyError(
                    f"Reported {check} {actual!r} differs from recomputed {expected!r}",
                    check=check,
                    expected=expected,
                    actual=actual,
                )

    def _check_constraints(self, assignment: Assignment, problem: TransportationProblem) -> None:
        shipped = assignment.shipped_from()
        for warehouse_id, quantity in shipped.items():
            capacity = problem.capacities.get(warehouse_id)
            if capacity is not None and quantity > capacity + self.abs_tol:
                logger.error(f"Warehouse {warehouse_id} ships {quantity} over capacity {capacity}")
                raise ConsistencyError(
                    f"Warehouse {warehouse_id} ships {quantity:,.2f}, capacity is {capacity:,.2f}",
                    check='capacity',
                    expected=capacity,
                    actual=quantity,
                )

        received = assignment.received_by()
        for store_id in problem.store_ids:
            quantity = received.get(store_id, 0.0)
            requirement = problem.demands[store_id]
            if quantity < requirement - self.abs_tol:
                logger.error(f"Store {store_id} receives {quantity} of required {requirement}")
                raise ConsistencyError(
                    f"Store {store_id} receives {quantity:,.2f}, requirement is {requirement:,.2f}",
                    check='requirement',
                    expected=requirement,
                    actual=quantity,
                )

    def _overall_result(
        self,
        assignment: Assignment,
        reported: Optional[OptimizationResult],
        problem: Optional[TransportationProblem],
        total_cost: float,
        total_items: float,
    ) -> OptimizationResult:
        if reported is not None:
            return reported.model_copy(update={'total_cost': total_cost, 'total_items': total_items})

        distances = [e.distance for e in assignment.entries if e.distance is not None]
        if problem is not None and problem.distances is not None:
            distances = [problem.distance(*e.lane) for e in assignment.entries]
        return OptimizationResult(
            status=FeasibilityStatus.OPTIMAL,
            total_cost=total_cost,
            total_distance=math.fsum(distances) if distances else None,
            total_items=total_items,
            assignment=assignment,
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def _warehouse_summaries(self, assignment, records, problem, lane_costs):
        ids = _sorted_ids(
            [e.warehouse_id for e in assignment.entries],
            [r.warehouse_id for r in records],
            problem.warehouse_ids if problem is not None else (),
        )
        summaries = {w: WarehouseSummary(warehouse_id=w) for w in ids}
        items: Dict[str, Set[str]] = defaultdict(set)

        for record in records:
            summary = summaries[record.warehouse_id]
            summary.total_demand += record.demand
            summary.record_count += 1
            items[record.warehouse_id].add(record.item_id)
        for entry in assignment.entries:
            summary = summaries[entry.warehouse_id]
            summary.units_shipped += entry.quantity
            summary.cost += lane_costs[entry.lane]
        for warehouse_id, summary in summaries.items():
            summary.item_count = len(items[warehouse_id])
            if problem is not None:
                summary.capacity = problem.capacities.get(warehouse_id)

        return list(summaries.values())

    def _store_summaries(self, assignment, records, problem, lane_costs):
        ids = _sorted_ids(
            [e.store_id for e in assignment.entries],
            [r.store_id for r in records],
            problem.store_ids if problem is not None else (),
        )
        summaries = {s: StoreSummary(store_id=s) for s in ids}
        items: Dict[str, Set[str]] = defaultdict(set)

        for record in records:
            summary = summaries[record.store_id]
            summary.total_demand += record.demand
            summary.record_count += 1
            items[record.store_id].add(record.item_id)
        for entry in assignment.entries:
            summary = summaries[entry.store_id]
            summary.units_received += entry.quantity
            summary.cost += lane_costs[entry.lane]
        for store_id, summary in summaries.items():
            summary.item_count = len(items[store_id])
            if problem is not None:
                summary.requirement = problem.demands.get(store_id)

        return list(summaries.values())

    def _graph_summary(self, graph: NetworkGraph, assignment: Assignment) -> GraphSummary:
        edges = {(e.source_id, e.target_id): e.value for e in graph.edges}
        lanes = {e.lane: e.quantity for e in assignment.nonzero_entries()}
        if edges.keys() != lanes.keys() or any(
            not math.isclose(edges[lane], lanes[lane], rel_tol=self.rel_tol, abs_tol=self.abs_tol)
            for lane in lanes
        ):
            raise ConsistencyError(
                "Network graph edges do not match the assignment's non-zero lanes",
                check='graph_edges',
                expected=len(lanes),
                actual=len(edges),
            )

        nx_graph = graph.to_networkx()
        return GraphSummary(
            warehouse_count=len(graph.warehouses()),
            store_count=len(graph.stores()),
            edge_count=len(graph.edges),
            total_flow=graph.total_flow(),
            component_count=nx.number_weakly_connected_components(nx_graph) if graph.nodes else 0,
        )


def _sorted_ids(*sources) -> list:
    ids = set()
    for source in sources:
        ids.update(source)
    return sorted(ids)
