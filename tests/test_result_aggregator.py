"""Tests for result aggregation and cross-checking."""

import pytest

from stockflow.costs import ResultAggregator
from stockflow.exceptions import ConsistencyError
from stockflow.models import (
    Assignment,
    AssignmentEntry,
    FeasibilityStatus,
    GraphEdge,
    GraphNode,
    NetworkGraph,
    NodeKind,
    OptimizationResult,
)
from stockflow.network import build_graph
from stockflow.optimization import TransportationProblem


@pytest.fixture
def aggregator():
    return ResultAggregator()


@pytest.fixture
def solved(optimizer, two_by_two_problem):
    return optimizer.solve(two_by_two_problem)


@pytest.fixture
def sample_run(optimizer, eoq_records, sample_capacities, sample_costs):
    problem = TransportationProblem.from_records(eoq_records, sample_capacities, sample_costs)
    return problem, optimizer.solve(problem)


class TestAggregate:
    """Tests for summaries."""

    def test_total_cost_recomputed(self, aggregator, solved, two_by_two_problem):
        report = aggregator.aggregate(solved.assignment, reported=solved, problem=two_by_two_problem)

        assert report.total_cost == pytest.approx(620.0)
        assert report.result.status == FeasibilityStatus.OPTIMAL

    def test_warehouse_summaries(self, aggregator, solved, two_by_two_problem):
        report = aggregator.aggregate(solved.assignment, problem=two_by_two_problem)

        assert [w.warehouse_id for w in report.warehouses] == ["W1", "W2"]
        w1 = report.warehouses[0]
        assert w1.units_shipped == 80
        assert w1.cost == 320
        assert w1.capacity == 100
        assert w1.utilization == pytest.approx(0.8)
        assert str(w1) == "W1: 80 units, $320.00 (80% of capacity)"

    def test_store_summaries(self, aggregator, solved, two_by_two_problem):
        report = aggregator.aggregate(solved.assignment, problem=two_by_two_problem)

        s2 = report.stores[1]
        assert s2.store_id == "S2"
        assert s2.units_received == 100
        assert s2.requirement == 100
        assert s2.cost == 300

    def test_record_totals(self, aggregator, sample_run, eoq_records):
        problem, result = sample_run
        report = aggregator.aggregate(result.assignment, records=eoq_records, reported=result, problem=problem)

        wh001 = report.warehouses[0]
        assert wh001.warehouse_id == "WH001"
        assert wh001.record_count == 6
        assert wh001.item_count == 3
        assert wh001.total_demand == sum(r.demand for r in eoq_records if r.warehouse_id == "WH001")

        assert sum(w.cost for w in report.warehouses) == pytest.approx(result.total_cost)
        assert sum(s.cost for s in report.stores) == pytest.approx(result.total_cost)
        assert sum(s.units_received for s in report.stores) == pytest.approx(result.total_items)

    def test_without_reported_result(self, aggregator, solved):
        report = aggregator.aggregate(solved.assignment)

        assert report.result.is_optimal()
        assert report.result.total_items == 180
        assert report.graph is None

    def test_empty_assignment(self, aggregator):
        report = aggregator.aggregate(Assignment())

        assert report.total_cost == 0.0
        assert report.warehouses == []
        assert report.stores == []

    def test_frames(self, aggregator, solved, two_by_two_problem):
        report = aggregator.aggregate(solved.assignment, problem=two_by_two_problem)

        assert list(report.warehouses_frame()["warehouse_id"]) == ["W1", "W2"]
        assert report.stores_frame()["cost"].sum() == pytest.approx(620.0)

    def test_graph_summary(self, aggregator, sample_run):
        problem, result = sample_run
        graph = build_graph(result.assignment)
        report = aggregator.aggregate(result.assignment, reported=result, problem=problem, graph=graph)

        assert report.graph.edge_count == len(result.assignment.nonzero_entries())
        assert report.graph.total_flow == pytest.approx(result.total_items)
        assert report.graph.component_count >= 1
        assert "Network:" in str(report)


class TestCrossChecks:
    """Tests that inconsistent inputs are rejected."""

    def test_reported_cost_mismatch(self, aggregator, solved):
        tampered = solved.model_copy(update={"total_cost": 600.0})

        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(solved.assignment, reported=tampered)

        assert exc_info.value.check == "total_cost"
        assert exc_info.value.expected == pytest.approx(620.0)
        assert exc_info.value.actual == 600.0

    def test_reported_items_mismatch(self, aggregator, solved):
        tampered = solved.model_copy(update={"total_items": 150.0})
        with pytest.raises(ConsistencyError, match="total_items"):
            aggregator.aggregate(solved.assignment, reported=tampered)

    def test_non_optimal_reported(self, aggregator):
        reported = OptimizationResult(status=FeasibilityStatus.INFEASIBLE, shortfall=20)
        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(Assignment(), reported=reported)
        assert exc_info.value.check == "status"

    def test_capacity_violation(self, aggregator, two_by_two_problem):
        assignment = Assignment(entries=(
            AssignmentEntry(warehouse_id="W1", store_id="S1", quantity=80, unit_cost=4),
            AssignmentEntry(warehouse_id="W1", store_id="S2", quantity=100, unit_cost=6),
        ))
        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(assignment, problem=two_by_two_problem)
        assert exc_info.value.check == "capacity"

    def test_requirement_violation(self, aggregator, two_by_two_problem):
        assignment = Assignment(entries=(
            AssignmentEntry(warehouse_id="W1", store_id="S1", quantity=80, unit_cost=4),
        ))
        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(assignment, problem=two_by_two_problem)
        assert exc_info.value.check == "requirement"

    def test_unknown_lane(self, aggregator, two_by_two_problem):
        assignment = Assignment(entries=(
            AssignmentEntry(warehouse_id="W9", store_id="S1", quantity=1, unit_cost=1),
        ))
        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(assignment, problem=two_by_two_problem)
        assert exc_info.value.check == "lane"

    def test_problem_costs_override_entry_costs(self, aggregator, two_by_two_problem, solved):
        """Test that a wrong unit cost on an entry is caught against the problem."""
        entries = tuple(e.model_copy(update={"unit_cost": 1.0}) for e in solved.assignment.entries)
        assignment = Assignment(entries=entries)

        with pytest.raises(ConsistencyError):
            aggregator.aggregate(assignment, reported=solved.model_copy(update={"assignment": assignment}))

        report = aggregator.aggregate(assignment, problem=two_by_two_problem)
        assert report.total_cost == pytest.approx(620.0)

    def test_graph_mismatch(self, aggregator, solved):
        graph = NetworkGraph(
            nodes=(
                GraphNode(id="W1", kind=NodeKind.WAREHOUSE),
                GraphNode(id="S1", kind=NodeKind.STORE),
            ),
            edges=(GraphEdge(source_id="W1", target_id="S1", value=80),),
        )
        with pytest.raises(ConsistencyError) as exc_info:
            aggregator.aggregate(solved.assignment, graph=graph)
        assert exc_info.value.check == "graph_edges"
