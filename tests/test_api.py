"""Tests for the total operations in stockflow.api.

Every operation returns an OperationOutcome; domain failures never raise.
"""

import pandas as pd
import pytest

from stockflow import api
from stockflow.exceptions import (
    ConsistencyError,
    DivisionByZero,
    InfeasibleProblem,
    InvalidInput,
    UnboundedProblem,
)
from stockflow.models import InventoryRecord, NetworkGraph
from stockflow.network import LayoutConfig, build_graph_from_records
from stockflow.outcome import OperationOutcome


class TestValidate:
    def test_rows(self, raw_rows):
        outcome = api.validate(raw_rows)
        assert outcome.ok
        assert len(outcome.value.records) == 15

    def test_dataframe(self, raw_rows):
        outcome = api.validate(pd.DataFrame(raw_rows))
        assert outcome.ok
        assert outcome.value.is_clean


class TestComputeEOQ:
    def test_scenario(self, record):
        outcome = api.compute_eoq([record])
        assert outcome.value[0].eoq == 110

    def test_zero_holding_cost(self, record):
        """Test that a record that bypassed validation fails without raising."""
        bad = InventoryRecord.model_construct(**dict(record.model_dump(), holding_cost=0.0))
        outcome = api.compute_eoq([bad])

        assert not outcome.ok
        assert isinstance(outcome.error, DivisionByZero)
        assert outcome.error.record_index == 0


class TestAnalyzeSensitivity:
    def test_single_record(self, record):
        outcome = api.analyze_sensitivity(record)
        assert outcome.value.value(100, 100) == 110

    def test_sequence(self, eoq_records):
        outcome = api.analyze_sensitivity(eoq_records[:2])
        assert [s.baseline_eoq for s in outcome.value] == [110, 97]


class TestOptimizeDistribution:
    def test_optimal(self, eoq_records, sample_capacities, sample_costs):
        outcome = api.optimize_distribution(eoq_records, sample_capacities, None, sample_costs)
        assert outcome.ok
        assert outcome.value.is_optimal()

    def test_infeasible(self, eoq_records, sample_costs):
        capacities = {"WH001": 1.0, "WH002": 1.0, "WH003": 1.0, "WH004": 1.0}
        outcome = api.optimize_distribution(eoq_records, capacities, None, sample_costs)

        assert isinstance(outcome.error, InfeasibleProblem)
        assert outcome.error.shortfall == pytest.approx(sum(r.eoq for r in eoq_records) - 4)

    def test_unbounded(self, eoq_records, sample_costs):
        costs = {w: dict(row) for w, row in sample_costs.items()}
        costs["WH004"]["ST008"] = -1.0
        capacities = {"WH001": 900.0, "WH002": 700.0, "WH003": 600.0, "WH004": None}

        outcome = api.optimize_distribution(eoq_records, capacities, None, costs)
        assert isinstance(outcome.error, UnboundedProblem)

    def test_invalid_input(self, eoq_records, sample_capacities):
        outcome = api.optimize_distribution(eoq_records, sample_capacities, None, {})
        assert isinstance(outcome.error, InvalidInput)


class TestLayout:
    def test_returns_positioned_graph(self, eoq_records):
        graph = build_graph_from_records(eoq_records)
        outcome = api.layout(graph, LayoutConfig(max_iterations=5))

        assert isinstance(outcome.value, NetworkGraph)
        assert outcome.value.node_index() == graph.node_index()
        assert outcome.value.positions() != graph.positions()


class TestAggregate:
    def test_ok(self, optimizer, two_by_two_problem):
        result = optimizer.solve(two_by_two_problem)
        outcome = api.aggregate(result.assignment, reported=result, problem=two_by_two_problem)
        assert outcome.value.total_cost == pytest.approx(620.0)

    def test_mismatch(self, optimizer, two_by_two_problem):
        result = optimizer.solve(two_by_two_problem)
        outcome = api.aggregate(result.assignment, reported=result.model_copy(update={"total_cost": 1.0}))
        assert isinstance(outcome.error, ConsistencyError)


class TestTotalWrapper:
    """Tests for the error-capturing decorator."""

    def test_pydantic_error_becomes_invalid_input(self):
        @api._total
        def build():
            return InventoryRecord(item_id="X", store_id="S", warehouse_id="W",
                                   demand="lots", order_cost=1, holding_cost=1, inventory_level=0)

        outcome = build()
        assert isinstance(outcome.error, InvalidInput)

    def test_programming_errors_propagate(self):
        @api._total
        def broken():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            broken()

    def test_outcome_unwrap(self):
        assert OperationOutcome(value=3).unwrap() == 3
        assert str(OperationOutcome(value=3)) == "OperationOutcome: OK (int)"
        with pytest.raises(InvalidInput):
            OperationOutcome(error=InvalidInput("bad")).unwrap()
