"""Tests for network graph construction."""

import pytest

from stockflow.models import Assignment, AssignmentEntry, NodeKind
from stockflow.network import build_graph, build_graph_from_records


@pytest.fixture
def assignment():
    return Assignment(entries=(
        AssignmentEntry(warehouse_id="W2", store_id="S2", quantity=100, unit_cost=3),
        AssignmentEntry(warehouse_id="W1", store_id="S1", quantity=80, unit_cost=4),
        AssignmentEntry(warehouse_id="W1", store_id="S2", quantity=0, unit_cost=6),
    ))


class TestBuildGraph:
    """Tests for graphs built from assignments."""

    def test_edges_only_for_nonzero_flow(self, assignment):
        graph = build_graph(assignment)

        assert [(e.source_id, e.target_id, e.value) for e in graph.edges] == [
            ("W2", "S2", 100.0),
            ("W1", "S1", 80.0),
        ]

    def test_warehouses_before_stores(self, assignment):
        graph = build_graph(assignment)

        assert [n.key for n in graph.nodes] == [
            "warehouse:W2", "warehouse:W1", "store:S2", "store:S1",
        ]

    def test_positions_start_at_origin(self, assignment):
        graph = build_graph(assignment)
        assert set(graph.positions().values()) == {(0.0, 0.0)}

    def test_record_nodes_included_without_flow(self, records):
        """Test that warehouses and stores seen only in records still become nodes."""
        assignment = Assignment(entries=(
            AssignmentEntry(warehouse_id="WH001", store_id="ST001", quantity=5, unit_cost=1),
        ))
        graph = build_graph(assignment, records)

        assert len(graph.warehouses()) == 4
        assert len(graph.stores()) == 8
        assert len(graph.edges) == 1
        assert graph.warehouses()[0].id == "WH001"

    def test_flow_conserved(self, optimizer, two_by_two_problem):
        result = optimizer.solve(two_by_two_problem)
        graph = build_graph(result.assignment)

        assert graph.total_flow() == pytest.approx(result.total_items)

    def test_empty_assignment(self):
        graph = build_graph(Assignment())
        assert graph.nodes == ()
        assert graph.edges == ()


class TestBuildGraphFromRecords:
    """Tests for graphs built directly from EOQ records."""

    def test_sample_records(self, eoq_records):
        graph = build_graph_from_records(eoq_records)

        assert len(graph.warehouses()) == 4
        assert len(graph.stores()) == 8
        assert len(graph.edges) == 15
        assert graph.total_flow() == sum(r.eoq for r in eoq_records)

    def test_duplicate_lanes_summed(self, eoq_records):
        doubled = build_graph_from_records(list(eoq_records) * 2)

        assert len(doubled.edges) == 15
        edge = doubled.edges[0]
        assert (edge.source_id, edge.target_id, edge.value) == ("WH001", "ST001", 220.0)

    def test_networkx_export(self, eoq_records):
        nx_graph = build_graph_from_records(eoq_records).to_networkx()

        assert nx_graph.number_of_nodes() == 12
        assert nx_graph.out_degree("warehouse:WH001") == 6
        assert nx_graph.nodes["warehouse:WH004"]["kind"] == NodeKind.WAREHOUSE.value
