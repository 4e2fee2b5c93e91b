"""Tests for the force-directed network layout."""

import threading

import numpy as np
import pytest

from stockflow.exceptions import CancellationRequested, InvalidInput
from stockflow.models import GraphEdge, GraphNode, NetworkGraph, NodeKind
from stockflow.network import (
    LayoutConfig,
    LayoutTermination,
    NetworkLayoutEngine,
    build_graph_from_records,
)


def _warehouse(node_id, x=0.0, y=0.0):
    return GraphNode(id=node_id, kind=NodeKind.WAREHOUSE, x=x, y=y)


def _store(node_id, x=0.0, y=0.0):
    return GraphNode(id=node_id, kind=NodeKind.STORE, x=x, y=y)


@pytest.fixture
def sample_graph(eoq_records):
    return build_graph_from_records(eoq_records)


class TestLayoutConfig:
    """Tests for layout configuration validation."""

    def test_defaults(self):
        config = LayoutConfig()
        assert config.bounds == (50.0, 750.0, 50.0, 450.0)
        assert config.max_iterations == 50

    @pytest.mark.parametrize("kwargs", [
        {"margin": 400.0},
        {"margin": -1.0},
        {"spring_stiffness": -0.1},
        {"row_attraction": 1.5},
        {"max_iterations": -1},
        {"max_iterations": 2.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidInput):
            LayoutConfig(**kwargs)


class TestLayoutStep:
    """Tests for single simulation steps with hand-computed forces."""

    def test_repulsion_pushes_apart(self):
        graph = NetworkGraph(nodes=(_warehouse("A", 300, 100), _warehouse("B", 400, 100)))
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=1, reset_positions=False))

        result = engine.layout(graph)

        assert result.graph.node(NodeKind.WAREHOUSE, "A").position == pytest.approx((299.0, 100.0))
        assert result.graph.node(NodeKind.WAREHOUSE, "B").position == pytest.approx((401.0, 100.0))
        assert result.termination == LayoutTermination.MAX_ITERATIONS

    def test_spring_and_row_attraction(self):
        """Test a stretched edge pulling both ends together, then rows pulling them back."""
        graph = NetworkGraph(
            nodes=(_warehouse("W", 400, 100), _store("S", 400, 400)),
            edges=(GraphEdge(source_id="W", target_id="S", value=10),),
        )
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=1, reset_positions=False))

        result = engine.layout(graph)

        assert result.graph.node(NodeKind.WAREHOUSE, "W").position == pytest.approx((400.0, 101.35))
        assert result.graph.node(NodeKind.STORE, "S").position == pytest.approx((400.0, 398.65))

    def test_coincident_nodes_separated(self):
        graph = NetworkGraph(nodes=(_warehouse("A", 400, 100), _warehouse("B", 400, 100)))
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=1, reset_positions=False))

        positions = engine.layout(graph).graph.positions()
        a, b = positions["warehouse:A"], positions["warehouse:B"]

        assert a != b
        assert a[0] + b[0] == pytest.approx(800.0)
        assert np.isfinite([a, b]).all()

    def test_seeded_separation_reproducible(self):
        graph = NetworkGraph(nodes=(_store("A", 300, 300), _store("B", 300, 300)))
        config = LayoutConfig(max_iterations=5, reset_positions=False, seed=7)

        first = NetworkLayoutEngine(config).layout(graph).graph.positions()
        second = NetworkLayoutEngine(config).layout(graph).graph.positions()

        assert first == second

    def test_step_does_not_modify_input(self):
        engine = NetworkLayoutEngine()
        positions = np.array([[300.0, 100.0], [400.0, 100.0]])
        before = positions.copy()

        engine.step(positions, np.array([True, True]), (np.array([], dtype=int), np.array([], dtype=int)))

        np.testing.assert_array_equal(positions, before)


class TestLayoutRun:
    """Tests for full layout runs."""

    def test_initial_positions(self, sample_graph):
        engine = NetworkLayoutEngine()
        positions = engine.initial_positions(sample_graph)

        # 4 warehouses on the top row, 8 stores on the bottom row
        assert positions[0] == pytest.approx((160.0, 100.0))
        assert positions[3] == pytest.approx((640.0, 100.0))
        assert positions[4][1] == 400.0

    def test_single_node_converges_immediately(self):
        graph = NetworkGraph(nodes=(_warehouse("W1"),))
        result = NetworkLayoutEngine().layout(graph)

        assert result.converged
        assert result.steps == 1
        assert result.graph.nodes[0].position == (400.0, 100.0)

    def test_max_iterations(self, sample_graph):
        result = NetworkLayoutEngine(LayoutConfig(max_iterations=3)).layout(sample_graph)

        assert result.steps == 3
        assert result.termination == LayoutTermination.MAX_ITERATIONS
        assert len(result.displacement_history) == 3

    def test_zero_iterations_returns_initial_layout(self, sample_graph):
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=0))
        result = engine.layout(sample_graph)

        assert result.steps == 0
        assert result.graph.node(NodeKind.WAREHOUSE, "WH001").position == pytest.approx((160.0, 100.0))

    def test_positions_within_bounds(self, sample_graph):
        config = LayoutConfig(max_iterations=200)
        result = NetworkLayoutEngine(config).layout(sample_graph)
        x_min, x_max, y_min, y_max = config.bounds

        for x, y in result.graph.positions().values():
            assert x_min <= x <= x_max
            assert y_min <= y <= y_max

    def test_rows_preserved(self, sample_graph):
        result = NetworkLayoutEngine(LayoutConfig(max_iterations=200)).layout(sample_graph)

        warehouse_y = max(n.y for n in result.graph.warehouses())
        store_y = min(n.y for n in result.graph.stores())
        assert warehouse_y < store_y

    def test_deterministic(self, sample_graph):
        engine = NetworkLayoutEngine()
        assert engine.layout(sample_graph).graph == engine.layout(sample_graph).graph

    def test_input_graph_unchanged(self, sample_graph):
        NetworkLayoutEngine().layout(sample_graph)
        assert set(sample_graph.positions().values()) == {(0.0, 0.0)}

    def test_out_of_bounds_start_clamped(self):
        graph = NetworkGraph(nodes=(_store("S1", -500, 9000),))
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=0, reset_positions=False))

        assert engine.layout(graph).graph.nodes[0].position == (50.0, 450.0)

    def test_empty_graph(self):
        result = NetworkLayoutEngine().layout(NetworkGraph())
        assert result.graph.nodes == ()
        assert result.converged

    def test_snapshots_are_read_only(self, sample_graph):
        config = LayoutConfig(max_iterations=4, keep_snapshots=True)
        result = NetworkLayoutEngine(config).layout(sample_graph)

        assert [s.step for s in result.snapshots] == [0, 1, 2, 3, 4]
        with pytest.raises(ValueError):
            result.snapshots[1].positions[0, 0] = 1.0

    def test_snapshots_not_kept_by_default(self, sample_graph):
        assert NetworkLayoutEngine(LayoutConfig(max_iterations=2)).layout(sample_graph).snapshots == ()


class TestProgressAndCancellation:
    """Tests for layout progress and cancellation."""

    def test_progress(self, sample_graph):
        reported = []
        NetworkLayoutEngine(LayoutConfig(max_iterations=10)).layout(
            sample_graph, progress_callback=reported.append
        )

        assert reported[0] == 0.0
        assert reported[-1] == 100.0
        assert reported == sorted(reported)

    def test_cancel(self, sample_graph):
        event = threading.Event()

        def on_progress(pct):
            if pct > 0:
                event.set()

        with pytest.raises(CancellationRequested):
            NetworkLayoutEngine(LayoutConfig(max_iterations=10)).layout(
                sample_graph, progress_callback=on_progress, cancel_event=event
            )
