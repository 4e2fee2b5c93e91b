"""
Force-directed layout for the bipartite warehouse/store network.

The simulation works on an arena of node positions (an n × 2 numpy array
indexed like ``NetworkGraph.nodes``). Every step reads the previous immutable
snapshot and produces a new one by applying, in order:

1. Repulsion: every pair closer than the cutoff is pushed apart with force
   strength / distance (full O(n²) pairwise computation, vectorized).
2. Springs: every edge pulls or pushes its endpoints by
   (distance - rest_length) × stiffness.
3. Row attraction: warehouses drift toward the top row and stores toward the
   bottom row by a fixed fraction of the remaining gap.
4. Bounds clamp to the canvas minus its margin.

The run stops after max_iterations steps, or earlier once no node moved more
than the convergence threshold in a step.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from stockflow.constants import (
    CANVAS_HEIGHT,
    CANVAS_MARGIN,
    CANVAS_WIDTH,
    CONVERGENCE_THRESHOLD,
    DEFAULT_LAYOUT_ITERATIONS,
    MAX_IN_FLIGHT_PROGRESS,
    REPULSION_CUTOFF,
    REPULSION_STRENGTH,
    ROW_ATTRACTION,
    SPRING_REST_LENGTH,
    SPRING_STIFFNESS,
    STORE_ROW_Y,
    WAREHOUSE_ROW_Y,
)
from stockflow.exceptions import CancellationRequested, InvalidInput
from stockflow.models.network_graph import NetworkGraph, NodeKind

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

#: Separation used in place of a zero distance between coincident nodes
COINCIDENT_DISTANCE = 1.0

#: Golden angle (radians), spreads deterministic separation directions
_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


class LayoutTermination(str, Enum):
    """Why a layout run stopped."""
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class LayoutConfig:
    """
    Configuration for the force-directed layout.

    Attributes:
        width: Canvas width
        height: Canvas height
        margin: Nodes stay within [margin, width - margin] × [margin, height - margin]
        warehouse_row_y: Target y of warehouse nodes
        store_row_y: Target y of store nodes
        repulsion_strength: Repulsive force numerator (force = strength / distance)
        repulsion_cutoff: Pairs at or beyond this distance do not repel
        spring_rest_length: Edge length at which the spring exerts no force
        spring_stiffness: Spring force per unit of stretch
        row_attraction: Fraction of the gap to the target row closed per step
        convergence_threshold: Stop once the largest step displacement is below this
        max_iterations: Upper bound on simulation steps
        seed: Seed for the direction used to separate coincident nodes
            (None = deterministic directions)
        reset_positions: Start from the evenly spread rows (True) or from the
            graph's current positions (False)
        keep_snapshots: Keep every step's snapshot on the result
    """
    width: float = CANVAS_WIDTH
    height: float = CANVAS_HEIGHT
    margin: float = CANVAS_MARGIN
    warehouse_row_y: float = WAREHOUSE_ROW_Y
    store_row_y: float = STORE_ROW_Y
    repulsion_strength: float = REPULSION_STRENGTH
    repulsion_cutoff: float = REPULSION_CUTOFF
    spring_rest_length: float = SPRING_REST_LENGTH
    spring_stiffness: float = SPRING_STIFFNESS
    row_attraction: float = ROW_ATTRACTION
    convergence_threshold: float = CONVERGENCE_THRESHOLD
    max_iterations: int = DEFAULT_LAYOUT_ITERATIONS
    seed: Optional[int] = None
    reset_positions: bool = True
    keep_snapshots: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.width <= 2 * self.margin or self.height <= 2 * self.margin:
            raise InvalidInput(
                f"Canvas {self.width}×{self.height} leaves no room inside margin {self.margin}",
                field='margin',
            )
        if self.margin < 0:
            raise InvalidInput(f"margin must be >= 0, got {self.margin}", field='margin')
        for name in ('repulsion_strength', 'repulsion_cutoff', 'spring_rest_length',
                     'spring_stiffness', 'convergence_threshold'):
            if getattr(self, name) < 0:
                raise InvalidInput(f"{name} must be >= 0, got {getattr(self, name)}", field=name)
        if not 0 <= self.row_attraction <= 1:
            raise InvalidInput(f"row_attraction must be in [0, 1], got {self.row_attraction}",
                               field='row_attraction')
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int) \
                or self.max_iterations < 0:
            raise InvalidInput(f"max_iterations must be an integer >= 0, got {self.max_iterations}",
                               field='max_iterations')

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(x_min, x_max, y_min, y_max) of the allowed node area."""
        return (self.margin, self.width - self.margin, self.margin, self.height - self.margin)


@dataclass(frozen=True)
class LayoutSnapshot:
    """Read-only node positions after a simulation step (step 0 = initial)."""
    step: int
    positions: np.ndarray
    max_displacement: float

    def position(self, index: int) -> Tuple[float, float]:
        x, y = self.positions[index]
        return (float(x), float(y))


@dataclass
class LayoutResult:
    """
    Outcome of a layout run.

    Attributes:
        graph: Graph with final positions applied
        steps: Simulation steps performed
        termination: converged or max_iterations
        displacement_history: Largest node displacement of each step
        snapshots: Every step's snapshot (only if keep_snapshots was set)
    """
    graph: NetworkGraph
    steps: int
    termination: LayoutTermination
    displacement_history: Tuple[float, ...] = ()
    snapshots: Tuple[LayoutSnapshot, ...] = field(default_factory=tuple)

    @property
    def converged(self) -> bool:
        return self.termination == LayoutTermination.CONVERGED


class NetworkLayoutEngine:
    """
    Computes 2D node positions for a NetworkGraph.

    The engine is stateless between runs: the same graph and configuration
    always produce the same positions.

    Example:
        engine = NetworkLayoutEngine(LayoutConfig(max_iterations=100))
        result = engine.layout(graph)
        result.graph.positions()
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def layout(
        self,
        graph: NetworkGraph,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event=None,
    ) -> LayoutResult:
        """
        Run the simulation.

        Args:
            graph: Graph to lay out (not modified)
            progress_callback: Called with progress in [0, 100] after every step
            cancel_event: Object with ``is_set()``; checked before every step

        Returns:
            LayoutResult holding a new, positioned graph

        Raises:
            CancellationRequested: cancel_event was set; no positions are returned
        """
        config = self.config
        kinds = np.array([node.kind == NodeKind.WAREHOUSE for node in graph.nodes], dtype=bool)
        edges = self._edge_indices(graph)
        rng = np.random.default_rng(config.seed) if config.seed is not None else None

        if config.reset_positions:
            positions = self.initial_positions(graph)
        else:
            positions = np.array([node.position for node in graph.nodes], dtype=float).reshape(-1, 2)
        snapshot = _freeze(0, self._clamp(positions), 0.0)
        snapshots: List[LayoutSnapshot] = [snapshot]
        history: List[float] = []
        termination = LayoutTermination.MAX_ITERATIONS

        if progress_callback is not None:
            progress_callback(0.0)

        for step in range(1, config.max_iterations + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise CancellationRequested(f"Layout cancelled before step {step}")

            new_positions = self.step(snapshot.positions, kinds, edges, rng)
            displacement = _max_displacement(snapshot.positions, new_positions)
            snapshot = _freeze(step, new_positions, displacement)
            history.append(displacement)
            if config.keep_snapshots:
                snapshots.append(snapshot)

            logger.debug(f"Layout step {step}: max displacement {displacement:.4f}")
            if progress_callback is not None:
                progress_callback(min(MAX_IN_FLIGHT_PROGRESS, 100.0 * step / config.max_iterations))

            if displacement < config.convergence_threshold:
                termination = LayoutTermination.CONVERGED
                break

        positioned = graph.with_positions({
            node.key: snapshot.position(i) for i, node in enumerate(graph.nodes)
        })
        logger.info(
            f"Layout finished after {len(history)} steps ({termination.value}), "
            f"{len(graph.nodes)} nodes, {len(graph.edges)} edges"
        )
        if progress_callback is not None:
            progress_callback(100.0)

        return LayoutResult(
            graph=positioned,
            steps=len(history),
            termination=termination,
            displacement_history=tuple(history),
            snapshots=tuple(snapshots) if config.keep_snapshots else (),
        )

    def initial_positions(self, graph: NetworkGraph) -> np.ndarray:
        """
        Seed positions: each kind spread evenly along x on its target row.

        The k-th of n nodes of a kind (arena order) sits at x = (k + 1) × width / (n + 1).
        """
        config = self.config
        positions = np.zeros((len(graph.nodes), 2))
        for kind, row_y in ((NodeKind.WAREHOUSE, config.warehouse_row_y), (NodeKind.STORE, config.store_row_y)):
            indices = [i for i, node in enumerate(graph.nodes) if node.kind == kind]
            for k, i in enumerate(indices):
                positions[i] = ((k + 1) * config.width / (len(indices) + 1), row_y)
        return positions

    def step(
        self,
        positions: np.ndarray,
        is_warehouse: np.ndarray,
        edges: Tuple[np.ndarray, np.ndarray],
        rng: Optional[np.random.Generator] = None,
    ) -> np.ndarray:
        """One simulation step; returns new positions (the input is not modified)."""
        config = self.config
        result = positions.copy()
        if len(result) == 0:
            return result

        result += self._repulsion(result, rng)
        result += self._springs(result, edges)

        target_y = np.where(is_warehouse, config.warehouse_row_y, config.store_row_y)
        result[:, 1] += (target_y - result[:, 1]) * config.row_attraction

        return self._clamp(result)

    def _clamp(self, positions: np.ndarray) -> np.ndarray:
        x_min, x_max, y_min, y_max = self.config.bounds
        return np.column_stack([
            np.clip(positions[:, 0], x_min, x_max),
            np.clip(positions[:, 1], y_min, y_max),
        ]).reshape(-1, 2)

    def _repulsion(self, positions: np.ndarray, rng: Optional[np.random.Generator]) -> np.ndarray:
        config = self.config
        n = len(positions)
        if n < 2 or config.repulsion_strength == 0:
            return np.zeros_like(positions)

        # delta[i, j] = p_i - p_j
        delta = positions[:, None, :] - positions[None, :, :]
        dist = np.hypot(delta[..., 0], delta[..., 1])
        np.fill_diagonal(dist, np.inf)

        rows, cols = np.nonzero(np.triu(dist == 0))
        for i, j in zip(rows, cols):
            direction = self._separation_direction(i, j, n, rng)
            delta[i, j] = direction * COINCIDENT_DISTANCE
            delta[j, i] = -direction * COINCIDENT_DISTANCE
            dist[i, j] = dist[j, i] = COINCIDENT_DISTANCE

        within = dist < config.repulsion_cutoff
        magnitude = np.where(within, config.repulsion_strength / dist, 0.0)
        unit = delta / dist[..., None]
        return (unit * magnitude[..., None]).sum(axis=1)

    def _springs(self, positions: np.ndarray, edges: Tuple[np.ndarray, np.ndarray]) -> np.ndarray:
        config = self.config
        shift = np.zeros_like(positions)
        sources, targets = edges
        if len(sources) == 0:
            return shift

        delta = positions[targets] - positions[sources]
        dist = np.hypot(delta[:, 0], delta[:, 1])
        active = dist > 0
        force = np.zeros_like(delta)
        force[active] = (
            delta[active] / dist[active, None]
            * ((dist[active] - config.spring_rest_length) * config.spring_stiffness)[:, None]
        )
        np.add.at(shift, sources, force)
        np.add.at(shift, targets, -force)
        return shift

    def _separation_direction(
        self, i: int, j: int, n: int, rng: Optional[np.random.Generator]
    ) -> np.ndarray:
        angle = rng.uniform(0.0, 2.0 * math.pi) if rng is not None else (i * n + j) * _GOLDEN_ANGLE
        return np.array([math.cos(angle), math.sin(angle)])

    def _edge_indices(self, graph: NetworkGraph) -> Tuple[np.ndarray, np.ndarray]:
        index = graph.node_index()
        sources = np.array([index[edge.source_key] for edge in graph.edges], dtype=int)
        targets = np.array([index[edge.target_key] for edge in graph.edges], dtype=int)
        return sources, targets


def _freeze(step: int, positions: np.ndarray, displacement: float) -> LayoutSnapshot:
    frozen = positions.copy()
    frozen.setflags(write=False)
    return LayoutSnapshot(step=step, positions=frozen, max_displacement=displacement)


def _max_displacement(before: np.ndarray, after: np.ndarray) -> float:
    if len(before) == 0:
        return 0.0
    moved = after - before
    return float(np.hypot(moved[:, 0], moved[:, 1]).max())
