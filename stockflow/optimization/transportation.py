"""Distribution optimizer: exact transportation problem solver.

Solves the minimum-cost transportation problem in two phases:

1. Vogel's Approximation Method (VAM) builds an initial basic feasible
   solution with m + n - 1 basic cells (zero-valued cells included).
2. The MODI (u-v) method prices every non-basic cell against dual potentials
   u[i] + v[j] = cost[i][j] over the basis and pivots the most negative
   reduced cost into the basis along its stepping-stone cycle, until no
   negative reduced cost remains.

Degeneracy rule:
    Pricing is Dantzig (most negative reduced cost, lowest flat index on
    ties). After a degenerate pivot (step length 0) pricing switches to
    Bland's rule (first cell with a negative reduced cost enters, lowest
    tied cell leaves) until the next non-degenerate pivot. Bland's rule
    cannot cycle, so the method terminates.

Rows are warehouses sorted by id and columns are stores sorted by id, so every
tie resolves to the lowest warehouse id, then the lowest store id. Surplus
supply is absorbed by a dummy sink column.
"""

import logging
import math
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from stockflow.constants import (
    COST_CHECK_ABS_TOL,
    COST_CHECK_REL_TOL,
    EPSILON,
    INITIAL_SOLUTION_PROGRESS,
    MAX_IN_FLIGHT_PROGRESS,
)
from stockflow.exceptions import (
    CancellationRequested,
    ConsistencyError,
    InfeasibleProblem,
    InvalidInput,
    UnboundedProblem,
)
from stockflow.models.assignment import Assignment, AssignmentEntry
from stockflow.models.inventory import InventoryRecord
from stockflow.models.optimization_result import FeasibilityStatus, OptimizationResult
from .problem import CostMatrix, TransportationProblem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
Cell = Tuple[int, int]


@dataclass
class OptimizerConfig:
    """
    Configuration for the distribution optimizer.

    Attributes:
        max_iterations: Upper bound on MODI pivots before the run is aborted
        tolerance: Relative tolerance for treating quantities and reduced costs as zero
    """
    max_iterations: int = 100_000
    tolerance: float = EPSILON

    def __post_init__(self):
        """Validate configuration."""
        if self.max_iterations <= 0:
            raise InvalidInput(f"max_iterations must be > 0, got {self.max_iterations}", field='max_iterations')
        if not 0 < self.tolerance < 1e-3:
            raise InvalidInput(f"tolerance must be in (0, 1e-3), got {self.tolerance}", field='tolerance')


@dataclass
class _Tableau:
    """Balanced transportation tableau (rows: warehouses, columns: stores [+ sink])."""
    warehouse_ids: List[str]
    store_ids: List[str]
    costs: np.ndarray
    supply: np.ndarray
    demand: np.ndarray
    has_sink: bool
    tol: float

    @property
    def shape(self) -> Tuple[int, int]:
        return self.costs.shape

    def objective(self, x: np.ndarray) -> float:
        return math.fsum((self.costs * x).ravel())


class DistributionOptimizer:
    """
    Minimum-cost warehouse → store distribution.

    Example:
        optimizer = DistributionOptimizer()
        problem = TransportationProblem.from_lists(
            capacities=[100, 100], demands=[80, 100], cost_matrix=[[4, 6], [8, 3]]
        )
        result = optimizer.solve(problem)
        result.total_cost  # 620.0
    """

    def __init__(self, config: Optional[OptimizerConfig] = None):
        self.config = config or OptimizerConfig()

    def optimize(
        self,
        records: Sequence[InventoryRecord],
        capacities: Optional[Mapping[str, Optional[float]]],
        cost_matrix: CostMatrix,
        demands: Optional[Mapping[str, float]] = None,
        distances: Optional[CostMatrix] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event=None,
    ) -> OptimizationResult:
        """
        Optimize distribution for EOQ-enriched records.

        Args:
            records: EOQRecords (demands default to Σ eoq per store)
            capacities: warehouse_id → capacity (None entries are unconstrained)
            cost_matrix: cost[warehouse_id][store_id] per unit
            demands: store_id → required units (optional)
            distances: distance[warehouse_id][store_id] (optional)
            progress_callback: Called with monotonically increasing progress in [0, 100]
            cancel_event: Object with ``is_set()``; checked before every iteration

        Returns:
            OptimizationResult with status OPTIMAL

        Raises:
            InvalidInput: Malformed inputs
            InfeasibleProblem: Total demand exceeds total supply
            UnboundedProblem: Negative cost on a lane from an unconstrained warehouse
            CancellationRequested: cancel_event was set
        """
        problem = TransportationProblem.from_records(
            records, capacities, cost_matrix, demands=demands, distances=distances
        )
        return self.solve(problem, progress_callback=progress_callback, cancel_event=cancel_event)

    def solve(
        self,
        problem: TransportationProblem,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event=None,
    ) -> OptimizationResult:
        """
        Solve a transportation problem to optimality.

        See optimize() for the meaning of the arguments and raised errors.
        """
        report = _monotonic(progress_callback)
        report(0.0)
        self._check_cancel(cancel_event)

        logger.info(
            f"Solving transportation problem: {len(problem.warehouse_ids)} warehouses × "
            f"{len(problem.store_ids)} stores, demand {problem.total_demand:,.2f}"
        )

        self._check_bounded(problem)
        self._check_feasible(problem)

        if not problem.warehouse_ids or not problem.store_ids:
            # nothing to ship
            report(100.0)
            return OptimizationResult(
                status=FeasibilityStatus.OPTIMAL,
                total_distance=self._distance_total(problem, Assignment()),
            )

        tableau = self._build_tableau(problem)
        x, basis = self._initial_solution(tableau)
        initial_cost = tableau.objective(x)
        logger.info(f"Initial solution (VAM): cost {initial_cost:,.2f}, {len(basis)} basic cells")
        report(INITIAL_SOLUTION_PROGRESS)

        iterations, degenerate = self._improve(tableau, x, set(basis), report, cancel_event)
        if degenerate:
            logger.warning(f"{degenerate} of {iterations} pivots were degenerate")

        result = self._build_result(problem, tableau, x, initial_cost, iterations, degenerate)
        logger.info(f"Optimal distribution found: {result}")
        report(100.0)
        return result

    # ------------------------------------------------------------------
    # Pre-checks
    # ------------------------------------------------------------------

    def _check_cancel(self, cancel_event) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CancellationRequested("Distribution optimization cancelled")

    def _check_bounded(self, problem: TransportationProblem) -> None:
        lanes = [
            (w, s, problem.cost(w, s))
            for w in sorted(problem.warehouse_ids)
            if problem.capacities[w] is None
            for s in sorted(problem.store_ids)
            if problem.cost(w, s) < 0
        ]
        if lanes:
            w, s, cost = lanes[0]
            raise UnboundedProblem(
                f"Problem is unbounded: lane {w} → {s} has negative cost {cost} "
                f"and warehouse {w} has no capacity limit ({len(lanes)} such lanes)",
                lanes=lanes,
            )

    def _check_feasible(self, problem: TransportationProblem) -> None:
        total_supply = problem.total_supply
        total_demand = problem.total_demand
        if math.isinf(total_supply):
            return
        # same scale as the tableau tolerance; float sums of balanced input may differ by an ulp
        tol = self.config.tolerance * max(1.0, total_supply)
        shortfall = total_demand - total_supply
        if shortfall > tol:
            logger.warning(
                f"Infeasible: demand {total_demand:,.2f} exceeds supply {total_supply:,.2f} "
                f"by {shortfall:,.2f}"
            )
            result = OptimizationResult(status=FeasibilityStatus.INFEASIBLE, shortfall=shortfall)
            raise InfeasibleProblem(shortfall, total_supply, total_demand, result=result)

    # ------------------------------------------------------------------
    # Tableau
    # ------------------------------------------------------------------

    def _build_tableau(self, problem: TransportationProblem) -> _Tableau:
        warehouses = sorted(problem.warehouse_ids)
        stores = sorted(problem.store_ids)
        total_demand = problem.total_demand

        # unconstrained warehouses can never usefully ship more than total demand
        supply = np.array(
            [problem.capacities[w] if problem.capacities[w] is not None else total_demand
             for w in warehouses],
            dtype=float,
        )
        demand = np.array([problem.demands[s] for s in stores], dtype=float)
        costs = np.array([[problem.cost(w, s) for s in stores] for w in warehouses], dtype=float)

        tol = self.config.tolerance * max(1.0, math.fsum(supply))
        surplus = math.fsum(supply) - math.fsum(demand)
        has_sink = surplus > tol
        if has_sink:
            sink_costs = np.minimum(0.0, costs.min(axis=1))
            costs = np.column_stack([costs, sink_costs])
            demand = np.append(demand, surplus)

        return _Tableau(
            warehouse_ids=warehouses,
            store_ids=stores,
            costs=costs,
            supply=supply,
            demand=demand,
            has_sink=has_sink,
            tol=tol,
        )

    # ------------------------------------------------------------------
    # Phase 1: Vogel's Approximation Method
    # ------------------------------------------------------------------

    def _initial_solution(self, t: _Tableau) -> Tuple[np.ndarray, List[Cell]]:
        m, n = t.shape
        supply = t.supply.copy()
        demand = t.demand.copy()
        rows = np.ones(m, dtype=bool)
        cols = np.ones(n, dtype=bool)
        x = np.zeros((m, n))
        basis: List[Cell] = []

        # exactly one line is crossed per allocation, giving m + n - 1 basic cells
        while rows.any() and cols.any():
            i, j = self._vogel_cell(t.costs, rows, cols)
            quantity = min(supply[i], demand[j])
            x[i, j] = quantity
            basis.append((i, j))
            supply[i] -= quantity
            demand[j] -= quantity

            if supply[i] <= t.tol and (demand[j] > t.tol or rows.sum() > 1):
                rows[i] = False
                supply[i] = 0.0
            else:
                cols[j] = False
                demand[j] = 0.0

        if len(basis) != m + n - 1:
            raise ConsistencyError(
                f"Initial solution has {len(basis)} basic cells, expected {m + n - 1}",
                check='basis_size',
                expected=m + n - 1,
                actual=len(basis),
            )
        return x, basis

    def _vogel_cell(self, costs: np.ndarray, rows: np.ndarray, cols: np.ndarray) -> Cell:
        """Allocation cell: cheapest cell of the max-penalty lines, ties by (cost, row, column)."""
        row_idx = np.flatnonzero(rows)
        col_idx = np.flatnonzero(cols)
        sub = costs[np.ix_(row_idx, col_idx)]

        row_penalty = _penalties(sub)
        col_penalty = _penalties(sub.T)
        best = max(row_penalty.max(), col_penalty.max())

        candidates = []
        for k in np.flatnonzero(row_penalty == best):
            jj = int(np.argmin(sub[k]))
            candidates.append((sub[k, jj], row_idx[k], col_idx[jj]))
        for k in np.flatnonzero(col_penalty == best):
            ii = int(np.argmin(sub[:, k]))
            candidates.append((sub[ii, k], row_idx[ii], col_idx[k]))

        _, i, j = min(candidates)
        return int(i), int(j)

    # ------------------------------------------------------------------
    # Phase 2: MODI improvement
    # ------------------------------------------------------------------

    def _improve(
        self,
        t: _Tableau,
        x: np.ndarray,
        basic: Set[Cell],
        report: ProgressCallback,
        cancel_event,
    ) -> Tuple[int, int]:
        m, n = t.shape
        reduced_tol = self.config.tolerance * max(1.0, float(np.abs(t.costs).max()))
        iterations = 0
        degenerate = 0
        bland = False

        while True:
            self._check_cancel(cancel_event)

            u, v = _potentials(t.costs, basic, m, n)
            reduced = t.costs - u[:, None] - v[None, :]
            for cell in basic:
                reduced[cell] = 0.0

            entering = _entering_cell(reduced, reduced_tol, bland)
            if entering is None:
                break
            if iterations >= self.config.max_iterations:
                raise ConsistencyError(
                    f"MODI did not converge within {self.config.max_iterations} iterations",
                    check='max_iterations',
                    expected=self.config.max_iterations,
                    actual=iterations,
                )

            cycle = _stepping_stone_cycle(basic, entering, m)
            minus = cycle[1::2]
            theta = min(x[cell] for cell in minus)
            leaving = min(
                (cell for cell in minus if x[cell] <= theta + t.tol),
                key=lambda cell: cell[0] * n + cell[1],
            )

            for k, cell in enumerate(cycle):
                if k % 2 == 0:
                    x[cell] += theta
                else:
                    x[cell] = max(0.0, x[cell] - theta)
            x[leaving] = 0.0
            basic.remove(leaving)
            basic.add(entering)
            iterations += 1

            if theta <= t.tol:
                degenerate += 1
                bland = True
            else:
                bland = False

            logger.debug(
                f"Pivot {iterations}: enter {entering} (reduced cost {reduced[entering]:.6g}), "
                f"leave {leaving}, step {theta:.6g}{' (degenerate)' if theta <= t.tol else ''}"
            )
            report(
                INITIAL_SOLUTION_PROGRESS
                + (MAX_IN_FLIGHT_PROGRESS - INITIAL_SOLUTION_PROGRESS) * iterations / (iterations + m + n)
            )

        return iterations, degenerate

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def _build_result(
        self,
        problem: TransportationProblem,
        t: _Tableau,
        x: np.ndarray,
        initial_cost: float,
        iterations: int,
        degenerate: int,
    ) -> OptimizationResult:
        num_stores = len(t.store_ids)
        shipped = x[:, :num_stores].copy()

        if t.has_sink:
            # surplus routed to a negative-cost sink is shipped to the cheapest store
            for i in range(len(t.warehouse_ids)):
                if x[i, -1] > t.tol and t.costs[i, -1] < 0:
                    shipped[i, int(np.argmin(t.costs[i, :num_stores]))] += x[i, -1]

        entries = []
        for i, warehouse_id in enumerate(t.warehouse_ids):
            for j, store_id in enumerate(t.store_ids):
                quantity = float(shipped[i, j])
                if quantity > t.tol:
                    entries.append(AssignmentEntry(
                        warehouse_id=warehouse_id,
                        store_id=store_id,
                        quantity=quantity,
                        unit_cost=problem.cost(warehouse_id, store_id),
                        distance=problem.distance(warehouse_id, store_id),
                    ))
        assignment = Assignment(entries=tuple(entries))

        objective = t.objective(x)
        total_cost = assignment.total_cost()
        if not math.isclose(objective, total_cost, rel_tol=COST_CHECK_REL_TOL, abs_tol=COST_CHECK_ABS_TOL):
            raise ConsistencyError(
                f"Tableau objective {objective!r} differs from assignment cost {total_cost!r}",
                check='objective',
                expected=objective,
                actual=total_cost,
            )
        self._check_constraints(problem, assignment, t.tol * (len(t.warehouse_ids) + num_stores))

        return OptimizationResult(
            status=FeasibilityStatus.OPTIMAL,
            total_cost=total_cost,
            total_distance=self._distance_total(problem, assignment),
            total_items=assignment.total_quantity(),
            assignment=assignment,
            initial_cost=initial_cost,
            iterations=iterations,
            degenerate_pivots=degenerate,
        )

    def _check_constraints(self, problem: TransportationProblem, assignment: Assignment, tol: float) -> None:
        tol = max(tol, COST_CHECK_ABS_TOL)
        shipped = assignment.shipped_from()
        for warehouse_id in problem.warehouse_ids:
            capacity = problem.capacities[warehouse_id]
            if capacity is not None and shipped.get(warehouse_id, 0.0) > capacity + tol:
                raise ConsistencyError(
                    f"Warehouse {warehouse_id} ships {shipped[warehouse_id]} over capacity {capacity}",
                    check='capacity',
                    expected=capacity,
                    actual=shipped[warehouse_id],
                )
        received = assignment.received_by()
        for store_id in problem.store_ids:
            demand = problem.demands[store_id]
            if received.get(store_id, 0.0) < demand - tol:
                raise ConsistencyError(
                    f"Store {store_id} receives {received.get(store_id, 0.0)} of required {demand}",
                    check='demand',
                    expected=demand,
                    actual=received.get(store_id, 0.0),
                )

    def _distance_total(self, problem: TransportationProblem, assignment: Assignment) -> Optional[float]:
        if problem.distances is None:
            return None
        return math.fsum(e.distance for e in assignment.entries)


def _monotonic(callback: Optional[ProgressCallback]) -> ProgressCallback:
    """Wrap a progress callback so reported values never decrease."""
    highest = [0.0]

    def report(pct: float) -> None:
        highest[0] = max(highest[0], min(100.0, pct))
        if callback is not None:
            callback(highest[0])

    return report


def _penalties(costs: np.ndarray) -> np.ndarray:
    """Per-row difference between the two smallest costs (0 for single-cell rows)."""
    if costs.shape[1] < 2:
        return np.zeros(costs.shape[0])
    ordered = np.sort(costs, axis=1)
    return ordered[:, 1] - ordered[:, 0]


def _potentials(costs: np.ndarray, basic: Iterable[Cell], m: int, n: int) -> Tuple[np.ndarray, np.ndarray]:
    """Solve u[i] + v[j] = cost[i][j] over the basis tree with u[0] = 0."""
    by_row: Dict[int, List[int]] = defaultdict(list)
    by_col: Dict[int, List[int]] = defaultdict(list)
    for i, j in basic:
        by_row[i].append(j)
        by_col[j].append(i)

    u = np.full(m, np.nan)
    v = np.full(n, np.nan)
    u[0] = 0.0
    queue = deque([(True, 0)])
    while queue:
        is_row, k = queue.popleft()
        if is_row:
            for j in by_row[k]:
                if np.isnan(v[j]):
                    v[j] = costs[k, j] - u[k]
                    queue.append((False, j))
        else:
            for i in by_col[k]:
                if np.isnan(u[i]):
                    u[i] = costs[i, k] - v[k]
                    queue.append((True, i))

    if np.isnan(u).any() or np.isnan(v).any():
        raise ConsistencyError("Basis does not span every row and column", check='basis_tree')
    return u, v


def _entering_cell(reduced: np.ndarray, tol: float, bland: bool) -> Optional[Cell]:
    if bland:
        negative = np.flatnonzero(reduced.ravel() < -tol)
        if negative.size == 0:
            return None
        flat = int(negative[0])
    else:
        flat = int(np.argmin(reduced))
        if reduced.flat[flat] >= -tol:
            return None
    i, j = divmod(flat, reduced.shape[1])
    return (i, j)


def _stepping_stone_cycle(basic: Iterable[Cell], entering: Cell, m: int) -> List[Cell]:
    """
    Closed cycle through the entering cell and basic cells.

    Returns cells in cycle order starting with the entering cell; even
    positions gain the step length, odd positions lose it.
    """
    # row i is node i, column j is node m + j
    adjacency: Dict[int, List[int]] = defaultdict(list)
    for i, j in basic:
        adjacency[i].append(m + j)
        adjacency[m + j].append(i)

    start, target = entering[0], m + entering[1]
    parent: Dict[int, Optional[int]] = {start: None}
    queue = deque([start])
    while queue and target not in parent:
        node = queue.popleft()
        for neighbour in adjacency[node]:
            if neighbour not in parent:
                parent[neighbour] = node
                queue.append(neighbour)

    if target not in parent:
        raise ConsistencyError(f"No stepping-stone cycle through cell {entering}", check='cycle')

    cycle = [entering]
    node = target
    while parent[node] is not None:
        previous = parent[node]
        row, col = (previous, node - m) if previous < m else (node, previous - m)
        cycle.append((row, col))
        node = previous
    return cycle
