"""Planning session: the explicit context a pipeline runs in.

A PlanningSession owns the current SessionSnapshot, an immutable record of
everything the pipeline has produced so far:

    raw rows → records → eoq_records → optimization (+ problem, report) → graph → layout

Every stage builds a new snapshot with ``dataclasses.replace``; loading new
rows replaces the whole snapshot. Long-running stages (optimization, layout)
can run in the background; their results are swapped in under the session
lock only once complete, so a reader sees either the previous snapshot or the
new one, never a partial result.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

import pandas as pd

from stockflow.costs.cost_breakdown import AggregateReport
from stockflow.costs.result_aggregator import ResultAggregator
from stockflow.eoq.calculator import EOQEngine
from stockflow.eoq.sensitivity import SensitivityAnalyzer, SensitivityGridConfig, SensitivitySurface
from stockflow.exceptions import ConsistencyError, InvalidInput, RunInProgressError
from stockflow.models.inventory import EOQRecord, InventoryRecord
from stockflow.models.network_graph import NetworkGraph
from stockflow.models.optimization_result import OptimizationResult
from stockflow.network.graph_builder import build_graph
from stockflow.network.layout import LayoutConfig, LayoutResult, NetworkLayoutEngine
from stockflow.optimization.problem import CostMatrix, TransportationProblem
from stockflow.optimization.transportation import DistributionOptimizer, OptimizerConfig
from stockflow.validation.record_validator import RecordValidator, RowRejection, ValidationReport
from .background import RunHandle, RunKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Immutable state of a planning session.

    Attributes:
        version: Incremented on every change
        records: Validated input records
        rejections: Rejected input rows
        eoq_records: Records with computed EOQ
        problem: Transportation problem of the last optimization
        optimization: Result of the last optimization
        report: Aggregated summaries of the last optimization
        graph: Network graph (positioned once a layout has run)
        layout: Result of the last layout run
    """
    version: int = 0
    records: Tuple[InventoryRecord, ...] = ()
    rejections: Tuple[RowRejection, ...] = ()
    eoq_records: Tuple[EOQRecord, ...] = ()
    problem: Optional[TransportationProblem] = None
    optimization: Optional[OptimizationResult] = None
    report: Optional[AggregateReport] = None
    graph: Optional[NetworkGraph] = None
    layout: Optional[LayoutResult] = None


class PlanningSession:
    """
    Runs the planning pipeline over explicit, immutable snapshots.

    At most one background run of each kind is in flight at a time; starting
    another is rejected with RunInProgressError.

    Example:
        with PlanningSession() as session:
            session.load_rows(rows)
            session.compute_eoq()
            handle = session.start_optimization(capacities, cost_matrix)
            outcome = handle.outcome()
            print(session.snapshot.report)
    """

    def __init__(
        self,
        validator: Optional[RecordValidator] = None,
        engine: Optional[EOQEngine] = None,
        optimizer_config: Optional[OptimizerConfig] = None,
        layout_config: Optional[LayoutConfig] = None,
        max_workers: int = 2,
    ):
        self.validator = validator or RecordValidator()
        self.engine = engine or EOQEngine()
        self.analyzer = SensitivityAnalyzer(self.engine)
        self.optimizer = DistributionOptimizer(optimizer_config)
        self.layout_engine = NetworkLayoutEngine(layout_config)
        self.aggregator = ResultAggregator()

        self._lock = threading.Lock()
        self._snapshot = SessionSnapshot()
        self._runs: Dict[RunKind, RunHandle] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="stockflow")

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot

    def _commit(self, base: SessionSnapshot, **changes: Any) -> SessionSnapshot:
        """Swap in a new snapshot derived from base (rejected if base is stale)."""
        with self._lock:
            if self._snapshot.version != base.version:
                raise ConsistencyError(
                    f"Session changed while a stage was running (version {base.version} → "
                    f"{self._snapshot.version}); result discarded",
                    check='stale_snapshot',
                    expected=base.version,
                    actual=self._snapshot.version,
                )
            self._snapshot = replace(self._snapshot, version=base.version + 1, **changes)
            return self._snapshot

    # ------------------------------------------------------------------
    # Synchronous stages
    # ------------------------------------------------------------------

    def load_rows(self, rows: Iterable[Mapping[str, Any]]) -> ValidationReport:
        """Validate raw rows and replace the whole session state with them."""
        return self._load(self.validator.validate(rows))

    def load_dataframe(self, frame: pd.DataFrame) -> ValidationReport:
        return self._load(self.validator.validate_dataframe(frame))

    def _load(self, report: ValidationReport) -> ValidationReport:
        with self._lock:
            self._snapshot = SessionSnapshot(
                version=self._snapshot.version + 1,
                records=tuple(report.records),
                rejections=tuple(report.rejections),
            )
        logger.info(f"Session loaded {len(report.records)} records ({len(report.rejections)} rejected)")
        return report

    def compute_eoq(self) -> Tuple[EOQRecord, ...]:
        """Compute EOQs for the loaded records; downstream results are cleared."""
        base = self.snapshot
        eoq_records = tuple(self.engine.compute(base.records))
        self._commit(
            base,
            eoq_records=eoq_records,
            problem=None,
            optimization=None,
            report=None,
            graph=None,
            layout=None,
        )
        return eoq_records

    def analyze_sensitivity(
        self,
        record: Union[int, InventoryRecord] = 0,
        grid: Optional[SensitivityGridConfig] = None,
    ) -> SensitivitySurface:
        """Sensitivity surface of a record (or of the EOQ record at an index). Read-only."""
        if isinstance(record, int):
            eoq_records = self.snapshot.eoq_records
            if not 0 <= record < len(eoq_records):
                raise InvalidInput(
                    f"No EOQ record at index {record} ({len(eoq_records)} computed)",
                    field='record',
                    record_index=record,
                )
            record = eoq_records[record]
        return self.analyzer.analyze(record, grid)

    def optimize(
        self,
        capacities: Optional[Mapping[str, Optional[float]]],
        cost_matrix: CostMatrix,
        demands: Optional[Mapping[str, float]] = None,
        distances: Optional[CostMatrix] = None,
    ) -> OptimizationResult:
        """
        Run the optimization on the caller's thread.

        Raises:
            RunInProgressError: If a background optimization is running
        """
        with self._lock:
            self._ensure_idle(RunKind.OPTIMIZATION)
        return self._optimize(self.snapshot, capacities, cost_matrix, demands, distances)

    def layout(self, config: Optional[LayoutConfig] = None) -> LayoutResult:
        """
        Run the layout on the caller's thread.

        Raises:
            RunInProgressError: If a background layout is running
        """
        with self._lock:
            self._ensure_idle(RunKind.LAYOUT)
        return self._layout(self.snapshot, config)

    # ------------------------------------------------------------------
    # Background stages
    # ------------------------------------------------------------------

    def start_optimization(
        self,
        capacities: Optional[Mapping[str, Optional[float]]],
        cost_matrix: CostMatrix,
        demands: Optional[Mapping[str, float]] = None,
        distances: Optional[CostMatrix] = None,
    ) -> RunHandle[OptimizationResult]:
        """
        Start the optimization in the background.

        Raises:
            RunInProgressError: If an optimization is already running
        """
        base = self.snapshot
        return self._start(
            RunKind.OPTIMIZATION,
            lambda handle: self._optimize(
                base, capacities, cost_matrix, demands, distances,
                progress_callback=handle.report_progress,
                cancel_event=handle.cancel_event,
            ),
        )

    def start_layout(self, config: Optional[LayoutConfig] = None) -> RunHandle[LayoutResult]:
        """
        Start the layout of the current graph in the background.

        Raises:
            RunInProgressError: If a layout is already running
        """
        base = self.snapshot
        return self._start(
            RunKind.LAYOUT,
            lambda handle: self._layout(
                base, config,
                progress_callback=handle.report_progress,
                cancel_event=handle.cancel_event,
            ),
        )

    def active_run(self, kind: RunKind) -> Optional[RunHandle]:
        with self._lock:
            handle = self._runs.get(kind)
        return handle if handle is not None and not handle.done() else None

    def _start(self, kind: RunKind, job: Callable[[RunHandle], Any]) -> RunHandle:
        with self._lock:
            self._ensure_idle(kind)
            handle: RunHandle = RunHandle(kind)
            self._runs[kind] = handle
            handle.attach(self._executor.submit(job, handle))
        logger.info(f"Started background {kind.value} run")
        return handle

    def _ensure_idle(self, kind: RunKind) -> None:
        # Caller holds self._lock
        current = self._runs.get(kind)
        if current is not None and not current.done():
            raise RunInProgressError(f"A {kind.value} run is already in progress")

    # ------------------------------------------------------------------
    # Stage implementations
    # ------------------------------------------------------------------

    def _optimize(
        self,
        base: SessionSnapshot,
        capacities,
        cost_matrix,
        demands,
        distances,
        progress_callback=None,
        cancel_event=None,
    ) -> OptimizationResult:
        if not base.eoq_records:
            raise InvalidInput("Compute EOQs before optimizing distribution", field='eoq_records')

        problem = TransportationProblem.from_records(
            base.eoq_records, capacities, cost_matrix, demands=demands, distances=distances
        )
        result = self.optimizer.solve(problem, progress_callback=progress_callback, cancel_event=cancel_event)
        graph = build_graph(result.assignment, base.eoq_records)
        report = self.aggregator.aggregate(
            result.assignment,
            records=base.eoq_records,
            reported=result,
            problem=problem,
            graph=graph,
        )
        self._commit(base, problem=problem, optimization=result, report=report, graph=graph, layout=None)
        return result

    def _layout(
        self,
        base: SessionSnapshot,
        config: Optional[LayoutConfig],
        progress_callback=None,
        cancel_event=None,
    ) -> LayoutResult:
        if base.graph is None:
            raise InvalidInput("Optimize distribution before laying out the network", field='graph')

        engine = NetworkLayoutEngine(config) if config is not None else self.layout_engine
        result = engine.layout(base.graph, progress_callback=progress_callback, cancel_event=cancel_event)
        self._commit(base, graph=result.graph, layout=result)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self, cancel_runs: bool = True) -> None:
        """Stop accepting work; optionally cancel in-flight runs, then wait for them."""
        if cancel_runs:
            with self._lock:
                handles = list(self._runs.values())
            for handle in handles:
                if not handle.done():
                    handle.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "PlanningSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
