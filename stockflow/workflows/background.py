"""Cancellable background runs with progress reporting.

A RunHandle is the caller's view of one long-running job (an optimization or a
layout) executing on a thread pool. The job receives the handle's progress
callback and cancel event; the caller polls ``progress``, requests a
cooperative stop with ``cancel()`` and collects the ``outcome()``.
"""

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Generic, Optional, TypeVar

from stockflow.exceptions import StockflowError
from stockflow.outcome import OperationOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunKind(str, Enum):
    """Kinds of background work a session can run."""
    OPTIMIZATION = "optimization"
    LAYOUT = "layout"


class RunHandle(Generic[T]):
    """
    Handle to one background run.

    Progress is clamped to [0, 100] and never decreases, whatever the job
    reports.

    Example:
        handle = session.start_optimization(capacities, cost_matrix)
        while not handle.done():
            print(f"{handle.progress:.0f}%")
            time.sleep(0.1)
        outcome = handle.outcome()
    """

    def __init__(self, kind: RunKind):
        self.kind = kind
        self.cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._progress = 0.0
        self._future: Optional[Future] = None

    def attach(self, future: Future) -> None:
        self._future = future

    def report_progress(self, pct: float) -> None:
        """Progress callback handed to the job."""
        with self._lock:
            self._progress = max(self._progress, min(100.0, max(0.0, float(pct))))

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    def cancel(self) -> None:
        """Request a cooperative stop; the job stops before its next step."""
        logger.info(f"Cancellation requested for {self.kind.value} run")
        self.cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_event.is_set()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def outcome(self, timeout: Optional[float] = None) -> OperationOutcome[T]:
        """
        Wait for the run and return its outcome.

        Domain errors (including CancellationRequested) are returned in the
        outcome; programming errors propagate.

        Raises:
            concurrent.futures.TimeoutError: If the run does not finish within timeout
        """
        if self._future is None:
            raise RuntimeError(f"{self.kind.value} run was never started")
        try:
            return OperationOutcome(value=self._future.result(timeout=timeout))
        except StockflowError as e:
            return OperationOutcome(error=e)

    def __repr__(self) -> str:
        state = "done" if self.done() else "running"
        return f"RunHandle({self.kind.value}, {state}, {self.progress:.0f}%)"
