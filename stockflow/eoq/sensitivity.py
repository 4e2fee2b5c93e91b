"""EOQ sensitivity analysis.

Sweeps a grid of demand and order-cost multipliers (in percent) and recomputes
the EOQ at every grid point:

    eoq' = sqrt(2 × (demand × d%) × (order_cost × c%) / holding_cost)

The sweep is a pure function of its inputs. The (100%, 100%) point must equal
the EOQ engine's baseline for the same record; this is checked on every run.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from pydantic import Field

from stockflow.constants import (
    BASELINE_PCT,
    DEFAULT_SENSITIVITY_MAX_PCT,
    DEFAULT_SENSITIVITY_MIN_PCT,
    DEFAULT_SENSITIVITY_STEP_PCT,
)
from stockflow.exceptions import ConsistencyError, InvalidInput
from stockflow.models.inventory import EOQRecord, InventoryRecord
from .calculator import EOQEngine, raw_eoq, round_half_even

logger = logging.getLogger(__name__)


def percent_range(min_pct: float, max_pct: float, step_pct: float) -> Tuple[float, ...]:
    """Inclusive range of percentages, computed by index to avoid float drift."""
    if step_pct <= 0:
        raise InvalidInput(f"step must be > 0, got {step_pct}", field='step_pct')
    if max_pct < min_pct:
        raise InvalidInput(f"max ({max_pct}) must be >= min ({min_pct})", field='max_pct')
    count = int(math.floor((max_pct - min_pct) / step_pct + 1e-9)) + 1
    return tuple(min_pct + i * step_pct for i in range(count))


def _default_percentages() -> Tuple[float, ...]:
    return percent_range(
        DEFAULT_SENSITIVITY_MIN_PCT, DEFAULT_SENSITIVITY_MAX_PCT, DEFAULT_SENSITIVITY_STEP_PCT
    )


@dataclass(frozen=True)
class SensitivityGridConfig:
    """Configuration of a sensitivity sweep.

    Attributes:
        demand_factors: Demand multipliers in percent (default 50..150 step 10)
        cost_factors: Order cost multipliers in percent (default 50..150 step 10)
    """
    demand_factors: Tuple[float, ...] = field(default_factory=_default_percentages)
    cost_factors: Tuple[float, ...] = field(default_factory=_default_percentages)

    def __post_init__(self):
        """Validate configuration."""
        for name in ('demand_factors', 'cost_factors'):
            factors = tuple(getattr(self, name))
            if not factors:
                raise InvalidInput(f"{name} must not be empty", field=name)
            for pct in factors:
                if isinstance(pct, bool) or not isinstance(pct, (int, float)) or not math.isfinite(pct) or pct < 0:
                    raise InvalidInput(f"{name} must be finite percentages >= 0, got {pct!r}", field=name)
            if len(set(factors)) != len(factors):
                raise InvalidInput(f"{name} contains duplicate percentages", field=name)
            object.__setattr__(self, name, factors)

    @classmethod
    def from_range(
        cls,
        min_pct: float = DEFAULT_SENSITIVITY_MIN_PCT,
        max_pct: float = DEFAULT_SENSITIVITY_MAX_PCT,
        step_pct: float = DEFAULT_SENSITIVITY_STEP_PCT,
    ) -> "SensitivityGridConfig":
        """Same percentage range for both factors."""
        pcts = percent_range(min_pct, max_pct, step_pct)
        return cls(demand_factors=pcts, cost_factors=pcts)

    @property
    def includes_baseline(self) -> bool:
        return BASELINE_PCT in self.demand_factors and BASELINE_PCT in self.cost_factors


@dataclass(frozen=True)
class SensitivityPoint:
    """EOQ at one (demand %, cost %) grid point."""
    demand_factor: float
    cost_factor: float
    eoq: int
    raw_eoq: float


@dataclass(frozen=True)
class SensitivitySurface:
    """
    Full (demand_factor, cost_factor) → eoq' surface for one record.

    Attributes:
        record: Record the surface was computed for
        baseline_eoq: EOQ of the unperturbed record
        points: Grid points, demand-major in grid order
    """
    record: InventoryRecord
    baseline_eoq: int
    points: Tuple[SensitivityPoint, ...]

    def value(self, demand_factor: float, cost_factor: float) -> int:
        """EOQ at a grid point.

        Raises:
            KeyError: If the point is not on the grid
        """
        for point in self.points:
            if point.demand_factor == demand_factor and point.cost_factor == cost_factor:
                return point.eoq
        raise KeyError((demand_factor, cost_factor))

    def as_mapping(self) -> Dict[Tuple[float, float], int]:
        return {(p.demand_factor, p.cost_factor): p.eoq for p in self.points}

    def to_dataframe(self) -> pd.DataFrame:
        """Long-form surface: one row per grid point."""
        return pd.DataFrame(
            [
                {'demand_factor': p.demand_factor, 'cost_factor': p.cost_factor,
                 'eoq': p.eoq, 'raw_eoq': p.raw_eoq}
                for p in self.points
            ],
            columns=['demand_factor', 'cost_factor', 'eoq', 'raw_eoq'],
        )

    def pivot(self) -> pd.DataFrame:
        """Surface as a demand_factor × cost_factor table of EOQs."""
        return self.to_dataframe().pivot(index='demand_factor', columns='cost_factor', values='eoq')


class ScenarioRecord(EOQRecord):
    """
    Record recomputed under a demand/cost scenario.

    demand and order_cost hold the adjusted values; baseline_eoq holds the EOQ
    of the unadjusted record.
    """
    baseline_eoq: int = Field(..., ge=0)
    demand_factor: float = Field(..., ge=0)
    cost_factor: float = Field(..., gt=0)


class SensitivityAnalyzer:
    """
    Explores EOQ response to demand and order cost perturbation.

    The analyzer never modifies its inputs and uses no randomness, so repeated
    calls with the same arguments return identical surfaces.

    Example:
        analyzer = SensitivityAnalyzer()
        surface = analyzer.analyze(record)
        surface.value(120, 80)
    """

    def __init__(self, engine: Optional[EOQEngine] = None):
        self.engine = engine or EOQEngine()

    def analyze(
        self,
        record: InventoryRecord,
        grid: Optional[SensitivityGridConfig] = None,
    ) -> SensitivitySurface:
        """
        Compute the EOQ surface for one record.

        Args:
            record: Representative record (an EOQRecord's stored EOQ is also checked)
            grid: Grid configuration (default 50%..150% in 10% steps)

        Returns:
            SensitivitySurface

        Raises:
            InvalidInput: If the record fails the EOQ guards
            ConsistencyError: If the (100%, 100%) point disagrees with the baseline
        """
        grid = grid or SensitivityGridConfig()
        baseline = self.engine.eoq_value(record)

        points = []
        for demand_pct in grid.demand_factors:
            for cost_pct in grid.cost_factors:
                value = raw_eoq(
                    record.demand * (demand_pct / 100),
                    record.order_cost * (cost_pct / 100),
                    record.holding_cost,
                )
                points.append(SensitivityPoint(
                    demand_factor=demand_pct,
                    cost_factor=cost_pct,
                    eoq=round_half_even(value),
                    raw_eoq=value,
                ))

        surface = SensitivitySurface(record=record, baseline_eoq=baseline, points=tuple(points))
        self._check_baseline(surface, grid)
        return surface

    def analyze_all(
        self,
        records: Iterable[InventoryRecord],
        grid: Optional[SensitivityGridConfig] = None,
    ) -> List[SensitivitySurface]:
        """One surface per record, in input order."""
        grid = grid or SensitivityGridConfig()
        surfaces = [self.analyze(record, grid) for record in records]
        logger.info(
            f"Computed {len(surfaces)} sensitivity surfaces "
            f"({len(grid.demand_factors)}×{len(grid.cost_factors)} points each)"
        )
        return surfaces

    def apply_scenario(
        self,
        records: Sequence[InventoryRecord],
        demand_factor: float = BASELINE_PCT,
        cost_factor: float = BASELINE_PCT,
    ) -> List[ScenarioRecord]:
        """
        Recompute every record's EOQ with adjusted demand and order cost.

        Args:
            records: Records to adjust
            demand_factor: Demand multiplier in percent (>= 0)
            cost_factor: Order cost multiplier in percent (> 0)

        Returns:
            ScenarioRecords in input order
        """
        if not math.isfinite(demand_factor) or demand_factor < 0:
            raise InvalidInput(f"demand_factor must be >= 0, got {demand_factor}", field='demand_factor')
        if not math.isfinite(cost_factor) or cost_factor <= 0:
            raise InvalidInput(f"cost_factor must be > 0, got {cost_factor}", field='cost_factor')

        scenario = []
        for index, record in enumerate(records):
            demand = record.demand * (demand_factor / 100)
            order_cost = record.order_cost * (cost_factor / 100)
            fields = record.model_dump(exclude={'eoq', 'baseline_eoq', 'demand_factor', 'cost_factor'})
            fields.update(demand=demand, order_cost=order_cost)
            scenario.append(ScenarioRecord(
                **fields,
                eoq=round_half_even(raw_eoq(demand, order_cost, record.holding_cost, index)),
                baseline_eoq=self.engine.eoq_value(record),
                demand_factor=demand_factor,
                cost_factor=cost_factor,
            ))
        return scenario

    def _check_baseline(self, surface: SensitivitySurface, grid: SensitivityGridConfig) -> None:
        expected = surface.baseline_eoq
        record = surface.record

        if isinstance(record, EOQRecord) and record.eoq != expected:
            raise ConsistencyError(
                f"Stored EOQ {record.eoq} of {record} differs from recomputed baseline {expected}",
                check='sensitivity_baseline',
                expected=expected,
                actual=record.eoq,
            )

        if grid.includes_baseline:
            actual = surface.value(BASELINE_PCT, BASELINE_PCT)
            if actual != expected:
                raise ConsistencyError(
                    f"Sensitivity surface at (100%, 100%) is {actual}, baseline EOQ is {expected}",
                    check='sensitivity_baseline',
                    expected=expected,
                    actual=actual,
                )
