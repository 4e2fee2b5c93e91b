"""Economic Order Quantity calculator.

EOQ is the order size that minimizes ordering plus holding cost:

    eoq     = sqrt(2 × demand × order_cost / holding_cost)
    cost(q) = (demand / q) × order_cost + (q / 2) × holding_cost

EOQ values are rounded to the nearest integer with round-half-to-even
(Python's ``round``). Cost curves are sampled relative to the rounded value, so
every consumer sees the same centre point.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from stockflow.constants import (
    COST_CURVE_LOWER_FACTOR,
    COST_CURVE_UPPER_FACTOR,
    DEFAULT_COST_CURVE_POINTS,
    MIN_COST_CURVE_POINTS,
)
from stockflow.exceptions import DivisionByZero, InvalidInput
from stockflow.models.inventory import EOQRecord, InventoryRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostPoint:
    """Ordering, holding and total cost at one order quantity."""
    q: float
    ordering_cost: float
    holding_cost: float
    total_cost: float


@dataclass(frozen=True)
class ItemEOQSummary:
    """EOQ statistics for one item across all of its records.

    Attributes:
        item_id: Item identifier
        record_count: Number of (store, warehouse) records for the item
        total_demand: Demand summed over the records
        average_eoq: Mean EOQ, rounded half-to-even
    """
    item_id: str
    record_count: int
    total_demand: float
    average_eoq: int


def raw_eoq(
    demand: float,
    order_cost: float,
    holding_cost: float,
    record_index: Optional[int] = None,
) -> float:
    """
    Unrounded EOQ with input guards.

    Args:
        demand: Units per period (>= 0)
        order_cost: Cost per order (>= 0)
        holding_cost: Cost per unit per period (> 0)
        record_index: Position of the record, for error reporting

    Returns:
        sqrt(2 × demand × order_cost / holding_cost)

    Raises:
        DivisionByZero: If holding_cost <= 0
        InvalidInput: If any operand is non-finite, or demand/order_cost is negative
    """
    for name, operand in (('demand', demand), ('order_cost', order_cost), ('holding_cost', holding_cost)):
        if not math.isfinite(operand):
            raise InvalidInput(f"{name} must be finite, got {operand}", field=name, record_index=record_index)

    if holding_cost <= 0:
        raise DivisionByZero(
            f"holding_cost must be > 0, got {holding_cost}",
            field='holding_cost',
            record_index=record_index,
        )
    if demand < 0:
        raise InvalidInput(f"demand must be >= 0, got {demand}", field='demand', record_index=record_index)
    if order_cost < 0:
        raise InvalidInput(
            f"order_cost must be >= 0, got {order_cost}", field='order_cost', record_index=record_index
        )

    return math.sqrt(2 * demand * order_cost / holding_cost)


def round_half_even(value: float) -> int:
    """Round to the nearest integer, ties to the even neighbour."""
    return int(round(value))


class EOQEngine:
    """
    Computes Economic Order Quantities and order-quantity cost curves.

    Example:
        engine = EOQEngine()
        eoq_records = engine.compute(records)
        curve = engine.cost_curve(eoq_records[0], num_points=11)
    """

    def compute(self, records: Iterable[InventoryRecord]) -> List[EOQRecord]:
        """
        Compute the EOQ of every record.

        Args:
            records: Validated inventory records

        Returns:
            New EOQRecords in input order (inputs are not modified)

        Raises:
            InvalidInput: If any record fails the EOQ guards (the whole batch fails)
        """
        results = [self.compute_one(record, index) for index, record in enumerate(records)]
        logger.info(f"Computed EOQ for {len(results)} records")
        return results

    def compute_one(self, record: InventoryRecord, index: Optional[int] = None) -> EOQRecord:
        """Compute the EOQ of a single record."""
        eoq = round_half_even(raw_eoq(record.demand, record.order_cost, record.holding_cost, index))
        return EOQRecord.from_record(record, eoq)

    def eoq_value(self, record: InventoryRecord) -> int:
        """Rounded EOQ of a record (ignores any EOQ already stored on it)."""
        return round_half_even(raw_eoq(record.demand, record.order_cost, record.holding_cost))

    def total_cost(self, record: InventoryRecord, q: float) -> CostPoint:
        """
        Ordering, holding and total cost per period at order quantity q.

        Args:
            record: Inventory record supplying demand and cost parameters
            q: Order quantity (> 0)

        Raises:
            InvalidInput: If q is not a positive finite number
        """
        if not math.isfinite(q) or q <= 0:
            raise InvalidInput(f"order quantity must be > 0, got {q}", field='q')
        ordering = (record.demand / q) * record.order_cost
        holding = (q / 2) * record.holding_cost
        return CostPoint(q=q, ordering_cost=ordering, holding_cost=holding, total_cost=ordering + holding)

    def cost_curve(
        self,
        record: Union[InventoryRecord, EOQRecord],
        num_points: int = DEFAULT_COST_CURVE_POINTS,
    ) -> List[CostPoint]:
        """
        Sample the cost curve over q ∈ [0.5 × eoq, 1.5 × eoq].

        Args:
            record: Record to sample; an EOQRecord's stored EOQ is used as centre
            num_points: Number of evenly spaced samples (>= 2)

        Returns:
            CostPoints in increasing q

        Raises:
            InvalidInput: If num_points < 2 or the EOQ is zero (no positive q to sample)
        """
        if isinstance(num_points, bool) or not isinstance(num_points, int) or num_points < MIN_COST_CURVE_POINTS:
            raise InvalidInput(
                f"num_points must be an integer >= {MIN_COST_CURVE_POINTS}, got {num_points}",
                field='num_points',
            )

        eoq = record.eoq if isinstance(record, EOQRecord) else self.eoq_value(record)
        if eoq <= 0:
            raise InvalidInput(
                f"cannot sample a cost curve around a zero EOQ ({record})", field='eoq'
            )

        quantities = np.linspace(COST_CURVE_LOWER_FACTOR * eoq, COST_CURVE_UPPER_FACTOR * eoq, num_points)
        return [self.total_cost(record, float(q)) for q in quantities]

    def summarize_by_item(self, records: Sequence[EOQRecord]) -> List[ItemEOQSummary]:
        """
        Aggregate EOQ records per item id, in order of first appearance.
        """
        groups: "OrderedDict[str, List[EOQRecord]]" = OrderedDict()
        for record in records:
            groups.setdefault(record.item_id, []).append(record)

        summaries = []
        for item_id, group in groups.items():
            summaries.append(ItemEOQSummary(
                item_id=item_id,
                record_count=len(group),
                total_demand=math.fsum(r.demand for r in group),
                average_eoq=round_half_even(sum(r.eoq for r in group) / len(group)),
            ))
        return summaries
