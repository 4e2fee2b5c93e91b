"""Summary data models produced by the result aggregator.

Data classes holding per-warehouse, per-store and network-level totals for
reporting. Every summary is rebuilt from scratch on each aggregation.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from stockflow.models.optimization_result import OptimizationResult


@dataclass
class WarehouseSummary:
    """
    Totals for one warehouse.

    Attributes:
        warehouse_id: Warehouse identifier
        total_demand: Σ demand of the records sourced from this warehouse
        item_count: Distinct items in those records
        record_count: Number of those records
        units_shipped: Units shipped (demand served) under the assignment
        cost: Transportation cost of the warehouse's lanes
        capacity: Supply capacity, if known (None = unconstrained or not supplied)
    """
    warehouse_id: str
    total_demand: float = 0.0
    item_count: int = 0
    record_count: int = 0
    units_shipped: float = 0.0
    cost: float = 0.0
    capacity: Optional[float] = None

    @property
    def utilization(self) -> Optional[float]:
        """Share of capacity used (None without a positive capacity)."""
        if self.capacity is None or self.capacity <= 0:
            return None
        return self.units_shipped / self.capacity

    def __str__(self) -> str:
        result = f"{self.warehouse_id}: {self.units_shipped:,.0f} units, ${self.cost:,.2f}"
        if self.utilization is not None:
            result += f" ({self.utilization:.0%} of capacity)"
        return result


@dataclass
class StoreSummary:
    """
    Totals for one store.

    Attributes:
        store_id: Store identifier
        total_demand: Σ demand of the store's records
        item_count: Distinct items in those records
        record_count: Number of those records
        units_received: Units received under the assignment
        requirement: Required units, if a problem definition was supplied
        cost: Transportation cost of the store's inbound lanes
    """
    store_id: str
    total_demand: float = 0.0
    item_count: int = 0
    record_count: int = 0
    units_received: float = 0.0
    requirement: Optional[float] = None
    cost: float = 0.0

    def __str__(self) -> str:
        return f"{self.store_id}: {self.units_received:,.0f} units received, ${self.cost:,.2f}"


@dataclass
class GraphSummary:
    """Network-level counts of a NetworkGraph."""
    warehouse_count: int = 0
    store_count: int = 0
    edge_count: int = 0
    total_flow: float = 0.0
    component_count: int = 0

    def __str__(self) -> str:
        return (
            f"Network: {self.warehouse_count} warehouses, {self.store_count} stores, "
            f"{self.edge_count} lanes, {self.total_flow:,.0f} units, {self.component_count} components"
        )


@dataclass
class AggregateReport:
    """
    Complete aggregation of one optimization run.

    Attributes:
        result: Overall result (cost recomputed and verified)
        warehouses: Per-warehouse summaries, sorted by warehouse id
        stores: Per-store summaries, sorted by store id
        graph: Network summary, if a graph was supplied
    """
    result: OptimizationResult
    warehouses: List[WarehouseSummary] = field(default_factory=list)
    stores: List[StoreSummary] = field(default_factory=list)
    graph: Optional[GraphSummary] = None

    @property
    def total_cost(self) -> float:
        return self.result.total_cost

    def warehouses_frame(self) -> pd.DataFrame:
        columns = ['warehouse_id', 'total_demand', 'item_count', 'record_count',
                   'units_shipped', 'cost', 'capacity', 'utilization']
        return pd.DataFrame(
            [
                {
                    'warehouse_id': w.warehouse_id,
                    'total_demand': w.total_demand,
                    'item_count': w.item_count,
                    'record_count': w.record_count,
                    'units_shipped': w.units_shipped,
                    'cost': w.cost,
                    'capacity': w.capacity,
                    'utilization': w.utilization,
                }
                for w in self.warehouses
            ],
            columns=columns,
        )

    def stores_frame(self) -> pd.DataFrame:
        columns = ['store_id', 'total_demand', 'item_count', 'record_count',
                   'units_received', 'requirement', 'cost']
        return pd.DataFrame(
            [
                {
                    'store_id': s.store_id,
                    'total_demand': s.total_demand,
                    'item_count': s.item_count,
                    'record_count': s.record_count,
                    'units_received': s.units_received,
                    'requirement': s.requirement,
                    'cost': s.cost,
                }
                for s in self.stores
            ],
            columns=columns,
        )

    def __str__(self) -> str:
        lines = [str(self.result)]
        lines += [f"  {w}" for w in self.warehouses]
        lines += [f"  {s}" for s in self.stores]
        if self.graph is not None:
            lines.append(f"  {self.graph}")
        return "\n".join(lines)
