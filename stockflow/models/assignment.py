"""Assignment data model for warehouse-to-store distribution.

An Assignment is the output of the distribution optimizer: for each
(warehouse, store) lane, how many units are shipped and what one unit costs on
that lane.
"""

import math
from typing import Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator


class AssignmentEntry(BaseModel):
    """
    Shipment quantity on a single warehouse → store lane.

    Attributes:
        warehouse_id: Shipping warehouse
        store_id: Receiving store
        quantity: Units shipped (>= 0)
        unit_cost: Transportation cost per unit on this lane
        distance: Lane distance, if a distance model was supplied
    """
    warehouse_id: str = Field(..., min_length=1)
    store_id: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0, allow_inf_nan=False, description="Units shipped")
    unit_cost: float = Field(..., allow_inf_nan=False, description="Cost per unit")
    distance: Optional[float] = Field(None, ge=0, description="Lane distance")

    model_config = ConfigDict(frozen=True)

    @property
    def lane(self) -> Tuple[str, str]:
        return (self.warehouse_id, self.store_id)

    @property
    def cost(self) -> float:
        """Total transportation cost of this lane."""
        return self.quantity * self.unit_cost


class Assignment(BaseModel):
    """
    Mapping of (warehouse_id, store_id) lanes to shipped quantities.

    Each lane appears at most once. Entry order is preserved so that every
    derived total is summed in the same order wherever it is computed.
    """
    entries: Tuple[AssignmentEntry, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def lanes_unique(self):
        """Validate that no lane is listed twice."""
        seen = set()
        for entry in self.entries:
            if entry.lane in seen:
                raise ValueError(
                    f"Duplicate assignment lane: {entry.warehouse_id} → {entry.store_id}"
                )
            seen.add(entry.lane)
        return self

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, warehouse_id: str, store_id: str) -> float:
        """Quantity shipped on a lane (0.0 if the lane is not used)."""
        entry = self.entry(warehouse_id, store_id)
        return entry.quantity if entry is not None else 0.0

    def entry(self, warehouse_id: str, store_id: str) -> Optional[AssignmentEntry]:
        for entry in self.entries:
            if entry.warehouse_id == warehouse_id and entry.store_id == store_id:
                return entry
        return None

    @property
    def warehouse_ids(self) -> List[str]:
        """Warehouse ids in order of first appearance."""
        return list(dict.fromkeys(e.warehouse_id for e in self.entries))

    @property
    def store_ids(self) -> List[str]:
        """Store ids in order of first appearance."""
        return list(dict.fromkeys(e.store_id for e in self.entries))

    def nonzero_entries(self) -> List[AssignmentEntry]:
        return [e for e in self.entries if e.quantity > 0]

    def shipped_from(self) -> Dict[str, float]:
        """Total units shipped per warehouse."""
        totals: Dict[str, float] = {}
        for entry in self.entries:
            totals[entry.warehouse_id] = totals.get(entry.warehouse_id, 0.0) + entry.quantity
        return totals

    def received_by(self) -> Dict[str, float]:
        """Total units received per store."""
        totals: Dict[str, float] = {}
        for entry in self.entries:
            totals[entry.store_id] = totals.get(entry.store_id, 0.0) + entry.quantity
        return totals

    def total_quantity(self) -> float:
        return math.fsum(e.quantity for e in self.entries)

    def total_cost(self) -> float:
        """Σ unit_cost × quantity over all lanes, computed exactly-rounded."""
        return math.fsum(e.quantity * e.unit_cost for e in self.entries)

    def to_dataframe(self) -> pd.DataFrame:
        """Assignment as a DataFrame with one row per lane."""
        columns = ['warehouse_id', 'store_id', 'quantity', 'unit_cost', 'cost', 'distance']
        rows = [
            {
                'warehouse_id': e.warehouse_id,
                'store_id': e.store_id,
                'quantity': e.quantity,
                'unit_cost': e.unit_cost,
                'cost': e.cost,
                'distance': e.distance,
            }
            for e in self.entries
        ]
        return pd.DataFrame(rows, columns=columns)
