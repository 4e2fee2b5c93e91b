"""Transportation problem definition.

A TransportationProblem holds everything the distribution optimizer needs:
warehouse supply capacities, store demand requirements and the per-unit cost
of every warehouse → store lane (plus an optional lane distance model).

    minimize    Σ cost[w][s] × x[w][s]
    subject to  Σ_s x[w][s] <= capacity[w]    for every warehouse w
                Σ_w x[w][s] >= demand[s]      for every store s
                x[w][s] >= 0

A warehouse whose capacity is None is unconstrained.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from stockflow.exceptions import InvalidInput
from stockflow.models.inventory import EOQRecord, InventoryRecord

Lane = Tuple[str, str]
CostMatrix = Mapping[str, Mapping[str, float]]


@dataclass(frozen=True)
class TransportationProblem:
    """
    Validated transportation problem instance.

    Attributes:
        warehouse_ids: Warehouses, in order of first appearance
        store_ids: Stores, in order of first appearance
        capacities: warehouse_id → supply capacity (None = unconstrained)
        demands: store_id → required units
        costs: (warehouse_id, store_id) → cost per unit
        distances: (warehouse_id, store_id) → lane distance (optional)
    """
    warehouse_ids: Tuple[str, ...]
    store_ids: Tuple[str, ...]
    capacities: Mapping[str, Optional[float]]
    demands: Mapping[str, float]
    costs: Mapping[Lane, float]
    distances: Optional[Mapping[Lane, float]] = None

    def __post_init__(self):
        """Validate the instance."""
        for kind, ids in (('warehouse', self.warehouse_ids), ('store', self.store_ids)):
            if len(set(ids)) != len(ids):
                raise InvalidInput(f"Duplicate {kind} ids: {list(ids)}", field=f"{kind}_ids")
            for entity_id in ids:
                if not isinstance(entity_id, str) or not entity_id.strip():
                    raise InvalidInput(f"Invalid {kind} id: {entity_id!r}", field=f"{kind}_ids")

        for warehouse_id in self.warehouse_ids:
            if warehouse_id not in self.capacities:
                raise InvalidInput(f"No capacity given for warehouse {warehouse_id}", field='capacities')
            capacity = self.capacities[warehouse_id]
            if capacity is not None:
                _check_quantity(capacity, f"capacity of warehouse {warehouse_id}", 'capacities')

        for store_id in self.store_ids:
            if store_id not in self.demands:
                raise InvalidInput(f"No demand given for store {store_id}", field='demands')
            _check_quantity(self.demands[store_id], f"demand of store {store_id}", 'demands')

        for lane in self.lanes():
            if lane not in self.costs:
                raise InvalidInput(f"No cost given for lane {lane[0]} → {lane[1]}", field='cost_matrix')
            cost = self.costs[lane]
            if isinstance(cost, bool) or not isinstance(cost, (int, float)) or not math.isfinite(cost):
                raise InvalidInput(f"Cost of lane {lane[0]} → {lane[1]} must be a finite number, got {cost!r}",
                                   field='cost_matrix')
            if self.distances is not None:
                if lane not in self.distances:
                    raise InvalidInput(f"No distance given for lane {lane[0]} → {lane[1]}", field='distances')
                _check_quantity(self.distances[lane], f"distance of lane {lane[0]} → {lane[1]}", 'distances')

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        capacities: Optional[Mapping[str, Optional[float]]],
        demands: Mapping[str, float],
        cost_matrix: CostMatrix,
        distances: Optional[CostMatrix] = None,
        warehouse_ids: Optional[Iterable[str]] = None,
        store_ids: Optional[Iterable[str]] = None,
    ) -> "TransportationProblem":
        """
        Build a problem from mappings.

        Args:
            capacities: warehouse_id → capacity; None means every warehouse is unconstrained
            demands: store_id → required units
            cost_matrix: cost[warehouse_id][store_id]
            distances: distance[warehouse_id][store_id] (optional)
            warehouse_ids: Extra warehouse ids to include (first-appearance order is kept)
            store_ids: Extra store ids to include

        Returns:
            Validated TransportationProblem

        Raises:
            InvalidInput: If the inputs are incomplete or out of range
        """
        warehouses = _ordered_union(warehouse_ids or (), (capacities or {}).keys(), cost_matrix.keys())
        stores = _ordered_union(store_ids or (), demands.keys())

        if capacities is None:
            capacity_map: Dict[str, Optional[float]] = {w: None for w in warehouses}
        else:
            capacity_map = dict(capacities)

        costs = _flatten(cost_matrix, 'cost_matrix')
        distance_map = _flatten(distances, 'distances') if distances is not None else None

        return cls(
            warehouse_ids=tuple(warehouses),
            store_ids=tuple(stores),
            capacities=capacity_map,
            demands=dict(demands),
            costs=costs,
            distances=distance_map,
        )

    @classmethod
    def from_lists(
        cls,
        capacities: Optional[Sequence[Optional[float]]],
        demands: Sequence[float],
        cost_matrix: Sequence[Sequence[float]],
        distances: Optional[Sequence[Sequence[float]]] = None,
    ) -> "TransportationProblem":
        """
        Build a problem from positional lists.

        Warehouses are named W1..Wm and stores S1..Sn (zero padded when there
        are ten or more, so that id order equals position order).
        """
        num_warehouses = len(cost_matrix)
        if capacities is not None and len(capacities) != num_warehouses:
            raise InvalidInput(
                f"{len(capacities)} capacities given for {num_warehouses} cost matrix rows",
                field='capacities',
            )
        for row in cost_matrix:
            if len(row) != len(demands):
                raise InvalidInput(
                    f"Cost matrix row has {len(row)} entries for {len(demands)} stores",
                    field='cost_matrix',
                )

        warehouse_ids = _positional_ids('W', num_warehouses)
        store_ids = _positional_ids('S', len(demands))

        def as_mapping(matrix):
            return {
                w: {s: matrix[i][j] for j, s in enumerate(store_ids)}
                for i, w in enumerate(warehouse_ids)
            }

        return cls.create(
            capacities=(
                {w: capacities[i] for i, w in enumerate(warehouse_ids)}
                if capacities is not None else None
            ),
            demands={s: demands[j] for j, s in enumerate(store_ids)},
            cost_matrix=as_mapping(cost_matrix),
            distances=as_mapping(distances) if distances is not None else None,
            warehouse_ids=warehouse_ids,
            store_ids=store_ids,
        )

    @classmethod
    def from_records(
        cls,
        records: Sequence[InventoryRecord],
        capacities: Optional[Mapping[str, Optional[float]]],
        cost_matrix: CostMatrix,
        demands: Optional[Mapping[str, float]] = None,
        distances: Optional[CostMatrix] = None,
    ) -> "TransportationProblem":
        """
        Build a problem from EOQ-enriched records.

        Warehouses and stores are the union of the ids observed in the records
        and in the supplied mappings. When demands is omitted, each store's
        requirement is the sum of the EOQs of its records.

        Raises:
            InvalidInput: If demands is omitted and a record has no EOQ
        """
        if demands is None:
            derived: Dict[str, float] = {}
            for index, record in enumerate(records):
                if not isinstance(record, EOQRecord):
                    raise InvalidInput(
                        "Store demands must be supplied when records carry no EOQ",
                        field='demands',
                        record_index=index,
                    )
                derived[record.store_id] = derived.get(record.store_id, 0.0) + record.eoq
            demands = derived

        return cls.create(
            capacities=capacities,
            demands=demands,
            cost_matrix=cost_matrix,
            distances=distances,
            warehouse_ids=[r.warehouse_id for r in records],
            store_ids=[r.store_id for r in records],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lanes(self) -> List[Lane]:
        return [(w, s) for w in self.warehouse_ids for s in self.store_ids]

    def cost(self, warehouse_id: str, store_id: str) -> float:
        return self.costs[(warehouse_id, store_id)]

    def distance(self, warehouse_id: str, store_id: str) -> Optional[float]:
        if self.distances is None:
            return None
        return self.distances[(warehouse_id, store_id)]

    @property
    def is_capacity_bounded(self) -> bool:
        """True if every warehouse has a finite capacity."""
        return all(self.capacities[w] is not None for w in self.warehouse_ids)

    @property
    def total_supply(self) -> float:
        """Σ capacity (inf if any warehouse is unconstrained)."""
        if not self.is_capacity_bounded:
            return math.inf
        return math.fsum(self.capacities[w] for w in self.warehouse_ids)

    @property
    def total_demand(self) -> float:
        return math.fsum(self.demands[s] for s in self.store_ids)

    def shortfall(self) -> float:
        """Aggregate unmet demand if every warehouse shipped at capacity (>= 0)."""
        if not self.is_capacity_bounded:
            return 0.0
        return max(0.0, self.total_demand - self.total_supply)


def _check_quantity(value, label: str, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInput(f"{label} must be a finite number, got {value!r}", field=field)
    if value < 0:
        raise InvalidInput(f"{label} must be >= 0, got {value}", field=field)


def _ordered_union(*sources: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for source in sources:
        for item in source:
            seen.setdefault(item, None)
    return list(seen)


def _flatten(matrix: CostMatrix, field: str) -> Dict[Lane, float]:
    flat: Dict[Lane, float] = {}
    for warehouse_id, row in matrix.items():
        if not isinstance(row, Mapping):
            raise InvalidInput(f"Row for warehouse {warehouse_id} must be a mapping of store → value", field=field)
        for store_id, value in row.items():
            flat[(warehouse_id, store_id)] = value
    return flat


def _positional_ids(prefix: str, count: int) -> List[str]:
    width = len(str(count)) if count >= 10 else 1
    return [f"{prefix}{i + 1:0{width}d}" for i in range(count)]
