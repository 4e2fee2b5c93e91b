"""Built-in demo dataset.

Fifteen inventory rows over eight items, eight stores and four warehouses,
plus a matching set of warehouse capacities and lane costs/distances so that
the full pipeline can run without uploaded data.
"""

from typing import Dict, List

SAMPLE_ROWS: List[Dict[str, object]] = [
    {"item_id": "ITM001", "store_id": "ST001", "warehouse_id": "WH001", "demand": 1200, "order_cost": 25, "holding_cost": 5, "inventory_level": 150},
    {"item_id": "ITM001", "store_id": "ST002", "warehouse_id": "WH001", "demand": 950, "order_cost": 25, "holding_cost": 5, "inventory_level": 120},
    {"item_id": "ITM002", "store_id": "ST001", "warehouse_id": "WH002", "demand": 800, "order_cost": 30, "holding_cost": 4, "inventory_level": 100},
    {"item_id": "ITM002", "store_id": "ST002", "warehouse_id": "WH002", "demand": 600, "order_cost": 30, "holding_cost": 4, "inventory_level": 75},
    {"item_id": "ITM003", "store_id": "ST003", "warehouse_id": "WH001", "demand": 1500, "order_cost": 20, "holding_cost": 6, "inventory_level": 200},
    {"item_id": "ITM003", "store_id": "ST004", "warehouse_id": "WH001", "demand": 1100, "order_cost": 20, "holding_cost": 6, "inventory_level": 150},
    {"item_id": "ITM004", "store_id": "ST003", "warehouse_id": "WH003", "demand": 900, "order_cost": 35, "holding_cost": 3, "inventory_level": 120},
    {"item_id": "ITM004", "store_id": "ST004", "warehouse_id": "WH003", "demand": 750, "order_cost": 35, "holding_cost": 3, "inventory_level": 100},
    {"item_id": "ITM005", "store_id": "ST005", "warehouse_id": "WH002", "demand": 1300, "order_cost": 28, "holding_cost": 5.5, "inventory_level": 180},
    {"item_id": "ITM005", "store_id": "ST006", "warehouse_id": "WH002", "demand": 1050, "order_cost": 28, "holding_cost": 5.5, "inventory_level": 140},
    {"item_id": "ITM006", "store_id": "ST005", "warehouse_id": "WH003", "demand": 850, "order_cost": 32, "holding_cost": 4.5, "inventory_level": 110},
    {"item_id": "ITM006", "store_id": "ST006", "warehouse_id": "WH003", "demand": 700, "order_cost": 32, "holding_cost": 4.5, "inventory_level": 90},
    {"item_id": "ITM007", "store_id": "ST007", "warehouse_id": "WH001", "demand": 1400, "order_cost": 22, "holding_cost": 5.2, "inventory_level": 190},
    {"item_id": "ITM007", "store_id": "ST008", "warehouse_id": "WH001", "demand": 1150, "order_cost": 22, "holding_cost": 5.2, "inventory_level": 160},
    {"item_id": "ITM008", "store_id": "ST007", "warehouse_id": "WH004", "demand": 950, "order_cost": 33, "holding_cost": 3.8, "inventory_level": 130},
]

SAMPLE_WAREHOUSES = ["WH001", "WH002", "WH003", "WH004"]
SAMPLE_STORES = ["ST001", "ST002", "ST003", "ST004", "ST005", "ST006", "ST007", "ST008"]

#: Units per period each warehouse can supply
SAMPLE_CAPACITIES: Dict[str, float] = {
    "WH001": 900.0,
    "WH002": 700.0,
    "WH003": 600.0,
    "WH004": 400.0,
}


def _offset(warehouse_id: str, store_id: str) -> int:
    # each warehouse sits nearest to two consecutive stores
    return abs(2 * SAMPLE_WAREHOUSES.index(warehouse_id) - SAMPLE_STORES.index(store_id))


def sample_rows() -> List[Dict[str, object]]:
    """Fresh copy of the demo rows."""
    return [dict(row) for row in SAMPLE_ROWS]


def sample_cost_matrix() -> Dict[str, Dict[str, float]]:
    """cost[warehouse][store] per unit: 1.50 plus 0.75 per store step away."""
    return {
        w: {s: 1.5 + 0.75 * _offset(w, s) for s in SAMPLE_STORES}
        for w in SAMPLE_WAREHOUSES
    }


def sample_distances() -> Dict[str, Dict[str, float]]:
    """distance[warehouse][store]: 40 plus 35 per store step away."""
    return {
        w: {s: 40.0 + 35.0 * _offset(w, s) for s in SAMPLE_STORES}
        for w in SAMPLE_WAREHOUSES
    }
