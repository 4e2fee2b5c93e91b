"""Demo data and file loaders."""

from .file_loader import load_capacities, load_lane_matrix
from .sample_data import (
    SAMPLE_CAPACITIES,
    SAMPLE_ROWS,
    SAMPLE_STORES,
    SAMPLE_WAREHOUSES,
    sample_cost_matrix,
    sample_distances,
    sample_rows,
)

__all__ = [
    "SAMPLE_CAPACITIES",
    "SAMPLE_ROWS",
    "SAMPLE_STORES",
    "SAMPLE_WAREHOUSES",
    "load_capacities",
    "load_lane_matrix",
    "sample_cost_matrix",
    "sample_distances",
    "sample_rows",
]
