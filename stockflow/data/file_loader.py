"""Loaders for warehouse capacities and lane matrices stored in CSV or JSON files.

Capacities:
    - CSV: columns ``warehouse_id, capacity``; a blank capacity means unconstrained
    - JSON: ``{"WH001": 900, "WH004": null}``

Lane matrices (unit costs or distances):
    - CSV: one row per warehouse, first column ``warehouse_id``, one column per
      store; blank cells are lanes that do not exist
    - JSON: ``{"WH001": {"ST001": 2.5, ...}, ...}``
"""

import json
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from stockflow.exceptions import InvalidInput

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_capacities(path: PathLike) -> Dict[str, Optional[float]]:
    """
    Load warehouse capacities from a CSV or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidInput: If the file has the wrong shape or a non-numeric capacity
    """
    path = _existing(path)
    if path.suffix.lower() == ".json":
        raw = _read_json(path, field='capacities')
        capacities = {str(w): _number(c, f"capacity of {w}", 'capacities', allow_none=True)
                      for w, c in raw.items()}
    else:
        frame = pd.read_csv(path, dtype={"warehouse_id": str})
        missing = {"warehouse_id", "capacity"} - set(frame.columns)
        if missing:
            raise InvalidInput(
                f"{path.name} is missing column(s): {', '.join(sorted(missing))}",
                field='capacities',
            )
        capacities = {}
        for row_index, row in enumerate(frame.itertuples(index=False)):
            warehouse_id = str(row.warehouse_id).strip()
            if warehouse_id in capacities:
                raise InvalidInput(f"Duplicate warehouse {warehouse_id} in {path.name}",
                                   field='capacities', record_index=row_index)
            capacities[warehouse_id] = _number(row.capacity, f"capacity of {warehouse_id}", 'capacities',
                                               allow_none=True)

    logger.info(f"Loaded capacities for {len(capacities)} warehouses from {path.name}")
    return capacities


def load_lane_matrix(path: PathLike, field: str = 'cost_matrix') -> Dict[str, Dict[str, float]]:
    """
    Load a warehouse → store matrix (costs or distances) from a CSV or JSON file.

    Args:
        path: CSV or JSON file
        field: Name reported on InvalidInput

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidInput: If the file has the wrong shape or a non-numeric cell
    """
    path = _existing(path)
    matrix: Dict[str, Dict[str, float]] = {}
    if path.suffix.lower() == ".json":
        raw = _read_json(path, field=field)
        for warehouse_id, row in raw.items():
            if not isinstance(row, dict):
                raise InvalidInput(f"Row of {warehouse_id} in {path.name} must be an object", field=field)
            matrix[str(warehouse_id)] = {
                str(s): _number(v, f"{warehouse_id} → {s}", field) for s, v in row.items()
            }
    else:
        frame = pd.read_csv(path, dtype={"warehouse_id": str})
        if "warehouse_id" not in frame.columns:
            raise InvalidInput(f"{path.name} is missing column: warehouse_id", field=field)
        frame = frame.set_index("warehouse_id")
        if frame.index.duplicated().any():
            raise InvalidInput(f"Duplicate warehouse rows in {path.name}", field=field)
        for warehouse_id, row in frame.iterrows():
            # blank cells are absent lanes
            matrix[str(warehouse_id).strip()] = {
                str(s).strip(): _number(v, f"{warehouse_id} → {s}", field)
                for s, v in row.items() if not pd.isna(v)
            }

    logger.info(f"Loaded {sum(len(r) for r in matrix.values())} lanes from {path.name}")
    return matrix


def _existing(path: PathLike) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path


def _read_json(path: Path, field: str) -> dict:
    with open(path) as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInput(f"{path.name} is not valid JSON: {e}", field=field) from e
    if not isinstance(raw, dict):
        raise InvalidInput(f"{path.name} must contain a JSON object", field=field)
    return raw


def _number(value, label: str, field: str, allow_none: bool = False) -> Optional[float]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        if allow_none:
            return None
        raise InvalidInput(f"{label} is missing", field=field)
    if isinstance(value, bool):
        raise InvalidInput(f"{label} must be a number, got {value!r}", field=field)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{label} must be a number, got {value!r}", field=field) from e
