"""Pytest configuration and shared fixtures."""

import pytest

from stockflow.data import SAMPLE_CAPACITIES, sample_cost_matrix, sample_rows
from stockflow.eoq import EOQEngine
from stockflow.models import InventoryRecord
from stockflow.optimization import DistributionOptimizer, TransportationProblem
from stockflow.validation import RecordValidator


@pytest.fixture
def valid_row():
    """Fixture for a well-formed raw row (EOQ 110)."""
    return {
        "item_id": "ITM001",
        "store_id": "ST001",
        "warehouse_id": "WH001",
        "demand": 1200,
        "order_cost": 25,
        "holding_cost": 5,
        "inventory_level": 150,
    }


@pytest.fixture
def record(valid_row):
    """Fixture for a validated inventory record."""
    return InventoryRecord(**valid_row)


@pytest.fixture
def raw_rows():
    """Fixture for the built-in sample rows."""
    return sample_rows()


@pytest.fixture
def records(raw_rows):
    """Fixture for the validated sample records."""
    return RecordValidator().validate(raw_rows).records


@pytest.fixture
def eoq_records(records):
    """Fixture for the sample records enriched with EOQ."""
    return EOQEngine().compute(records)


@pytest.fixture
def sample_capacities():
    return dict(SAMPLE_CAPACITIES)


@pytest.fixture
def sample_costs():
    return sample_cost_matrix()


@pytest.fixture
def two_by_two_problem():
    """Fixture for the 2×2 problem with optimal cost 620 (W1→S1 80, W2→S2 100)."""
    return TransportationProblem.from_lists(
        capacities=[100, 100],
        demands=[80, 100],
        cost_matrix=[[4, 6], [8, 3]],
    )


@pytest.fixture
def classic_problem():
    """Fixture for the textbook 3×4 problem (VAM start, optimal cost 743)."""
    return TransportationProblem.from_lists(
        capacities=[7, 9, 18],
        demands=[5, 8, 7, 14],
        cost_matrix=[
            [19, 30, 50, 10],
            [70, 30, 40, 60],
            [40, 8, 70, 20],
        ],
    )


@pytest.fixture
def optimizer():
    return DistributionOptimizer()
