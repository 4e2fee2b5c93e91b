"""Economic Order Quantity computation and sensitivity analysis.

Key components:
- EOQEngine: per-record EOQ, cost at a given order quantity, cost curves
- SensitivityAnalyzer: EOQ surface over a demand × order cost grid
"""

from .calculator import (
    CostPoint,
    EOQEngine,
    ItemEOQSummary,
    raw_eoq,
    round_half_even,
)
from .sensitivity import (
    ScenarioRecord,
    SensitivityAnalyzer,
    SensitivityGridConfig,
    SensitivityPoint,
    SensitivitySurface,
    percent_range,
)

__all__ = [
    "CostPoint",
    "EOQEngine",
    "ItemEOQSummary",
    "raw_eoq",
    "round_half_even",
    "ScenarioRecord",
    "SensitivityAnalyzer",
    "SensitivityGridConfig",
    "SensitivityPoint",
    "SensitivitySurface",
    "percent_range",
]
