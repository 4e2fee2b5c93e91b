"""Result aggregation: warehouse, store and network summaries."""

from .cost_breakdown import AggregateReport, GraphSummary, StoreSummary, WarehouseSummary
from .result_aggregator import ResultAggregator

__all__ = [
    "AggregateReport",
    "GraphSummary",
    "StoreSummary",
    "WarehouseSummary",
    "ResultAggregator",
]
