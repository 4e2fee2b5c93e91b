"""Distribution network graph construction and layout."""

from .graph_builder import build_graph, build_graph_from_records
from .layout import (
    LayoutConfig,
    LayoutResult,
    LayoutSnapshot,
    LayoutTermination,
    NetworkLayoutEngine,
)

__all__ = [
    "build_graph",
    "build_graph_from_records",
    "LayoutConfig",
    "LayoutResult",
    "LayoutSnapshot",
    "LayoutTermination",
    "NetworkLayoutEngine",
]
