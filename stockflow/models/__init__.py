"""Data models for the inventory planning engine."""

from .inventory import InventoryRecord, EOQRecord
from .assignment import Assignment, AssignmentEntry
from .optimization_result import FeasibilityStatus, OptimizationResult
from .network_graph import NodeKind, GraphNode, GraphEdge, NetworkGraph, node_key

__all__ = [
    # Inventory
    "InventoryRecord",
    "EOQRecord",
    # Distribution
    "Assignment",
    "AssignmentEntry",
    "FeasibilityStatus",
    "OptimizationResult",
    # Network graph
    "NodeKind",
    "GraphNode",
    "GraphEdge",
    "NetworkGraph",
    "node_key",
]
