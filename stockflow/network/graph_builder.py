"""
Network graph builder for the distribution network.

Builds the bipartite warehouse/store graph from an optimized Assignment: one
node per unique warehouse and store id observed in the input, one edge per lane
with non-zero flow.
"""

import logging
from collections import OrderedDict
from typing import Iterable, List, Optional, Sequence, Tuple

from stockflow.models.assignment import Assignment
from stockflow.models.inventory import EOQRecord, InventoryRecord
from stockflow.models.network_graph import GraphEdge, GraphNode, NetworkGraph, NodeKind

logger = logging.getLogger(__name__)


def build_graph(
    assignment: Assignment,
    records: Optional[Sequence[InventoryRecord]] = None,
) -> NetworkGraph:
    """
    Build the network graph of an assignment.

    Args:
        assignment: Optimized lane quantities
        records: Input records; their warehouses and stores become nodes even
            when no flow reaches them

    Returns:
        NetworkGraph with warehouse nodes first, then store nodes, each in order
        of first appearance (records before assignment). Positions are (0, 0)
        until the layout engine places them.
    """
    edges = [
        GraphEdge(source_id=entry.warehouse_id, target_id=entry.store_id, value=entry.quantity)
        for entry in assignment.entries
        if entry.quantity > 0
    ]
    lanes = [(r.warehouse_id, r.store_id) for r in records or ()]
    lanes += [(edge.source_id, edge.target_id) for edge in edges]

    graph = NetworkGraph(nodes=_nodes(lanes), edges=tuple(edges))
    logger.info(
        f"Built network graph: {len(graph.warehouses())} warehouses, "
        f"{len(graph.stores())} stores, {len(graph.edges)} edges"
    )
    return graph


def build_graph_from_records(records: Sequence[EOQRecord]) -> NetworkGraph:
    """
    Build a graph straight from EOQ records, without optimization.

    Each (warehouse, store) pair observed in the records becomes one edge whose
    value is the sum of the EOQs of that pair's records.
    """
    flows: "OrderedDict[Tuple[str, str], float]" = OrderedDict()
    for record in records:
        lane = (record.warehouse_id, record.store_id)
        flows[lane] = flows.get(lane, 0.0) + record.eoq

    edges = tuple(
        GraphEdge(source_id=w, target_id=s, value=value)
        for (w, s), value in flows.items()
        if value > 0
    )
    return NetworkGraph(nodes=_nodes(flows.keys()), edges=edges)


def _nodes(lanes: Iterable[Tuple[str, str]]) -> Tuple[GraphNode, ...]:
    warehouses: List[str] = []
    stores: List[str] = []
    for warehouse_id, store_id in lanes:
        if warehouse_id not in warehouses:
            warehouses.append(warehouse_id)
        if store_id not in stores:
            stores.append(store_id)

    return tuple(
        [GraphNode(id=w, kind=NodeKind.WAREHOUSE) for w in warehouses]
        + [GraphNode(id=s, kind=NodeKind.STORE) for s in stores]
    )
