"""Graph data model for the warehouse/store distribution network.

The graph is bipartite: warehouse nodes on one side, store nodes on the other,
and one edge per lane with non-zero flow. Node positions are only ever changed
by the layout engine, which returns a new graph instead of editing this one.
"""

from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, model_validator


class NodeKind(str, Enum):
    """Side of the bipartite network a node belongs to."""
    WAREHOUSE = "warehouse"
    STORE = "store"


def node_key(kind: NodeKind, entity_id: str) -> str:
    """Graph-wide key of a node (warehouse and store ids may collide)."""
    return f"{NodeKind(kind).value}:{entity_id}"


class GraphNode(BaseModel):
    """
    Network node.

    Attributes:
        id: Warehouse or store identifier
        kind: warehouse or store
        x: Horizontal canvas position
        y: Vertical canvas position
    """
    id: str = Field(..., min_length=1)
    kind: NodeKind
    x: float = 0.0
    y: float = 0.0

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return node_key(self.kind, self.id)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def with_position(self, x: float, y: float) -> "GraphNode":
        return self.model_copy(update={'x': float(x), 'y': float(y)})


class GraphEdge(BaseModel):
    """
    Directed warehouse → store edge.

    Attributes:
        source_id: Warehouse id
        target_id: Store id
        value: Units moved on the lane
    """
    source_id: str
    target_id: str
    value: float = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def source_key(self) -> str:
        return node_key(NodeKind.WAREHOUSE, self.source_id)

    @property
    def target_key(self) -> str:
        return node_key(NodeKind.STORE, self.target_id)


class NetworkGraph(BaseModel):
    """
    Immutable snapshot of the distribution network.

    Nodes are kept in an indexed arena (tuple order) so that layout steps can
    address them by position.
    """
    nodes: Tuple[GraphNode, ...] = Field(default_factory=tuple)
    edges: Tuple[GraphEdge, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_references(self):
        """Validate unique node keys and that every edge joins existing nodes."""
        keys = set()
        for node in self.nodes:
            if node.key in keys:
                raise ValueError(f"Duplicate node: {node.key}")
            keys.add(node.key)

        for edge in self.edges:
            if edge.source_key not in keys:
                raise ValueError(f"Edge references non-existent warehouse: {edge.source_id}")
            if edge.target_key not in keys:
                raise ValueError(f"Edge references non-existent store: {edge.target_id}")
        return self

    def node_index(self) -> Dict[str, int]:
        """Map node key → arena index."""
        return {node.key: i for i, node in enumerate(self.nodes)}

    def node(self, kind: NodeKind, entity_id: str) -> Optional[GraphNode]:
        key = node_key(kind, entity_id)
        for node in self.nodes:
            if node.key == key:
                return node
        return None

    def warehouses(self) -> List[GraphNode]:
        return [n for n in self.nodes if n.kind == NodeKind.WAREHOUSE]

    def stores(self) -> List[GraphNode]:
        return [n for n in self.nodes if n.kind == NodeKind.STORE]

    def positions(self) -> Dict[str, Tuple[float, float]]:
        """Map node key → (x, y)."""
        return {node.key: node.position for node in self.nodes}

    def total_flow(self) -> float:
        return sum(edge.value for edge in self.edges)

    def with_positions(self, positions: Mapping[str, Tuple[float, float]]) -> "NetworkGraph":
        """
        Return a copy of the graph with node positions replaced.

        Args:
            positions: node key → (x, y); nodes not listed keep their position

        Returns:
            New NetworkGraph (this graph is unchanged)
        """
        nodes = tuple(
            node.with_position(*positions[node.key]) if node.key in positions else node
            for node in self.nodes
        )
        return NetworkGraph(nodes=nodes, edges=self.edges)

    def to_networkx(self) -> nx.DiGraph:
        """
        Export as a NetworkX directed graph.

        Nodes are keyed by node key and carry ``entity_id``, ``kind``, ``x``, ``y``;
        edges carry ``value``.
        """
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.key, entity_id=node.id, kind=node.kind.value, x=node.x, y=node.y)
        for edge in self.edges:
            graph.add_edge(edge.source_key, edge.target_key, value=edge.value)
        return graph
