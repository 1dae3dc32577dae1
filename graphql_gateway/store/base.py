"""
Base protocol and types for the graph store collaborator.

The gateway never talks to a storage engine directly. Everything it needs
from the graph database goes through the GraphStore protocol defined here:
schema documents, schema timestamps and traversal execution. The CRUD
operations are part of the protocol for completeness of the collaborator
boundary; the query compiler itself only uses the first three.

Invariants:
    - get_timestamp() changes whenever the graph's schema may have changed
    - run_traversal() yields one flat record per traversal result
    - Records carry <alias>_gid / <alias>_data pairs for every rendered alias;
      an optional hop that matched nothing yields an empty gid, not a
      missing key
    - Count programs yield records carrying the count under the step's name

How to change safely:
    - Protocol changes require updating all implementations
    - Keep record keys stable; the result reconstructor depends on them
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..query.program import TraversalProgram

logger = logging.getLogger(__name__)

SCHEMA_VERTEX_LABEL = "Vertex"


class StoreError(Exception):
    """Base exception for graph store operations."""
    pass


class GraphNotFoundError(StoreError):
    """The requested graph does not exist."""

    def __init__(self, graph_id: str) -> None:
        super().__init__(f"graph not found: {graph_id}")
        self.graph_id = graph_id


class ElementNotFoundError(StoreError):
    """The requested vertex or edge does not exist."""

    def __init__(self, graph_id: str, gid: str) -> None:
        super().__init__(f"element not found: {graph_id}/{gid}")
        self.graph_id = graph_id
        self.gid = gid


@dataclass(frozen=True)
class VertexSchema:
    """Schema entry of one vertex label.

    Attributes:
        label: Vertex label as stored
        properties: Sample property map (type tags, nested maps, lists)
    """

    label: str
    properties: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class EdgeSchema:
    """Schema entry of one edge label between two vertex labels."""

    label: str
    from_label: str
    to_label: str


@dataclass(frozen=True)
class SchemaDocument:
    """The store's description of a graph's vertex and edge types.

    Example:
        >>> doc = SchemaDocument.from_dict({
        ...     "graph": "g",
        ...     "vertices": [{"gid": "Patient", "label": "Vertex", "data": {"age": "NUMERIC"}}],
        ...     "edges": [],
        ... })
        >>> doc.vertices[0].label
        'Patient'
    """

    graph: str
    vertices: tuple[VertexSchema, ...] = ()
    edges: tuple[EdgeSchema, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaDocument:
        """Create from the store's JSON schema graph.

        Vertex entries are the type entries of the schema graph: their gid is
        the described label and their data the sample property map. Entries
        with a label other than "Vertex" are ignored.
        """
        vertices = []
        for entry in data.get("vertices", []):
            if entry.get("label", SCHEMA_VERTEX_LABEL) != SCHEMA_VERTEX_LABEL:
                continue
            vertices.append(VertexSchema(label=entry["gid"], properties=entry.get("data")))
        edges = [
            EdgeSchema(label=entry["label"], from_label=entry["from"], to_label=entry["to"])
            for entry in data.get("edges", [])
        ]
        return cls(graph=data.get("graph", ""), vertices=tuple(vertices), edges=tuple(edges))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the store's JSON schema graph."""
        return {
            "graph": self.graph,
            "vertices": [
                {"gid": v.label, "label": SCHEMA_VERTEX_LABEL, "data": dict(v.properties or {})}
                for v in self.vertices
            ],
            "edges": [
                {
                    "gid": f"({e.from_label})--{e.label}->({e.to_label})",
                    "label": e.label,
                    "from": e.from_label,
                    "to": e.to_label,
                }
                for e in self.edges
            ],
        }


@dataclass
class Vertex:
    """A stored vertex."""

    gid: str
    label: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class Edge:
    """A stored directed edge."""

    gid: str
    label: str
    from_gid: str
    to_gid: str
    data: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class GraphStore(Protocol):
    """Protocol for graph store backends.

    Implementations are called from request worker threads and must be safe
    for concurrent use.
    """

    def get_schema(self, graph_id: str) -> SchemaDocument:
        """Return the schema document of a graph.

        Raises:
            StoreError: If the schema cannot be produced
        """
        ...

    def get_timestamp(self, graph_id: str) -> str:
        """Return the marker of the graph's last mutation."""
        ...

    def run_traversal(
        self, graph_id: str, program: TraversalProgram
    ) -> Iterable[dict[str, Any]]:
        """Execute a traversal program and return its flat records.

        Raises:
            StoreError: If execution fails
        """
        ...

    def add_vertex(self, graph_id: str, vertex: Vertex) -> None:
        ...

    def get_vertex(self, graph_id: str, gid: str) -> Vertex:
        ...

    def delete_vertex(self, graph_id: str, gid: str) -> None:
        ...

    def add_edge(self, graph_id: str, edge: Edge) -> None:
        ...

    def get_edge(self, graph_id: str, gid: str) -> Edge:
        ...

    def delete_edge(self, graph_id: str, gid: str) -> None:
        ...

    def list_labels(self, graph_id: str) -> dict[str, list[str]]:
        """Return {"vertex_labels": [...], "edge_labels": [...]}."""
        ...

    def add_graph(self, graph_id: str) -> None:
        ...

    def delete_graph(self, graph_id: str) -> None:
        ...

    def list_graphs(self) -> list[str]:
        ...
