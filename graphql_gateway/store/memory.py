"""
In-memory graph store implementation for testing.

This module provides a GraphStore backend that keeps every graph in process
memory, for:
- Unit tests
- Integration tests
- Local development without a graph database

Invariants:
    - All data is lost on process exit
    - The timestamp of a graph changes on every mutation
    - Traversal programs execute with the semantics the query compiler
      assumes: optional hops yield sentinels with an empty gid, skip/limit
      apply to the whole traveler stream
    - Thread-safe for concurrent access

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the GraphStore protocol
    - New program steps need a handler in _apply_step()
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..query.program import (
    And,
    Count,
    Eq,
    Has,
    HasLabel,
    Limit,
    MarkAlias,
    Or,
    Predicate,
    Render,
    SelectAlias,
    SeedVertices,
    Skip,
    TraversalProgram,
    TraverseOut,
    Within,
    Without,
)
from .base import (
    Edge,
    EdgeSchema,
    ElementNotFoundError,
    GraphNotFoundError,
    SchemaDocument,
    StoreError,
    Vertex,
    VertexSchema,
)

logger = logging.getLogger(__name__)


def sample_value(value: Any) -> Any:
    """Describe a stored property value as a schema sample.

    Returns None for values that cannot be described (None, empty lists).
    """
    if isinstance(value, bool):
        return "BOOL"
    if isinstance(value, (int, float)):
        return "NUMERIC"
    if isinstance(value, str):
        return "STRING"
    if isinstance(value, Mapping):
        nested = {k: sample_value(v) for k, v in value.items()}
        return {k: v for k, v in nested.items() if v is not None}
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        item = sample_value(value[0])
        return [item] if item is not None else None
    return None


@dataclass
class _Graph:
    vertices: dict[str, Vertex] = field(default_factory=dict)
    edges: dict[str, Edge] = field(default_factory=dict)
    schema: SchemaDocument | None = None
    version: int = 0


@dataclass
class _Traveler:
    """One position in a running traversal; current is None for a sentinel."""

    current: Vertex | None
    marks: dict[str, Vertex | None] = field(default_factory=dict)

    def moved_to(self, vertex: Vertex | None) -> _Traveler:
        return _Traveler(vertex, dict(self.marks))


def _lookup(vertex: Vertex, name: str) -> Any:
    if name == "_gid":
        return vertex.gid
    if name == "_label":
        return vertex.label
    return vertex.data.get(name)


def matches(vertex: Vertex, predicate: Predicate) -> bool:
    """Evaluate a predicate against a vertex."""
    if isinstance(predicate, And):
        return all(matches(vertex, c) for c in predicate.children)
    if isinstance(predicate, Or):
        return any(matches(vertex, c) for c in predicate.children)

    value = _lookup(vertex, predicate.field)
    if isinstance(predicate, Eq):
        if isinstance(value, list) and not isinstance(predicate.value, list):
            return predicate.value in value
        return value == predicate.value
    if isinstance(predicate, (Within, Without)):
        if isinstance(value, list):
            found = any(v in predicate.values for v in value)
        else:
            found = value is not None and value in predicate.values
        return found if isinstance(predicate, Within) else not found
    raise StoreError(f"unsupported predicate: {predicate!r}")


class InMemoryGraphStore:
    """In-memory implementation of GraphStore for testing.

    Thread safety:
        One lock guards all graphs; traversals run on a snapshot taken
        under the lock.

    Example:
        >>> store = InMemoryGraphStore()
        >>> store.add_graph("example")
        >>> store.add_vertex("example", Vertex("p1", "Patient", {"age": 30}))
        >>> store.get_schema("example").vertices[0].properties
        {'age': 'NUMERIC'}
    """

    def __init__(self) -> None:
        self._graphs: dict[str, _Graph] = {}
        self._lock = threading.Lock()
        self._clock = itertools.count(1)

    # --- Graph management ---

    def add_graph(self, graph_id: str) -> None:
        with self._lock:
            if graph_id not in self._graphs:
                self._graphs[graph_id] = _Graph(version=next(self._clock))
                logger.debug(f"Created graph {graph_id}")

    def delete_graph(self, graph_id: str) -> None:
        with self._lock:
            if self._graphs.pop(graph_id, None) is None:
                raise GraphNotFoundError(graph_id)

    def list_graphs(self) -> list[str]:
        with self._lock:
            return sorted(self._graphs)

    def put_schema(self, graph_id: str, document: SchemaDocument | Mapping[str, Any]) -> None:
        """Register an explicit schema document, replacing the sampled one."""
        if not isinstance(document, SchemaDocument):
            document = SchemaDocument.from_dict(document)
        with self._lock:
            graph = self._graph(graph_id)
            graph.schema = document
            self._touch(graph)

    # --- Schema ---

    def get_schema(self, graph_id: str) -> SchemaDocument:
        with self._lock:
            graph = self._graph(graph_id)
            if graph.schema is not None:
                return graph.schema
            return self._sample_schema(graph_id, graph)

    def get_timestamp(self, graph_id: str) -> str:
        with self._lock:
            return str(self._graph(graph_id).version)

    def list_labels(self, graph_id: str) -> dict[str, list[str]]:
        with self._lock:
            graph = self._graph(graph_id)
            return {
                "vertex_labels": sorted({v.label for v in graph.vertices.values()}),
                "edge_labels": sorted({e.label for e in graph.edges.values()}),
            }

    # --- Elements ---

    def add_vertex(self, graph_id: str, vertex: Vertex) -> None:
        with self._lock:
            graph = self._graph(graph_id)
            graph.vertices[vertex.gid] = vertex
            self._touch(graph)

    def get_vertex(self, graph_id: str, gid: str) -> Vertex:
        with self._lock:
            vertex = self._graph(graph_id).vertices.get(gid)
            if vertex is None:
                raise ElementNotFoundError(graph_id, gid)
            return vertex

    def delete_vertex(self, graph_id: str, gid: str) -> None:
        with self._lock:
            graph = self._graph(graph_id)
            if graph.vertices.pop(gid, None) is None:
                raise ElementNotFoundError(graph_id, gid)
            for edge_gid in [
                e.gid for e in graph.edges.values() if gid in (e.from_gid, e.to_gid)
            ]:
                del graph.edges[edge_gid]
            self._touch(graph)

    def add_edge(self, graph_id: str, edge: Edge) -> None:
        with self._lock:
            graph = self._graph(graph_id)
            for gid in (edge.from_gid, edge.to_gid):
                if gid not in graph.vertices:
                    raise ElementNotFoundError(graph_id, gid)
            graph.edges[edge.gid] = edge
            self._touch(graph)

    def get_edge(self, graph_id: str, gid: str) -> Edge:
        with self._lock:
            edge = self._graph(graph_id).edges.get(gid)
            if edge is None:
                raise ElementNotFoundError(graph_id, gid)
            return edge

    def delete_edge(self, graph_id: str, gid: str) -> None:
        with self._lock:
            graph = self._graph(graph_id)
            if graph.edges.pop(gid, None) is None:
                raise ElementNotFoundError(graph_id, gid)
            self._touch(graph)

    # --- Traversals ---

    def run_traversal(
        self, graph_id: str, program: TraversalProgram
    ) -> Iterable[dict[str, Any]]:
        """Execute a traversal program against a snapshot of the graph."""
        with self._lock:
            graph = self._graph(graph_id)
            vertices = dict(graph.vertices)
            edges = list(graph.edges.values())

        out_edges: dict[str, list[Edge]] = {}
        for edge in edges:
            out_edges.setdefault(edge.from_gid, []).append(edge)

        travelers: Iterable[_Traveler] = iter(())
        for step in program.steps:
            if isinstance(step, Render):
                return [self._render(t, step) for t in travelers]
            if isinstance(step, Count):
                return [{step.name: sum(1 for _ in travelers)}]
            travelers = self._apply_step(step, travelers, vertices, out_edges)
        return [{"_gid": t.current.gid if t.current else ""} for t in travelers]

    def _apply_step(
        self,
        step: Any,
        travelers: Iterable[_Traveler],
        vertices: Mapping[str, Vertex],
        out_edges: Mapping[str, list[Edge]],
    ) -> Iterator[_Traveler]:
        if isinstance(step, SeedVertices):
            if step.ids:
                seeds = [vertices[gid] for gid in step.ids if gid in vertices]
            else:
                seeds = list(vertices.values())
            return iter([_Traveler(v) for v in seeds])
        if isinstance(step, HasLabel):
            return (
                t for t in travelers if t.current is None or t.current.label in step.labels
            )
        if isinstance(step, Has):
            return (
                t for t in travelers if t.current is None or matches(t.current, step.predicate)
            )
        if isinstance(step, MarkAlias):
            return self._mark(travelers, step.alias)
        if isinstance(step, SelectAlias):
            return (t.moved_to(t.marks.get(step.alias)) for t in travelers)
        if isinstance(step, TraverseOut):
            return self._out(travelers, step, vertices, out_edges)
        if isinstance(step, Skip):
            return itertools.islice(travelers, step.count, None)
        if isinstance(step, Limit):
            return itertools.islice(travelers, step.count)
        raise StoreError(f"unsupported step: {step!r}")

    @staticmethod
    def _mark(travelers: Iterable[_Traveler], alias: str) -> Iterator[_Traveler]:
        for t in travelers:
            t.marks[alias] = t.current
            yield t

    @staticmethod
    def _out(
        travelers: Iterable[_Traveler],
        step: TraverseOut,
        vertices: Mapping[str, Vertex],
        out_edges: Mapping[str, list[Edge]],
    ) -> Iterator[_Traveler]:
        for t in travelers:
            found = []
            if t.current is not None:
                for edge in out_edges.get(t.current.gid, []):
                    if edge.label != step.edge_label:
                        continue
                    target = vertices.get(edge.to_gid)
                    if target is None:
                        continue
                    if step.destination_label and target.label != step.destination_label:
                        continue
                    found.append(target)
            if found:
                for target in found:
                    yield t.moved_to(target)
            elif step.optional:
                yield t.moved_to(None)

    @staticmethod
    def _render(traveler: _Traveler, step: Render) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for alias in step.aliases:
            vertex = traveler.marks.get(alias)
            record[f"{alias}_gid"] = vertex.gid if vertex is not None else ""
            record[f"{alias}_data"] = dict(vertex.data) if vertex is not None else None
        return record

    # --- Internals ---

    def _graph(self, graph_id: str) -> _Graph:
        graph = self._graphs.get(graph_id)
        if graph is None:
            raise GraphNotFoundError(graph_id)
        return graph

    def _touch(self, graph: _Graph) -> None:
        graph.version = next(self._clock)

    @staticmethod
    def _sample_schema(graph_id: str, graph: _Graph) -> SchemaDocument:
        samples: dict[str, dict[str, Any]] = {}
        for vertex in graph.vertices.values():
            sample = samples.setdefault(vertex.label, {})
            for key, value in vertex.data.items():
                if key in sample:
                    continue
                described = sample_value(value)
                if described is not None:
                    sample[key] = described

        edge_types: dict[tuple, EdgeSchema] = {}
        for edge in graph.edges.values():
            src = graph.vertices.get(edge.from_gid)
            dst = graph.vertices.get(edge.to_gid)
            if src is None or dst is None:
                continue
            key = (edge.label, src.label, dst.label)
            edge_types.setdefault(key, EdgeSchema(edge.label, src.label, dst.label))

        return SchemaDocument(
            graph=graph_id,
            vertices=tuple(VertexSchema(label, props) for label, props in samples.items()),
            edges=tuple(edge_types.values()),
        )
