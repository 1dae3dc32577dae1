"""
Graph store collaborator for the GraphQL gateway.

This module defines the boundary to the graph database:
- GraphStore: Protocol every backend implements
- SchemaDocument / VertexSchema / EdgeSchema: Schema documents
- Vertex / Edge: Stored elements
- InMemoryGraphStore: In-memory backend for tests and local development
"""

from .base import (
    SCHEMA_VERTEX_LABEL,
    Edge,
    EdgeSchema,
    ElementNotFoundError,
    GraphNotFoundError,
    GraphStore,
    SchemaDocument,
    StoreError,
    Vertex,
    VertexSchema,
)
from .memory import InMemoryGraphStore, sample_value

__all__ = [
    "SCHEMA_VERTEX_LABEL",
    "Edge",
    "EdgeSchema",
    "ElementNotFoundError",
    "GraphNotFoundError",
    "GraphStore",
    "SchemaDocument",
    "StoreError",
    "Vertex",
    "VertexSchema",
    "InMemoryGraphStore",
    "sample_value",
]
