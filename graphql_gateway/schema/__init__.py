"""
Schema inference and compilation for the GraphQL gateway.

This module turns a graph store's schema document into an executable
GraphQL schema:
- types: Type descriptors (FieldKind, TypeRef, ObjectTypeDef, ...)
- inference: Sample property maps to descriptors
- linker: Edge schemas to relationship fields
- builder: Descriptors to a graphql-core schema (CompiledSchema)
- cache: Per-graph cache with change detection
"""

from .builder import CompiledSchema, build_compiled_schema, count_field_name
from .cache import SchemaCache
from .inference import InferenceResult, infer_object_type, infer_vertex_type
from .linker import link_relationships, relation_field_name
from .types import (
    FieldDef,
    FieldKind,
    ObjectTypeDef,
    RelationField,
    TypeRef,
    ValueShape,
    VertexTypeSchema,
    lower_first,
)

__all__ = [
    "CompiledSchema",
    "build_compiled_schema",
    "count_field_name",
    "SchemaCache",
    "InferenceResult",
    "infer_object_type",
    "infer_vertex_type",
    "link_relationships",
    "relation_field_name",
    "FieldDef",
    "FieldKind",
    "ObjectTypeDef",
    "RelationField",
    "TypeRef",
    "ValueShape",
    "VertexTypeSchema",
    "lower_first",
]
