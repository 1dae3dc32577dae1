"""
Compiled schemas: descriptors materialized as a graphql-core schema.

Building happens in two passes:
    1. Infer a descriptor tree for every vertex label and link relationship
       fields between them (inference.py, linker.py)
    2. Materialize the descriptors as GraphQLObjectTypes and a Query root
       with one list field and one count field per vertex type

The result is a CompiledSchema: an immutable snapshot shared by all requests
for a graph until the next rebuild replaces it.

Invariants:
    - A CompiledSchema never changes after construction
    - Resolvers read request state from the RequestContext only
    - Relationship fields are always list-typed

How to change safely:
    - New root arguments must be added to RESERVED_ARGS in the compiler if
      they are not equality filters
    - Keep the count field naming (_<name>_count) stable for clients
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLFloat,
    GraphQLInt,
    GraphQLList,
    GraphQLObjectType,
    GraphQLOutputType,
    GraphQLResolveInfo,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLString,
    validate_schema,
    value_from_ast_untyped,
)

from ..errors import SchemaBuildError
from ..query.compiler import (
    ARG_ACCESS,
    ARG_FILTER,
    ARG_ID,
    ARG_IDS,
    ARG_LIMIT,
    ARG_OFFSET,
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    RESERVED_ARGS,
    Accessibility,
    QueryArguments,
    QueryCompiler,
)
from ..query.render import reconstruct
from ..store.base import SchemaDocument
from .inference import infer_vertex_type
from .linker import link_relationships
from .types import (
    FieldKind,
    ObjectTypeDef,
    RelationField,
    TypeRef,
    VertexTypeSchema,
    lower_first,
)

logger = logging.getLogger(__name__)

MAPPING_FIELD = "_mapping"

JSONScalar = GraphQLScalarType(
    name="JSON",
    description="Arbitrary JSON value",
    serialize=lambda value: value,
    parse_value=lambda value: value,
    parse_literal=lambda node, variables=None: value_from_ast_untyped(node, variables),
)

AccessibilityEnum = GraphQLEnumType(
    "Accessibility",
    {a.value: GraphQLEnumValue(a) for a in Accessibility},
)

PRIMITIVE_TYPES = {
    FieldKind.NUMERIC: GraphQLFloat,
    FieldKind.STRING: GraphQLString,
    FieldKind.BOOL: GraphQLBoolean,
    FieldKind.STRING_LIST: GraphQLList(GraphQLString),
}

# Equality arguments accept one value or a list of accepted values
ARGUMENT_TYPES = {
    FieldKind.NUMERIC: GraphQLList(GraphQLFloat),
    FieldKind.STRING: GraphQLList(GraphQLString),
    FieldKind.BOOL: GraphQLList(GraphQLBoolean),
    FieldKind.STRING_LIST: GraphQLList(GraphQLString),
}


def count_field_name(vertex_name: str) -> str:
    return f"_{vertex_name}_count"


@dataclass(frozen=True)
class CompiledSchema:
    """Immutable compiled schema of one graph.

    Attributes:
        version: Store schema timestamp the schema was built from
        scope: Authorization scope in effect when it was built
        vertex_types: Vertex types keyed by GraphQL name
        relations: Relationship fields keyed by vertex name then field name
        graphql_schema: Executable graphql-core schema
        warnings: Build errors recovered while inferring types
    """

    version: str
    scope: frozenset[str]
    vertex_types: Mapping[str, VertexTypeSchema]
    relations: Mapping[str, Mapping[str, RelationField]]
    graphql_schema: GraphQLSchema
    warnings: tuple[SchemaBuildError, ...] = field(default_factory=tuple)

    @property
    def types(self) -> dict[str, GraphQLObjectType]:
        """GraphQL object type of every vertex label, keyed by name."""
        return {
            name: self.graphql_schema.get_type(vertex.object_type.name)
            for name, vertex in self.vertex_types.items()
        }

    def vertex(self, name: str) -> VertexTypeSchema:
        """Get a vertex type by GraphQL name.

        Raises:
            KeyError: If no such vertex type exists
        """
        return self.vertex_types[name]

    def vertex_for_label(self, label: str) -> VertexTypeSchema:
        return self.vertex_types[lower_first(label)]

    def relation(self, vertex_name: str, field_name: str) -> RelationField | None:
        return self.relations.get(vertex_name, {}).get(field_name)

    def field_mapping(self) -> dict[str, list[str]]:
        """Field names available on every vertex type, relationships last."""
        return {
            name: vertex.object_type.field_names() + list(self.relations.get(name, {}))
            for name, vertex in sorted(self.vertex_types.items())
        }


class _TypeMaterializer:
    """Second pass: turns descriptors into graphql-core types."""

    def __init__(self) -> None:
        self._objects: dict[str, GraphQLObjectType] = {}
        self._descriptors: dict[str, ObjectTypeDef] = {}
        self._vertices: set[str] = set()

    def output_type(self, ref: TypeRef) -> GraphQLOutputType:
        if ref.kind == FieldKind.NESTED_OBJECT:
            return self.object_type(ref.object_type)
        if ref.kind == FieldKind.NESTED_LIST:
            return GraphQLList(self.output_type(ref.item))
        return PRIMITIVE_TYPES[ref.kind]

    def object_type(self, obj: ObjectTypeDef, extra_fields=None) -> GraphQLObjectType:
        if obj.name in self._objects:
            # Only equal nested descriptors may share a type; vertex types never do
            known = self._descriptors[obj.name]
            if known != obj or obj.name in self._vertices:
                raise TypeError(
                    f"Duplicate GraphQL type name '{obj.name}': "
                    f"fields {known.field_names()} and {obj.field_names()}"
                )
            return self._objects[obj.name]

        def fields() -> dict[str, GraphQLField]:
            result = {f.name: GraphQLField(self.output_type(f.type)) for f in obj.fields}
            if extra_fields is not None:
                result.update(extra_fields())
            return result

        gql_type = GraphQLObjectType(obj.name, fields)
        self._objects[obj.name] = gql_type
        self._descriptors[obj.name] = obj
        if extra_fields is not None:
            self._vertices.add(obj.name)
        return gql_type


def _root_arguments(
    vertex: VertexTypeSchema, default_limit: int, default_offset: int, paging: bool = True
) -> dict[str, GraphQLArgument]:
    args: dict[str, GraphQLArgument] = {}
    if paging:
        args[ARG_ID] = GraphQLArgument(GraphQLString)
        args[ARG_IDS] = GraphQLArgument(GraphQLList(GraphQLString))
        args[ARG_LIMIT] = GraphQLArgument(GraphQLInt, default_value=default_limit)
        args[ARG_OFFSET] = GraphQLArgument(GraphQLInt, default_value=default_offset)
    args[ARG_ACCESS] = GraphQLArgument(AccessibilityEnum, default_value=Accessibility.ALL)
    args[ARG_FILTER] = GraphQLArgument(JSONScalar)
    for f in vertex.scalar_fields():
        if f.name in RESERVED_ARGS:
            continue
        args[f.name] = GraphQLArgument(ARGUMENT_TYPES[f.kind])
    return args


def _normalize_equality(args: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in args.items():
        if key not in RESERVED_ARGS and isinstance(value, list) and len(value) == 1:
            value = value[0]
        out[key] = value
    return out


def _list_resolver(vertex_name: str):
    def resolve(_root: Any, info: GraphQLResolveInfo, **args: Any) -> list[dict[str, Any]]:
        ctx = info.context
        compiler = QueryCompiler(ctx.schema, ctx.resource_field)
        compiled = compiler.compile(
            vertex_name,
            QueryArguments.from_args(_normalize_equality(args)),
            info.field_nodes,
            info.fragments,
            ctx.scope,
        )
        records = ctx.run(compiled.program)
        return reconstruct(records, compiled.render_tree)

    return resolve


def _count_resolver(vertex_name: str):
    name = count_field_name(vertex_name)

    def resolve(_root: Any, info: GraphQLResolveInfo, **args: Any) -> int:
        ctx = info.context
        compiler = QueryCompiler(ctx.schema, ctx.resource_field)
        program = compiler.compile_count(
            vertex_name,
            QueryArguments.from_args(_normalize_equality(args)),
            name,
            ctx.scope,
        )
        records = ctx.run(program)
        if not records:
            return 0
        return int(records[-1].get(name, 0))

    return resolve


def _mapping_resolver(_root: Any, info: GraphQLResolveInfo) -> dict[str, list[str]]:
    return info.context.schema.field_mapping()


def build_compiled_schema(
    document: SchemaDocument,
    version: str = "",
    scope: frozenset[str] = frozenset(),
    default_limit: int = DEFAULT_LIMIT,
    default_offset: int = DEFAULT_OFFSET,
) -> CompiledSchema:
    """Build a compiled schema from a store schema document.

    Args:
        document: Schema document from the graph store
        version: Store timestamp the document corresponds to
        scope: Authorization scope the build is made for
        default_limit: Default of the `first` argument
        default_offset: Default of the `offset` argument

    Returns:
        A new CompiledSchema

    Raises:
        TypeError: If graphql-core rejects the resulting type system
            (e.g. two inferred types share a name)
    """
    warnings: list[SchemaBuildError] = []

    # Pass 1: descriptors
    vertex_types: dict[str, VertexTypeSchema] = {}
    for entry in document.vertices:
        try:
            vertex, field_warnings = infer_vertex_type(entry.label, entry.properties)
        except SchemaBuildError as e:
            logger.warning(f"graphql: excluding vertex type '{entry.label}': {e.message}")
            warnings.append(e)
            continue
        warnings.extend(field_warnings)
        if vertex.name in vertex_types:
            logger.warning(f"graphql: duplicate vertex type '{entry.label}', keeping the last")
        vertex_types[vertex.name] = vertex

    relations = link_relationships(vertex_types, document.edges)

    # Pass 2: graphql-core types
    materializer = _TypeMaterializer()
    objects: dict[str, GraphQLObjectType] = {}

    def relation_fields(name: str):
        def thunk() -> dict[str, GraphQLField]:
            return {
                fname: GraphQLField(GraphQLList(objects[lower_first(rel.destination_label)]))
                for fname, rel in relations.get(name, {}).items()
            }

        return thunk

    for name, vertex in vertex_types.items():
        objects[name] = materializer.object_type(vertex.object_type, relation_fields(name))

    query_fields: dict[str, GraphQLField] = {}
    for name, vertex in vertex_types.items():
        query_fields[name] = GraphQLField(
            GraphQLList(objects[name]),
            args=_root_arguments(vertex, default_limit, default_offset),
            resolve=_list_resolver(name),
        )
        query_fields[count_field_name(name)] = GraphQLField(
            GraphQLInt,
            args=_root_arguments(vertex, default_limit, default_offset, paging=False),
            resolve=_count_resolver(name),
        )
    query_fields[MAPPING_FIELD] = GraphQLField(JSONScalar, resolve=_mapping_resolver)

    gql_schema = GraphQLSchema(query=GraphQLObjectType("Query", query_fields))
    errors = validate_schema(gql_schema)
    if errors:
        raise TypeError(f"graphql.NewSchema error: {'; '.join(e.message for e in errors)}")

    logger.info(
        f"Built GraphQL schema for graph {document.graph}: "
        f"{len(vertex_types)} vertex types, "
        f"{sum(len(r) for r in relations.values())} relationship fields, "
        f"{len(warnings)} dropped fields"
    )
    return CompiledSchema(
        version=version,
        scope=frozenset(scope),
        vertex_types=MappingProxyType(dict(vertex_types)),
        relations=MappingProxyType({k: MappingProxyType(v) for k, v in relations.items()}),
        graphql_schema=gql_schema,
        warnings=tuple(warnings),
    )
