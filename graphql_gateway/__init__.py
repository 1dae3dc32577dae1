"""
GraphQL gateway over a property graph.

Infers a GraphQL schema from a graph store's schema document, compiles each
GraphQL query into a single traversal program and rebuilds nested results
from the flat records the store returns.

Example:
    >>> from graphql_gateway import GraphQLService, InMemoryGraphStore
    >>> service = GraphQLService(store, scope_cache)
    >>> service.query("example", "Bearer abc", "{ patient(first: 2) { id age } }")
    {'data': {'patient': [...]}}
"""

from ._version import __version__
from .auth import AuthorizationClient, AuthScopeCache
from .config import GatewayConfig
from .context import RequestContext
from .errors import (
    AuthorizationFetchError,
    EmptyObjectType,
    EmptySliceType,
    GatewayError,
    InvalidFilterState,
    SchemaBuildError,
    SchemaUnavailable,
    StoreExecutionError,
    UnsupportedFieldType,
)
from .schema import CompiledSchema, SchemaCache, build_compiled_schema
from .service import GraphQLService
from .store import GraphStore, InMemoryGraphStore, SchemaDocument

__all__ = [
    "__version__",
    "AuthorizationClient",
    "AuthScopeCache",
    "GatewayConfig",
    "RequestContext",
    "AuthorizationFetchError",
    "EmptyObjectType",
    "EmptySliceType",
    "GatewayError",
    "InvalidFilterState",
    "SchemaBuildError",
    "SchemaUnavailable",
    "StoreExecutionError",
    "UnsupportedFieldType",
    "CompiledSchema",
    "SchemaCache",
    "build_compiled_schema",
    "GraphQLService",
    "GraphStore",
    "InMemoryGraphStore",
    "SchemaDocument",
]
