"""
GraphQL query service.

The single entry point of the gateway core: resolve the caller's scope,
resolve the graph's compiled schema, execute the query.

    service = GraphQLService(store, scope_cache)
    result = service.query("example", "Bearer abc", "{ patient { id } }")

Invariants:
    - SchemaUnavailable propagates to the caller; every other execution
      error is reported in the GraphQL "errors" list
    - The compiled schema is shared; request state lives in RequestContext
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from graphql import graphql_sync

from .auth.scope_cache import AuthScopeCache
from .config import QueryConfig
from .context import RequestContext
from .schema.cache import SchemaCache
from .store.base import GraphStore

logger = logging.getLogger(__name__)


class GraphQLService:
    """Executes GraphQL queries against graphs of a store.

    Args:
        store: Graph store holding the graphs
        scope_cache: Authorization scope cache
        query_config: Paging defaults and resource field
        schema_cache: Optional pre-built schema cache (one is created
            from the store otherwise)
    """

    def __init__(
        self,
        store: GraphStore,
        scope_cache: AuthScopeCache,
        query_config: Optional[QueryConfig] = None,
        schema_cache: Optional[SchemaCache] = None,
    ) -> None:
        self.store = store
        self.scope_cache = scope_cache
        self.query_config = query_config or QueryConfig()
        self.schema_cache = schema_cache or SchemaCache(
            store,
            default_limit=self.query_config.default_limit,
            default_offset=self.query_config.default_offset,
        )

    def _context(self, graph_id: str, credential: str | None) -> RequestContext:
        scope = self.scope_cache.lookup(credential)
        schema = self.schema_cache.resolve(graph_id, scope)
        return RequestContext(
            graph_id=graph_id,
            store=self.store,
            schema=schema,
            scope=scope,
            resource_field=self.query_config.resource_field,
        )

    def query(
        self,
        graph_id: str,
        credential: str | None,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query.

        Args:
            graph_id: Graph to query
            credential: Caller credential forwarded to the authorization service
            query: GraphQL document
            variables: Variable values
            operation_name: Operation to run when the document has several

        Returns:
            {"data": ...} plus "errors" when any field failed

        Raises:
            SchemaUnavailable: If no schema could be built for the graph
        """
        ctx = self._context(graph_id, credential)
        result = graphql_sync(
            ctx.schema.graphql_schema,
            query,
            context_value=ctx,
            variable_values=variables,
            operation_name=operation_name,
        )
        if result.errors:
            logger.info(
                f"GraphQL query on graph {graph_id} finished with {len(result.errors)} errors",
                extra={"graph": graph_id},
            )
        response: dict[str, Any] = {"data": result.data}
        if result.errors:
            response["errors"] = [e.formatted for e in result.errors]
        return response

    def mapping(self, graph_id: str, credential: str | None) -> dict[str, list[str]]:
        """List, per vertex type, the fields a query may select.

        Raises:
            SchemaUnavailable: If no schema could be built for the graph
        """
        return self._context(graph_id, credential).schema.field_mapping()
