"""
Per-request execution context handed to GraphQL resolvers.

Compiled schemas are shared by every request for a graph, so anything that
depends on the request (caller scope, store handle, paging defaults) travels
in this context instead of being captured by the schema.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import StoreExecutionError
from .store.base import GraphStore

if TYPE_CHECKING:
    from .query.program import TraversalProgram
    from .schema.builder import CompiledSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Everything a resolver needs to run one request.

    Attributes:
        graph_id: Graph being queried
        store: Graph store executing traversals
        schema: Compiled schema the request executes against
        scope: Resource paths the caller may read
        resource_field: Vertex property holding a vertex's resource path
    """

    graph_id: str
    store: GraphStore
    schema: CompiledSchema
    scope: frozenset[str] = frozenset()
    resource_field: str = "auth_resource_path"

    def run(self, program: TraversalProgram) -> list[dict[str, Any]]:
        """Execute a program against the store, once.

        Raises:
            StoreExecutionError: If the store fails; never retried
        """
        try:
            return list(self.store.run_traversal(self.graph_id, program))
        except Exception as e:
            logger.error(
                f"Traversal failed on graph {self.graph_id}: {e}",
                extra={"graph": self.graph_id},
            )
            raise StoreExecutionError(self.graph_id, e) from e
