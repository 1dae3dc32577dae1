"""
Schema cache and change detector.

Holds, per graph, the last compiled schema together with the store
timestamp and authorization scope it was built for. Every request asks the
cache to resolve the schema; the cache compares the store's current
timestamp with the cached one and rebuilds only when something changed.

Invariants:
    - Entries are replaced whole, never modified in place
    - Readers see either the previous or the new schema, never a partial one
    - At most one rebuild per graph runs at a time
    - A failed rebuild keeps serving the previous schema

How to change safely:
    - Anything the compiled schema depends on must be part of the freshness
      check in _is_current()
    - Do not hold the per-graph lock while running queries
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from ..errors import SchemaUnavailable
from ..store.base import GraphStore, SchemaDocument
from .builder import CompiledSchema, build_compiled_schema

logger = logging.getLogger(__name__)

SchemaBuilder = Callable[..., CompiledSchema]


def _is_current(entry: CompiledSchema | None, version: str, scope: frozenset[str]) -> bool:
    return entry is not None and entry.version == version and entry.scope == scope


class SchemaCache:
    """Per-graph cache of compiled schemas.

    Thread-safety:
        - Lookups of a current entry take no lock
        - Rebuilds take a per-graph lock; rebuilds of different graphs run
          concurrently

    Attributes:
        rebuild_count: Number of successful rebuilds since creation

    Example:
        >>> cache = SchemaCache(store)
        >>> schema = cache.resolve("example", frozenset())
        >>> cache.resolve("example", frozenset()) is schema
        True
    """

    def __init__(
        self,
        store: GraphStore,
        default_limit: int = 100,
        default_offset: int = 0,
        builder: SchemaBuilder = build_compiled_schema,
    ) -> None:
        self._store = store
        self._default_limit = default_limit
        self._default_offset = default_offset
        self._builder = builder
        self._entries: dict[str, CompiledSchema] = {}
        self._graph_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._count_lock = threading.Lock()
        self._rebuild_count = 0

    @property
    def rebuild_count(self) -> int:
        return self._rebuild_count

    def get(self, graph_id: str) -> CompiledSchema | None:
        """Return the cached schema of a graph without checking freshness."""
        return self._entries.get(graph_id)

    def resolve(self, graph_id: str, scope: Iterable[str] = frozenset()) -> CompiledSchema:
        """Return a compiled schema that is current for the graph and scope.

        Args:
            graph_id: Graph to resolve
            scope: Caller's authorization scope

        Returns:
            The cached schema, rebuilt first if the store timestamp or the
            scope changed since it was built

        Raises:
            SchemaUnavailable: If no schema could ever be built for the graph
        """
        scope = frozenset(scope)
        try:
            version = self._store.get_timestamp(graph_id)
        except Exception as e:
            logger.error(f"Failed to read schema timestamp of graph {graph_id}: {e}")
            return self._fallback(graph_id, str(e))

        entry = self._entries.get(graph_id)
        if _is_current(entry, version, scope):
            return entry

        with self._lock_for(graph_id):
            # Another writer may have finished while we waited
            entry = self._entries.get(graph_id)
            if _is_current(entry, version, scope):
                return entry
            return self._rebuild(graph_id, version, scope, entry)

    def invalidate(self, graph_id: str) -> None:
        """Drop the cached schema of a graph."""
        with self._lock_for(graph_id):
            if self._entries.pop(graph_id, None) is not None:
                logger.info(f"Dropped cached GraphQL schema of graph {graph_id}")

    def _rebuild(
        self,
        graph_id: str,
        version: str,
        scope: frozenset[str],
        previous: CompiledSchema | None,
    ) -> CompiledSchema:
        try:
            document: SchemaDocument = self._store.get_schema(graph_id)
            schema = self._builder(
                document,
                version=version,
                scope=scope,
                default_limit=self._default_limit,
                default_offset=self._default_offset,
            )
        except Exception as e:
            logger.error(f"GraphQL schema build failed for graph {graph_id}: {e}")
            return self._fallback(graph_id, str(e))

        self._entries[graph_id] = schema
        with self._count_lock:
            self._rebuild_count += 1
        reason = "initial build" if previous is None else (
            "timestamp changed" if previous.version != version else "scope changed"
        )
        logger.info(
            f"Rebuilt GraphQL schema of graph {graph_id} ({reason})",
            extra={"graph": graph_id, "version": version},
        )
        return schema

    def _fallback(self, graph_id: str, reason: str) -> CompiledSchema:
        entry = self._entries.get(graph_id)
        if entry is None:
            raise SchemaUnavailable(graph_id, reason)
        logger.warning(f"Serving previous GraphQL schema of graph {graph_id}")
        return entry

    def _lock_for(self, graph_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._graph_locks.get(graph_id)
            if lock is None:
                lock = threading.Lock()
                self._graph_locks[graph_id] = lock
            return lock
