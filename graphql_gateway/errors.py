"""
Error types for the GraphQL gateway.

This module defines every exception raised by the schema builder, the query
compiler and the authorization layer:
- GatewayError: Base exception
- SchemaBuildError: A field or type could not be inferred (recovered locally)
- SchemaUnavailable: No compiled schema exists for a graph
- InvalidFilterState: Malformed filter argument (recovered locally)
- StoreExecutionError: Traversal execution failed in the graph store
- AuthorizationFetchError: Authorization service unreachable or failing

Invariants:
    - All errors inherit from GatewayError
    - Every error carries a stable code for programmatic handling
    - Inference and filter errors never escape their builder; store errors
      always reach the caller
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "GATEWAY_ERROR"
        self.details = details or {}


class SchemaBuildError(GatewayError):
    """A field or object type could not be built from a sample property map.

    Raised inside the type inference engine; callers catch it per field,
    log it and drop the offending field.
    """

    def __init__(
        self,
        message: str,
        type_name: str,
        field_name: str | None = None,
        code: str = "SCHEMA_BUILD_ERROR",
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"type_name": type_name, "field_name": field_name},
        )
        self.type_name = type_name
        self.field_name = field_name


class UnsupportedFieldType(SchemaBuildError):
    """A primitive type tag does not map to a GraphQL type."""

    def __init__(self, type_name: str, field_name: str, tag: Any) -> None:
        super().__init__(
            f"{tag!r} does not map to a GraphQL type",
            type_name=type_name,
            field_name=field_name,
            code="UNSUPPORTED_FIELD_TYPE",
        )
        self.tag = tag


class EmptyObjectType(SchemaBuildError):
    """A nested object or vertex type ended up with no usable fields."""

    def __init__(self, type_name: str, field_name: str | None = None) -> None:
        super().__init__(
            f"no fields in object '{type_name}'",
            type_name=type_name,
            field_name=field_name,
            code="EMPTY_OBJECT_TYPE",
        )


class EmptySliceType(SchemaBuildError):
    """A list sample has no element to infer the item type from."""

    def __init__(self, type_name: str, field_name: str) -> None:
        super().__init__(
            "slice is empty",
            type_name=type_name,
            field_name=field_name,
            code="EMPTY_SLICE_TYPE",
        )


class SchemaUnavailable(GatewayError):
    """No compiled schema exists (yet) for a graph.

    Raised when the first build for a graph fails; once a schema has been
    compiled, later failures keep serving the previous one instead.
    """

    def __init__(self, graph_id: str, reason: str | None = None) -> None:
        msg = f"No GraphQL schema available for graph: {graph_id}"
        if reason:
            msg += f" ({reason})"
        super().__init__(
            msg,
            code="SCHEMA_UNAVAILABLE",
            details={"graph_id": graph_id, "reason": reason},
        )
        self.graph_id = graph_id
        self.reason = reason


class InvalidFilterState(GatewayError):
    """A filter argument is structurally inconsistent.

    Example: a checkbox filter whose value list was created but never
    populated.
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(
            message,
            code="INVALID_FILTER_STATE",
            details={"field": field_name},
        )
        self.field_name = field_name


class StoreExecutionError(GatewayError):
    """The graph store failed to execute a traversal program."""

    def __init__(self, graph_id: str, cause: Exception) -> None:
        super().__init__(
            str(cause),
            code="STORE_EXECUTION_ERROR",
            details={"graph_id": graph_id},
        )
        self.graph_id = graph_id
        self.cause = cause


class AuthorizationFetchError(GatewayError):
    """The authorization service could not produce a resource mapping."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        super().__init__(
            message,
            code="AUTHORIZATION_FETCH_ERROR",
            details={"url": url, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code
