"""
HTTP server for the GraphQL gateway.

Routes:
    POST /graphql/{graph}          Execute a GraphQL query against a graph
    GET  /graphql/{graph}/mapping  Field names available per vertex type
    GET  /health                   Liveness probe
    GET  /                         GraphQL sandbox page

The caller's credential is the raw `Authorization` header; it is forwarded
to the authorization service unchanged.

Invariants:
    - GraphQL field errors are returned with HTTP 200 in the "errors" list
    - A graph without any compiled schema answers 503
    - Handlers are sync functions; FastAPI runs each request in a worker thread

How to change safely:
    - Keep the body shape ({query, variables, operationName}) compatible
      with standard GraphQL clients
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from .._version import __version__
from ..errors import GatewayError, SchemaUnavailable
from ..service import GraphQLService
from .sandbox import SANDBOX_HTML
from .settings import Settings

logger = logging.getLogger(__name__)


class GraphQLRequest(BaseModel):
    """Standard GraphQL-over-HTTP request body."""

    query: str = Field(..., description="GraphQL document")
    variables: Optional[dict[str, Any]] = Field(None, description="Variable values")
    operation_name: Optional[str] = Field(
        None, alias="operationName", description="Operation to execute"
    )

    model_config = {"populate_by_name": True}


def get_service(request: Request) -> GraphQLService:
    """Get the query service from app state."""
    return request.app.state.service


def create_app(service: GraphQLService, settings: Settings | None = None) -> FastAPI:
    """Create the gateway FastAPI app.

    Args:
        service: Query service answering GraphQL requests
        settings: HTTP settings (loaded from GATEWAY_* env vars if omitted)
    """
    settings = settings or Settings()

    app = FastAPI(
        title="GraphQL Gateway",
        description="GraphQL query interface over a property graph",
        version=__version__,
    )
    app.state.service = service
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SchemaUnavailable)
    async def schema_unavailable_handler(request: Request, exc: SchemaUnavailable):
        logger.warning(f"Rejected request to {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=503,
            content={"error": exc.message, "error_code": exc.code},
        )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.error(f"HTTP handler error: {exc.message}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": exc.message, "error_code": exc.code},
        )

    @app.post("/graphql/{graph}")
    def graphql_query(
        graph: str,
        body: GraphQLRequest,
        request: Request,
        authorization: Optional[str] = Header(None),
    ) -> dict[str, Any]:
        return get_service(request).query(
            graph,
            authorization,
            body.query,
            variables=body.variables,
            operation_name=body.operation_name,
        )

    @app.get("/graphql/{graph}/mapping")
    def graphql_mapping(
        graph: str,
        request: Request,
        authorization: Optional[str] = Header(None),
    ) -> dict[str, list[str]]:
        return get_service(request).mapping(graph, authorization)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy", "service": "graphql-gateway"}

    if settings.sandbox_enabled:

        @app.get("/", response_class=HTMLResponse)
        def sandbox() -> str:
            return SANDBOX_HTML

    return app
