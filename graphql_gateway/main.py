"""
GraphQL gateway - Main entry point.

Starts the HTTP server with all components:
- Authorization scope cache (authorization service client)
- Schema cache over the graph store
- GraphQL query service

Usage:
    python -m graphql_gateway.main

Configuration is entirely via environment variables.
See config.py and api/settings.py for all available settings.

The store transport is out of scope for this package; the entry point runs
against an in-memory store, which embedders replace by constructing
GraphQLService with their own GraphStore implementation.
"""

from __future__ import annotations

import logging
import sys

import json_log_formatter
import uvicorn

from .api import Settings, create_app
from .auth import AuthorizationClient, AuthScopeCache
from .config import GatewayConfig
from .service import GraphQLService
from .store import GraphStore, InMemoryGraphStore

logger = logging.getLogger(__name__)


def setup_logging(config: GatewayConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Gateway configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_service(config: GatewayConfig, store: GraphStore) -> GraphQLService:
    """Wire the query service from configuration."""
    client = AuthorizationClient(
        mapping_url=config.auth.mapping_url,
        timeout=config.auth.timeout_seconds,
    )
    scope_cache = AuthScopeCache(
        client,
        service=config.auth.service_name,
        ttl_seconds=config.auth.cache_ttl_seconds,
    )
    return GraphQLService(store, scope_cache, query_config=config.query)


def main() -> None:
    """Main entry point."""
    try:
        config = GatewayConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    config.log_config()

    settings = Settings()
    app = create_app(build_service(config, InMemoryGraphStore()), settings)

    logger.info(f"Starting GraphQL gateway on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
