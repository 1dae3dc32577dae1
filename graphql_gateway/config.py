"""
Configuration management for the GraphQL gateway.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Credentials are never logged; the mapping URL is logged without query string

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - HTTP-only settings (host, port, CORS) belong in api/settings.py
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from .auth.client import DEFAULT_MAPPING_URL, DEFAULT_SERVICE_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthConfig:
    """Authorization service configuration.

    Attributes:
        mapping_url: Resource mapping endpoint of the authorization service
        service_name: Service name permissions must name (or "*")
        cache_ttl_seconds: How long a credential's scope stays cached
        timeout_seconds: Request timeout for mapping fetches
    """

    mapping_url: str = DEFAULT_MAPPING_URL
    service_name: str = DEFAULT_SERVICE_NAME
    cache_ttl_seconds: float = 3600.0
    timeout_seconds: float = 5.0

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Load configuration from environment variables."""
        return cls(
            mapping_url=os.getenv("AUTH_MAPPING_URL", DEFAULT_MAPPING_URL),
            service_name=os.getenv("AUTH_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            cache_ttl_seconds=float(os.getenv("AUTH_CACHE_TTL_SECONDS", "3600")),
            timeout_seconds=float(os.getenv("AUTH_TIMEOUT_SECONDS", "5")),
        )


@dataclass(frozen=True)
class QueryConfig:
    """Query compilation configuration.

    Attributes:
        default_limit: Default page size (`first`) at every nesting level
        default_offset: Default page offset (`offset`)
        resource_field: Vertex property holding the resource path used by
            the `accessibility` argument
    """

    default_limit: int = 100
    default_offset: int = 0
    resource_field: str = "auth_resource_path"

    @classmethod
    def from_env(cls) -> QueryConfig:
        """Load configuration from environment variables."""
        return cls(
            default_limit=int(os.getenv("QUERY_DEFAULT_LIMIT", "100")),
            default_offset=int(os.getenv("QUERY_DEFAULT_OFFSET", "0")),
            resource_field=os.getenv("QUERY_RESOURCE_FIELD", "auth_resource_path"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class GatewayConfig:
    """Complete gateway configuration.

    Attributes:
        auth: Authorization service configuration
        query: Query compilation configuration
        observability: Logging configuration
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            auth=AuthConfig.from_env(),
            query=QueryConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.auth.mapping_url:
            raise ValueError("AUTH_MAPPING_URL must not be empty")
        if self.auth.cache_ttl_seconds < 0:
            raise ValueError("AUTH_CACHE_TTL_SECONDS must be >= 0")
        if self.auth.timeout_seconds <= 0:
            raise ValueError("AUTH_TIMEOUT_SECONDS must be > 0")
        if self.query.default_limit < 0:
            raise ValueError("QUERY_DEFAULT_LIMIT must be >= 0")
        if self.query.default_offset < 0:
            raise ValueError("QUERY_DEFAULT_OFFSET must be >= 0")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        url = urlsplit(self.auth.mapping_url)
        logger.info(
            "Gateway configuration loaded",
            extra={
                "auth_mapping_url": f"{url.scheme}://{url.hostname}{url.path}",
                "auth_service_name": self.auth.service_name,
                "auth_cache_ttl_seconds": self.auth.cache_ttl_seconds,
                "query_default_limit": self.query.default_limit,
                "query_resource_field": self.query.resource_field,
                "log_level": self.observability.log_level,
            },
        )
