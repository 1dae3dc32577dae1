"""
Unit tests for gateway configuration.
"""

import pytest

from graphql_gateway.config import AuthConfig, GatewayConfig, QueryConfig


class TestGatewayConfig:
    def test_defaults(self):
        config = GatewayConfig()

        assert config.auth.mapping_url == "http://arborist-service/auth/mapping"
        assert config.auth.service_name == "peregrine"
        assert config.auth.cache_ttl_seconds == 3600.0
        assert config.query.default_limit == 100
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_MAPPING_URL", "http://auth.test/mapping")
        monkeypatch.setenv("AUTH_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("QUERY_DEFAULT_LIMIT", "25")
        monkeypatch.setenv("QUERY_RESOURCE_FIELD", "resource")
        monkeypatch.setenv("LOG_FORMAT", "text")

        config = GatewayConfig.from_env()

        assert config.auth.mapping_url == "http://auth.test/mapping"
        assert config.auth.cache_ttl_seconds == 60.0
        assert config.query.default_limit == 25
        assert config.query.resource_field == "resource"
        assert config.observability.log_format == "text"

    def test_invalid_log_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="LOG_FORMAT"):
            GatewayConfig.from_env()

    def test_negative_limit_rejected(self):
        config = GatewayConfig(query=QueryConfig(default_limit=-1))
        with pytest.raises(ValueError, match="QUERY_DEFAULT_LIMIT"):
            config.validate()

    def test_zero_timeout_rejected(self):
        config = GatewayConfig(auth=AuthConfig(timeout_seconds=0))
        with pytest.raises(ValueError, match="AUTH_TIMEOUT_SECONDS"):
            config.validate()
