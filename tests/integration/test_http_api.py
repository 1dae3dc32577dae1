"""
Integration tests for the gateway HTTP API.

Tests cover:
- GraphQL over HTTP with the Authorization header as credential
- Mapping endpoint
- 503 for graphs without a schema
- Health and sandbox pages
"""

import pytest
from fastapi.testclient import TestClient

from graphql_gateway.api import Settings, create_app


@pytest.fixture
def client(service):
    app = create_app(service, Settings(cors_origins=["*"]))
    return TestClient(app)


class TestGraphQLEndpoint:
    """Tests for POST /graphql/{graph}."""

    def test_query(self, client):
        response = client.post(
            "/graphql/example",
            json={"query": "{ patient(accessibility: accessible) { id } }"},
            headers={"Authorization": "Bearer abc"},
        )

        assert response.status_code == 200
        assert response.json() == {"data": {"patient": [{"id": "p1"}]}}

    def test_without_credential_scope_is_empty(self, client, auth_calls):
        response = client.post(
            "/graphql/example",
            json={"query": "{ patient(accessibility: accessible) { id } }"},
        )

        assert response.json() == {"data": {"patient": []}}
        assert auth_calls == []

    def test_variables_and_operation_name(self, client):
        response = client.post(
            "/graphql/example",
            json={
                "query": "query A($id: String) { patient(id: $id) { id } } query B { _mapping }",
                "variables": {"id": "p2"},
                "operationName": "A",
            },
        )

        assert response.json()["data"] == {"patient": [{"id": "p2"}]}

    def test_graphql_errors_are_200(self, client):
        response = client.post("/graphql/example", json={"query": "{ patient { nope } }"})

        assert response.status_code == 200
        assert response.json()["errors"]

    def test_unknown_graph_is_503(self, client):
        response = client.post("/graphql/missing", json={"query": "{ patient { id } }"})

        assert response.status_code == 503
        assert response.json()["error_code"] == "SCHEMA_UNAVAILABLE"

    def test_missing_query_is_422(self, client):
        response = client.post("/graphql/example", json={})
        assert response.status_code == 422


class TestOtherRoutes:
    def test_mapping(self, client):
        response = client.get("/graphql/example/mapping")

        assert response.status_code == 200
        assert response.json()["aliquot"] == ["id", "amount"]

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_sandbox_page(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "graphiql" in response.text

    def test_sandbox_can_be_disabled(self, service):
        client = TestClient(create_app(service, Settings(sandbox_enabled=False)))
        assert client.get("/").status_code == 404
