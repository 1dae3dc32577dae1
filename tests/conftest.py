"""
Shared fixtures for gateway tests.
"""

import httpx
import pytest

from graphql_gateway.auth import AuthorizationClient, AuthScopeCache
from graphql_gateway.schema.builder import build_compiled_schema
from graphql_gateway.service import GraphQLService
from graphql_gateway.store.base import Edge, SchemaDocument, Vertex
from graphql_gateway.store.memory import InMemoryGraphStore

GRAPH = "example"

SCHEMA = {
    "graph": GRAPH,
    "vertices": [
        {
            "gid": "Patient",
            "label": "Vertex",
            "data": {
                "age": "NUMERIC",
                "gender": "STRING",
                "project_id": "STRING",
                "auth_resource_path": "STRING",
            },
        },
        {"gid": "Specimen", "label": "Vertex", "data": {"sample_type": "STRING"}},
        {"gid": "Aliquot", "label": "Vertex", "data": {"amount": "NUMERIC"}},
        {"gid": "Case", "label": "Vertex", "data": {"name": "STRING"}},
    ],
    "edges": [
        {"label": "has_sample", "from": "Patient", "to": "Specimen"},
        {"label": "derived", "from": "Specimen", "to": "Aliquot"},
        {"label": "in_case", "from": "Patient", "to": "Case"},
    ],
}


@pytest.fixture
def schema_document():
    """Schema document with patients, specimens, aliquots and cases."""
    return SchemaDocument.from_dict(SCHEMA)


@pytest.fixture
def compiled_schema(schema_document):
    """Compiled schema of the example document."""
    return build_compiled_schema(schema_document, version="1")


@pytest.fixture
def store():
    """In-memory store with two patients, one with a specimen."""
    s = InMemoryGraphStore()
    s.add_graph(GRAPH)
    s.put_schema(GRAPH, SCHEMA)
    s.add_vertex(
        GRAPH,
        Vertex(
            "p1",
            "Patient",
            {"age": 30, "gender": "female", "project_id": "P1", "auth_resource_path": "/programs/P1"},
        ),
    )
    s.add_vertex(
        GRAPH,
        Vertex(
            "p2",
            "Patient",
            {"age": 45, "gender": "male", "project_id": "P2", "auth_resource_path": "/programs/P2"},
        ),
    )
    s.add_vertex(GRAPH, Vertex("s1", "Specimen", {"sample_type": "blood"}))
    s.add_vertex(GRAPH, Vertex("c1", "Case", {"name": "case-1"}))
    s.add_edge(GRAPH, Edge("e1", "has_sample", "p1", "s1"))
    s.add_edge(GRAPH, Edge("e2", "in_case", "p1", "c1"))
    return s


def mapping_transport(mapping=None, status_code=200, calls=None):
    """httpx transport answering every request with a resource mapping."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if status_code != 200:
            return httpx.Response(status_code, text="unavailable")
        return httpx.Response(200, json=mapping or {})

    return httpx.MockTransport(handler)


@pytest.fixture
def auth_calls():
    """Requests received by the fake authorization service."""
    return []


@pytest.fixture
def scope_cache(auth_calls):
    """Scope cache granting read access to /programs/P1."""
    client = AuthorizationClient(
        transport=mapping_transport(
            {"/programs/P1": [{"service": "*", "method": "read"}]}, calls=auth_calls
        )
    )
    return AuthScopeCache(client)


@pytest.fixture
def service(store, scope_cache):
    """Query service over the example store."""
    return GraphQLService(store, scope_cache)
