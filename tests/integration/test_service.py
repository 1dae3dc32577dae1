"""
Integration tests for the GraphQL query service.

Runs full queries through authorization, schema caching, compilation,
in-memory execution and reconstruction.

Tests cover:
- Flat and nested queries
- Filters, equality arguments and paging
- Accessibility against the caller's scope
- Authorization service failure
- Schema rebuild detection
- Store failures surfaced as GraphQL errors
"""

import pytest

from graphql_gateway.auth import AuthorizationClient, AuthScopeCache
from graphql_gateway.errors import SchemaUnavailable
from graphql_gateway.service import GraphQLService
from graphql_gateway.store.base import StoreError, Vertex
from graphql_gateway.store.memory import InMemoryGraphStore
from tests.conftest import GRAPH, SCHEMA, mapping_transport

TOKEN = "Bearer abc"


def ids(result, field="patient"):
    return [obj["id"] for obj in result["data"][field]]


class TestQueries:
    """Query execution end to end."""

    def test_flat_query(self, service):
        """Two stored patients come back with id and numeric age."""
        result = service.query(GRAPH, TOKEN, "{ patient(first: 2) { id age } }")

        assert "errors" not in result
        assert result["data"]["patient"] == [{"id": "p1", "age": 30}, {"id": "p2", "age": 45}]

    def test_nested_relationship_lists(self, service):
        """A patient without specimens gets an empty list, not null."""
        result = service.query(GRAPH, TOKEN, "{ patient { id specimen: has_sample { id } } }")

        assert result["data"]["patient"] == [
            {"id": "p1", "specimen": [{"id": "s1"}]},
            {"id": "p2", "specimen": []},
        ]

    def test_sibling_relationships(self, service):
        result = service.query(
            GRAPH,
            TOKEN,
            '{ patient(id: "p1") { id has_sample { sample_type } in_case { name } } }',
        )

        assert result["data"]["patient"] == [
            {
                "id": "p1",
                "has_sample": [{"sample_type": "blood"}],
                "in_case": [{"name": "case-1"}],
            }
        ]

    def test_ids_argument(self, service):
        result = service.query(GRAPH, TOKEN, '{ patient(ids: ["p2"], id: "p1") { id } }')
        assert ids(result) == ["p2"]

    def test_paging(self, service):
        result = service.query(GRAPH, TOKEN, "{ patient(first: 1, offset: 1) { id } }")
        assert ids(result) == ["p2"]

    def test_filter_argument(self, service):
        """Multi-valued filters match any of their values."""
        both = service.query(
            GRAPH, TOKEN, '{ patient(filter: {AND: [{project_id: ["P1", "P2"]}]}) { id } }'
        )
        one = service.query(
            GRAPH,
            TOKEN,
            '{ patient(filter: {AND: [{project_id: ["P1", "P2"]}, {gender: ["male"]}]}) { id } }',
        )

        assert ids(both) == ["p1", "p2"]
        assert ids(one) == ["p2"]

    def test_filter_with_empty_list_is_skipped(self, service):
        result = service.query(GRAPH, TOKEN, "{ patient(filter: {AND: [{gender: []}]}) { id } }")

        assert "errors" not in result
        assert ids(result) == ["p1", "p2"]

    @pytest.mark.parametrize("filter_value", ['"x"', "[1]"])
    def test_non_object_filter_is_skipped(self, service, filter_value):
        """A filter that is not an object is ignored rather than failing the field."""
        result = service.query(GRAPH, TOKEN, f"{{ patient(filter: {filter_value}) {{ id }} }}")

        assert "errors" not in result
        assert ids(result) == ["p1", "p2"]

    def test_equality_arguments(self, service):
        assert ids(service.query(GRAPH, TOKEN, '{ patient(gender: "male") { id } }')) == ["p2"]
        assert ids(service.query(GRAPH, TOKEN, "{ patient(age: 30) { id } }")) == ["p1"]
        result = service.query(
            GRAPH,
            TOKEN,
            "query($g: [String]) { patient(gender: $g) { id } }",
            variables={"g": ["male", "female"]},
        )
        assert ids(result) == ["p1", "p2"]

    def test_fragments(self, service):
        result = service.query(
            GRAPH,
            TOKEN,
            """
            query Patients { patient(id: "p1") { ...fields } }
            fragment fields on patient { id has_sample { id } }
            """,
            operation_name="Patients",
        )
        assert result["data"]["patient"] == [{"id": "p1", "has_sample": [{"id": "s1"}]}]

    def test_count_field(self, service):
        result = service.query(
            GRAPH, TOKEN, '{ total: _patient_count males: _patient_count(gender: "male") }'
        )
        assert result["data"] == {"total": 2, "males": 1}

    def test_count_of_empty_result_is_zero(self, service):
        result = service.query(GRAPH, TOKEN, "{ _aliquot_count }")
        assert result["data"] == {"_aliquot_count": 0}

    def test_mapping(self, service):
        result = service.query(GRAPH, TOKEN, "{ _mapping }")

        assert result["data"]["_mapping"]["specimen"] == ["id", "sample_type", "derived"]
        assert service.mapping(GRAPH, TOKEN) == result["data"]["_mapping"]

    def test_repeated_query_is_idempotent(self, service):
        query = "{ patient { id has_sample { id } in_case { id } } }"
        assert service.query(GRAPH, TOKEN, query) == service.query(GRAPH, TOKEN, query)

    def test_validation_errors_reported(self, service):
        result = service.query(GRAPH, TOKEN, "{ patient { nope } }")

        assert result["data"] is None
        assert "nope" in result["errors"][0]["message"]


class TestAccessibility:
    """The accessibility argument against the caller's scope."""

    def test_accessible(self, service):
        result = service.query(GRAPH, TOKEN, "{ patient(accessibility: accessible) { id } }")
        assert ids(result) == ["p1"]

    def test_unaccessible(self, service):
        result = service.query(GRAPH, TOKEN, "{ patient(accessibility: unaccessible) { id } }")
        assert ids(result) == ["p2"]

    def test_all_is_default(self, service):
        assert ids(service.query(GRAPH, TOKEN, "{ patient { id } }")) == ["p1", "p2"]

    def test_authorization_failure_means_empty_scope(self, store):
        """An unavailable authorization service does not fail the request."""
        scope_cache = AuthScopeCache(
            AuthorizationClient(transport=mapping_transport(status_code=503))
        )
        service = GraphQLService(store, scope_cache)

        accessible = service.query(GRAPH, TOKEN, "{ patient(accessibility: accessible) { id } }")
        everything = service.query(GRAPH, TOKEN, "{ patient { id } }")

        assert "errors" not in accessible
        assert accessible["data"]["patient"] == []
        assert ids(everything) == ["p1", "p2"]

    def test_malformed_authorization_answer_means_empty_scope(self, store):
        scope_cache = AuthScopeCache(AuthorizationClient(transport=mapping_transport({"/a": 5})))
        service = GraphQLService(store, scope_cache)

        result = service.query(GRAPH, TOKEN, "{ patient(accessibility: accessible) { id } }")

        assert "errors" not in result
        assert result["data"]["patient"] == []


class TestSchemaRebuilds:
    """Schema cache behaviour seen through the service."""

    def test_unchanged_timestamp_does_not_rebuild(self, service, auth_calls):
        service.query(GRAPH, TOKEN, "{ patient { id } }")
        service.query(GRAPH, TOKEN, "{ patient { id } }")

        assert service.schema_cache.rebuild_count == 1
        assert len(auth_calls) == 1

    def test_store_mutation_rebuilds(self, service, store):
        service.query(GRAPH, TOKEN, "{ patient { id } }")
        store.add_vertex(GRAPH, Vertex("p3", "Patient", {"age": 50}))

        result = service.query(GRAPH, TOKEN, "{ patient { id } }")

        assert service.schema_cache.rebuild_count == 2
        assert ids(result) == ["p1", "p2", "p3"]

    def test_sampled_schema_picks_up_new_labels(self, scope_cache):
        store = InMemoryGraphStore()
        store.add_graph(GRAPH)
        store.add_vertex(GRAPH, Vertex("p1", "Patient", {"age": 30}))
        service = GraphQLService(store, scope_cache)

        assert "errors" in service.query(GRAPH, TOKEN, "{ case { id } }")

        store.add_vertex(GRAPH, Vertex("c1", "Case", {"name": "case-1"}))
        result = service.query(GRAPH, TOKEN, "{ case { id name } }")

        assert result["data"]["case"] == [{"id": "c1", "name": "case-1"}]

    def test_unknown_graph_raises(self, service):
        with pytest.raises(SchemaUnavailable):
            service.query("missing", TOKEN, "{ patient { id } }")


class FailingStore(InMemoryGraphStore):
    def run_traversal(self, graph_id, program):
        raise StoreError("traversal backend down")


class TestStoreFailures:
    def test_store_error_surfaces_verbatim(self, scope_cache):
        store = FailingStore()
        store.add_graph(GRAPH)
        store.put_schema(GRAPH, SCHEMA)
        service = GraphQLService(store, scope_cache)

        result = service.query(GRAPH, TOKEN, "{ patient { id } }")

        assert result["data"] == {"patient": None}
        assert result["errors"][0]["message"] == "traversal backend down"
        assert result["errors"][0]["path"] == ["patient"]
