"""
Unit tests for the query compiler.

Tests cover:
- Seeding by label, id and ids
- Equality, accessibility and filter predicates
- Nested relationship traversal and sibling select-back
- Fragment flattening
- Count programs
"""

import pytest
from graphql import parse

from graphql_gateway.query.compiler import Accessibility, QueryArguments, QueryCompiler
from graphql_gateway.query.program import (
    Count,
    Eq,
    Has,
    Limit,
    MarkAlias,
    Or,
    Render,
    SeedVertices,
    SelectAlias,
    Skip,
    TraverseOut,
    Within,
    Without,
)


def root_field(query):
    """Parse a query; return (field nodes of its first root field, fragments)."""
    document = parse(query)
    operation = document.definitions[0]
    fragments = {d.name.value: d for d in document.definitions[1:]}
    return [operation.selection_set.selections[0]], fragments


@pytest.fixture
def compiler(compiled_schema):
    return QueryCompiler(compiled_schema)


class TestQueryArguments:
    """Tests for argument splitting."""

    def test_defaults(self):
        args = QueryArguments.from_args({})
        assert args.first == 100
        assert args.offset == 0
        assert args.accessibility is Accessibility.ALL
        assert args.equality == {}

    def test_equality_excludes_reserved_and_none(self):
        args = QueryArguments.from_args(
            {"first": 5, "filter": {"a": ["b"]}, "age": 30, "gender": None}
        )
        assert args.first == 5
        assert args.equality == {"age": 30}

    def test_accessibility_from_string(self):
        args = QueryArguments.from_args({"accessibility": "accessible"})
        assert args.accessibility is Accessibility.ACCESSIBLE


class TestCompile:
    """Tests for QueryCompiler.compile."""

    def test_flat_query(self, compiler):
        nodes, _ = root_field("{ patient(first: 2) { id age } }")

        compiled = compiler.compile("patient", {"first": 2}, nodes)

        assert compiled.program.to_statements() == [
            {"v": []},
            {"hasLabel": ["Patient"]},
            {"as": "f0"},
            {"skip": 0},
            {"limit": 2},
            {"render": {"f0_gid": "$f0._gid", "f0_data": "$f0._data"}},
        ]
        assert compiled.render_tree.aliases == ["f0"]

    def test_ids_take_precedence_over_id(self, compiler):
        nodes, _ = root_field("{ patient { id } }")

        compiled = compiler.compile("patient", {"ids": ["a", "b"], "id": "c"}, nodes)

        assert compiled.program.steps[0] == SeedVertices(("a", "b"))

    def test_id_seed(self, compiler):
        nodes, _ = root_field("{ patient { id } }")
        compiled = compiler.compile("patient", {"id": "p1"}, nodes)
        assert compiled.program.steps[0] == SeedVertices(("p1",))

    def test_equality_arguments(self, compiler):
        nodes, _ = root_field("{ patient { id } }")

        compiled = compiler.compile("patient", {"age": 30, "gender": ["a", "b"]}, nodes)

        has = [s.predicate for s in compiled.program.steps if isinstance(s, Has)]
        assert has == [Eq("age", 30), Within("gender", ("a", "b"))]

    def test_accessible_restricts_to_scope(self, compiler):
        nodes, _ = root_field("{ patient { id } }")

        compiled = compiler.compile(
            "patient",
            {"accessibility": Accessibility.ACCESSIBLE},
            nodes,
            scope=frozenset({"/programs/P2", "/programs/P1"}),
        )

        has = [s.predicate for s in compiled.program.steps if isinstance(s, Has)]
        assert has == [Within("auth_resource_path", ("/programs/P1", "/programs/P2"))]

    def test_unaccessible_excludes_scope(self, compiler):
        nodes, _ = root_field("{ patient { id } }")

        compiled = compiler.compile(
            "patient",
            {"accessibility": Accessibility.UNACCESSIBLE},
            nodes,
            scope=frozenset({"/programs/P1"}),
        )

        has = [s.predicate for s in compiled.program.steps if isinstance(s, Has)]
        assert has == [Without("auth_resource_path", ("/programs/P1",))]

    def test_filter_conjuncts_appended(self, compiler):
        nodes, _ = root_field("{ patient { id } }")

        compiled = compiler.compile(
            "patient", {"filter": {"AND": [{"project_id": ["P1", "P2"]}]}}, nodes
        )

        has = [s.predicate for s in compiled.program.steps if isinstance(s, Has)]
        assert has == [Or((Within("project_id", ("P1",)), Within("project_id", ("P2",))))]

    def test_nested_and_sibling_relations(self, compiler):
        """Siblings after the first select back to the parent alias."""
        nodes, _ = root_field(
            "{ patient { id has_sample { id derived { id } } in_case { name } } }"
        )

        compiled = compiler.compile("patient", {"first": 10}, nodes)
        steps = compiled.program.steps

        assert compiled.render_tree.aliases == ["f0", "f1", "f2", "f3"]
        assert compiled.program.aliases() == compiled.render_tree.aliases
        assert [(n.alias, n.parent, n.field_name) for n in compiled.render_tree.nodes[1:]] == [
            ("f1", "f0", "has_sample"),
            ("f2", "f1", "derived"),
            ("f3", "f0", "in_case"),
        ]
        assert steps[5:] == (
            TraverseOut("has_sample", "Specimen"),
            MarkAlias("f1"),
            Skip(0),
            Limit(10),
            TraverseOut("derived", "Aliquot"),
            MarkAlias("f2"),
            Skip(0),
            Limit(10),
            SelectAlias("f0"),
            TraverseOut("in_case", "Case"),
            MarkAlias("f3"),
            Skip(0),
            Limit(10),
            Render(("f0", "f1", "f2", "f3")),
        )

    def test_scalar_and_unknown_selections_ignored(self, compiler):
        nodes, _ = root_field("{ patient { id age __typename } }")
        compiled = compiler.compile("patient", {}, nodes)
        assert len(compiled.render_tree) == 1

    def test_fragments_flattened(self, compiler):
        nodes, fragments = root_field(
            """
            { patient { ...samples ... on patient { in_case { id } } } }
            fragment samples on patient { has_sample { id } }
            """
        )

        compiled = compiler.compile("patient", {}, nodes, fragments)

        assert [n.field_name for n in compiled.render_tree.nodes[1:]] == [
            "has_sample",
            "in_case",
        ]

    def test_program_is_fresh_per_call(self, compiler):
        """Compiling twice yields equal but independent programs."""
        nodes, _ = root_field("{ patient { id has_sample { id } } }")

        first = compiler.compile("patient", {}, nodes)
        second = compiler.compile("patient", {}, nodes)

        assert first.program is not second.program
        assert first.program.to_statements() == second.program.to_statements()


class TestCompileCount:
    def test_count_program(self, compiler):
        program = compiler.compile_count("patient", {"gender": "male"}, "_patient_count")

        assert program.steps[0] == SeedVertices(())
        assert program.steps[-1] == Count("_patient_count")
        assert Has(Eq("gender", "male")) in program.steps
        assert not any(isinstance(s, (Skip, Limit, MarkAlias)) for s in program.steps)
