"""
Traversal programs: the compiled form of a GraphQL query.

A TraversalProgram is an ordered list of steps executed once by the graph
store. It starts from a seed set of vertices, filters them, marks positions
with aliases, follows edges and finally projects every alias into one flat
record per result.

Invariants:
    - Programs are built fresh per request and never cached
    - Every alias named by Render was marked by an earlier MarkAlias
    - A program ends with exactly one Render or Count step

How to change safely:
    - New steps need a statement form in to_statements() and support in
      every GraphStore implementation
    - Keep statement keys compatible with gripql-style wire programs
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Union

# --- Predicates ---


@dataclass(frozen=True)
class Eq:
    """field == value"""

    field: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"condition": {"key": self.field, "value": self.value, "condition": "EQ"}}


@dataclass(frozen=True)
class Within:
    """field is one of values"""

    field: str
    values: tuple[Any, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": {"key": self.field, "value": list(self.values), "condition": "WITHIN"}
        }


@dataclass(frozen=True)
class Without:
    """field is none of values"""

    field: str
    values: tuple[Any, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": {"key": self.field, "value": list(self.values), "condition": "WITHOUT"}
        }


@dataclass(frozen=True)
class And:
    children: tuple[Predicate, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"and": {"expressions": [c.to_dict() for c in self.children]}}


@dataclass(frozen=True)
class Or:
    children: tuple[Predicate, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"or": {"expressions": [c.to_dict() for c in self.children]}}


Predicate = Union[Eq, Within, Without, And, Or]


# --- Steps ---


@dataclass(frozen=True)
class SeedVertices:
    """Start from the given vertex ids, or from every vertex if empty."""

    ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"v": list(self.ids)}


@dataclass(frozen=True)
class HasLabel:
    labels: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"hasLabel": list(self.labels)}


@dataclass(frozen=True)
class Has:
    predicate: Predicate

    def to_dict(self) -> dict[str, Any]:
        return {"has": self.predicate.to_dict()}


@dataclass(frozen=True)
class MarkAlias:
    alias: str

    def to_dict(self) -> dict[str, Any]:
        return {"as": self.alias}


@dataclass(frozen=True)
class SelectAlias:
    """Move the traversal back to a previously marked position."""

    alias: str

    def to_dict(self) -> dict[str, Any]:
        return {"select": self.alias}


@dataclass(frozen=True)
class TraverseOut:
    """Follow outgoing edges with the given label.

    With optional=True a traveler with no matching neighbour continues as an
    empty sentinel instead of being dropped.
    """

    edge_label: str
    destination_label: str | None = None
    optional: bool = True

    def to_dict(self) -> dict[str, Any]:
        key = "outNull" if self.optional else "out"
        stmt: dict[str, Any] = {key: [self.edge_label]}
        if self.destination_label:
            stmt["hasLabel"] = [self.destination_label]
        return stmt


@dataclass(frozen=True)
class Skip:
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"skip": self.count}


@dataclass(frozen=True)
class Limit:
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"limit": self.count}


@dataclass(frozen=True)
class Render:
    """Project every alias into <alias>_gid and <alias>_data."""

    aliases: tuple[str, ...]

    def template(self) -> dict[str, str]:
        template: dict[str, str] = {}
        for alias in self.aliases:
            template[f"{alias}_gid"] = f"${alias}._gid"
            template[f"{alias}_data"] = f"${alias}._data"
        return template

    def to_dict(self) -> dict[str, Any]:
        return {"render": self.template()}


@dataclass(frozen=True)
class Count:
    """Aggregate the number of travelers under the given name."""

    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"aggregate": {"aggregations": [{"name": self.name, "count": {}}]}}


Step = Union[
    SeedVertices, HasLabel, Has, MarkAlias, SelectAlias, TraverseOut, Skip, Limit, Render, Count
]


class TraversalProgram:
    """An ordered, append-only sequence of traversal steps.

    Builder methods return the program so calls can be chained.

    Example:
        >>> program = TraversalProgram().seed().has_label("Patient").mark("f0")
        >>> program.render(["f0"]).to_statements()[-1]
        {'render': {'f0_gid': '$f0._gid', 'f0_data': '$f0._data'}}
    """

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self._steps: list[Step] = list(steps)

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    def append(self, step: Step) -> TraversalProgram:
        self._steps.append(step)
        return self

    def seed(self, ids: Iterable[str] = ()) -> TraversalProgram:
        return self.append(SeedVertices(tuple(ids)))

    def has_label(self, *labels: str) -> TraversalProgram:
        return self.append(HasLabel(labels))

    def has(self, predicate: Predicate) -> TraversalProgram:
        return self.append(Has(predicate))

    def mark(self, alias: str) -> TraversalProgram:
        return self.append(MarkAlias(alias))

    def select(self, alias: str) -> TraversalProgram:
        return self.append(SelectAlias(alias))

    def out(self, edge_label: str, destination_label: str | None = None) -> TraversalProgram:
        return self.append(TraverseOut(edge_label, destination_label, optional=True))

    def skip(self, count: int) -> TraversalProgram:
        return self.append(Skip(count))

    def limit(self, count: int) -> TraversalProgram:
        return self.append(Limit(count))

    def render(self, aliases: Iterable[str]) -> TraversalProgram:
        return self.append(Render(tuple(aliases)))

    def count(self, name: str) -> TraversalProgram:
        return self.append(Count(name))

    def aliases(self) -> list[str]:
        """Aliases marked by this program, in order."""
        return [s.alias for s in self._steps if isinstance(s, MarkAlias)]

    def to_statements(self) -> list[dict[str, Any]]:
        """Serialize into a JSON-ready statement list."""
        return [step.to_dict() for step in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"TraversalProgram({self.to_statements()!r})"
