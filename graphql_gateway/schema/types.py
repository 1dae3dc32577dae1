"""
Type descriptors for schemas inferred from sampled graph data.

This module defines the portable intermediate representation produced by the
type inference engine and consumed by the GraphQL materializer:
- FieldKind: Kind of a field (primitive, list or nested)
- ValueShape: Closed set of shapes a sample property value can take
- TypeRef / FieldDef / ObjectTypeDef: The descriptor tree
- VertexTypeSchema: Inferred type of one vertex label
- RelationField: A traversable relationship between two vertex types

Invariants:
    - Descriptors are immutable once built
    - NESTED_OBJECT refs carry object_type, NESTED_LIST refs carry item
    - Field names are unique within an ObjectTypeDef
    - to_sample() re-infers to an equal descriptor

How to change safely:
    - New primitive kinds need a sample tag, a GraphQL scalar in builder.py
      and a to_sample() mapping
    - Never reuse a sample tag for a different kind
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

GRAPHQL_NAME_RE = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")


class FieldKind(Enum):
    """Supported field kinds.

    Primitive kinds have a sample tag, the string stored in place of a value
    in the graph's schema document.
    """

    NUMERIC = "NUMERIC"
    STRING = "STRING"
    BOOL = "BOOL"
    STRING_LIST = "STRLIST"
    NESTED_OBJECT = "OBJECT"
    NESTED_LIST = "LIST"

    @property
    def is_primitive(self) -> bool:
        return self not in (FieldKind.NESTED_OBJECT, FieldKind.NESTED_LIST)

    @classmethod
    def from_tag(cls, tag: str) -> FieldKind:
        """Convert a primitive sample tag to a FieldKind.

        Args:
            tag: Sample tag such as "NUMERIC" or "STRLIST"

        Returns:
            Corresponding primitive FieldKind

        Raises:
            ValueError: If the tag does not name a primitive kind
        """
        for kind in cls:
            if kind.is_primitive and kind.value == tag:
                return kind
        valid = [k.value for k in cls if k.is_primitive]
        raise ValueError(f"Invalid type tag '{tag}'. Valid tags: {valid}")


class ValueShape(Enum):
    """Shape of a sample property value."""

    MAPPING = "mapping"
    SEQUENCE = "sequence"
    TAG = "tag"
    OTHER = "other"


def classify_value(value: Any) -> ValueShape:
    """Classify a sample property value into its ValueShape."""
    if isinstance(value, Mapping):
        return ValueShape.MAPPING
    if isinstance(value, str):
        return ValueShape.TAG
    if isinstance(value, (list, tuple)):
        return ValueShape.SEQUENCE
    return ValueShape.OTHER


def lower_first(name: str) -> str:
    """Lower-case the first character of a label."""
    if not name:
        return name
    return name[0].lower() + name[1:]


def is_graphql_name(name: str) -> bool:
    """Whether a string is a legal GraphQL field or type name."""
    return bool(GRAPHQL_NAME_RE.match(name))


@dataclass(frozen=True)
class TypeRef:
    """Reference to the type of a field.

    Attributes:
        kind: The field kind
        object_type: Nested object type (NESTED_OBJECT only)
        item: Element type (NESTED_LIST only)
    """

    kind: FieldKind
    object_type: ObjectTypeDef | None = None
    item: TypeRef | None = None

    def __post_init__(self) -> None:
        if self.kind == FieldKind.NESTED_OBJECT and self.object_type is None:
            raise ValueError("object_type required for NESTED_OBJECT")
        if self.kind == FieldKind.NESTED_LIST and self.item is None:
            raise ValueError("item required for NESTED_LIST")

    @property
    def is_scalar(self) -> bool:
        """Whether values of this type can be used as equality arguments."""
        return self.kind.is_primitive

    def to_sample(self) -> Any:
        """Serialize back into the sample value this ref was inferred from."""
        if self.kind == FieldKind.NESTED_OBJECT:
            return self.object_type.to_sample()
        if self.kind == FieldKind.NESTED_LIST:
            return [self.item.to_sample()]
        return self.kind.value


@dataclass(frozen=True)
class FieldDef:
    """A single named field of an object type."""

    name: str
    type: TypeRef

    @property
    def kind(self) -> FieldKind:
        return self.type.kind


@dataclass(frozen=True)
class ObjectTypeDef:
    """Descriptor of an object type.

    Attributes:
        name: GraphQL type name
        fields: Field definitions in sample order
    """

    name: str
    fields: tuple[FieldDef, ...] = ()

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field name in object type '{self.name}'")

    def get_field(self, name: str) -> FieldDef | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_sample(self) -> dict[str, Any]:
        """Serialize into a sample property map."""
        return {f.name: f.type.to_sample() for f in self.fields}


@dataclass(frozen=True)
class VertexTypeSchema:
    """Inferred type of one vertex label.

    Attributes:
        label: Vertex label as stored in the graph (used for seeding)
        name: GraphQL-facing name (label with a lower-cased first letter)
        object_type: Inferred object type, always including `id`
    """

    label: str
    name: str
    object_type: ObjectTypeDef

    def scalar_fields(self) -> list[FieldDef]:
        """Fields usable as equality arguments on the root query field."""
        return [f for f in self.object_type.fields if f.type.is_scalar]


@dataclass(frozen=True)
class RelationField:
    """A traversable relationship field on a vertex type.

    Attributes:
        source_label: Stored label of the vertex type owning the field
        field_name: GraphQL field name (unique within the source type)
        edge_label: Edge label followed when traversing
        destination_label: Stored label of the vertex type reached
    """

    source_label: str
    field_name: str
    edge_label: str
    destination_label: str
