"""
Type inference from sample property maps.

The graph store describes each vertex label with a sample property map whose
values are primitive type tags ("NUMERIC", "STRING", "BOOL", "STRLIST"),
nested maps, or non-empty lists whose first element describes every element.
This module turns such a map into an ObjectTypeDef descriptor.

Pure functions with no I/O - fully testable. Failures about a single field
never fail the whole type: the field is dropped, a warning is logged and
recorded on the InferenceResult.

Invariants:
    - Nested object types are named <parent>_<field>
    - Only element 0 of a list sample is inspected
    - Every vertex type carries an `id: STRING` field
    - A vertex type with no usable sample fields is excluded
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import EmptyObjectType, EmptySliceType, SchemaBuildError, UnsupportedFieldType
from .types import (
    FieldDef,
    FieldKind,
    ObjectTypeDef,
    TypeRef,
    ValueShape,
    VertexTypeSchema,
    classify_value,
    is_graphql_name,
    lower_first,
)

logger = logging.getLogger(__name__)

ID_FIELD = "id"


@dataclass
class InferenceResult:
    """Outcome of inferring one object type.

    Attributes:
        object_type: The inferred descriptor
        warnings: Build errors recovered while inferring (one per dropped field)
    """

    object_type: ObjectTypeDef
    warnings: list[SchemaBuildError] = field(default_factory=list)


def infer_primitive(type_name: str, field_name: str, tag: str) -> TypeRef:
    """Map a primitive type tag to a TypeRef.

    Raises:
        UnsupportedFieldType: If the tag is not a known primitive tag
    """
    try:
        return TypeRef(FieldKind.from_tag(tag))
    except ValueError:
        raise UnsupportedFieldType(type_name, field_name, tag) from None


def infer_list(type_name: str, field_name: str, sample: list[Any], warnings: list) -> TypeRef:
    """Infer a NESTED_LIST ref from element 0 of a list sample.

    Raises:
        EmptySliceType: If the sample list is empty
        SchemaBuildError: If the element type cannot be inferred
    """
    if not sample:
        raise EmptySliceType(type_name, field_name)
    item = infer_value(type_name, field_name, sample[0], warnings)
    return TypeRef(FieldKind.NESTED_LIST, item=item)


def infer_nested_object(
    type_name: str, field_name: str, sample: Mapping[str, Any], warnings: list
) -> TypeRef:
    """Infer a NESTED_OBJECT ref named <type_name>_<field_name>.

    Raises:
        EmptyObjectType: If no field of the nested map survives
    """
    nested_name = f"{type_name}_{field_name}"
    nested = _infer_fields(nested_name, sample, warnings)
    if not nested.fields:
        raise EmptyObjectType(nested_name, field_name)
    return TypeRef(FieldKind.NESTED_OBJECT, object_type=nested)


def infer_value(type_name: str, field_name: str, value: Any, warnings: list) -> TypeRef:
    """Dispatch inference on the shape of a sample value."""
    shape = classify_value(value)
    if shape is ValueShape.MAPPING:
        return infer_nested_object(type_name, field_name, value, warnings)
    if shape is ValueShape.SEQUENCE:
        return infer_list(type_name, field_name, list(value), warnings)
    if shape is ValueShape.TAG:
        return infer_primitive(type_name, field_name, value)
    raise SchemaBuildError(
        f"unhandled type: {type(value).__name__} {value!r}",
        type_name=type_name,
        field_name=field_name,
    )


def _infer_fields(
    type_name: str, properties: Mapping[str, Any], warnings: list
) -> ObjectTypeDef:
    fields: list[FieldDef] = []
    for key, value in properties.items():
        try:
            if not is_graphql_name(key):
                raise SchemaBuildError(
                    f"'{key}' is not a valid GraphQL name",
                    type_name=type_name,
                    field_name=key,
                )
            fields.append(FieldDef(key, infer_value(type_name, key, value, warnings)))
        except SchemaBuildError as e:
            logger.warning(
                f"graphql: ignoring field {type_name}.{key}: {e.message}",
                extra={"object": type_name, "field": key, "error_code": e.code},
            )
            warnings.append(e)
    return ObjectTypeDef(name=type_name, fields=tuple(fields))


def infer_object_type(name: str, properties: Mapping[str, Any]) -> InferenceResult:
    """Infer an object type from a sample property map.

    Args:
        name: Type name for the result (nested types are prefixed with it)
        properties: Sample property map

    Returns:
        InferenceResult; the object type may have zero fields

    Example:
        >>> result = infer_object_type("patient", {"age": "NUMERIC", "tags": ["STRING"]})
        >>> result.object_type.field_names()
        ['age', 'tags']
    """
    warnings: list[SchemaBuildError] = []
    object_type = _infer_fields(name, properties, warnings)
    return InferenceResult(object_type=object_type, warnings=warnings)


def infer_vertex_type(
    label: str, properties: Mapping[str, Any] | None
) -> tuple[VertexTypeSchema, list[SchemaBuildError]]:
    """Infer the type of a vertex label and inject its `id` field.

    Args:
        label: Stored vertex label
        properties: Sample property map (may be None)

    Returns:
        Tuple of (vertex type, recovered warnings)

    Raises:
        EmptyObjectType: If no sample field survives inference
    """
    name = lower_first(label)
    if not properties:
        raise EmptyObjectType(name)

    sample = {k: v for k, v in properties.items() if k != ID_FIELD}
    result = infer_object_type(name, sample)
    if not result.object_type.fields and ID_FIELD not in properties:
        raise EmptyObjectType(name)

    fields = (FieldDef(ID_FIELD, TypeRef(FieldKind.STRING)),) + result.object_type.fields
    vertex = VertexTypeSchema(
        label=label,
        name=name,
        object_type=ObjectTypeDef(name=name, fields=fields),
    )
    return vertex, result.warnings
