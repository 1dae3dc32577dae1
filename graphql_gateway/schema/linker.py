"""
Relationship linking between inferred vertex types.

Every edge entry of the schema document whose endpoints both resolved to a
vertex type becomes a list-typed relationship field on the source type.

Invariants:
    - Field names are unique within a source type
    - The field name is the edge label unless another edge shares the same
      source and edge label but reaches a different destination; then every
      edge in that group is named <edgeLabel>_to_<destination>
    - Edges touching a dropped vertex type are skipped, never an error
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping

from ..store.base import EdgeSchema
from .types import RelationField, VertexTypeSchema, is_graphql_name, lower_first

logger = logging.getLogger(__name__)


def relation_field_name(edge: EdgeSchema, destinations: set[str]) -> str:
    """Compute the field name of an edge.

    Args:
        edge: The edge schema entry
        destinations: Destination names of all edges sharing the edge's
            (source, label) pair

    Returns:
        The edge label, or <label>_to_<destination> on collision
    """
    if len(destinations) > 1:
        return f"{edge.label}_to_{lower_first(edge.to_label)}"
    return edge.label


def link_relationships(
    vertex_types: Mapping[str, VertexTypeSchema],
    edges: Iterable[EdgeSchema],
) -> dict[str, dict[str, RelationField]]:
    """Build the relationship fields of every vertex type.

    Args:
        vertex_types: Vertex types keyed by GraphQL name
        edges: Edge schema entries from the schema document

    Returns:
        Mapping of source vertex name -> field name -> RelationField
    """
    edges = list(edges)

    # Collision groups span the whole document, including edges whose
    # endpoints were dropped
    groups: dict[tuple[str, str], set[str]] = defaultdict(set)
    for edge in edges:
        groups[(lower_first(edge.from_label), edge.label)].add(lower_first(edge.to_label))

    relations: dict[str, dict[str, RelationField]] = {name: {} for name in vertex_types}
    for edge in edges:
        source_name = lower_first(edge.from_label)
        dest_name = lower_first(edge.to_label)
        source = vertex_types.get(source_name)
        dest = vertex_types.get(dest_name)
        if source is None or dest is None:
            logger.debug(
                f"Skipping edge {edge.from_label}-[{edge.label}]->{edge.to_label}: "
                "endpoint type not available"
            )
            continue

        fname = relation_field_name(edge, groups[(source_name, edge.label)])
        if not is_graphql_name(fname):
            logger.warning(f"Skipping edge field '{fname}' on '{source_name}': invalid name")
            continue
        if source.object_type.get_field(fname) is not None:
            logger.warning(
                f"Skipping edge field '{fname}' on '{source_name}': "
                "name already used by a property field"
            )
            continue

        relation = RelationField(
            source_label=source.label,
            field_name=fname,
            edge_label=edge.label,
            destination_label=dest.label,
        )
        existing = relations[source_name].get(fname)
        if existing is not None and existing != relation:
            logger.warning(f"Skipping duplicate edge field '{fname}' on '{source_name}'")
            continue
        relations[source_name][fname] = relation

    return relations
