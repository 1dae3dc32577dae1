"""
Render trees and reconstruction of nested results from flat records.

The store returns one flat record per traversal result, keyed per alias as
<alias>_gid and <alias>_data. The render tree remembers, for every alias
minted by the query compiler, which alias it hangs under and under which
field name, so the nested GraphQL value can be folded back together.

Invariants:
    - The root alias is "f0"; every other alias has exactly one parent
    - Parents are minted before their children
    - An alias is present in a record only if its gid is non-empty
    - Relationship values are always lists: [child] or []
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

ROOT_ALIAS = "f0"


@dataclass(frozen=True)
class RenderNode:
    """One alias of the render tree.

    Attributes:
        alias: Traversal alias
        parent: Parent alias (None for the root)
        field_name: Field under the parent that receives this alias' object
    """

    alias: str
    parent: str | None = None
    field_name: str | None = None


class RenderTree:
    """Forest of render nodes rooted at the synthetic root alias."""

    def __init__(self, root: str = ROOT_ALIAS) -> None:
        self._nodes: list[RenderNode] = [RenderNode(root)]

    @property
    def root(self) -> str:
        return self._nodes[0].alias

    @property
    def nodes(self) -> tuple[RenderNode, ...]:
        return tuple(self._nodes)

    @property
    def aliases(self) -> list[str]:
        return [n.alias for n in self._nodes]

    def new_element(self, parent: str, field_name: str) -> str:
        """Mint a new alias under parent and record its field name."""
        if parent not in self.aliases:
            raise ValueError(f"Unknown parent alias: {parent}")
        alias = f"f{len(self._nodes)}"
        self._nodes.append(RenderNode(alias, parent, field_name))
        return alias

    def children(self, alias: str) -> list[RenderNode]:
        return [n for n in self._nodes if n.parent == alias]

    def __len__(self) -> int:
        return len(self._nodes)


def _present_objects(record: Mapping[str, Any], tree: RenderTree) -> dict[str, dict[str, Any]]:
    objects: dict[str, dict[str, Any]] = {}
    for alias in tree.aliases:
        gid = record.get(f"{alias}_gid")
        if not gid:
            continue
        payload = record.get(f"{alias}_data")
        obj = dict(payload) if isinstance(payload, Mapping) else {}
        obj["id"] = gid
        objects[alias] = obj
    return objects


def reconstruct(records: Iterable[Mapping[str, Any]], tree: RenderTree) -> list[dict[str, Any]]:
    """Fold flat per-alias records into nested objects.

    Args:
        records: Flat records from the store, in result order
        tree: Render tree produced alongside the traversal program

    Returns:
        One nested object per record whose root alias is present

    Example:
        >>> tree = RenderTree()
        >>> tree.new_element("f0", "has_sample")
        'f1'
        >>> reconstruct([{"f0_gid": "p1", "f0_data": {}, "f1_gid": "", "f1_data": None}], tree)
        [{'id': 'p1', 'has_sample': []}]
    """
    out: list[dict[str, Any]] = []
    for record in records:
        objects = _present_objects(record, tree)
        root = objects.get(tree.root)
        if root is None:
            continue
        for node in tree.nodes[1:]:
            parent = objects.get(node.parent)
            if parent is None:
                continue
            child = objects.get(node.alias)
            parent[node.field_name] = [child] if child is not None else []
        out.append(root)
    return out
