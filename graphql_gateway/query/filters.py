"""
Compilation of client filter arguments into predicate trees.

The exploration front-end sends checkbox-style filters such as:

    {"AND": [{"project_id": ["P1", "P2"]}, {"gender": ["female"]}]}

Each field maps to the list of accepted values. Top-level entries are
conjoined; a field with several values becomes a disjunction of membership
predicates.

Invariants:
    - `id` addresses the store identity field `_gid`
    - Empty value lists are logged and skipped, never fatal
    - Trees are immutable once built
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..errors import InvalidFilterState
from .program import And, Or, Predicate, Within

logger = logging.getLogger(__name__)

IDENTITY_FIELD = "_gid"


class BoolOp(Enum):
    AND = "AND"
    OR = "OR"


def field_map(name: str) -> str:
    """Map a client field name onto the store field it addresses."""
    if name == "id":
        return IDENTITY_FIELD
    return name


@dataclass(frozen=True)
class FieldPredicate:
    """Accept elements whose field holds one of the given values."""

    field: str
    values: tuple[Any, ...]

    def to_predicate(self) -> Predicate:
        if len(self.values) == 1:
            return Within(self.field, (self.values[0],))
        return Or(tuple(Within(self.field, (v,)) for v in self.values))


@dataclass(frozen=True)
class BoolCombinator:
    op: BoolOp
    children: tuple[FilterNode, ...]

    def to_predicate(self) -> Predicate:
        preds = tuple(c.to_predicate() for c in self.children if _has_predicates(c))
        if len(preds) == 1:
            return preds[0]
        if self.op is BoolOp.OR:
            return Or(preds)
        return And(preds)


FilterNode = Union[FieldPredicate, BoolCombinator]


@dataclass(frozen=True)
class FilterExpressionTree:
    """Root of a compiled filter; its children are implicitly conjoined."""

    root: BoolCombinator

    @property
    def is_empty(self) -> bool:
        return next(self.conjuncts(), None) is None

    def conjuncts(self) -> Iterator[Predicate]:
        """Yield the predicates appended as successive `has` steps."""
        for child in self.root.children:
            if isinstance(child, BoolCombinator) and child.op is BoolOp.AND:
                for grandchild in child.children:
                    if _has_predicates(grandchild):
                        yield grandchild.to_predicate()
            elif _has_predicates(child):
                yield child.to_predicate()


def _has_predicates(node: FilterNode) -> bool:
    if isinstance(node, FieldPredicate):
        return True
    return any(_has_predicates(c) for c in node.children)


def _compile_field(name: str, values: Any) -> FieldPredicate:
    if isinstance(values, (list, tuple)):
        if not values:
            raise InvalidFilterState(
                "Error state checkbox filter not populated but list was created",
                field_name=name,
            )
        return FieldPredicate(field_map(name), tuple(values))
    return FieldPredicate(field_map(name), (values,))


def _as_bool_op(key: str) -> BoolOp | None:
    try:
        return BoolOp(key.upper())
    except ValueError:
        return None


def _compile_entries(entries: Mapping[str, Any]) -> list[FilterNode]:
    nodes: list[FilterNode] = []
    for key, value in entries.items():
        op = _as_bool_op(key)
        if op is not None:
            nodes.append(_compile_combinator(op, value))
            continue
        try:
            nodes.append(_compile_field(key, value))
        except InvalidFilterState as e:
            logger.error(f"Skipping filter on '{key}': {e.message}")
    return nodes


def _compile_combinator(op: BoolOp, operand: Any) -> BoolCombinator:
    if isinstance(operand, Mapping):
        operand = [operand]
    if not isinstance(operand, (list, tuple)):
        logger.error(f"Skipping {op.value} filter: expected a list of objects, got {operand!r}")
        return BoolCombinator(op, ())

    children: list[FilterNode] = []
    for item in operand:
        if not isinstance(item, Mapping):
            logger.error(f"Skipping {op.value} filter entry: expected an object, got {item!r}")
            continue
        children.extend(_compile_entries(item))
    return BoolCombinator(op, tuple(children))


def compile_filter(filter_arg: Any) -> FilterExpressionTree | None:
    """Compile a client filter argument.

    Args:
        filter_arg: Nested filter object, or None; anything else is logged and ignored

    Returns:
        FilterExpressionTree, or None when there is nothing to filter on

    Example:
        >>> tree = compile_filter({"AND": [{"project_id": ["P1", "P2"]}]})
        >>> list(tree.conjuncts())
        [Or(children=(Within(field='project_id', values=('P1',)), Within(field='project_id', values=('P2',))))]
    """
    if not filter_arg:
        return None
    if not isinstance(filter_arg, Mapping):
        e = InvalidFilterState(f"Filter must be an object, got {type(filter_arg).__name__}")
        logger.error(f"Skipping filter: {e.message}", extra={"error_code": e.code})
        return None
    tree = FilterExpressionTree(BoolCombinator(BoolOp.AND, tuple(_compile_entries(filter_arg))))
    if tree.is_empty:
        return None
    logger.debug(f"Filter compiled: {list(tree.conjuncts())}")
    return tree
