"""
Compilation of GraphQL selections into a single traversal program.

Instead of resolving every relationship field with its own store round trip,
the compiler walks the whole selection tree of a root field up front and
emits one traversal that visits every requested relationship. Each visited
position is marked with an alias; the render tree records how aliases nest
so the result reconstructor can rebuild the GraphQL value.

Algorithm:
    1. Seed by label, or by `id`, or by `ids` (`ids` wins over `id`)
    2. Apply equality arguments, the accessibility scope and the filter tree
    3. Mark the root alias f0, then skip(offset) and limit(first)
    4. For each selected relationship field: mint an alias, traverse the
       edge, mark, skip/limit, and recurse into its selection set; before
       every sibling after the first, select back to the parent alias
    5. Render <alias>_gid / <alias>_data for every alias

Invariants:
    - The compiled schema is only read, never modified
    - Pagination is applied identically at every nesting level
    - Unknown or scalar selections emit no traversal steps
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from graphql.language import (
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    SelectionSetNode,
)

from .filters import compile_filter
from .program import Eq, TraversalProgram, Within, Without
from .render import ROOT_ALIAS, RenderTree

if TYPE_CHECKING:
    from ..schema.builder import CompiledSchema

logger = logging.getLogger(__name__)

ARG_LIMIT = "first"
ARG_OFFSET = "offset"
ARG_ID = "id"
ARG_IDS = "ids"
ARG_FILTER = "filter"
ARG_ACCESS = "accessibility"

RESERVED_ARGS = frozenset({ARG_LIMIT, ARG_OFFSET, ARG_ID, ARG_IDS, ARG_FILTER, ARG_ACCESS})

DEFAULT_LIMIT = 100
DEFAULT_OFFSET = 0


class Accessibility(Enum):
    """Which side of the caller's authorization scope to return."""

    ALL = "all"
    ACCESSIBLE = "accessible"
    UNACCESSIBLE = "unaccessible"


@dataclass(frozen=True)
class QueryArguments:
    """Arguments of a root query field, split by role.

    Attributes:
        id: Single vertex id to seed from
        ids: Vertex ids to seed from (takes precedence over id)
        first: Page size, applied at every level
        offset: Page offset, applied at every level
        accessibility: Scope side to return
        filter: Raw client filter object
        equality: Remaining arguments, applied as equality predicates
    """

    id: str | None = None
    ids: tuple[str, ...] | None = None
    first: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    accessibility: Accessibility = Accessibility.ALL
    filter: Any = None
    equality: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(
        cls,
        args: Mapping[str, Any],
        default_limit: int = DEFAULT_LIMIT,
        default_offset: int = DEFAULT_OFFSET,
    ) -> QueryArguments:
        """Split resolver arguments into their roles."""
        ids = args.get(ARG_IDS)
        first = args.get(ARG_LIMIT)
        offset = args.get(ARG_OFFSET)
        access = args.get(ARG_ACCESS) or Accessibility.ALL
        if not isinstance(access, Accessibility):
            access = Accessibility(access)
        return cls(
            id=args.get(ARG_ID),
            ids=tuple(ids) if ids is not None else None,
            first=default_limit if first is None else first,
            offset=default_offset if offset is None else offset,
            accessibility=access,
            filter=args.get(ARG_FILTER),
            equality={
                k: v for k, v in args.items() if k not in RESERVED_ARGS and v is not None
            },
        )


@dataclass
class CompiledQuery:
    """A traversal program and the render tree needed to read its results."""

    program: TraversalProgram
    render_tree: RenderTree


def iter_fields(
    selection_set: SelectionSetNode | None,
    fragments: Mapping[str, FragmentDefinitionNode],
) -> Iterator[FieldNode]:
    """Yield the fields of a selection set, flattening fragments."""
    if selection_set is None:
        return
    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            yield selection
        elif isinstance(selection, InlineFragmentNode):
            yield from iter_fields(selection.selection_set, fragments)
        elif isinstance(selection, FragmentSpreadNode):
            fragment = fragments.get(selection.name.value)
            if fragment is not None:
                yield from iter_fields(fragment.selection_set, fragments)


class QueryCompiler:
    """Compiles root field requests against one compiled schema.

    Thread safety:
        The compiler holds no per-request state and may be shared.

    Example:
        >>> compiler = QueryCompiler(compiled_schema)
        >>> compiled = compiler.compile("patient", {"first": 2}, info.field_nodes)
        >>> compiled.render_tree.aliases
        ['f0']
    """

    def __init__(self, schema: CompiledSchema, resource_field: str = "auth_resource_path") -> None:
        self.schema = schema
        self.resource_field = resource_field

    def compile(
        self,
        vertex_name: str,
        args: Mapping[str, Any] | QueryArguments,
        field_nodes: Iterable[FieldNode],
        fragments: Mapping[str, FragmentDefinitionNode] | None = None,
        scope: frozenset[str] = frozenset(),
    ) -> CompiledQuery:
        """Compile a root field into a traversal program.

        Args:
            vertex_name: GraphQL name of the root vertex type
            args: Resolver arguments (or pre-split QueryArguments)
            field_nodes: AST nodes of the root field
            fragments: Fragment definitions of the document
            scope: Resource paths the caller may read

        Returns:
            CompiledQuery with the program ending in a Render step
        """
        query_args = args if isinstance(args, QueryArguments) else QueryArguments.from_args(args)
        vertex = self.schema.vertex(vertex_name)

        program = self._seed(vertex.label, query_args)
        self._apply_filters(program, query_args, scope)
        program.mark(ROOT_ALIAS).skip(query_args.offset).limit(query_args.first)

        tree = RenderTree(ROOT_ALIAS)
        for node in field_nodes:
            self._walk(
                program,
                vertex_name,
                node.selection_set,
                ROOT_ALIAS,
                tree,
                query_args,
                fragments or {},
            )
        program.render(tree.aliases)
        logger.debug(f"Compiled {vertex_name} query: {program!r}")
        return CompiledQuery(program=program, render_tree=tree)

    def compile_count(
        self,
        vertex_name: str,
        args: Mapping[str, Any] | QueryArguments,
        count_name: str,
        scope: frozenset[str] = frozenset(),
    ) -> TraversalProgram:
        """Compile a count field: the seed and filters of a root field, counted."""
        query_args = args if isinstance(args, QueryArguments) else QueryArguments.from_args(args)
        vertex = self.schema.vertex(vertex_name)
        program = self._seed(vertex.label, query_args)
        self._apply_filters(program, query_args, scope)
        return program.count(count_name)

    def _seed(self, label: str, args: QueryArguments) -> TraversalProgram:
        program = TraversalProgram()
        if args.ids is not None:
            program.seed(args.ids)
        elif args.id is not None:
            program.seed([args.id])
        else:
            program.seed()
        return program.has_label(label)

    def _apply_filters(
        self, program: TraversalProgram, args: QueryArguments, scope: frozenset[str]
    ) -> None:
        for key, value in args.equality.items():
            if isinstance(value, (list, tuple)):
                program.has(Within(key, tuple(value)))
            else:
                program.has(Eq(key, value))

        if args.accessibility is Accessibility.ACCESSIBLE:
            program.has(Within(self.resource_field, tuple(sorted(scope))))
        elif args.accessibility is Accessibility.UNACCESSIBLE:
            program.has(Without(self.resource_field, tuple(sorted(scope))))

        tree = compile_filter(args.filter)
        if tree is not None:
            for predicate in tree.conjuncts():
                program.has(predicate)

    def _walk(
        self,
        program: TraversalProgram,
        vertex_name: str,
        selection_set: SelectionSetNode | None,
        current: str,
        tree: RenderTree,
        args: QueryArguments,
        fragments: Mapping[str, FragmentDefinitionNode],
    ) -> None:
        moved = False
        for node in iter_fields(selection_set, fragments):
            relation = self.schema.relation(vertex_name, node.name.value)
            if relation is None:
                continue
            if moved:
                program.select(current)
            alias = tree.new_element(current, node.name.value)
            program.out(relation.edge_label, relation.destination_label).mark(alias)
            program.skip(args.offset).limit(args.first)
            destination = self.schema.vertex_for_label(relation.destination_label)
            self._walk(
                program,
                destination.name,
                node.selection_set,
                alias,
                tree,
                args,
                fragments,
            )
            moved = True
