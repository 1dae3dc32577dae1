"""
Query compilation for the GraphQL gateway.

- program: Traversal programs and predicates
- filters: Client filter arguments to predicate trees
- compiler: GraphQL selections to one traversal program
- render: Render trees and result reconstruction
"""

from .compiler import (
    Accessibility,
    CompiledQuery,
    QueryArguments,
    QueryCompiler,
    iter_fields,
)
from .filters import FilterExpressionTree, compile_filter
from .program import And, Eq, Or, TraversalProgram, Within, Without
from .render import ROOT_ALIAS, RenderNode, RenderTree, reconstruct

__all__ = [
    "Accessibility",
    "CompiledQuery",
    "QueryArguments",
    "QueryCompiler",
    "iter_fields",
    "FilterExpressionTree",
    "compile_filter",
    "And",
    "Eq",
    "Or",
    "TraversalProgram",
    "Within",
    "Without",
    "ROOT_ALIAS",
    "RenderNode",
    "RenderTree",
    "reconstruct",
]
