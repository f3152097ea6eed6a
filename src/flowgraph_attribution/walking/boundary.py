"""Block boundary resolution for reverse graph walks.

A scope (worker allocation, stage) is recognized in reverse order: the walker
first meets the block-end node, follows it to the matching block-start, and
from there to the *boundary* node whose id marks where the scope opened.

Resolution rules:
    1. Only block-end nodes can reveal a boundary.
    2. The matching block-start must exist and declare exactly the requested
       function name.
    3. The block-start must have at least one parent.
    4. First parent is a block-start → that parent is the boundary.
    5. First parent is the graph start → the block-start is its own boundary
       (top-level blocks have no wrapping step).
    6. Anything else → no boundary.

Malformed shapes (unknown ids, missing start references) resolve to None and
are never surfaced; callers treat None as "not in this scope".
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Optional, Protocol

from ..models.graph import ExecutionNode, NodeKind

__all__ = ["NodeLookup", "get_block_boundary_start_node"]


class NodeLookup(Protocol):
    def node(self, node_id: Optional[str]) -> Optional[ExecutionNode]: ...


def _lookup(nodes: NodeLookup | Mapping[str, ExecutionNode], node_id: Optional[str]) -> Optional[ExecutionNode]:
    if node_id is None:
        return None
    if isinstance(nodes, Mapping):
        return nodes.get(node_id)
    return nodes.node(node_id)


def get_block_boundary_start_node(
    node: ExecutionNode,
    function_name: str,
    nodes: NodeLookup | Mapping[str, ExecutionNode],
) -> Optional[ExecutionNode]:
    """Return the boundary block-start enclosing `node` for `function_name`.

    Args:
        node: Node currently visited by the walk
        function_name: Step function the block must declare (e.g. "node", "stage")
        nodes: Graph (or plain id → node mapping) used to follow id references

    Returns:
        Boundary block-start node, or None when `node` does not close a
        `function_name` block or the graph shape is unexpected
    """
    if node.kind is not NodeKind.BLOCK_END:
        return None
    block_start = _lookup(nodes, node.start_id)
    if block_start is None or block_start.function_name != function_name:
        return None
    if not block_start.parents:
        return None
    boundary = _lookup(nodes, block_start.parents[0])
    if boundary is None:
        return None
    if boundary.kind is NodeKind.BLOCK_START:
        return boundary
    if boundary.kind is NodeKind.GRAPH_START:
        return block_start
    return None
