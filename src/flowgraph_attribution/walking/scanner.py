"""Reference traversal driver delivering graph nodes in reverse topological order.

The scanner walks a finished execution graph from its heads (nodes nobody
lists as a parent) back to the graph start, visiting every node exactly once
and only after all of its children. Among nodes ready at the same time the
highest numeric id goes first, so sequential runs are replayed newest first.
A parallel join releases all of its branches at once; each branch is then
finished before the next one starts.

While walking it tracks which parallel fork the walk is currently inside.
Forks and branches are both `parallel` block-starts. The topmost one of a
chain of first parents is a fork, and the two alternate below it:

    fork start (parallel) ── branch start (parallel) ── ... ── branch end ──┐
                          └─ branch start (parallel) ── ... ── branch end ──┴─ fork end

Reaching a fork end pushes the fork start id after the end node is visited;
reaching the fork start pops it before the start node is visited. Nodes
strictly between the two therefore report the fork start id through
`current_parallel_start_id()`.

Per-node failures reported by the walker are logged and counted; the loop
always continues to the next node.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..models.graph import ExecutionGraph, ExecutionNode, NodeKind
from .walker import GraphWalker

logger = logging.getLogger(__name__)

__all__ = ["ReverseGraphScanner", "WalkSummary"]


@dataclass
class WalkSummary:
    visited: int = 0
    failed: int = 0
    failed_node_ids: List[str] = field(default_factory=list)
    unreached_node_ids: List[str] = field(default_factory=list)


def _order_key(node_id: str) -> Tuple[int, int, str]:
    # Smallest key is visited first: numeric ids before others, highest id first.
    try:
        return (0, -int(node_id), "")
    except ValueError:
        return (1, 0, node_id)


class ReverseGraphScanner:
    """Drive a GraphWalker over an ExecutionGraph, newest node first."""

    def __init__(self, graph: ExecutionGraph, *, parallel_function_name: str = "parallel") -> None:
        self.graph = graph
        self.parallel_function_name = parallel_function_name
        self._parallel_stack: List[str] = []
        self._fork_memo: Dict[str, bool] = {}

    def current_parallel_start_id(self) -> Optional[str]:
        return self._parallel_stack[-1] if self._parallel_stack else None

    def _is_parallel_start(self, node: Optional[ExecutionNode]) -> bool:
        return (
            node is not None
            and node.kind is NodeKind.BLOCK_START
            and node.function_name == self.parallel_function_name
        )

    def _is_fork(self, start: ExecutionNode) -> bool:
        """Classify a `parallel` block-start as fork (True) or branch (False).

        Walking up first parents, the topmost `parallel` start of an unbroken
        chain is a fork; below it forks and branches alternate, since a branch
        start always hangs off its fork and a fork opened as the first step of
        a branch hangs off that branch.
        """
        chain: List[ExecutionNode] = []
        node = start
        while node.id not in self._fork_memo:
            chain.append(node)
            parent = self.graph.node(node.parents[0]) if node.parents else None
            if parent is None or not self._is_parallel_start(parent) or parent in chain:
                self._fork_memo[node.id] = True
                chain.pop()
                break
            node = parent
        is_fork = self._fork_memo[node.id]
        for n in reversed(chain):
            is_fork = not is_fork
            self._fork_memo[n.id] = is_fork
        return self._fork_memo[start.id]

    def _fork_start_for_end(self, node: ExecutionNode) -> Optional[str]:
        """Fork start id when `node` closes a parallel fork (not a single branch)."""
        if node.kind is not NodeKind.BLOCK_END:
            return None
        start = self.graph.node(node.start_id)
        if start is None or not self._is_parallel_start(start):
            return None
        if not self._is_fork(start):
            return None
        return start.id

    def iter_reverse(self):
        """Yield nodes children-first; nodes on a cycle are never yielded.

        Ready nodes are kept on a LIFO stack, so once a parallel join releases
        its branch ends, each branch is walked down to its start before the
        next branch begins. Scopes inside a branch therefore stay nested even
        when the engine interleaved the branch ids.
        """
        pending: Dict[str, int] = {}
        for n in self.graph.nodes:
            pending[n.id] = len(set(self.graph.children_of(n.id)))
        stack: List[str] = []

        def _push_ready(node_ids: List[str]) -> None:
            # highest id ends up on top
            for nid in sorted(node_ids, key=_order_key, reverse=True):
                stack.append(nid)

        _push_ready(list(dict.fromkeys(n.id for n in self.graph.end_nodes())))
        while stack:
            node_id = stack.pop()
            node = self.graph.node(node_id)
            if node is None:
                continue
            yield node
            ready: List[str] = []
            for parent_id in dict.fromkeys(node.parents):
                if parent_id not in pending:
                    logger.debug("node %s lists unknown parent %s", node_id, parent_id)
                    continue
                pending[parent_id] -= 1
                if pending[parent_id] == 0:
                    ready.append(parent_id)
            _push_ready(ready)

    def walk(self, walker: GraphWalker) -> WalkSummary:
        """Visit every reachable node with `walker` and summarize the outcome."""
        summary = WalkSummary()
        seen = set()
        self._parallel_stack.clear()
        for node in self.iter_reverse():
            if self._parallel_stack and self._parallel_stack[-1] == node.id:
                self._parallel_stack.pop()
            result = walker.visit(node, self)
            summary.visited += 1
            seen.add(node.id)
            if not result.ok:
                summary.failed += 1
                summary.failed_node_ids.append(result.node_id)
            fork_id = self._fork_start_for_end(node)
            if fork_id is not None:
                self._parallel_stack.append(fork_id)
        summary.unreached_node_ids = [n.id for n in self.graph.nodes if n.id not in seen]
        if summary.unreached_node_ids:
            logger.warning(
                "run=%s: %d node(s) not reachable in reverse order: %s",
                self.graph.run_id,
                len(summary.unreached_node_ids),
                ", ".join(summary.unreached_node_ids[:10]),
            )
        if summary.failed:
            logger.warning(
                "run=%s: attribution failed for %d of %d node(s)",
                self.graph.run_id,
                summary.failed,
                summary.visited,
            )
        return summary
