"""Public facade for execution graph attribution.

This module provides the stable public API for turning a recorded execution
graph into worker and stage attribution. The walk itself is delegated to
`walking.scanner.ReverseGraphScanner` (traversal order, parallel tracking) and
`walking.walker.GraphWalker` (scope tracking).

Public Functions:
    build_walker: GraphWalker configured from Settings
    attribute_graph: Walk a graph and return an AttributionResult
"""
from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .models.graph import ExecutionGraph
from .walking.scanner import ReverseGraphScanner
from .walking.walker import GraphWalker

__all__ = ["AttributionResult", "attribute_graph", "build_walker"]


class AttributionResult(BaseModel):
    """Outcome of one attribution walk.

    `workspace_nodes` maps node id → worker label; `parallel_nodes` maps
    parallel block id → enclosing stage name ("" outside any stage).
    """

    run_id: str = ""
    workspace_nodes: Dict[str, str] = Field(default_factory=dict)
    parallel_nodes: Dict[str, str] = Field(default_factory=dict)
    visited: int = 0
    failed: int = 0

    def worker_for_node(self, node_id: str) -> Optional[str]:
        return self.workspace_nodes.get(str(node_id))

    def stage_for_parallel_block(self, block_id: str) -> Optional[str]:
        return self.parallel_nodes.get(str(block_id))


def build_walker(graph: ExecutionGraph, settings: Settings) -> GraphWalker:
    return GraphWalker(
        graph,
        default_worker_label=settings.DEFAULT_WORKER_LABEL,
        worker_function=settings.WORKER_FUNCTION_NAME,
        stage_function=settings.STAGE_FUNCTION_NAME,
        stage_name_argument=settings.STAGE_NAME_ARGUMENT,
    )


def attribute_graph(
    graph: ExecutionGraph,
    *,
    settings: Optional[Settings] = None,
) -> AttributionResult:
    """Attribute every node of `graph` to its worker and parallel blocks to stages.

    Args:
        graph: Recorded execution graph of one run
        settings: Configuration override; defaults to the cached application settings

    Returns:
        AttributionResult holding both mappings plus visit counters. Per-node
        failures are counted in `failed` and never abort the walk.
    """
    settings = settings or get_settings()
    walker = build_walker(graph, settings)
    scanner = ReverseGraphScanner(graph, parallel_function_name=settings.PARALLEL_FUNCTION_NAME)
    summary = scanner.walk(walker)
    return AttributionResult(
        run_id=graph.run_id,
        workspace_nodes=dict(walker.workspace_attribution()),
        parallel_nodes=dict(walker.parallel_attribution()),
        visited=summary.visited,
        failed=summary.failed,
    )
