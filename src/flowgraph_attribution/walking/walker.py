"""Reverse-order execution graph walker attributing nodes to their scopes.

The walker is fed one node at a time by a traversal driver, from the most
recently completed node back to the graph start. Three scope trackers evolve
as the walk re-enters nested blocks:

    worker   - `node` blocks: which worker each visited node ran on
    stage    - `stage` blocks: the name of the enclosing stage
    parallel - fork points reported by the driver: which stage each
               parallel block belongs to

Two mappings are produced:

    workspace attribution: node id → worker label
    parallel attribution:  parallel block id → enclosing stage name

A failure while recording one node is logged and reported back to the driver
as a failed VisitResult; it never aborts the walk and never touches entries
already recorded.

Not thread safe; create one walker per graph walk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Protocol

from ..config import BUILT_IN_WORKER_LABEL as BUILT_IN_WORKER
from ..models.graph import ExecutionNode, NodeKind
from .boundary import NodeLookup, get_block_boundary_start_node
from .scope_state import ScopeState

logger = logging.getLogger(__name__)

__all__ = [
    "BUILT_IN_WORKER",
    "PARALLEL_BLOCK_ID_OFFSET",
    "GraphWalker",
    "TraversalContext",
    "VisitResult",
    "derive_parallel_block_id",
]

# The engine numbers the block enclosing a parallel branch start exactly one
# above the start marker. This is an external id-assignment guarantee of the
# graph producer; parallel attribution keys depend on it.
PARALLEL_BLOCK_ID_OFFSET = 1


def derive_parallel_block_id(start_id: str) -> Optional[str]:
    """Return the parallel block id for a branch start id, or None if non-numeric."""
    try:
        return str(int(start_id) + PARALLEL_BLOCK_ID_OFFSET)
    except (TypeError, ValueError):
        return None


class TraversalContext(Protocol):
    """Driver-side view of the walk position."""

    def current_parallel_start_id(self) -> Optional[str]: ...


@dataclass(frozen=True)
class VisitResult:
    node_id: str
    ok: bool = True
    error: Optional[str] = None


class GraphWalker:
    """Record worker and stage attribution while a driver walks a graph backwards.

    Args:
        nodes: Graph (or id → node mapping) used to resolve block references
        default_worker_label: Substituted when a worker block names no worker
        worker_function: Function name of worker allocation blocks
        stage_function: Function name of stage blocks
        stage_name_argument: Argument key holding the stage name
    """

    def __init__(
        self,
        nodes: NodeLookup | Mapping[str, ExecutionNode],
        *,
        default_worker_label: str = BUILT_IN_WORKER,
        worker_function: str = "node",
        stage_function: str = "stage",
        stage_name_argument: str = "name",
    ) -> None:
        self._nodes = nodes
        self._default_worker_label = default_worker_label or BUILT_IN_WORKER
        self._worker_function = worker_function
        self._stage_function = stage_function
        self._stage_name_argument = stage_name_argument
        self._worker = ScopeState("worker")
        self._stage = ScopeState("stage")
        self._parallel = ScopeState("parallel")
        # key is node id, value is worker label
        self._workspace_nodes: Dict[str, str] = {}
        # key is parallel block id, value is enclosing stage name
        self._parallel_nodes: Dict[str, str] = {}

    def visit(self, node: ExecutionNode, context: TraversalContext) -> VisitResult:
        """Attribute one node. Never raises; failures come back as ok=False."""
        try:
            self.record_exec_node(node)
            self.record_stage_node(node)
            self.record_parallel_node(context)
        except Exception as e:
            logger.warning(
                "failed to extract pipeline info node=%s kind=%s err=%s",
                getattr(node, "id", None),
                getattr(node, "kind", None),
                e,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return VisitResult(node_id=str(getattr(node, "id", "")), ok=False, error=str(e))
        return VisitResult(node_id=node.id)

    def _scope_boundary(self, node: ExecutionNode, function_name: str) -> Optional[ExecutionNode]:
        # The boundary must belong to the same step; a block nested directly
        # under another step kind does not open this scope.
        boundary = get_block_boundary_start_node(node, function_name, self._nodes)
        if boundary is None or boundary.function_name != function_name:
            return None
        return boundary

    def record_exec_node(self, node: ExecutionNode) -> None:
        """Track the worker scope and attribute `node` to the open worker."""
        if not self._worker.is_open:
            boundary = self._scope_boundary(node, self._worker_function)
            if boundary is not None:
                label = boundary.worker_label or self._default_worker_label
                self._worker.open(boundary.id, label)
                logger.debug("found workspace node id=%s, name=%s", boundary.id, label)
        elif node.kind is NodeKind.BLOCK_START and self._worker.closes_at(node.id):
            self._worker.close()
        if self._worker.is_open:
            self._workspace_nodes.setdefault(node.id, self._worker.label)  # type: ignore[arg-type]

    def record_stage_node(self, node: ExecutionNode) -> None:
        """Track the stage scope so parallel branches can be labelled."""
        if not self._stage.is_open:
            boundary = self._scope_boundary(node, self._stage_function)
            if boundary is not None:
                if boundary.arguments is not None:
                    value = boundary.arguments.get(self._stage_name_argument)
                    name = "" if value is None else str(value)
                else:
                    name = ""
                self._stage.open(boundary.id, name)
                logger.debug("found stage node id=%s, name=%s", boundary.id, name)
        elif node.kind is NodeKind.BLOCK_START and self._stage.closes_at(node.id):
            self._stage.close()

    def record_parallel_node(self, context: TraversalContext) -> None:
        """Record the enclosing stage of a newly entered parallel branch."""
        start_id = context.current_parallel_start_id()
        if start_id is None or start_id == self._parallel.boundary_id:
            return
        stage_name = self._stage.label or ""
        self._parallel.open(start_id, stage_name)
        block_id = derive_parallel_block_id(start_id)
        if block_id is None:
            logger.debug("non-numeric parallel start id=%s; skipped", start_id)
            return
        self._parallel_nodes[block_id] = stage_name

    @property
    def current_worker(self) -> Optional[str]:
        return self._worker.label

    @property
    def current_stage(self) -> Optional[str]:
        return self._stage.label

    def workspace_attribution(self) -> Mapping[str, str]:
        return MappingProxyType(self._workspace_nodes)

    def parallel_attribution(self) -> Mapping[str, str]:
        return MappingProxyType(self._parallel_nodes)
