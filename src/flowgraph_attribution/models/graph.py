"""Pydantic models for representing a recorded pipeline execution graph.

These models provide a typed, immutable structure for the flow graph emitted
by the pipeline engine after (or during) a run. They are consumed read-only by
the traversal driver and the attribution walker; nothing in this package ever
mutates or persists a graph.

Node kinds form a closed set (`NodeKind`) so boundary resolution can branch on
the kind value instead of inspecting node classes.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class NodeKind(str, Enum):
    """Closed set of node shapes produced by the pipeline engine."""

    ATOMIC = "atomic"
    BLOCK_START = "block_start"
    BLOCK_END = "block_end"
    GRAPH_START = "graph_start"


def _coerce_id(v: Any) -> Any:
    # Engines commonly emit numeric ids; normalize to str for comparisons.
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    return v


class ExecutionNode(BaseModel):
    """A single immutable node of the execution graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: NodeKind
    parents: List[str] = Field(default_factory=list)
    function_name: Optional[str] = None
    arguments: Optional[Dict[str, Any]] = None
    # Only present on block-start nodes that allocate a worker
    worker_label: Optional[str] = None
    # Only present on block-end nodes: id of the matching block-start
    start_id: Optional[str] = None

    @field_validator("id", "start_id", mode="before")
    @classmethod
    def coerce_node_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("parents", mode="before")
    @classmethod
    def coerce_parent_ids(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_coerce_id(p) for p in v]
        return v


class ExecutionGraph(BaseModel):
    """The complete execution graph of one pipeline run.

    Nodes are stored in the order the engine emitted them. An id index and a
    parent→children index are built lazily on first lookup; since the model is
    frozen the indexes never go stale.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = ""
    nodes: List[ExecutionNode] = Field(default_factory=list)

    _by_id: Optional[Dict[str, ExecutionNode]] = PrivateAttr(default=None)
    _children: Optional[Dict[str, List[str]]] = PrivateAttr(default=None)

    @field_validator("run_id", mode="before")
    @classmethod
    def coerce_run_id(cls, v: Any) -> Any:
        if v is None:
            return ""
        return _coerce_id(v)

    def _index(self) -> Dict[str, ExecutionNode]:
        if self._by_id is None:
            self._by_id = {n.id: n for n in self.nodes}
        return self._by_id

    def node(self, node_id: Optional[str]) -> Optional[ExecutionNode]:
        """Return the node with the given id, or None when unknown."""
        if node_id is None:
            return None
        return self._index().get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index()

    def __len__(self) -> int:
        return len(self.nodes)

    def children_of(self, node_id: str) -> List[str]:
        """Ids of nodes listing `node_id` among their parents."""
        if self._children is None:
            children: Dict[str, List[str]] = {}
            for n in self.nodes:
                for p in n.parents:
                    children.setdefault(p, []).append(n.id)
            self._children = children
        return self._children.get(node_id, [])

    def end_nodes(self) -> List[ExecutionNode]:
        """Nodes that no other node lists as a parent (the heads of the run)."""
        return [n for n in self.nodes if not self.children_of(n.id)]


__all__ = ["NodeKind", "ExecutionNode", "ExecutionGraph"]
