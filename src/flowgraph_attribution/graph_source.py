"""Loading recorded execution graphs from JSON.

The pipeline engine exports a run's flow graph as JSON, either as an object
`{"run_id": ..., "nodes": [...]}` or as a bare list of node objects. This
module parses both shapes into a validated `ExecutionGraph`.

Unlike the walk itself, loading is not best-effort: a file that cannot be read
or does not match the node schema raises `GraphLoadError` so the caller can
report it instead of attributing an empty graph.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from .models.graph import ExecutionGraph

logger = logging.getLogger(__name__)

__all__ = ["GraphLoadError", "load_graph", "parse_graph"]


class GraphLoadError(Exception):
    """Raised when an execution graph payload cannot be read or validated."""


def parse_graph(payload: Any, *, run_id: str = "") -> ExecutionGraph:
    """Validate a decoded JSON payload into an ExecutionGraph.

    Args:
        payload: Decoded JSON (dict with `nodes`, or list of node dicts) or a
            JSON string
        run_id: Fallback run id when the payload does not carry one

    Returns:
        Validated, immutable ExecutionGraph

    Raises:
        GraphLoadError: payload is not JSON or does not match the node schema
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise GraphLoadError(f"graph payload is not valid JSON: {e}") from e
    if isinstance(payload, list):
        payload = {"nodes": payload}
    if not isinstance(payload, dict):
        raise GraphLoadError(
            f"graph payload must be an object or a list of nodes, got {type(payload).__name__}"
        )
    if run_id and not payload.get("run_id"):
        payload = {**payload, "run_id": run_id}
    try:
        graph = ExecutionGraph.model_validate(payload)
    except ValidationError as e:
        raise GraphLoadError(f"graph payload does not match schema: {e}") from e
    logger.debug("Parsed graph run=%s with %d node(s)", graph.run_id, len(graph))
    return graph


def load_graph(path: Union[str, Path]) -> ExecutionGraph:
    """Read and validate the execution graph stored at `path`.

    The file stem is used as run id when the payload has none.
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise GraphLoadError(f"cannot read graph file {p}: {e}") from e
    return parse_graph(raw, run_id=p.stem)
