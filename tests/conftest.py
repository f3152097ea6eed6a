import sys
from pathlib import Path

import pytest

# Ensure `src` is on sys.path for tests when not installed editable.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from flowgraph_attribution.config import get_settings  # noqa: E402
from flowgraph_attribution.models.graph import ExecutionGraph  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def worker_graph() -> ExecutionGraph:
    """graph-start → node(agent-1) → A → B → end of node block."""
    return ExecutionGraph.model_validate(
        {
            "run_id": "run-worker",
            "nodes": [
                {"id": "1", "kind": "graph_start"},
                {
                    "id": "2",
                    "kind": "block_start",
                    "parents": ["1"],
                    "function_name": "node",
                    "worker_label": "agent-1",
                },
                {"id": "3", "kind": "atomic", "parents": ["2"], "function_name": "sh"},
                {"id": "4", "kind": "atomic", "parents": ["3"], "function_name": "sh"},
                {"id": "5", "kind": "block_end", "parents": ["4"], "start_id": "2"},
            ],
        }
    )


@pytest.fixture
def stage_parallel_graph() -> ExecutionGraph:
    """Stage "build" (10-20) wrapping a parallel fork at 15 with two branches.

    10 stage start ── 15 fork ─┬─ 16 branch a ── 17 sh ── 18 end a ─┬─ 19 fork end ── 20 stage end
                               └─ 21 branch b ── 22 sh ── 23 end b ─┘
    """
    return ExecutionGraph.model_validate(
        {
            "run_id": "run-parallel",
            "nodes": [
                {"id": 2, "kind": "graph_start"},
                {
                    "id": 10,
                    "kind": "block_start",
                    "parents": [2],
                    "function_name": "stage",
                    "arguments": {"name": "build"},
                },
                {"id": 15, "kind": "block_start", "parents": [10], "function_name": "parallel"},
                {"id": 16, "kind": "block_start", "parents": [15], "function_name": "parallel"},
                {"id": 17, "kind": "atomic", "parents": [16], "function_name": "sh"},
                {"id": 18, "kind": "block_end", "parents": [17], "start_id": 16},
                {"id": 21, "kind": "block_start", "parents": [15], "function_name": "parallel"},
                {"id": 22, "kind": "atomic", "parents": [21], "function_name": "sh"},
                {"id": 23, "kind": "block_end", "parents": [22], "start_id": 21},
                {"id": 19, "kind": "block_end", "parents": [18, 23], "start_id": 15},
                {"id": 20, "kind": "block_end", "parents": [19], "start_id": 10},
            ],
        }
    )


@pytest.fixture
def interleaved_branches_graph() -> ExecutionGraph:
    """Stage "deploy" forking at 11 into two branches whose ids interleave.

    branch 12: node 14 ("linux-a") → body 16 → sh 18 → 20 → 22 → 24
    branch 13: node 15 ("linux-b") → body 17 → sh 19 → 21 → 23 → 25
    joined at 26, stage closed at 27.
    """
    return ExecutionGraph.model_validate(
        {
            "run_id": "run-interleaved",
            "nodes": [
                {"id": 1, "kind": "graph_start"},
                {
                    "id": 10,
                    "kind": "block_start",
                    "parents": [1],
                    "function_name": "stage",
                    "arguments": {"name": "deploy"},
                },
                {"id": 11, "kind": "block_start", "parents": [10], "function_name": "parallel"},
                {"id": 12, "kind": "block_start", "parents": [11], "function_name": "parallel"},
                {"id": 13, "kind": "block_start", "parents": [11], "function_name": "parallel"},
                {"id": 14, "kind": "block_start", "parents": [12], "function_name": "node", "worker_label": "linux-a"},
                {"id": 15, "kind": "block_start", "parents": [13], "function_name": "node", "worker_label": "linux-b"},
                {"id": 16, "kind": "block_start", "parents": [14], "function_name": "node"},
                {"id": 17, "kind": "block_start", "parents": [15], "function_name": "node"},
                {"id": 18, "kind": "atomic", "parents": [16], "function_name": "sh"},
                {"id": 19, "kind": "atomic", "parents": [17], "function_name": "sh"},
                {"id": 20, "kind": "block_end", "parents": [18], "start_id": 16},
                {"id": 21, "kind": "block_end", "parents": [19], "start_id": 17},
                {"id": 22, "kind": "block_end", "parents": [20], "start_id": 14},
                {"id": 23, "kind": "block_end", "parents": [21], "start_id": 15},
                {"id": 24, "kind": "block_end", "parents": [22], "start_id": 12},
                {"id": 25, "kind": "block_end", "parents": [23], "start_id": 13},
                {"id": 26, "kind": "block_end", "parents": [24, 25], "start_id": 11},
                {"id": 27, "kind": "block_end", "parents": [26], "start_id": 10},
            ],
        }
    )
