from __future__ import annotations

import json

from typer.testing import CliRunner

from flowgraph_attribution.__main__ import app

runner = CliRunner()

_GRAPH = {
    "run_id": "cli-run",
    "nodes": [
        {"id": "1", "kind": "graph_start"},
        {"id": "2", "kind": "block_start", "parents": ["1"], "function_name": "node"},
        {"id": "3", "kind": "atomic", "parents": ["2"]},
        {"id": "4", "kind": "block_end", "parents": ["3"], "start_id": "2"},
    ],
}


def _write_graph(tmp_path, payload=None):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(payload if payload is not None else _GRAPH), encoding="utf-8")
    return path


def test_attribute_writes_output_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    graph_path = _write_graph(tmp_path)
    out_path = tmp_path / "out" / "result.json"
    result = runner.invoke(app, ["attribute", str(graph_path), "--output", str(out_path)])
    assert result.exit_code == 0, result.output
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data["run_id"] == "cli-run"
    assert data["workspace_nodes"]["3"] == "(built-in)"
    assert data["parallel_nodes"] == {}
    assert data["visited"] == 4
    assert data["failed"] == 0


def test_default_worker_override(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    graph_path = _write_graph(tmp_path)
    out_path = tmp_path / "result.json"
    result = runner.invoke(
        app,
        ["attribute", str(graph_path), "--output", str(out_path), "--default-worker", "controller"],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data["workspace_nodes"]["3"] == "controller"


def test_attribute_prints_to_stdout(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    graph_path = _write_graph(tmp_path)
    result = runner.invoke(app, ["attribute", str(graph_path), "--indent", "0"])
    assert result.exit_code == 0, result.output
    assert '"workspace_nodes": {"4": "(built-in)", "3": "(built-in)"}' in result.output


def test_invalid_graph_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    graph_path = _write_graph(tmp_path, {"nodes": [{"id": "1", "kind": "unknown"}]})
    result = runner.invoke(app, ["attribute", str(graph_path)])
    assert result.exit_code == 1


def test_missing_graph_file_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["attribute", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
