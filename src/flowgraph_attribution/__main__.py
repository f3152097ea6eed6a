"""Main CLI entry point for flowgraph-attribution.

This module provides a command-line interface using Typer to attribute a
recorded execution graph:
1.  Loading configuration.
2.  Reading and validating the graph JSON (flowgraph_attribution.graph_source).
3.  Walking it in reverse to attribute nodes to workers and parallel blocks
    to stages (flowgraph_attribution.attribution).
4.  Writing the attribution as JSON to stdout or a file.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from .attribution import attribute_graph
from .config import get_settings
from .graph_source import GraphLoadError, load_graph

app = typer.Typer(help="Execution graph worker/stage attribution CLI")


@app.callback()
def main() -> None:
    """Attribute pipeline execution graph nodes to workers and stages."""


@app.command()
def attribute(
    graph_file: Path = typer.Argument(..., help="Path to the execution graph JSON file"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write JSON result to this file instead of stdout"
    ),
    default_worker: Optional[str] = typer.Option(
        None,
        help="Override DEFAULT_WORKER_LABEL (label used when a worker block names no worker)",
    ),
    indent: Optional[int] = typer.Option(
        None, help="Override OUTPUT_INDENT (0 = compact JSON)"
    ),
) -> None:
    """Attribute one execution graph and emit workspace/parallel mappings as JSON."""
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    logger = logging.getLogger(__name__)

    if default_worker is not None:
        settings = settings.model_copy(
            update={"DEFAULT_WORKER_LABEL": default_worker.strip() or settings.DEFAULT_WORKER_LABEL}
        )
    effective_indent = settings.OUTPUT_INDENT if indent is None else max(indent, 0)

    try:
        graph = load_graph(graph_file)
    except GraphLoadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    result = attribute_graph(graph, settings=settings)
    logger.info(
        "Run %s: visited=%d failed=%d workers=%d parallel_blocks=%d",
        result.run_id,
        result.visited,
        result.failed,
        len(result.workspace_nodes),
        len(result.parallel_nodes),
    )
    rendered = json.dumps(
        result.model_dump(),
        indent=effective_indent or None,
        ensure_ascii=False,
        sort_keys=False,
    )
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered + "\n", encoding="utf-8")
        typer.echo(f"Wrote attribution for run {result.run_id} to {output}")
    else:
        typer.echo(rendered)


if __name__ == "__main__":  # pragma: no cover
    app()
