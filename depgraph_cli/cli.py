"""Typer-based CLI for preparing dependency graphs and querying change impact."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config
from .artifact import read_artifact
from .config_manager import load_settings
from .errors import ConfigError, DecodeError, DepGraphError, ValidationError
from .graph import DependencyGraph
from .graph_export import export_dot, export_mermaid
from .orchestrator import ImpactOrchestrator

err_console = Console(stderr=True)

app = typer.Typer(
    help="Monorepo dependency graphs and change impact queries.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"depgraph-cli v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="-v for info, -vv for debug logs."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Find which monorepo modules are affected by a set of changed files."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _describe(error: DepGraphError) -> tuple:
    data = error.to_dict()
    kind = data.pop("kind")
    location = data.pop("path", "") or data.pop("root_path", "")
    data.pop("message", None)
    if "cycle" in data:
        return kind, location, " -> ".join(data["cycle"])
    detail = str(error) if not data else ", ".join(
        f"{key}={', '.join(value) if isinstance(value, list) else value}"
        for key, value in data.items()
    )
    return kind, location, detail


def _render_errors(errors: List[DepGraphError]) -> None:
    table = Table(title="Dependency graph errors", show_lines=False)
    table.add_column("Kind", style="red")
    table.add_column("Location", style="cyan")
    table.add_column("Detail")
    for error in errors:
        table.add_row(*_describe(error))
    err_console.print(table)


def _load_graph(graph_file: Path) -> DependencyGraph:
    try:
        return read_artifact(graph_file)
    except DecodeError as exc:
        err_console.print(f"[red]✗[/red] {exc}")
        if exc.errors:
            _render_errors(exc.errors)
        raise typer.Exit(code=2)


@app.command("prepare")
def prepare(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory to scan recursively."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the artifact here instead of stdout."),
    manifest_name: Optional[List[str]] = typer.Option(
        None, "--manifest-name", "-m", help=f"Declaration file name (default: {config.MANIFEST_NAME}). Repeatable."
    ),
    allow_cycles: Optional[bool] = typer.Option(
        None, "--allow-cycles/--no-allow-cycles", help="Accept cyclic dependencies."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel scan workers."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", dir_okay=False, help=f"Settings file (default: DIR/{config.PROJECT_CONFIG_NAME})."
    ),
    relative_to: Optional[Path] = typer.Option(
        None, "--relative-to", help="Express module roots relative to this directory (default: DIR)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Report validation errors as JSON on stdout."),
):
    """Scan DIR for declaration files and emit a validated graph artifact."""
    try:
        settings = load_settings(
            config_file or directory / config.PROJECT_CONFIG_NAME,
            manifest_names=manifest_name or None,
            allow_cycles=allow_cycles,
            workers=workers,
        )
    except ConfigError as exc:
        err_console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=2)

    orchestrator = ImpactOrchestrator(settings)
    try:
        result = orchestrator.prepare(directory, base=relative_to)
    except ValidationError as exc:
        if as_json:
            typer.echo(json.dumps(exc.to_dict(), indent=2))
        else:
            err_console.print(f"[red]✗[/red] {exc}")
            _render_errors(exc.errors)
        raise typer.Exit(code=1)
    except ConfigError as exc:
        err_console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=2)

    for warning in result.warnings:
        err_console.print(f"[yellow]⚠[/yellow] {warning}")

    if output is None:
        typer.echo(result.artifact, nl=False)
    else:
        output.write_text(result.artifact, encoding="utf-8")
        typer.echo(f"Wrote {len(result.graph)} module(s) to {output}")


@app.command("query")
def query(
    files: Optional[List[str]] = typer.Argument(None, help="Changed file paths."),
    graph_file: Path = typer.Option(..., "--graph", "-g", exists=True, dir_okay=False, help="Graph artifact from 'prepare'."),
    stdin: bool = typer.Option(False, "--stdin", help="Also read newline-separated paths from stdin."),
    base: Optional[Path] = typer.Option(None, "--base", help="Directory absolute paths are relative to (default: cwd)."),
    names_only: bool = typer.Option(False, "--names-only", help="Print impacted module names, one per line."),
):
    """List modules impacted by changed files.

    HINT: pipe `git diff --name-only` into `dg query --stdin`.
    """
    paths = list(files or [])
    if stdin:
        paths.extend(
            line.strip() for line in typer.get_text_stream("stdin").read().splitlines() if line.strip()
        )

    graph = _load_graph(graph_file)
    result = ImpactOrchestrator().query(graph, paths, base=base or Path.cwd())

    if names_only:
        for name in result.names:
            typer.echo(name)
    else:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    for path in result.unresolved:
        err_console.print(f"[yellow]⚠[/yellow] No module owns '{path}'")


def _print_related(graph: DependencyGraph, name: str, upstream: bool) -> None:
    orchestrator = ImpactOrchestrator()
    try:
        names = orchestrator.dependencies(graph, name) if upstream else orchestrator.dependents(graph, name)
    except KeyError:
        err_console.print(f"[red]✗[/red] Module '{name}' not found in graph.")
        raise typer.Exit(code=1)

    if not names:
        typer.echo("none")
        return
    for item in names:
        typer.echo(item)


@app.command("deps")
def deps(
    name: str = typer.Argument(..., help="Module name."),
    graph_file: Path = typer.Option(..., "--graph", "-g", exists=True, dir_okay=False, help="Graph artifact."),
):
    """Show every module NAME depends on, directly or indirectly."""
    _print_related(_load_graph(graph_file), name, upstream=True)


@app.command("dependents")
def dependents(
    name: str = typer.Argument(..., help="Module name."),
    graph_file: Path = typer.Option(..., "--graph", "-g", exists=True, dir_okay=False, help="Graph artifact."),
):
    """Show every module that depends on NAME, directly or indirectly."""
    _print_related(_load_graph(graph_file), name, upstream=False)


@app.command("export")
def export(
    graph_file: Path = typer.Option(..., "--graph", "-g", exists=True, dir_okay=False, help="Graph artifact."),
    fmt: str = typer.Option("dot", "--format", "-f", help="Export format: dot or mermaid."),
    focus: str = typer.Option("", "--focus", help="Only show this module and its direct neighbours."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
):
    """Export the graph to Graphviz DOT or Mermaid."""
    fmt = fmt.lower()
    if fmt not in {"dot", "mermaid"}:
        raise typer.BadParameter("Format must be one of: dot, mermaid")

    graph = _load_graph(graph_file)
    text = export_dot(graph, focus=focus) if fmt == "dot" else export_mermaid(graph, focus=focus)

    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Exported graph to {output}")


if __name__ == "__main__":
    app()
