"""Graph export helpers for Graphviz DOT and Mermaid outputs."""

from __future__ import annotations

from typing import Dict, List, Set, Tuple

from .graph import DependencyGraph

Edge = Tuple[str, str]


def export_dot(graph: DependencyGraph, focus: str = "") -> str:
    names, edges = _focused_subgraph(graph, focus)

    lines = ["digraph Dependencies {"]
    lines.append("  rankdir=LR;")
    for name in names:
        node = graph.get_node(name)
        label = f"{name}\\n{node.root_path}"
        lines.append(f'  "{_esc(name)}" [label="{_esc(label)}"];')
    for src, dst in edges:
        lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}";')
    lines.append("}")
    return "\n".join(lines) + "\n"


def export_mermaid(graph: DependencyGraph, focus: str = "") -> str:
    names, edges = _focused_subgraph(graph, focus)
    ids: Dict[str, str] = {name: f"n{position}" for position, name in enumerate(names)}

    lines = ["graph LR"]
    for name in names:
        lines.append(f'  {ids[name]}["{_esc(name)}"]')
    for src, dst in edges:
        lines.append(f"  {ids[src]} --> {ids[dst]}")
    return "\n".join(lines) + "\n"


def _focused_subgraph(graph: DependencyGraph, focus: str) -> Tuple[List[str], List[Edge]]:
    """All nodes and edges, or only *focus* plus its direct neighbours."""
    edges = [(node.name, dep) for node in graph for dep in sorted(node.dependencies)]
    if not focus or focus not in graph:
        return [node.name for node in graph], edges

    edge_subset = [e for e in edges if focus in e]
    selected: Set[str] = {focus}
    for src, dst in edge_subset:
        selected.add(src)
        selected.add(dst)
    return sorted(selected), edge_subset


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
