"""JSON artifact encoding for validated dependency graphs.

Artifacts are deterministic (sorted nodes, sorted keys, fixed indentation) so
that two runs over the same repository produce byte-identical files. Loading
an artifact re-validates it: a stale or hand-edited file is rejected with the
same structural errors the builder reports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .errors import DecodeError, ValidationError
from .graph import DependencyGraph, build_graph
from .models import Node
from .paths import canonical_path

FORMAT_VERSION = 1


def serialize(graph: DependencyGraph) -> str:
    """Encode *graph*; raises ValueError for non-finite metadata numbers."""
    payload = {
        "format_version": FORMAT_VERSION,
        "allow_cycles": graph.allow_cycles,
        "nodes": [node.to_dict() for node in graph],
    }
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False, allow_nan=False) + "\n"


def deserialize(text: str) -> DependencyGraph:
    """Rebuild a graph from artifact *text*.

    Raises:
        DecodeError: Invalid JSON, unexpected shape, or failed re-validation.
    """
    try:
        payload = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise DecodeError(f"Artifact is not valid JSON: {exc}") from exc

    allow_cycles = False
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        version = payload.get("format_version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise DecodeError(f"Unsupported artifact format_version: {version!r}")
        records = payload.get("nodes")
        allow_cycles = payload.get("allow_cycles", False)
        if not isinstance(allow_cycles, bool):
            raise DecodeError("'allow_cycles' must be a boolean")
    else:
        raise DecodeError("Artifact must be a JSON object or a list of node records")

    if not isinstance(records, list):
        raise DecodeError("Artifact 'nodes' must be a list")

    nodes = [_node_from_record(record, position) for position, record in enumerate(records)]
    try:
        return build_graph(nodes, allow_cycles=allow_cycles)
    except ValidationError as exc:
        raise DecodeError(f"Artifact failed validation: {exc}", exc.errors) from exc


def write_artifact(graph: DependencyGraph, path: Path) -> None:
    Path(path).write_text(serialize(graph), encoding="utf-8")


def read_artifact(path: Path) -> DependencyGraph:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DecodeError(f"Cannot read artifact '{path}': {exc}") from exc
    return deserialize(text)


def _node_from_record(record: Any, position: int) -> Node:
    if not isinstance(record, dict):
        raise DecodeError(f"Node record #{position} must be an object")

    name = record.get("name")
    if not isinstance(name, str) or not name:
        raise DecodeError(f"Node record #{position} has no valid 'name'")

    root_path = record.get("root_path")
    if not isinstance(root_path, str) or not root_path:
        raise DecodeError(f"Node '{name}' has no valid 'root_path'")

    dependencies: List[Any] = record.get("dependencies", [])
    if not isinstance(dependencies, list) or not all(isinstance(d, str) for d in dependencies):
        raise DecodeError(f"Node '{name}' has invalid 'dependencies'")

    metadata: Dict[str, Any] = record.get("metadata", {})
    if not isinstance(metadata, dict):
        raise DecodeError(f"Node '{name}' has invalid 'metadata'")

    file_paths = record.get("file_paths", {})
    if not isinstance(file_paths, dict):
        raise DecodeError(f"Node '{name}' has invalid 'file_paths'")
    include = _patterns(file_paths, "include", name)
    exclude = _patterns(file_paths, "exclude", name)

    return Node(
        name=name,
        root_path=canonical_path(root_path),
        dependencies=frozenset(dependencies),
        metadata=metadata,
        include=include,
        exclude=exclude,
    )


def _patterns(file_paths: Dict[str, Any], key: str, name: str) -> Tuple[str, ...]:
    patterns = file_paths.get(key, [])
    if not isinstance(patterns, list) or not all(isinstance(p, str) and p for p in patterns):
        raise DecodeError(f"Node '{name}' has invalid 'file_paths.{key}'")
    return tuple(sorted(set(patterns)))


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-finite number {token} is not allowed")
