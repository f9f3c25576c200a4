"""Declaration file parsing: one TOML document in, one :class:`Node` out."""

from __future__ import annotations

import datetime
import math
from typing import Any, Dict, FrozenSet, Tuple

import toml

from .errors import MalformedDeclaration
from .models import Node
from .paths import canonical_path, escapes_root


def parse_manifest(content: str, directory: str, source: str = "") -> Node:
    """Parse declaration *content* found in *directory*.

    Accepts ``name`` at top level or inside a ``[module]`` table, and
    ``dependencies`` either as a list of names or as a table of
    ``{ name = "..." }`` entries. An optional ``[file_paths]`` table narrows
    ownership with ``include``/``exclude`` globs relative to *directory*.

    Args:
        content: Raw TOML text of the declaration file.
        directory: Directory the file was found in; becomes ``root_path``.
        source: Location reported in errors. Defaults to *directory*.

    Raises:
        MalformedDeclaration: The document is not TOML or a field is invalid.
    """
    location = source or directory
    try:
        document = toml.loads(content)
    # the toml decoder leaks IndexError and friends on truncated input
    except (toml.TomlDecodeError, IndexError, ValueError, TypeError) as exc:
        raise MalformedDeclaration(location, f"invalid TOML: {exc}") from exc

    name = _read_name(document, location)
    dependencies = _read_dependencies(document.get("dependencies"), location)
    include, exclude = _read_file_paths(document.get("file_paths"), location)

    metadata = document.get("metadata", {})
    if not isinstance(metadata, dict):
        raise MalformedDeclaration(location, "'metadata' must be a table")

    return Node(
        name=name,
        root_path=canonical_path(directory),
        dependencies=dependencies,
        metadata=_to_json_value(metadata, location),
        include=include,
        exclude=exclude,
    )


def _read_name(document: Dict[str, Any], location: str) -> str:
    name = document.get("name")
    module = document.get("module")
    if name is None and isinstance(module, dict):
        name = module.get("name")

    if name is None:
        raise MalformedDeclaration(location, "missing required field 'name'")
    if not isinstance(name, str):
        raise MalformedDeclaration(location, "'name' must be a string")
    if not name.strip():
        raise MalformedDeclaration(location, "'name' must not be empty")
    return name.strip()


def _read_dependencies(raw: Any, location: str) -> FrozenSet[str]:
    if raw is None:
        return frozenset()

    if isinstance(raw, list):
        entries = raw
    elif isinstance(raw, dict):
        # [dependencies] table: `key = "name"` or `key = { name = "name" }`
        entries = [
            value.get("name") if isinstance(value, dict) else value
            for value in raw.values()
        ]
    else:
        raise MalformedDeclaration(location, "'dependencies' must be a list or a table")

    names = set()
    for entry in entries:
        if not isinstance(entry, str) or not entry.strip():
            raise MalformedDeclaration(
                location, f"dependency entries must be non-empty strings, got {entry!r}"
            )
        names.add(entry.strip())
    return frozenset(names)


def _read_file_paths(raw: Any, location: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    if raw is None:
        return (), ()
    if not isinstance(raw, dict):
        raise MalformedDeclaration(location, "'file_paths' must be a table")
    return (
        _read_patterns(raw.get("include", []), "include", location),
        _read_patterns(raw.get("exclude", []), "exclude", location),
    )


def _read_patterns(raw: Any, key: str, location: str) -> Tuple[str, ...]:
    if not isinstance(raw, list):
        raise MalformedDeclaration(location, f"'file_paths.{key}' must be a list")
    patterns = []
    for entry in raw:
        if not isinstance(entry, str) or not entry.strip():
            raise MalformedDeclaration(
                location, f"'file_paths.{key}' entries must be non-empty strings, got {entry!r}"
            )
        pattern = canonical_path(entry.strip())
        if pattern.startswith("/") or escapes_root(pattern):
            raise MalformedDeclaration(
                location, f"'file_paths.{key}' pattern must stay inside the module: {entry!r}"
            )
        patterns.append(pattern)
    return tuple(sorted(set(patterns)))


def _to_json_value(value: Any, location: str) -> Any:
    if isinstance(value, dict):
        return {str(key): _to_json_value(item, location) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(item, location) for item in value]
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedDeclaration(location, f"metadata numbers must be finite, got {value!r}")
    return value
