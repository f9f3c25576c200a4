"""Structured error types raised while building and loading dependency graphs.

Every error exposes ``to_dict()`` so callers can render or machine-process it
without parsing message text.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence


class DepGraphError(Exception):
    """Base class for all depgraph errors."""

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": type(self).__name__, "message": str(self)}


class ConfigError(DepGraphError):
    """A configuration file exists but cannot be used."""


class MalformedDeclaration(DepGraphError):
    """A declaration file cannot be turned into a node."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed declaration at '{path}': {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "MalformedDeclaration", "path": self.path, "reason": self.reason}


class DuplicateName(DepGraphError):
    """Two or more declarations use the same module name."""

    def __init__(self, name: str, paths: Iterable[str]) -> None:
        self.name = name
        self.paths = sorted(paths)
        super().__init__(
            f"Duplicate module name '{name}' declared at: {', '.join(self.paths)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "DuplicateName", "name": self.name, "paths": list(self.paths)}


class DuplicateRoot(DepGraphError):
    """Two or more modules claim the exact same root directory."""

    def __init__(self, root_path: str, names: Iterable[str]) -> None:
        self.root_path = root_path
        self.names = sorted(names)
        super().__init__(
            f"Root '{root_path}' is claimed by several modules: {', '.join(self.names)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "DuplicateRoot", "root_path": self.root_path, "names": list(self.names)}


class UnknownDependency(DepGraphError):
    """A module depends on a name no declaration provides."""

    def __init__(self, node: str, dependency: str, path: str = "") -> None:
        self.node = node
        self.dependency = dependency
        self.path = path
        location = f" (at '{path}')" if path else ""
        super().__init__(
            f"Module '{node}'{location} depends on unknown module '{dependency}'"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "UnknownDependency",
            "node": self.node,
            "dependency": self.dependency,
            "path": self.path,
        }


class CyclicDependency(DepGraphError):
    """A dependency cycle; ``cycle`` starts and ends with the same name."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "CyclicDependency", "cycle": list(self.cycle)}


class ValidationError(DepGraphError):
    """Collects every problem found while validating a set of nodes."""

    def __init__(self, errors: Sequence[DepGraphError]) -> None:
        self.errors: List[DepGraphError] = list(errors)
        noun = "error" if len(self.errors) == 1 else "errors"
        super().__init__(f"Dependency graph is invalid ({len(self.errors)} {noun})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "ValidationError",
            "message": str(self),
            "errors": [error.to_dict() for error in self.errors],
        }


class DecodeError(DepGraphError):
    """A graph artifact is unreadable or fails re-validation."""

    def __init__(self, message: str, errors: Sequence[DepGraphError] = ()) -> None:
        self.errors: List[DepGraphError] = list(errors)
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "DecodeError",
            "message": str(self),
            "errors": [error.to_dict() for error in self.errors],
        }
