"""Core data models shared by scanning, validation, and impact queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Tuple

from .errors import MalformedDeclaration
from .paths import matches_any


@dataclass(frozen=True)
class Node:
    """One declared module: its name, owned directory, and dependency names.

    ``include``/``exclude`` are optional glob patterns relative to
    ``root_path``. With no ``include`` patterns the node owns its whole
    directory; ``exclude`` always wins.
    """

    name: str
    root_path: str
    dependencies: FrozenSet[str] = frozenset()
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "include", tuple(sorted(set(self.include))))
        object.__setattr__(self, "exclude", tuple(sorted(set(self.exclude))))

    def owns(self, path: str) -> bool:
        """True when canonical *path*, already under ``root_path``, belongs here."""
        if self.include and not matches_any(path, self.root_path, self.include):
            return False
        return not matches_any(path, self.root_path, self.exclude)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "root_path": self.root_path,
            "dependencies": sorted(self.dependencies),
            "metadata": self.metadata,
        }
        if self.include or self.exclude:
            data["file_paths"] = {"include": list(self.include), "exclude": list(self.exclude)}
        return data


@dataclass(frozen=True)
class ImpactedNode:
    name: str
    root_path: str
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "root_path": self.root_path, "metadata": self.metadata}


@dataclass
class QueryResult:
    """Impacted nodes ordered by name, plus input paths with no owner."""

    impacted: List[ImpactedNode] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [node.name for node in self.impacted]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "impacted": [node.to_dict() for node in self.impacted],
            "unresolved": list(self.unresolved),
        }


@dataclass(frozen=True)
class ScanWarning:
    """A filesystem entry the scanner had to skip."""

    path: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": "ScanWarning", "path": self.path, "reason": self.reason}

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


@dataclass
class ScanResult:
    nodes: List[Node] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)
    errors: List[MalformedDeclaration] = field(default_factory=list)
