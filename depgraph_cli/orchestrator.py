"""Orchestrator coordinating scanning, validation, encoding, and queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .artifact import deserialize, serialize
from .config_manager import Settings
from .errors import DepGraphError, ValidationError
from .graph import DependencyGraph, build_graph
from .impact import query_impact
from .models import QueryResult, ScanWarning
from .paths import PathLike
from .scanner import FileSource, RepositoryScanner


@dataclass
class PrepareResult:
    graph: DependencyGraph
    artifact: str
    warnings: List[ScanWarning] = field(default_factory=list)


class ImpactOrchestrator:
    """Runs the prepare and query operations with one set of settings."""

    def __init__(self, settings: Optional[Settings] = None, source: Optional[FileSource] = None):
        self.settings = settings or Settings()
        self.scanner = RepositoryScanner(
            manifest_names=self.settings.manifest_names,
            skip_dirs=self.settings.skip_dirs,
            follow_symlinks=self.settings.follow_symlinks,
            workers=self.settings.workers,
            source=source,
        )

    def prepare(self, root: PathLike, base: Optional[PathLike] = None) -> PrepareResult:
        """Scan *root*, validate, and encode the graph.

        Raises:
            ValidationError: Malformed declarations first, then structural
                errors found among the well-formed ones.
            ConfigError: *base* does not contain *root*.
        """
        scan = self.scanner.scan(Path(root), base=base)

        errors: List[DepGraphError] = list(scan.errors)
        graph: Optional[DependencyGraph] = None
        try:
            graph = build_graph(scan.nodes, allow_cycles=self.settings.allow_cycles)
        except ValidationError as exc:
            errors.extend(exc.errors)

        if errors:
            raise ValidationError(errors)
        return PrepareResult(graph=graph, artifact=serialize(graph), warnings=scan.warnings)

    def load(self, artifact: Union[str, DependencyGraph]) -> DependencyGraph:
        if isinstance(artifact, DependencyGraph):
            return artifact
        return deserialize(artifact)

    def query(
        self,
        artifact: Union[str, DependencyGraph],
        files: Iterable[PathLike],
        base: Optional[PathLike] = None,
    ) -> QueryResult:
        """Impact query against a graph or artifact text; bad artifacts raise DecodeError."""
        return query_impact(self.load(artifact), files, base=base)

    def dependencies(self, artifact: Union[str, DependencyGraph], name: str) -> List[str]:
        return self.load(artifact).dependencies_of(name)

    def dependents(self, artifact: Union[str, DependencyGraph], name: str) -> List[str]:
        return self.load(artifact).dependents_of(name)
