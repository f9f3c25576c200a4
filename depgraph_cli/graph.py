"""Dependency graph assembly and structural validation."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set

from .errors import (
    CyclicDependency,
    DepGraphError,
    DuplicateName,
    DuplicateRoot,
    UnknownDependency,
    ValidationError,
)
from .models import Node
from .paths import ancestors, escapes_root

logger = logging.getLogger(__name__)


class DependencyGraph:
    """A validated, immutable set of nodes indexed by name.

    Edges are stored as name references (dependent -> dependency). Build
    instances with :func:`build_graph` rather than calling the constructor.
    """

    def __init__(self, nodes: Mapping[str, Node], allow_cycles: bool = False) -> None:
        self._nodes: Dict[str, Node] = {name: nodes[name] for name in sorted(nodes)}
        self._by_root: Dict[str, str] = {node.root_path: node.name for node in self._nodes.values()}
        self._dependents: Optional[Dict[str, FrozenSet[str]]] = None
        self.allow_cycles = allow_cycles

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Mapping[str, Node]:
        return dict(self._nodes)

    @property
    def edges(self) -> Dict[str, FrozenSet[str]]:
        return {name: node.dependencies for name, node in self._nodes.items()}

    def get_node(self, name: str) -> Optional[Node]:
        return self._nodes.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyGraph):
            return NotImplemented
        return self._nodes == other._nodes and self.allow_cycles == other.allow_cycles

    def __repr__(self) -> str:
        return f"DependencyGraph({len(self._nodes)} nodes)"

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def dependents_map(self) -> Dict[str, FrozenSet[str]]:
        """Reverse edges: for each node, the nodes that declare it as a dependency."""
        if self._dependents is None:
            reverse: Dict[str, Set[str]] = {name: set() for name in self._nodes}
            for node in self._nodes.values():
                for dep in node.dependencies:
                    reverse[dep].add(node.name)
            self._dependents = {name: frozenset(names) for name, names in reverse.items()}
        return self._dependents

    def dependencies_of(self, name: str) -> List[str]:
        """Names this node depends on, directly or indirectly (sorted)."""
        self._require(name)
        return sorted(self._reach([name], lambda n: self._nodes[n].dependencies) - {name})

    def dependents_of(self, name: str) -> List[str]:
        """Names that depend on this node, directly or indirectly (sorted)."""
        self._require(name)
        reverse = self.dependents_map()
        return sorted(self._reach([name], lambda n: reverse[n]) - {name})

    def owner_of(self, path: str) -> Optional[Node]:
        """Return the node whose root most specifically covers canonical *path*.

        A root whose ``include``/``exclude`` patterns reject *path* is
        skipped in favour of the next enclosing root.
        """
        if escapes_root(path):
            return None
        for candidate in ancestors(path):
            name = self._by_root.get(candidate)
            if name is not None and self._nodes[name].owns(path):
                return self._nodes[name]
        return None

    def _require(self, name: str) -> None:
        if name not in self._nodes:
            raise KeyError(f"Unknown module '{name}'")

    @staticmethod
    def _reach(start: Iterable[str], neighbours) -> Set[str]:
        seen = set(start)
        queue = deque(seen)
        while queue:
            current = queue.popleft()
            for nxt in neighbours(current):
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return seen


# ===================================================================
# Builder
# ===================================================================

def build_graph(nodes: Iterable[Node], *, allow_cycles: bool = False) -> DependencyGraph:
    """Validate *nodes* and assemble them into a :class:`DependencyGraph`.

    All structural problems are collected before raising, in a fixed order:
    duplicate names, duplicate roots, unknown dependencies, then cycles.
    Input order does not matter.

    Raises:
        ValidationError: carrying every error found.
    """
    ordered = sorted(nodes, key=lambda node: (node.name, node.root_path))
    errors: List[DepGraphError] = []

    by_name: Dict[str, List[Node]] = defaultdict(list)
    by_root: Dict[str, List[Node]] = defaultdict(list)
    for node in ordered:
        by_name[node.name].append(node)
        by_root[node.root_path].append(node)

    for name in sorted(by_name):
        if len(by_name[name]) > 1:
            errors.append(DuplicateName(name, [node.root_path for node in by_name[name]]))

    for root in sorted(by_root):
        if len(by_root[root]) > 1:
            errors.append(DuplicateRoot(root, [node.name for node in by_root[root]]))

    # First declaration per name stands in for its duplicates from here on.
    index: Dict[str, Node] = {name: group[0] for name, group in by_name.items()}

    for name in sorted(index):
        node = index[name]
        for dep in sorted(node.dependencies):
            if dep not in index:
                errors.append(UnknownDependency(node.name, dep, node.root_path))

    if not allow_cycles:
        errors.extend(find_cycles(index))

    if errors:
        logger.info("Graph validation failed with %d error(s)", len(errors))
        raise ValidationError(errors)

    logger.info("Built dependency graph with %d module(s)", len(index))
    return DependencyGraph(index, allow_cycles=allow_cycles)


def find_cycles(index: Mapping[str, Node]) -> List[CyclicDependency]:
    """Report one cycle per back-edge found by a depth-first traversal.

    Roots and neighbours are visited in name order; dependencies on names
    missing from *index* are ignored.
    """
    on_stack: Set[str] = set()
    done: Set[str] = set()
    cycles: List[CyclicDependency] = []

    for root in sorted(index):
        if root in done:
            continue
        path = [root]
        on_stack.add(root)
        frames = [iter(_known_deps(index, root))]
        while frames:
            nxt = next(frames[-1], None)
            if nxt is None:
                frames.pop()
                finished = path.pop()
                on_stack.discard(finished)
                done.add(finished)
            elif nxt in on_stack:
                start = path.index(nxt)
                cycles.append(CyclicDependency(path[start:] + [nxt]))
            elif nxt not in done:
                path.append(nxt)
                on_stack.add(nxt)
                frames.append(iter(_known_deps(index, nxt)))
    return cycles


def _known_deps(index: Mapping[str, Node], name: str) -> List[str]:
    return sorted(dep for dep in index[name].dependencies if dep in index)
