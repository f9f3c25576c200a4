"""Change impact queries: changed files in, affected modules out."""

from __future__ import annotations

import copy
import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from .graph import DependencyGraph
from .models import ImpactedNode, QueryResult
from .paths import PathLike, canonical_path

logger = logging.getLogger(__name__)


def resolve_owners(
    graph: DependencyGraph,
    changed_files: Iterable[PathLike],
    *,
    base: Optional[PathLike] = None,
) -> Dict[str, Optional[str]]:
    """Map each input path (as given) to its owning module name, or ``None``."""
    owners: Dict[str, Optional[str]] = {}
    for raw in changed_files:
        key = str(raw)
        if key in owners:
            continue
        owner = graph.owner_of(canonical_path(raw, base=base))
        owners[key] = owner.name if owner else None
    return owners


def query_impact(
    graph: DependencyGraph,
    changed_files: Iterable[PathLike],
    *,
    base: Optional[PathLike] = None,
) -> QueryResult:
    """Return every module affected by *changed_files*.

    Each path is resolved to the module with the most specific covering
    root. Those modules and everything that transitively depends on them
    are impacted. Paths with no owner are listed in ``unresolved``.

    Args:
        graph: A validated graph.
        changed_files: Paths relative to the scan base, or absolute paths
            under *base*.
        base: Directory absolute paths are made relative to.
    """
    owners = resolve_owners(graph, changed_files, base=base)
    seeds = sorted({name for name in owners.values() if name is not None})
    unresolved = [path for path, name in owners.items() if name is None]

    reverse = graph.dependents_map()
    impacted: Set[str] = set(seeds)
    queue = deque(seeds)
    while queue:
        current = queue.popleft()
        for dependent in sorted(reverse[current]):
            if dependent not in impacted:
                impacted.add(dependent)
                queue.append(dependent)

    logger.debug(
        "%d path(s) -> %d owner(s) -> %d impacted, %d unresolved",
        len(owners), len(seeds), len(impacted), len(unresolved),
    )

    result: List[ImpactedNode] = []
    for name in sorted(impacted):
        node = graph.get_node(name)
        # callers get their own metadata; the graph stays untouched
        result.append(ImpactedNode(
            name=node.name, root_path=node.root_path, metadata=copy.deepcopy(node.metadata)
        ))
    return QueryResult(impacted=result, unresolved=unresolved)
