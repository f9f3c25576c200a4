"""Pytest configuration and fixtures for depgraph CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable

import pytest

from depgraph_cli.graph import DependencyGraph, build_graph
from depgraph_cli.models import Node


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_monorepo_path() -> Path:
    """Get path to the sample monorepo fixture."""
    return Path(__file__).parent / "fixtures" / "sample_monorepo"


@pytest.fixture
def make_tree(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative path: content}`` under a fresh repo directory."""

    def _make(files: Dict[str, str]) -> Path:
        root = temp_dir / "repo"
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _make


def make_node(name: str, deps: Iterable[str] = (), root: str = "", **metadata) -> Node:
    return Node(
        name=name,
        root_path=root or f"test/{name}",
        dependencies=frozenset(deps),
        metadata=dict(metadata),
    )


@pytest.fixture
def chain_graph() -> DependencyGraph:
    """``lib`` <- ``app`` <- ``test``, each rooted at its own directory."""
    return build_graph([
        make_node("lib", root="lib", kind="library"),
        make_node("app", ["lib"], root="app"),
        make_node("test", ["app"], root="test"),
    ])
