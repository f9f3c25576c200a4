"""Default scan settings, overridable through environment variables."""

from __future__ import annotations

import os
from typing import FrozenSet

MANIFEST_NAME = os.environ.get("DEPGRAPH_MANIFEST_NAME", "dependencies.toml")
PROJECT_CONFIG_NAME = "depgraph.toml"
DEFAULT_WORKERS = int(os.environ.get("DEPGRAPH_WORKERS", "4"))

SKIP_DIRS: FrozenSet[str] = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__",
    ".venv", "venv", ".tox", ".pytest_cache", ".mypy_cache",
    ".ruff_cache", ".eggs",
})
