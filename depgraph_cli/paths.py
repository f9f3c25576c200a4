"""Canonical path handling shared by the scanner and the query engine."""

from __future__ import annotations

import os
import posixpath
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Iterable, Iterator, Optional, Union

PathLike = Union[str, "os.PathLike[str]"]


def canonical_path(path: PathLike, base: Optional[PathLike] = None) -> str:
    """Return *path* as a normalized posix string.

    Backslashes become ``/``, ``.``/``..`` segments and duplicate separators
    are collapsed, and a leading ``./`` or trailing ``/`` is dropped. When
    *base* is given and *path* is absolute and lies under it, the result is
    relative to *base*. A relative *base* is taken from the current
    directory. The repository root itself is ``"."``.
    """
    text = os.fspath(path).replace("\\", "/")
    if not text:
        return "."
    normalized = posixpath.normpath(text)
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")

    if base is not None and normalized.startswith("/"):
        base_text = posixpath.normpath(os.path.abspath(os.fspath(base)).replace("\\", "/"))
        if is_within(normalized, base_text):
            return posixpath.relpath(normalized, base_text)
    return normalized


def is_within(path: str, root: str) -> bool:
    """True when canonical *path* equals *root* or lies beneath it."""
    if root == ".":
        return not path.startswith("/") and not escapes_root(path)
    if path == root:
        return True
    prefix = root if root.endswith("/") else root + "/"
    return path.startswith(prefix)


def escapes_root(path: str) -> bool:
    """True when canonical relative *path* points above its base."""
    return path == ".." or path.startswith("../")


def ancestors(path: str) -> Iterator[str]:
    """Yield *path* and each parent directory, most specific first.

    Relative paths end with ``"."``; absolute paths end with ``"/"``.
    """
    yield path
    current = PurePosixPath(path)
    for parent in current.parents:
        yield str(parent)


def matches_any(path: str, root: str, patterns: Iterable[str]) -> bool:
    """True when *path* matches a glob in *patterns* taken relative to *root*.

    ``*`` also matches ``/``, so ``src/**`` covers everything below ``src``.
    """
    for pattern in patterns:
        full = pattern if root == "." else posixpath.join(root, pattern)
        if fnmatchcase(path, full):
            return True
    return False
