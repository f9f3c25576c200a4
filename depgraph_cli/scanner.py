"""Repository scanning: locate declaration files and turn them into nodes.

The scanner never touches the disk directly. It walks a :class:`FileSource`,
which lists directories and reads files, so the walk itself stays testable
with in-memory trees. Filesystem failures become :class:`ScanWarning` entries
and the scan carries on with whatever it can still reach.
"""

from __future__ import annotations

import logging
import os
import posixpath
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Collection, Hashable, Iterable, List, Optional, Tuple, Union

from . import config
from .errors import ConfigError, MalformedDeclaration
from .manifest import parse_manifest
from .models import ScanResult, ScanWarning
from .paths import canonical_path, is_within

logger = logging.getLogger(__name__)


# ===================================================================
# Filesystem access
# ===================================================================

class FileSource(ABC):
    """Read-only view of a directory tree."""

    @abstractmethod
    def list_dir(self, path: Path) -> Tuple[List[str], List[str]]:
        """Return ``(subdirectory names, file names)`` directly under *path*."""
        ...

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """Return the decoded contents of the file at *path*."""
        ...

    @abstractmethod
    def identity(self, path: Path) -> Hashable:
        """Return a value identifying the directory *path* resolves to."""
        ...


class LocalFileSource(FileSource):
    """:class:`FileSource` backed by the local filesystem."""

    def __init__(self, follow_symlinks: bool = False) -> None:
        self.follow_symlinks = follow_symlinks

    def list_dir(self, path: Path) -> Tuple[List[str], List[str]]:
        dirs: List[str] = []
        files: List[str] = []
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=self.follow_symlinks):
                    dirs.append(entry.name)
                elif entry.is_file():
                    files.append(entry.name)
        return dirs, files

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def identity(self, path: Path) -> Hashable:
        stat = os.stat(path)
        return (stat.st_dev, stat.st_ino)


# ===================================================================
# Scanner
# ===================================================================

# (directory on disk, path relative to the scan root, identities of ancestors)
_Pending = Tuple[Path, str, Tuple[Hashable, ...]]


class RepositoryScanner:
    """Walks a directory tree and collects one node per declaration file."""

    def __init__(
        self,
        manifest_names: Iterable[str] = (config.MANIFEST_NAME,),
        skip_dirs: Collection[str] = config.SKIP_DIRS,
        follow_symlinks: bool = False,
        workers: int = config.DEFAULT_WORKERS,
        source: Optional[FileSource] = None,
    ) -> None:
        self.manifest_names = frozenset(manifest_names)
        self.skip_dirs = frozenset(skip_dirs)
        self.follow_symlinks = follow_symlinks
        self.workers = max(1, workers)
        self.source = source or LocalFileSource(follow_symlinks=follow_symlinks)

    def scan(self, root: Union[str, Path], base: Union[str, Path, None] = None) -> ScanResult:
        """Scan *root*; node roots are expressed relative to *base* (default *root*).

        Raises:
            ConfigError: *base* does not contain *root*.
        """
        root = Path(root)
        prefix = "." if base is None else self._prefix(root, Path(base))

        result = ScanResult()
        children = self._visit((root, ".", ()), prefix, result)

        if self.workers == 1 or len(children) <= 1:
            for child in children:
                self._merge(result, self._walk(child, prefix))
        else:
            # One task per top-level subtree; merged results are re-sorted below.
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = [executor.submit(self._walk, child, prefix) for child in children]
                for future in futures:
                    self._merge(result, future.result())

        result.nodes.sort(key=lambda node: (node.root_path, node.name))
        result.warnings.sort(key=lambda warning: (warning.path, warning.reason))
        result.errors.sort(key=lambda error: (error.path, error.reason))
        logger.info(
            "Scanned %s: %d declaration(s), %d malformed, %d warning(s)",
            root, len(result.nodes), len(result.errors), len(result.warnings),
        )
        return result

    @staticmethod
    def _prefix(root: Path, base: Path) -> str:
        try:
            prefix = canonical_path(os.path.relpath(os.path.abspath(root), os.path.abspath(base)))
        except ValueError:
            prefix = ".."
        if not is_within(prefix, "."):
            raise ConfigError(f"Scan root '{root}' is not inside base directory '{base}'")
        return prefix

    def _walk(self, start: _Pending, prefix: str) -> ScanResult:
        result = ScanResult()
        stack = [start]
        while stack:
            stack.extend(reversed(self._visit(stack.pop(), prefix, result)))
        return result

    def _visit(self, pending: _Pending, prefix: str, result: ScanResult) -> List[_Pending]:
        """Process one directory and return the subdirectories still to visit."""
        directory, rel, ancestry = pending

        if self.follow_symlinks:
            try:
                ident = self.source.identity(directory)
            except OSError as exc:
                self._warn(result, directory, f"cannot stat directory: {exc}")
                return []
            if ident in ancestry:
                self._warn(result, directory, "symbolic link cycle, not descending")
                return []
            ancestry = ancestry + (ident,)

        try:
            dirs, files = self.source.list_dir(directory)
        except OSError as exc:
            self._warn(result, directory, f"cannot list directory: {exc}")
            return []

        root_path = canonical_path(posixpath.join(prefix, rel))
        manifests = sorted(name for name in files if name in self.manifest_names)
        if len(manifests) > 1:
            result.errors.append(MalformedDeclaration(
                root_path, f"multiple declaration files: {', '.join(manifests)}"
            ))
        elif manifests:
            self._load(directory / manifests[0], root_path, result)

        return [
            (directory / name, posixpath.join(rel, name), ancestry)
            for name in sorted(dirs)
            if name not in self.skip_dirs
        ]

    def _load(self, manifest: Path, root_path: str, result: ScanResult) -> None:
        location = canonical_path(posixpath.join(root_path, manifest.name))
        try:
            content = self.source.read_text(manifest)
        except (OSError, UnicodeDecodeError) as exc:
            self._warn(result, manifest, f"cannot read declaration: {exc}")
            return
        try:
            node = parse_manifest(content, root_path, source=location)
        except MalformedDeclaration as exc:
            logger.debug("Rejected %s: %s", location, exc.reason)
            result.errors.append(exc)
            return
        logger.debug("Found module '%s' at %s", node.name, root_path)
        result.nodes.append(node)

    @staticmethod
    def _warn(result: ScanResult, path: Path, reason: str) -> None:
        logger.warning("Skipping %s: %s", path, reason)
        result.warnings.append(ScanWarning(path=str(path), reason=reason))

    @staticmethod
    def _merge(into: ScanResult, other: ScanResult) -> None:
        into.nodes.extend(other.nodes)
        into.warnings.extend(other.warnings)
        into.errors.extend(other.errors)


def scan_repository(
    root: Union[str, Path],
    *,
    base: Union[str, Path, None] = None,
    manifest_names: Iterable[str] = (config.MANIFEST_NAME,),
    skip_dirs: Collection[str] = config.SKIP_DIRS,
    follow_symlinks: bool = False,
    workers: int = config.DEFAULT_WORKERS,
    source: Optional[FileSource] = None,
) -> ScanResult:
    """Scan *root* for declaration files. See :class:`RepositoryScanner`."""
    scanner = RepositoryScanner(
        manifest_names=manifest_names,
        skip_dirs=skip_dirs,
        follow_symlinks=follow_symlinks,
        workers=workers,
        source=source,
    )
    return scanner.scan(root, base=base)
