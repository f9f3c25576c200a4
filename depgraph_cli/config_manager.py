"""Scan settings loaded from an optional ``depgraph.toml`` project file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from . import config
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Effective scan and build options."""

    manifest_names: Tuple[str, ...] = (config.MANIFEST_NAME,)
    skip_dirs: frozenset = field(default_factory=lambda: config.SKIP_DIRS)
    follow_symlinks: bool = False
    workers: int = config.DEFAULT_WORKERS
    allow_cycles: bool = False


def load_full_config(path: Path) -> Dict[str, Any]:
    """Load the entire TOML config file (all sections)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigError(f"Invalid config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc


def load_settings(path: Optional[Path] = None, **overrides: Any) -> Settings:
    """Build :class:`Settings` from defaults, a config file, and overrides.

    Args:
        path: Config file to read. Missing files fall back to defaults.
        **overrides: Field values that win over the file, ``None`` ignored.

    Returns:
        The merged settings.
    """
    settings = Settings()

    if path is not None and path.is_file():
        section = load_full_config(path).get("scan", {})
        if not isinstance(section, dict):
            raise ConfigError(f"'[scan]' in '{path}' must be a table")
        settings = _apply_section(settings, section, path)
        logger.debug("Loaded scan settings from %s", path)

    explicit = {key: value for key, value in overrides.items() if value is not None}
    if "manifest_names" in explicit:
        explicit["manifest_names"] = tuple(explicit["manifest_names"])
    if "skip_dirs" in explicit:
        explicit["skip_dirs"] = frozenset(explicit["skip_dirs"])
    return replace(settings, **explicit)


def _apply_section(settings: Settings, section: Dict[str, Any], path: Path) -> Settings:
    values: Dict[str, Any] = {}

    if "manifest_names" in section:
        names = section["manifest_names"]
        if not _is_str_list(names) or not names:
            raise ConfigError(f"'scan.manifest_names' in '{path}' must be a non-empty list of strings")
        values["manifest_names"] = tuple(names)

    if "skip_dirs" in section:
        skip = section["skip_dirs"]
        if not _is_str_list(skip):
            raise ConfigError(f"'scan.skip_dirs' in '{path}' must be a list of strings")
        values["skip_dirs"] = frozenset(skip)

    for key in ("follow_symlinks", "allow_cycles"):
        if key in section:
            if not isinstance(section[key], bool):
                raise ConfigError(f"'scan.{key}' in '{path}' must be true or false")
            values[key] = section[key]

    if "workers" in section:
        workers = section["workers"]
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ConfigError(f"'scan.workers' in '{path}' must be a positive integer")
        values["workers"] = workers

    return replace(settings, **values)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)
