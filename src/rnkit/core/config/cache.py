"""Centralized configuration caching.

Domain configs read through this cache instead of reloading YAML on every
access. The key includes ``RNKIT_*`` environment values and the project
config mtime so edits are picked up within a long-running process.
"""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

from rnkit.core.utils.paths import resolve_project_root

_config_cache: Dict[str, Dict[str, Any]] = {}


def _cache_key(project_root: Path) -> str:
    from .manager import PROJECT_CONFIG_FILE

    env_items = sorted((k, v) for k, v in os.environ.items() if k.startswith("RNKIT_"))
    cfg_file = project_root / PROJECT_CONFIG_FILE
    mtime = cfg_file.stat().st_mtime_ns if cfg_file.exists() else 0
    return f"{project_root}|{mtime}|{env_items!r}"


def get_cached_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Return the merged configuration for ``project_root`` (cached copy)."""
    from .manager import ConfigManager

    root = Path(project_root).expanduser().resolve() if project_root else resolve_project_root()
    key = _cache_key(root)
    if key not in _config_cache:
        _config_cache[key] = ConfigManager(root).load_config()
    return copy.deepcopy(_config_cache[key])


def clear_all_caches() -> None:
    """Drop every cached configuration."""
    _config_cache.clear()


__all__ = ["get_cached_config", "clear_all_caches"]
