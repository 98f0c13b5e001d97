"""
rnkit configuration management (YAML layers + environment overrides).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from rnkit.core.file_io.utils import read_yaml_safe, write_yaml_atomic
from rnkit.core.utils.merge import deep_merge as _deep_merge
from rnkit.core.utils.paths import resolve_project_root
from rnkit.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "RNKIT_"
PROJECT_CONFIG_FILE = ".rns/config.yaml"


class ConfigManager:
    """Load and merge rnkit configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: ``RNKIT_<section>__<key>``
    2. Project config: ``<project>/.rns/config.yaml``
    3. Bundled defaults: ``rnkit.data/config/*.yaml`` (alphabetical order)
    """

    def __init__(self, project_root: Optional[Path] = None) -> None:
        self.project_root = Path(project_root) if project_root else resolve_project_root()
        self.core_config_dir = get_data_path("config")
        self.project_config_path = self.project_root / PROJECT_CONFIG_FILE

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge dictionaries. Delegates to shared implementation."""
        return _deep_merge(base, override)

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        data = read_yaml_safe(path, default={}, raise_on_error=True)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {path}")
        return data

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[str]:
        segs = raw.split("__")
        if any(seg == "" for seg in segs):
            raise ValueError(f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'.")
        return [seg.lower() for seg in segs]

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX) or key == "RNKIT_PROJECT_ROOT":
                continue
            raw = key[len(ENV_PREFIX):]
            if not raw:
                continue
            yield self._parse_env_key(raw), self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        cursor = root
        for seg in path[:-1]:
            nxt = cursor.get(seg)
            if not isinstance(nxt, dict):
                nxt = {}
                cursor[seg] = nxt
            cursor = nxt
        cursor[path[-1]] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            logger.debug("Config override from environment: %s", ".".join(path))
            self._set_nested(cfg, path, value)

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        if not directory.exists():
            return cfg
        for path in sorted(directory.glob("*.yaml")):
            cfg = self.deep_merge(cfg, self.load_yaml(path))
        return cfg

    def load_config(self) -> Dict[str, Any]:
        """Return the fully merged configuration.

        Merge order: bundled defaults, project config, environment.
        """
        cfg: Dict[str, Any] = {}
        cfg = self._load_directory(self.core_config_dir, cfg)
        if self.project_config_path.exists():
            cfg = self.deep_merge(cfg, self.load_yaml(self.project_config_path))
        self.apply_env_overrides(cfg)
        return cfg

    def get(self, key: str, default: Any = None) -> Any:
        """Return a dotted key from the merged configuration."""
        cursor: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(cursor, dict) or part not in cursor:
                return default
            cursor = cursor[part]
        return cursor

    def save_project_overrides(self, overrides: Dict[str, Any]) -> Path:
        """Merge ``overrides`` into the project config file and write it."""
        current: Dict[str, Any] = {}
        if self.project_config_path.exists():
            current = self.load_yaml(self.project_config_path)
        write_yaml_atomic(self.project_config_path, self.deep_merge(current, overrides))
        return self.project_config_path


__all__ = ["ConfigManager", "ENV_PREFIX", "PROJECT_CONFIG_FILE"]
