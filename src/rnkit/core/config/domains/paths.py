"""Domain-specific configuration for project-relative paths."""
from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import List, Optional

from ..base import BaseDomainConfig


class PathsConfig(BaseDomainConfig):
    """Accessor for the ``paths`` section.

    All values except ``templates_root`` are project-relative POSIX strings.
    """

    def _config_section(self) -> str:
        return "paths"

    def _get(self, key: str, default: str) -> str:
        return str(self.section.get(key) or default)

    @cached_property
    def state_file(self) -> str:
        return self._get("state_file", ".rn-init.json")

    @cached_property
    def extensions_file(self) -> str:
        return self._get("extensions_file", ".rns/extensions.yaml")

    @cached_property
    def logs_dir(self) -> str:
        return self._get("logs_dir", ".rns/logs")

    @cached_property
    def backups_dir(self) -> str:
        return self._get("backups_dir", ".rns/backups")

    @cached_property
    def workspace_packages_dir(self) -> str:
        return self._get("workspace_packages_dir", "packages/@rns")

    @cached_property
    def modules_dir(self) -> str:
        return self._get("modules_dir", "src/modules")

    @cached_property
    def templates_root(self) -> Path:
        """Root of the pack tree (bundled templates when unset)."""
        raw: Optional[str] = self.section.get("templates_root") or None
        if raw:
            p = Path(raw).expanduser()
            return p if p.is_absolute() else (self.project_root / p)
        from rnkit.data import get_data_path

        return get_data_path("templates")

    @cached_property
    def extra_templates_roots(self) -> List[Path]:
        """Additional pack roots searched after ``templates_root``."""
        out: List[Path] = []
        for raw in self.section.get("extra_templates_roots") or []:
            p = Path(str(raw)).expanduser()
            out.append(p if p.is_absolute() else (self.project_root / p))
        return out

    @cached_property
    def all_templates_roots(self) -> List[Path]:
        return [self.templates_root, *self.extra_templates_roots]


__all__ = ["PathsConfig"]
