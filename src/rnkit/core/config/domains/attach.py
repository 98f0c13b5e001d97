"""Domain-specific configuration for the attachment engine."""
from __future__ import annotations

from functools import cached_property
from typing import Tuple

from ..base import BaseDomainConfig

DEFAULT_IGNORE_PATTERNS: Tuple[str, ...] = (
    "pack.json",
    "plugin.json",
    "module.json",
    ".git",
    ".DS_Store",
    "node_modules",
    "dist",
    "*.log",
    ".github/workflows/*.yml",
)


class AttachConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "attach"

    @cached_property
    def ignore_patterns(self) -> Tuple[str, ...]:
        patterns = self.section.get("ignore_patterns")
        if not patterns:
            return DEFAULT_IGNORE_PATTERNS
        return tuple(str(p) for p in patterns)


__all__ = ["AttachConfig", "DEFAULT_IGNORE_PATTERNS"]
