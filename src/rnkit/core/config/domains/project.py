"""Domain-specific configuration for new-project defaults."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class ProjectConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "project"

    @cached_property
    def workspace_model(self) -> str:
        return str(self.section.get("workspace_model") or "workspace-packages")

    @cached_property
    def default_package_manager(self) -> str:
        return str(self.section.get("default_package_manager") or "npm")

    @cached_property
    def default_target(self) -> str:
        return str(self.section.get("default_target") or "expo")

    @cached_property
    def default_language(self) -> str:
        return str(self.section.get("default_language") or "ts")


__all__ = ["ProjectConfig"]
