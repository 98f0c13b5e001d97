"""Domain-specific configuration for operation timeouts."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class TimeoutsConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "timeouts"

    @cached_property
    def package_install_seconds(self) -> float:
        """Timeout for package manager invocations in seconds."""
        if "package_install_seconds" not in self.section:
            raise RuntimeError("timeouts.package_install_seconds missing from configuration")
        return float(self.section["package_install_seconds"])


__all__ = ["TimeoutsConfig"]
