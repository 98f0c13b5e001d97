"""Domain-specific configuration for code wiring (markers and zones)."""
from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Dict, Tuple

from ..base import BaseDomainConfig


@dataclass(frozen=True)
class MarkerDefinition:
    """A named marker region and the canonical file that holds it."""

    type: str
    file: str
    required: bool = True
    description: str = ""

    @property
    def start(self) -> str:
        return f"@rns-marker:{self.type}:start"

    @property
    def end(self) -> str:
        return f"@rns-marker:{self.type}:end"


class WiringConfig(BaseDomainConfig):
    """Accessor for the ``wiring`` section."""

    def _config_section(self) -> str:
        return "wiring"

    @cached_property
    def system_zones(self) -> Tuple[str, ...]:
        return tuple(self.section.get("system_zones") or ("packages/@rns/**", ".rns/**"))

    @cached_property
    def user_zones(self) -> Tuple[str, ...]:
        return tuple(self.section.get("user_zones") or ("src/**", "assets/**"))

    @cached_property
    def markers(self) -> Dict[str, MarkerDefinition]:
        """Marker definitions keyed by marker type, in configuration order."""
        raw = self.section.get("markers") or {}
        out: Dict[str, MarkerDefinition] = {}
        for marker_type, spec in raw.items():
            spec = spec or {}
            out[str(marker_type)] = MarkerDefinition(
                type=str(marker_type),
                file=str(spec.get("file", "")),
                required=bool(spec.get("required", True)),
                description=str(spec.get("description", "")),
            )
        return out


__all__ = ["MarkerDefinition", "WiringConfig"]
