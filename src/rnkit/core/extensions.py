"""Project extension providers.

A project may describe its own navigation contributions (screens per
navigator, custom navigators) in ``.rns/extensions.yaml``. Providers load
that description explicitly; when the file is absent or broken the
placeholder set is returned together with a warning, never an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Protocol, Tuple, runtime_checkable

import yaml

from rnkit.core.schemas.validation import validate_payload_safe

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS_FILE = ".rns/extensions.yaml"
SCREEN_GROUPS: Tuple[str, ...] = ("stack", "tabs", "modals", "drawer", "rootStack")


@dataclass(frozen=True)
class ExtensionSet:
    screens: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    navigators: List[Dict[str, Any]] = field(default_factory=list)
    source: str = "placeholder"
    warnings: Tuple[str, ...] = ()

    @property
    def is_placeholder(self) -> bool:
        return self.source == "placeholder"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "screens": {k: list(v) for k, v in self.screens.items()},
            "navigators": list(self.navigators),
            "warnings": list(self.warnings),
        }


PLACEHOLDER_EXTENSIONS = ExtensionSet()


@runtime_checkable
class ExtensionProvider(Protocol):
    def load(self) -> ExtensionSet:
        ...


class StaticExtensionProvider:
    """Provider supplied directly by the host application."""

    def __init__(self, extensions: ExtensionSet = PLACEHOLDER_EXTENSIONS) -> None:
        self._extensions = extensions

    def load(self) -> ExtensionSet:
        return self._extensions


class YamlExtensionProvider:
    """Reads extensions from a YAML file in the project."""

    def __init__(self, project_root: Path, rel_path: str = DEFAULT_EXTENSIONS_FILE) -> None:
        self.project_root = Path(project_root)
        self.rel_path = rel_path

    @property
    def path(self) -> Path:
        return self.project_root / self.rel_path

    def _fallback(self, reason: str) -> ExtensionSet:
        logger.warning("Using placeholder extensions: %s", reason)
        return replace(PLACEHOLDER_EXTENSIONS, warnings=(reason,))

    def load(self) -> ExtensionSet:
        if not self.path.is_file():
            return PLACEHOLDER_EXTENSIONS
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            return self._fallback(f"{self.rel_path} could not be read: {exc}")
        issues = validate_payload_safe(data, "extensions")
        if issues:
            return self._fallback(f"{self.rel_path} is invalid: {'; '.join(issues)}")
        screens = {group: [dict(s) for s in (data.get("screens") or {}).get(group) or []] for group in SCREEN_GROUPS}
        return ExtensionSet(
            screens={k: v for k, v in screens.items() if v},
            navigators=[dict(n) for n in data.get("navigators") or []],
            source=self.rel_path,
        )


__all__ = [
    "DEFAULT_EXTENSIONS_FILE",
    "PLACEHOLDER_EXTENSIONS",
    "SCREEN_GROUPS",
    "ExtensionProvider",
    "ExtensionSet",
    "StaticExtensionProvider",
    "YamlExtensionProvider",
]
