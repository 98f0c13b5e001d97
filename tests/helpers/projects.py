"""Builders for initialized projects and modulators."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml

from rnkit.core.deps import NoopInstaller, PackageInstaller
from rnkit.core.modulator import Modulator, ModulatorContext, initialize_project


def write_project_config(project_root: Path, templates_root: Path, **sections: Any) -> Path:
    """Point the project at ``templates_root`` through ``.rns/config.yaml``."""
    cfg = {"paths": {"templates_root": str(templates_root)}}
    for key, value in sections.items():
        cfg.setdefault(key, {}).update(value)
    path = project_root / ".rns" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def make_context(project_root: Path, *, installer: Optional[PackageInstaller] = None) -> ModulatorContext:
    return ModulatorContext.create(project_root, installer=installer or NoopInstaller())


def make_modulator(project_root: Path, *, installer: Optional[PackageInstaller] = None) -> Modulator:
    """Fresh context (and registry) for every call: picks up newly written packs."""
    return Modulator(make_context(project_root, installer=installer))


def init_project(
    project_root: Path,
    templates_root: Path,
    *,
    target: str = "expo",
    language: str = "ts",
    package_manager: str = "npm",
) -> dict:
    write_project_config(project_root, templates_root)
    _, manifest = initialize_project(
        make_context(project_root),
        name=project_root.name,
        target=target,
        language=language,
        package_manager=package_manager,
    )
    assert manifest is not None
    return manifest
