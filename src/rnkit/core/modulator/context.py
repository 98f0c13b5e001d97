"""Execution context shared by every modulator call against one project."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from rnkit.core.config.domains import AttachConfig, PathsConfig, WiringConfig
from rnkit.core.deps import NoopInstaller, PackageInstaller
from rnkit.core.extensions import ExtensionProvider, YamlExtensionProvider
from rnkit.core.holders import ImplementationHolder
from rnkit.core.packs.catalog import PackCatalog
from rnkit.core.registry.registry import CapabilityRegistry
from rnkit.core.state.manifest import read_manifest
from rnkit.core.state.permissions import NullPermissionCatalog, PermissionCatalog


@dataclass
class ModulatorContext:
    """Owns the registry and the swappable collaborators for one project.

    Build it with :meth:`create`; nothing here is process-global.
    """

    project_root: Path
    catalog: PackCatalog
    registry: CapabilityRegistry
    paths: PathsConfig
    attach: AttachConfig
    wiring: WiringConfig
    extensions: ExtensionProvider
    installer: ImplementationHolder[PackageInstaller] = field(
        default_factory=lambda: ImplementationHolder(NoopInstaller(), name="installer")
    )
    permission_catalog: ImplementationHolder[PermissionCatalog] = field(
        default_factory=lambda: ImplementationHolder(NullPermissionCatalog(), name="permission catalog")
    )
    verbose: bool = False

    @classmethod
    def create(
        cls,
        project_root: Path,
        *,
        catalog: Optional[PackCatalog] = None,
        extensions: Optional[ExtensionProvider] = None,
        installer: Optional[PackageInstaller] = None,
        permission_catalog: Optional[PermissionCatalog] = None,
        config: Optional[Dict[str, Any]] = None,
        verbose: bool = False,
    ) -> "ModulatorContext":
        """Build a context from configuration and initialize its registry.

        Raises:
            ValidationError: When packs or capability descriptors are invalid.
        """
        root = Path(project_root).resolve()
        paths = PathsConfig(root, config=config)
        if catalog is None:
            catalog = PackCatalog(paths.all_templates_roots)
        registry = CapabilityRegistry(catalog)
        registry.initialize()
        ctx = cls(
            project_root=root,
            catalog=catalog,
            registry=registry,
            paths=paths,
            attach=AttachConfig(root, config=config),
            wiring=WiringConfig(root, config=config),
            extensions=extensions or YamlExtensionProvider(root, paths.extensions_file),
            verbose=verbose,
        )
        if installer is not None:
            ctx.installer.set_implementation(installer)
        if permission_catalog is not None:
            ctx.permission_catalog.set_implementation(permission_catalog)
        return ctx

    def read_manifest(self) -> Dict[str, Any]:
        return read_manifest(self.project_root, state_file=self.paths.state_file)


__all__ = ["ModulatorContext"]
