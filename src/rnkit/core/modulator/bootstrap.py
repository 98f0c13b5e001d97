"""Project initialization: attach the base pack and write the first manifest."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from rnkit.core.attach.engine import AttachMode, AttachmentReport, attach_pack
from rnkit.core.exceptions import ManifestError
from rnkit.core.packs.variants import ResolutionContext, resolve_variant
from rnkit.core.state.manifest import create_manifest, is_initialized

from .context import ModulatorContext

logger = logging.getLogger(__name__)


def initialize_project(
    ctx: ModulatorContext,
    *,
    name: str,
    target: str,
    language: str,
    package_manager: str,
    display_name: Optional[str] = None,
    bundle_id: Optional[str] = None,
    workspace_model: str = "workspace-packages",
    dry_run: bool = False,
) -> Tuple[AttachmentReport, Optional[Dict[str, Any]]]:
    """Attach the base pack to ``ctx.project_root`` and create its manifest.

    Returns the attachment report and the written manifest (None on dry-run).

    Raises:
        ManifestError: When the project is already initialized.
        VariantResolutionError: When the base pack does not support
            ``target``/``language``.
    """
    root = ctx.project_root
    state_file = ctx.paths.state_file
    if is_initialized(root, state_file=state_file):
        raise ManifestError(f"Project already initialized: {root / state_file}", context={"projectRoot": str(root)})

    base = ctx.catalog.base_pack()
    variant = resolve_variant(base, ResolutionContext.build(target, language))
    report = attach_pack(
        base,
        variant,
        root,
        mode=AttachMode.BASE,
        dry_run=dry_run,
        ignore_patterns=ctx.attach.ignore_patterns,
        workspace_packages_dir=ctx.paths.workspace_packages_dir,
        modules_dir=ctx.paths.modules_dir,
        backups_dir=ctx.paths.backups_dir,
    )
    if dry_run:
        return report, None

    manifest = create_manifest(
        root,
        name=name,
        target=target,
        language=language,
        package_manager=package_manager,
        display_name=display_name,
        bundle_id=bundle_id,
        workspace_model=workspace_model,
        state_file=state_file,
    )
    logger.info("Initialized project '%s' at %s (%s/%s)", name, root, target, language)
    return report, manifest


__all__ = ["initialize_project"]
