"""Where packs live in the template tree and where they attach in a project."""
from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Dict, Iterator

from .model import Pack, PackKind

# Directory under the templates root holding each kind. ``core`` is a
# single pack (the directory itself); the others hold one pack per child.
KIND_DIRS: Dict[PackKind, str] = {
    PackKind.CORE: "base",
    PackKind.PLUGIN: "plugins",
    PackKind.MODULE: "modules",
}


def expected_dir_name(pack_id: str) -> str:
    """Directory name a plugin/module pack must use: the id with ``.`` as ``-``."""
    return pack_id.replace(".", "-")


def kind_root(templates_root: Path, kind: PackKind) -> Path:
    return Path(templates_root) / KIND_DIRS[kind]


def iter_pack_dirs(templates_root: Path, kind: PackKind) -> Iterator[Path]:
    """Yield candidate pack directories for ``kind`` in sorted order.

    Directories starting with ``_`` or ``.`` are skipped.
    """
    root = kind_root(templates_root, kind)
    if not root.is_dir():
        return
    if kind is PackKind.CORE:
        yield root
        return
    for child in sorted(root.iterdir()):
        if not child.is_dir():
            continue
        if child.name.startswith(("_", ".")):
            continue
        yield child


def destination_rel(
    pack: Pack,
    *,
    workspace_packages_dir: str = "packages/@rns",
    modules_dir: str = "src/modules",
) -> str:
    """Project-relative destination directory for ``pack`` ("" is the root).

    - base core pack: project root
    - other core packs: ``<workspace>/<id>``
    - plugin packs: ``<workspace>/plugin-<id>``
    - module packs: ``<modules_dir>/<id>``

    ``defaultDestinationMapping`` in ``pack.json`` overrides the convention.
    """
    override = pack.manifest.default_destination_mapping
    if override:
        rel = PurePosixPath(override.replace("\\", "/"))
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"defaultDestinationMapping must stay inside the project: {override}")
        return "" if str(rel) == "." else rel.as_posix()

    if pack.is_base:
        return ""
    if pack.kind is PackKind.CORE:
        return f"{workspace_packages_dir}/{pack.id}"
    if pack.kind is PackKind.PLUGIN:
        return f"{workspace_packages_dir}/plugin-{pack.id}"
    return f"{modules_dir}/{pack.id}"


__all__ = ["KIND_DIRS", "expected_dir_name", "kind_root", "iter_pack_dirs", "destination_rel"]
