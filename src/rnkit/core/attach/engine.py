"""Attachment engine: merge a resolved pack into a project tree.

Rules applied to every pack file, in deterministic order (directories
before files, each level sorted by name):

- files matching an ignore pattern are never copied;
- ownership comes from the pack's delivery mode: ``workspace`` packs own
  their files, ``user-code`` packs never create or overwrite anything;
- user-owned destination present: conflict; absent: skipped;
- system-owned destination present: skipped when already applied, otherwise
  snapshotted into the backup directory and overwritten ("updated");
- system-owned destination absent: written ("created"), no backup.

When a variant is selected the pack root is laid down first (without its
``variants/`` subtree) and the variant is overlaid on top, so a variant file
always wins over a root file at the same relative path.
"""
from __future__ import annotations

import fnmatch
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence

from rnkit.core.config.domains.attach import DEFAULT_IGNORE_PATTERNS
from rnkit.core.exceptions import PackNotFoundError, ValidationError
from rnkit.core.file_io.utils import write_bytes_atomic
from rnkit.core.idempotency import has_inject_token
from rnkit.core.packs.locations import destination_rel
from rnkit.core.packs.model import Delivery, Pack, PackKind
from rnkit.core.packs.variants import VARIANTS_DIR
from rnkit.core.utils.paths import safe_join

from .backup import DEFAULT_BACKUPS_DIR, backup_file, create_backup_directory

logger = logging.getLogger(__name__)


class AttachMode(str, Enum):
    BASE = "base"
    PLUGIN = "plugin"
    MODULE = "module"


_MODE_KINDS = {
    AttachMode.BASE: PackKind.CORE,
    AttachMode.PLUGIN: PackKind.PLUGIN,
    AttachMode.MODULE: PackKind.MODULE,
}


def mode_for_pack(pack: Pack) -> AttachMode:
    for mode, kind in _MODE_KINDS.items():
        if pack.kind is kind:
            return mode
    raise ValueError(f"No attach mode for pack kind {pack.kind!r}")


@dataclass
class AttachmentReport:
    """Outcome of one ``attach_pack`` call. Paths are project-relative."""

    pack_id: str
    operation_id: str
    destination: str
    variant: str
    dry_run: bool = False
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    resolved_destinations: Dict[str, str] = field(default_factory=dict)
    owned_files_candidate: List[str] = field(default_factory=list)
    backup_dir: Optional[str] = None
    backed_up_files: List[str] = field(default_factory=list)
    processed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def is_ignored(rel_path: str, patterns: Sequence[str]) -> bool:
    """Match a pack-relative path against ignore patterns.

    A pattern matches the whole relative path or any single path segment.
    """
    parts = PurePosixPath(rel_path).parts
    for pattern in patterns:
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        if "/" not in pattern and any(fnmatch.fnmatchcase(part, pattern) for part in parts):
            return True
    return False


def collect_files(root: Path, *, exclude_variants: bool = False) -> List[str]:
    """Return pack-relative file paths under ``root``: directories first, then
    files, each level sorted by name."""
    out: List[str] = []

    def _walk(directory: Path, prefix: str) -> None:
        entries = list(directory.iterdir())
        dirs = sorted((e for e in entries if e.is_dir()), key=lambda e: e.name)
        files = sorted((e for e in entries if e.is_file()), key=lambda e: e.name)
        for d in dirs:
            if exclude_variants and not prefix and d.name == VARIANTS_DIR:
                continue
            _walk(d, f"{prefix}{d.name}/")
        for f in files:
            out.append(f"{prefix}{f.name}")

    _walk(Path(root), "")
    return out


def _file_plan(pack: Pack, variant_path: Path) -> Dict[str, Path]:
    """Map pack-relative path -> source file, root first then variant overlay."""
    plan: Dict[str, Path] = {}
    for rel in collect_files(pack.root, exclude_variants=True):
        plan[rel] = pack.root / rel
    if variant_path.resolve() != pack.root.resolve():
        for rel in collect_files(variant_path):
            plan[rel] = variant_path / rel
    return plan


def _already_applied(dest: Path, source_bytes: bytes, operation_id: str) -> bool:
    current = dest.read_bytes()
    if current == source_bytes:
        return True
    return has_inject_token(current.decode("utf-8", errors="ignore"), operation_id)


def attach_pack(
    pack: Pack,
    variant_path: Path,
    project_root: Path,
    *,
    mode: Optional[AttachMode] = None,
    dry_run: bool = False,
    backup_dir: Optional[Path] = None,
    ignore_patterns: Optional[Sequence[str]] = None,
    workspace_packages_dir: str = "packages/@rns",
    modules_dir: str = "src/modules",
    backups_dir: str = DEFAULT_BACKUPS_DIR,
) -> AttachmentReport:
    """Attach ``pack`` (resolved to ``variant_path``) into ``project_root``.

    Args:
        pack: The pack being attached.
        variant_path: Directory returned by ``resolve_variant``.
        project_root: Root of the destination project.
        mode: Expected attach mode; must agree with the pack kind.
        dry_run: Classify and report without touching the filesystem.
        backup_dir: Reuse an existing backup directory (one per apply).
            A new one is created when omitted.
        ignore_patterns: Override of the configured ignore list.

    Raises:
        PackNotFoundError: When ``variant_path`` is not a directory.
        ValidationError: When ``mode`` disagrees with the pack kind or the
            variant lies outside the pack.
    """
    project_root = Path(project_root)
    variant_path = Path(variant_path)
    if not variant_path.is_dir():
        raise PackNotFoundError(
            f"Resolved pack path for '{pack.id}' is not a directory: {variant_path}",
            context={"pack": pack.id, "path": str(variant_path)},
        )
    pack_root = pack.root.resolve()
    resolved_variant = variant_path.resolve()
    if resolved_variant != pack_root and pack_root not in resolved_variant.parents:
        raise ValidationError(
            f"Variant path {variant_path} is outside pack '{pack.id}' ({pack.root})",
            context={"pack": pack.id},
        )
    expected_mode = mode_for_pack(pack)
    if mode is not None and AttachMode(mode) is not expected_mode:
        raise ValidationError(
            f"Cannot attach {pack.kind.value} pack '{pack.id}' in {AttachMode(mode).value} mode",
            context={"pack": pack.id, "mode": AttachMode(mode).value},
        )

    patterns = tuple(ignore_patterns) if ignore_patterns is not None else DEFAULT_IGNORE_PATTERNS
    destination = destination_rel(
        pack,
        workspace_packages_dir=workspace_packages_dir,
        modules_dir=modules_dir,
    )
    variant_label = "." if resolved_variant == pack_root else resolved_variant.relative_to(pack_root).as_posix()
    operation_id = pack.manifest.operation_id
    report = AttachmentReport(
        pack_id=pack.id,
        operation_id=operation_id,
        destination=destination or ".",
        variant=variant_label,
        dry_run=dry_run,
    )

    # backup_dir stays None exactly when nothing may be written.
    if dry_run:
        backup_dir = None
    else:
        if backup_dir is None:
            backup_dir = create_backup_directory(project_root, operation_id, backups_dir=backups_dir)
        report.backup_dir = str(backup_dir)

    user_owned = pack.manifest.delivery is Delivery.USER_CODE

    for rel, source in _file_plan(pack, variant_path).items():
        report.processed.append(rel)
        if is_ignored(rel, patterns):
            report.ignored.append(rel)
            continue

        dest_rel = f"{destination}/{rel}" if destination else rel
        dest = safe_join(project_root, dest_rel)
        report.resolved_destinations[rel] = dest_rel

        if user_owned:
            if dest.exists():
                logger.debug("conflict (user-owned exists): %s", dest_rel)
                report.conflicts.append(dest_rel)
            else:
                logger.debug("skip (user-owned, not created): %s", dest_rel)
                report.skipped.append(dest_rel)
            continue

        data = source.read_bytes()
        if dest.is_file():
            if _already_applied(dest, data, operation_id):
                report.skipped.append(dest_rel)
                report.owned_files_candidate.append(dest_rel)
                continue
            if backup_dir is not None:
                if backup_file(project_root, backup_dir, dest_rel) is not None:
                    report.backed_up_files.append(dest_rel)
                write_bytes_atomic(dest, data)
            logger.debug("updated: %s", dest_rel)
            report.updated.append(dest_rel)
        elif dest.exists():
            # A directory where the pack has a file: never clobber it.
            report.conflicts.append(dest_rel)
            continue
        else:
            if not dry_run:
                write_bytes_atomic(dest, data)
            logger.debug("created: %s", dest_rel)
            report.created.append(dest_rel)
        report.owned_files_candidate.append(dest_rel)

    logger.info(
        "Attached %s pack '%s' (variant %s)%s: %d created, %d updated, %d skipped, %d conflict(s)",
        pack.kind.value,
        pack.id,
        variant_label,
        " [dry-run]" if dry_run else "",
        len(report.created),
        len(report.updated),
        len(report.skipped),
        len(report.conflicts),
    )
    return report


__all__ = [
    "AttachMode",
    "AttachmentReport",
    "attach_pack",
    "collect_files",
    "is_ignored",
    "mode_for_pack",
]
