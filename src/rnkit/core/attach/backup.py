"""Per-operation backup directories.

Layout: ``<project>/.rns/backups/<timestamp>-<operation-id>/<relative path>``.
A backup directory mirrors the project-relative path of every snapshotted
file. The first snapshot of a path wins, so the backup always holds the
content from before the operation started. rnkit never prunes backups.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from rnkit.core.file_io.utils import ensure_directory, ensure_parent_dir
from rnkit.core.idempotency import validate_operation_id
from rnkit.core.utils.paths import safe_join
from rnkit.core.utils.time import compact_timestamp

logger = logging.getLogger(__name__)

DEFAULT_BACKUPS_DIR = ".rns/backups"


def create_backup_directory(
    project_root: Path,
    operation_id: str,
    *,
    backups_dir: str = DEFAULT_BACKUPS_DIR,
) -> Path:
    """Create and return a fresh backup directory for ``operation_id``."""
    validate_operation_id(operation_id)
    base = Path(project_root) / backups_dir
    name = f"{compact_timestamp()}-{operation_id}"
    candidate = base / name
    suffix = 2
    while candidate.exists():
        candidate = base / f"{name}-{suffix}"
        suffix += 1
    ensure_directory(candidate)
    logger.debug("Created backup directory %s", candidate)
    return candidate


def backup_file(project_root: Path, backup_dir: Path, rel_path: str) -> Optional[Path]:
    """Snapshot ``rel_path`` into ``backup_dir``.

    Returns the backup path, or None when the source file does not exist.
    An existing snapshot of the same path is left untouched.
    """
    source = safe_join(project_root, rel_path)
    if not source.is_file():
        return None
    target = Path(backup_dir) / rel_path
    if target.exists():
        return target
    ensure_parent_dir(target)
    shutil.copy2(source, target)
    logger.debug("Backed up %s -> %s", rel_path, target)
    return target


def iter_backed_up_files(backup_dir: Path) -> List[str]:
    """Return the project-relative paths held in ``backup_dir``, sorted."""
    root = Path(backup_dir)
    if not root.is_dir():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


def restore_from_backup(project_root: Path, backup_dir: Path) -> List[str]:
    """Copy every snapshot in ``backup_dir`` back over the project.

    Returns the restored project-relative paths.

    Raises:
        FileNotFoundError: When ``backup_dir`` does not exist.
    """
    root = Path(backup_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Backup directory not found: {root}")
    restored: List[str] = []
    for rel in iter_backed_up_files(root):
        target = safe_join(project_root, rel)
        ensure_parent_dir(target)
        shutil.copy2(root / rel, target)
        restored.append(rel)
    logger.info("Restored %d file(s) from %s", len(restored), root)
    return restored


def list_backup_directories(project_root: Path, *, backups_dir: str = DEFAULT_BACKUPS_DIR) -> List[Path]:
    """Return backup directories, newest first."""
    base = Path(project_root) / backups_dir
    if not base.is_dir():
        return []
    return sorted((p for p in base.iterdir() if p.is_dir()), key=lambda p: p.name, reverse=True)


__all__ = [
    "DEFAULT_BACKUPS_DIR",
    "create_backup_directory",
    "backup_file",
    "iter_backed_up_files",
    "restore_from_backup",
    "list_backup_directories",
]
