"""Patch engine: apply JSON, text-anchor and native XML operations with per-op results."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rnkit.core.attach.backup import DEFAULT_BACKUPS_DIR, backup_file, create_backup_directory
from rnkit.core.exceptions import PatchError
from rnkit.core.file_io.utils import read_text, write_text_atomic
from rnkit.core.idempotency import has_operation_token, json_has_operation, json_record_operation
from rnkit.core.utils.paths import safe_join

from .json_patch import apply_json_patch
from .model import PatchOperation, PatchResult
from .text_patch import apply_text_patch
from .xml_patch import apply_android_manifest_patch, apply_plist_patch

logger = logging.getLogger(__name__)


def _dump_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _patched_text(op: PatchOperation, text: str) -> Optional[str]:
    """Return the new file text, or None when the operation is already applied."""
    if op.family == "json":
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PatchError(f"Invalid JSON in {op.file}: {exc}", context={"file": op.file}) from exc
        if json_has_operation(document, op.operation_id):
            return None
        updated = apply_json_patch(document, op.path, op.value, op.effective_mode)
        return _dump_json(json_record_operation(updated, op.operation_id))

    if op.family == "text":
        if has_operation_token(text, op.operation_id):
            return None
        if op.ensure_unique and op.content.strip() and op.content.strip() in text:
            return None
        return apply_text_patch(
            text,
            file=op.file,
            operation_id=op.operation_id,
            anchor=op.anchor,
            content=op.content,
            mode=op.effective_mode,
            ensure_unique=op.ensure_unique,
        )

    if has_operation_token(text, op.operation_id):
        return None
    if op.family == "plist":
        return apply_plist_patch(
            text,
            file=op.file,
            operation_id=op.operation_id,
            key=op.key,
            value=op.value,
            mode=op.effective_mode,
        )
    return apply_android_manifest_patch(
        text,
        file=op.file,
        operation_id=op.operation_id,
        element=op.element,
        name=op.name,
        attributes=dict(op.attributes),
        action=op.action,
    )


def apply_patches(
    project_root: Path,
    operations: Sequence[PatchOperation],
    *,
    dry_run: bool = False,
    backup_dir: Optional[Path] = None,
    backups_dir: str = DEFAULT_BACKUPS_DIR,
) -> List[PatchResult]:
    """Apply patch operations in declaration order.

    A missing file, a missing anchor or closing tag, or an invalid document
    fails only that operation. Patches never create files; each target is
    snapshotted into ``backup_dir`` before its first change.
    """
    project_root = Path(project_root)
    texts: Dict[str, str] = {}
    results: List[PatchResult] = []

    for op in operations:
        result = PatchResult(
            success=False,
            file=op.file,
            capability_id=op.capability_id,
            operation_id=op.operation_id,
            patch_type=op.type,
            action="error",
        )
        results.append(result)
        try:
            path = safe_join(project_root, op.file)
            if op.file not in texts:
                if not path.is_file():
                    raise PatchError(f"File not found: {op.file}", context={"file": op.file})
                texts[op.file] = read_text(path)
            new_text = _patched_text(op, texts[op.file])
        except (PatchError, ValueError) as exc:
            result.error = f"{exc} (capability: {op.capability_id}, operation: {op.operation_id}, {op.location})"
            logger.warning("patch %s failed: %s", op.operation_id, result.error)
            continue

        if new_text is None:
            logger.debug("patch skip %s (already applied)", op.operation_id)
            result.success = True
            result.action = "skipped"
            continue

        if not dry_run:
            if backup_dir is None:
                backup_dir = create_backup_directory(
                    project_root, f"patch-{op.capability_id}", backups_dir=backups_dir
                )
            snapshot = backup_file(project_root, backup_dir, op.file)
            result.backup_path = str(snapshot) if snapshot else None
            write_text_atomic(path, new_text)
        texts[op.file] = new_text
        logger.debug("patch applied %s -> %s", op.operation_id, op.file)
        result.success = True
        result.action = "applied"

    return results


__all__ = ["apply_patches"]
