"""Loading and validation of ``pack.json`` manifests."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from rnkit.core.exceptions import PackNotFoundError, ValidationError
from rnkit.core.file_io.utils import read_json
from rnkit.core.schemas.validation import validate_payload_safe

from .model import MANIFEST_FILENAME, PackKind, PackManifest, ValidationIssue

# Delivery mode each kind must use.
REQUIRED_DELIVERY: Dict[str, str] = {
    PackKind.CORE.value: "workspace",
    PackKind.PLUGIN.value: "workspace",
    PackKind.MODULE.value: "user-code",
}


def validate_pack_manifest_data(data: Any, *, source: str = MANIFEST_FILENAME) -> List[ValidationIssue]:
    """Return every problem with a parsed ``pack.json`` (empty when valid)."""
    issues = [
        ValidationIssue(source, "schema", message)
        for message in validate_payload_safe(data, "pack-manifest")
    ]
    if not isinstance(data, dict):
        return issues

    kind = data.get("type")
    delivery = data.get("delivery")
    expected = REQUIRED_DELIVERY.get(kind) if isinstance(kind, str) else None
    if expected and isinstance(delivery, str) and delivery != expected:
        issues.append(
            ValidationIssue(
                source,
                "delivery",
                f"delivery: packs of type '{kind}' must use '{expected}' delivery, got '{delivery}'",
            )
        )
    return issues


def load_pack_manifest(pack_dir: Path) -> PackManifest:
    """Read and validate ``<pack_dir>/pack.json``.

    Raises:
        PackNotFoundError: When the manifest file is missing.
        ValidationError: Listing every schema or consistency violation.
    """
    path = Path(pack_dir) / MANIFEST_FILENAME
    if not path.is_file():
        raise PackNotFoundError(
            f"Pack manifest not found: {path}",
            context={"path": str(path)},
        )
    try:
        data = read_json(path)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            f"Invalid pack manifest {path}",
            issues=[f"{path}: invalid JSON ({exc.msg} at line {exc.lineno})"],
            context={"path": str(path)},
        ) from exc

    issues = validate_pack_manifest_data(data, source=str(path))
    if issues:
        raise ValidationError(
            f"Invalid pack manifest {path}",
            issues=[str(i) for i in issues],
            context={"path": str(path)},
        )
    return PackManifest.from_dict(data)


__all__ = ["REQUIRED_DELIVERY", "validate_pack_manifest_data", "load_pack_manifest"]
