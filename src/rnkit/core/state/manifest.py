"""Project manifest (``.rn-init.json``): the durable record of what is installed.

Every write replaces the whole document: it is migrated, its permission
block is recomputed from the installed records, ``updatedAt`` is bumped and
the result is validated against the ``project-manifest`` schema before it
reaches disk.
"""
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from rnkit import __version__
from rnkit.core.exceptions import ManifestError, ProjectNotInitializedError, ValidationError
from rnkit.core.file_io.utils import read_json, write_json_atomic
from rnkit.core.schemas.validation import validate_payload
from rnkit.core.utils.paths import DEFAULT_STATE_FILE
from rnkit.core.utils.time import utc_timestamp

from .permissions import aggregate_permissions, normalize_requirements

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = "1.0.0"
DEFAULT_WORKSPACE_MODEL = "workspace-packages"

# Capability kind -> manifest list key.
KIND_KEYS: Dict[str, str] = {"plugin": "plugins", "module": "modules"}


def manifest_path(project_root: Path, state_file: str = DEFAULT_STATE_FILE) -> Path:
    return Path(project_root) / state_file


def is_initialized(project_root: Path, *, state_file: str = DEFAULT_STATE_FILE) -> bool:
    return manifest_path(project_root, state_file).is_file()


def _kind_key(kind: str) -> str:
    try:
        return KIND_KEYS[kind]
    except KeyError:
        raise ValueError(f"Unknown capability kind: {kind!r}") from None


def migrate_manifest(data: Mapping[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Bring ``data`` up to the current schema version.

    Returns the migrated copy and whether anything changed. Documents
    written before versioning (no ``schemaVersion``) gain the fields added
    since; newer versions than this build understands are rejected.
    """
    doc = copy.deepcopy(dict(data))
    version = str(doc.get("schemaVersion") or "0.0.0")
    if version == CURRENT_SCHEMA_VERSION:
        return doc, False

    major = version.split(".")[0]
    if not major.isdigit() or int(major) > int(CURRENT_SCHEMA_VERSION.split(".")[0]):
        raise ManifestError(
            f"Manifest schema version {version} is not supported by rnkit {__version__}",
            context={"schemaVersion": version},
        )

    now = utc_timestamp()
    doc.setdefault("plugins", [])
    doc.setdefault("modules", [])
    doc.setdefault("workspaceModel", DEFAULT_WORKSPACE_MODEL)
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    if isinstance(doc.get("identity"), str):
        doc["identity"] = {"name": doc["identity"]}
    for key in KIND_KEYS.values():
        for record in doc.get(key) or []:
            record.setdefault("installedAt", now)
            record.setdefault("version", "0.0.0")
            record["permissions"] = normalize_requirements(record.get("permissions") or [])
    doc["schemaVersion"] = CURRENT_SCHEMA_VERSION
    logger.info("Migrated project manifest from schema %s to %s", version, CURRENT_SCHEMA_VERSION)
    return doc, True


def _validate(doc: Mapping[str, Any], path: Path) -> None:
    try:
        validate_payload(doc, "project-manifest", label=f"Project manifest {path.name}")
    except ValidationError as exc:
        raise ManifestError(
            f"Project manifest {path} is invalid",
            issues=exc.issues,
            context={"path": str(path)},
        ) from exc


def read_manifest(project_root: Path, *, state_file: str = DEFAULT_STATE_FILE) -> Dict[str, Any]:
    """Read, migrate and validate the project manifest.

    A migrated manifest is returned in memory only; the next
    :func:`write_manifest` persists it.

    Raises:
        ProjectNotInitializedError: When the state file is missing.
        ManifestError: When it is not valid JSON or fails the schema.
    """
    path = manifest_path(project_root, state_file)
    if not path.is_file():
        raise ProjectNotInitializedError(
            f"Project is not initialized: {state_file} not found in {project_root}. "
            f"Run 'rnkit project init' first.",
            context={"projectRoot": str(project_root)},
        )
    try:
        raw = read_json(path)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Project manifest {path} is not valid JSON: {exc}", context={"path": str(path)}) from exc
    if not isinstance(raw, dict):
        raise ManifestError(f"Project manifest {path} must be a JSON object", context={"path": str(path)})

    doc, migrated = migrate_manifest(raw)
    if migrated:
        doc["permissions"] = aggregate_permissions([*doc["plugins"], *doc["modules"]])
    _validate(doc, path)
    return doc


def write_manifest(
    project_root: Path,
    manifest: Mapping[str, Any],
    *,
    state_file: str = DEFAULT_STATE_FILE,
) -> Dict[str, Any]:
    """Rewrite the whole manifest and return what was written.

    Raises:
        ManifestError: When the resulting document fails validation; the
            file on disk is left untouched.
    """
    path = manifest_path(project_root, state_file)
    doc, _ = migrate_manifest(manifest)
    records: List[Dict[str, Any]] = [*doc.get("plugins", []), *doc.get("modules", [])]
    doc["permissions"] = aggregate_permissions(records)
    doc["updatedAt"] = utc_timestamp()
    _validate(doc, path)
    write_json_atomic(path, doc)
    logger.debug("Wrote project manifest %s", path)
    return doc


def create_manifest(
    project_root: Path,
    *,
    name: str,
    target: str,
    language: str,
    package_manager: str,
    display_name: Optional[str] = None,
    bundle_id: Optional[str] = None,
    workspace_model: str = DEFAULT_WORKSPACE_MODEL,
    state_file: str = DEFAULT_STATE_FILE,
) -> Dict[str, Any]:
    """Create the manifest of a freshly scaffolded project.

    Raises:
        ManifestError: When the project already has a manifest.
    """
    path = manifest_path(project_root, state_file)
    if path.exists():
        raise ManifestError(f"Project already initialized: {path}", context={"path": str(path)})
    identity: Dict[str, Any] = {"name": name, "displayName": display_name or name}
    if bundle_id:
        identity["bundleId"] = bundle_id
    now = utc_timestamp()
    doc: Dict[str, Any] = {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "cliVersion": __version__,
        "workspaceModel": workspace_model,
        "identity": identity,
        "target": target,
        "language": language,
        "packageManager": package_manager,
        "plugins": [],
        "modules": [],
        "createdAt": now,
        "updatedAt": now,
    }
    return write_manifest(project_root, doc, state_file=state_file)


def make_record(
    capability_id: str,
    version: str,
    *,
    options: Optional[Mapping[str, Any]] = None,
    owned_files: Iterable[str] = (),
    owned_dirs: Iterable[str] = (),
    permissions: Iterable[Any] = (),
) -> Dict[str, Any]:
    return {
        "id": capability_id,
        "version": version,
        "installedAt": utc_timestamp(),
        "options": dict(options or {}),
        "ownedFiles": sorted(set(owned_files)),
        "ownedDirs": sorted(set(owned_dirs)),
        "permissions": normalize_requirements(permissions),
    }


def get_capability(manifest: Mapping[str, Any], kind: str, capability_id: str) -> Optional[Dict[str, Any]]:
    for record in manifest.get(_kind_key(kind)) or []:
        if record.get("id") == capability_id:
            return record
    return None


def installed_ids(manifest: Mapping[str, Any], kind: Optional[str] = None) -> List[str]:
    kinds = [kind] if kind else list(KIND_KEYS)
    return [str(r["id"]) for k in kinds for r in manifest.get(_kind_key(k)) or []]


def add_capability(manifest: Mapping[str, Any], kind: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``manifest`` with ``record`` added or updated.

    Updating keeps the original ``installedAt`` and stamps ``updatedAt``.
    """
    doc = copy.deepcopy(dict(manifest))
    key = _kind_key(kind)
    records: List[Dict[str, Any]] = list(doc.get(key) or [])
    new = dict(record)
    for idx, existing in enumerate(records):
        if existing.get("id") == new["id"]:
            merged = {**existing, **new}
            merged["installedAt"] = existing.get("installedAt", new.get("installedAt"))
            merged["updatedAt"] = utc_timestamp()
            records[idx] = merged
            break
    else:
        records.append(new)
    doc[key] = records
    return doc


def remove_capability(manifest: Mapping[str, Any], kind: str, capability_id: str) -> Dict[str, Any]:
    doc = copy.deepcopy(dict(manifest))
    key = _kind_key(kind)
    doc[key] = [r for r in doc.get(key) or [] if r.get("id") != capability_id]
    return doc


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "KIND_KEYS",
    "add_capability",
    "create_manifest",
    "get_capability",
    "installed_ids",
    "is_initialized",
    "make_record",
    "manifest_path",
    "migrate_manifest",
    "read_manifest",
    "remove_capability",
    "write_manifest",
]
