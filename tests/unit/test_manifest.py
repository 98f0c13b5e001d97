from __future__ import annotations

import json
from pathlib import Path

import pytest

from rnkit.core.exceptions import ManifestError, ProjectNotInitializedError
from rnkit.core.state import (
    CURRENT_SCHEMA_VERSION,
    MappingPermissionCatalog,
    NullPermissionCatalog,
    add_capability,
    aggregate_permissions,
    create_manifest,
    get_capability,
    installed_ids,
    is_initialized,
    load_bundled_permission_catalog,
    make_record,
    normalize_requirements,
    read_manifest,
    remove_capability,
    summarize_permissions,
    write_manifest,
)


def _create(root: Path) -> dict:
    return create_manifest(root, name="demo", target="expo", language="ts", package_manager="pnpm")


def test_create_and_read(tmp_path: Path) -> None:
    assert not is_initialized(tmp_path)
    written = _create(tmp_path)

    assert is_initialized(tmp_path)
    assert written["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert written["identity"] == {"name": "demo", "displayName": "demo"}
    assert written["plugins"] == [] and written["modules"] == []
    assert read_manifest(tmp_path) == written


def test_create_twice_fails(tmp_path: Path) -> None:
    _create(tmp_path)
    with pytest.raises(ManifestError, match="already initialized"):
        _create(tmp_path)


def test_missing_manifest_points_at_init(tmp_path: Path) -> None:
    with pytest.raises(ProjectNotInitializedError, match="rnkit project init"):
        read_manifest(tmp_path)


def test_invalid_json_and_schema_errors(tmp_path: Path) -> None:
    path = tmp_path / ".rn-init.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ManifestError, match="not valid JSON"):
        read_manifest(tmp_path)

    doc = _create(tmp_path / "p")
    doc["target"] = "web"
    doc["packageManager"] = "bun"
    with pytest.raises(ManifestError) as exc:
        write_manifest(tmp_path / "p", doc)
    assert len(exc.value.issues) == 2
    assert json.loads((tmp_path / "p" / ".rn-init.json").read_text(encoding="utf-8"))["target"] == "expo"


def test_every_write_bumps_updated_at_and_recomputes_permissions(tmp_path: Path) -> None:
    doc = _create(tmp_path)
    doc["updatedAt"] = "2000-01-01T00:00:00.000Z"
    record = make_record("camera.expo", "1.0.0", permissions=[{"permissionId": "camera", "mandatory": True}])
    written = write_manifest(tmp_path, add_capability(doc, "plugin", record))

    assert written["updatedAt"] != "2000-01-01T00:00:00.000Z"
    assert written["permissions"]["permissionIds"] == ["camera"]
    assert written["permissions"]["byPlugin"] == {"camera.expo": ["camera"]}


def test_legacy_manifest_is_migrated_on_read(tmp_path: Path) -> None:
    legacy = {
        "identity": "demo",
        "target": "bare",
        "language": "js",
        "packageManager": "yarn",
        "plugins": [{"id": "auth.firebase", "permissions": ["network", "network"]}],
    }
    (tmp_path / ".rn-init.json").write_text(json.dumps(legacy), encoding="utf-8")

    doc = read_manifest(tmp_path)

    assert doc["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert doc["identity"] == {"name": "demo"}
    assert doc["modules"] == []
    assert doc["plugins"][0]["permissions"] == [{"permissionId": "network", "mandatory": True}]
    on_disk = json.loads((tmp_path / ".rn-init.json").read_text(encoding="utf-8"))
    assert "schemaVersion" not in on_disk

    write_manifest(tmp_path, doc)
    on_disk = json.loads((tmp_path / ".rn-init.json").read_text(encoding="utf-8"))
    assert on_disk["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert on_disk["permissions"]["byPlugin"] == {"auth.firebase": ["network"]}


def test_newer_schema_is_rejected(tmp_path: Path) -> None:
    doc = _create(tmp_path)
    doc["schemaVersion"] = "9.0.0"
    (tmp_path / ".rn-init.json").write_text(json.dumps(doc), encoding="utf-8")
    with pytest.raises(ManifestError, match="not supported"):
        read_manifest(tmp_path)


def test_add_update_remove_records(tmp_path: Path) -> None:
    doc = _create(tmp_path)
    first = make_record("auth.firebase", "1.0.0", owned_files=["b", "a", "a"])
    doc = add_capability(doc, "plugin", first)
    assert get_capability(doc, "plugin", "auth.firebase")["ownedFiles"] == ["a", "b"]

    updated = add_capability(doc, "plugin", make_record("auth.firebase", "1.1.0"))
    record = get_capability(updated, "plugin", "auth.firebase")
    assert record["version"] == "1.1.0"
    assert record["installedAt"] == first["installedAt"]
    assert "updatedAt" in record
    assert len(updated["plugins"]) == 1

    with_module = add_capability(updated, "module", make_record("settings", "1.0.0"))
    assert installed_ids(with_module) == ["auth.firebase", "settings"]
    assert installed_ids(with_module, "module") == ["settings"]

    stripped = remove_capability(with_module, "plugin", "auth.firebase")
    assert installed_ids(stripped) == ["settings"]
    assert installed_ids(with_module) == ["auth.firebase", "settings"]
    with pytest.raises(ValueError):
        get_capability(doc, "widget", "x")


def test_permission_aggregation_mandatory_wins() -> None:
    records = [
        {"id": "a", "permissions": [{"permissionId": "camera", "mandatory": False}, "location.foreground"]},
        {"id": "b", "permissions": [{"permissionId": "camera", "mandatory": True}]},
        {"id": "c", "permissions": [{"permissionId": "microphone", "mandatory": False}]},
        {"id": "d", "permissions": []},
    ]
    summary = aggregate_permissions(records)
    assert summary["permissionIds"] == ["camera", "location.foreground", "microphone"]
    assert summary["mandatory"] == ["camera", "location.foreground"]
    assert summary["optional"] == ["microphone"]
    assert summary["byPlugin"] == {"a": ["camera", "location.foreground"], "b": ["camera"], "c": ["microphone"]}


def test_normalize_requirements_collapses_duplicates() -> None:
    raw = [{"permissionId": "camera", "mandatory": False}, {"permissionId": "camera", "mandatory": True}]
    assert normalize_requirements(raw) == [{"permissionId": "camera", "mandatory": True}]


def test_summary_resolves_native_keys() -> None:
    catalog = MappingPermissionCatalog(
        {"camera": {"ios": {"plistKeys": ["NSCameraUsageDescription"]}, "android": {"permissions": ["android.permission.CAMERA"]}}}
    )
    summary = summarize_permissions({"cam": ["camera", "bluetooth"]}, catalog)
    assert summary["iosPlistKeys"] == ["NSCameraUsageDescription"]
    assert summary["androidPermissions"] == ["android.permission.CAMERA"]
    assert summary["unknown"] == ["bluetooth"]
    assert summarize_permissions({"cam": ["camera"]}, NullPermissionCatalog())["unknown"] == ["camera"]


def test_bundled_permission_catalog() -> None:
    catalog = load_bundled_permission_catalog()
    assert "camera" in catalog.ids()
    assert catalog.get("camera")["ios"]["plistKeys"] == ["NSCameraUsageDescription"]
