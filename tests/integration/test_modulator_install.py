from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

import pytest

from rnkit.core.attach import list_backup_directories
from rnkit.core.deps import InstallResult, NoopInstaller
from rnkit.core.exceptions import ConflictError, PackNotFoundError, ProjectNotInitializedError, ValidationError
from rnkit.core.modulator import INSTALL_PHASES, Modulator, ModulatorContext
from rnkit.core.state import get_capability, load_bundled_permission_catalog, read_manifest

from helpers.packs import provider_plugin, write_module, write_plugin
from helpers.projects import make_modulator, write_project_config

RUNTIME = "packages/@rns/runtime/index.tsx"
CORE_INIT = "packages/@rns/runtime/core-init.ts"
AUTH_DIR = "packages/@rns/plugin-auth.firebase"


class FailingInstaller:
    def __init__(self) -> None:
        self.calls: List[Sequence[str]] = []

    def add(self, project_root: Path, packages: Sequence[str], *, dev: bool = False) -> InstallResult:
        cmd = ["npm", "install", *packages]
        self.calls.append(cmd)
        return InstallResult(success=False, command=cmd, stderr="E404 not found", returncode=1)

    def install(self, project_root: Path) -> InstallResult:
        return InstallResult(success=True)


def _auth(templates_root: Path, **fields) -> None:
    data = provider_plugin("auth.firebase", "AuthProvider", order=10)
    data.update(fields)
    write_plugin(
        templates_root,
        "auth.firebase",
        files={"index.ts": "export const AuthProvider = null;\n", "src/hooks.ts": "export {};\n"},
        **data,
    )


def _snapshot(root: Path, *, include_manifest: bool = True) -> dict:
    out = {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in root.rglob("*")
        if p.is_file() and ".rns" not in p.relative_to(root).parts
    }
    if not include_manifest:
        out.pop(".rn-init.json", None)
    return out


def _text(root: Path, rel: str) -> str:
    return (root / rel).read_text(encoding="utf-8")


def test_plan_is_complete_and_side_effect_free(project: Path, templates_root: Path) -> None:
    _auth(
        templates_root,
        dependencies={"runtime": [{"name": "firebase", "version": "^10.0.0"}]},
        permissions=[{"permissionId": "network", "mandatory": True}],
    )
    before = _snapshot(project)
    backups = list_backup_directories(project)

    plan = make_modulator(project).plan("auth.firebase")

    assert plan.files_to_create == (f"{AUTH_DIR}/src/hooks.ts", f"{AUTH_DIR}/index.ts")
    assert [op.marker_type for op in plan.wiring] == ["imports", "providers"]
    assert RUNTIME in plan.files_to_modify
    assert plan.manifest_updates == {
        "action": "add",
        "kind": "plugin",
        "id": "auth.firebase",
        "version": "1.0.0",
        "options": {},
    }
    assert [p.spec() for p in plan.dependencies.runtime] == ["firebase@^10.0.0"]
    assert plan.permissions["mandatory"] == ["network"]
    assert plan.destination == AUTH_DIR
    assert not plan.reinstall

    payload = plan.to_dict()
    assert set(payload) >= {"runtimeWiring", "patches", "permissions", "conflicts", "filesToCreate", "manifestUpdates"}
    assert _snapshot(project) == before
    assert list_backup_directories(project) == backups


def test_plan_resolves_permissions_against_catalog(project: Path, templates_root: Path) -> None:
    _auth(templates_root, permissions=[{"permissionId": "camera", "mandatory": False}])
    ctx = ModulatorContext.create(
        project, installer=NoopInstaller(), permission_catalog=load_bundled_permission_catalog()
    )
    plan = Modulator(ctx).plan("auth.firebase")
    assert plan.permissions["optional"] == ["camera"]
    assert plan.permissions["iosPlistKeys"] == ["NSCameraUsageDescription"]
    assert plan.permissions["unknown"] == []


def test_install_runs_every_phase(project: Path, templates_root: Path) -> None:
    _auth(templates_root, dependencies={"runtime": [{"name": "firebase"}], "dev": [{"name": "firebase-tools"}]})
    installer = NoopInstaller()

    result = make_modulator(project, installer=installer).install("auth.firebase")

    assert result.success, result.errors
    assert [p.phase for p in result.phases] == list(INSTALL_PHASES)
    assert result.manifest_updated
    assert Path(result.backup_dir).is_dir()
    assert installer.calls == [
        ("add", ("firebase",), False),
        ("add", ("firebase-tools",), True),
        ("install", (), False),
    ]

    assert _text(project, f"{AUTH_DIR}/index.ts") == "export const AuthProvider = null;\n"
    runtime = _text(project, RUNTIME)
    assert "import { AuthProvider } from '@rns/plugin-auth.firebase';" in runtime
    assert "<AuthProvider>" in runtime and "</AuthProvider>" in runtime

    record = get_capability(read_manifest(project), "plugin", "auth.firebase")
    assert record["version"] == "1.0.0"
    assert record["ownedFiles"] == [f"{AUTH_DIR}/index.ts", f"{AUTH_DIR}/src/hooks.ts"]
    assert record["ownedDirs"] == [AUTH_DIR]


def test_dry_run_mutates_nothing_and_keeps_shape(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    before = _snapshot(project)
    manifest_before = _text(project, ".rn-init.json")

    result = make_modulator(project).install("auth.firebase", dry_run=True)

    assert result.success
    assert result.dry_run
    assert [p.phase for p in result.phases] == list(INSTALL_PHASES)
    assert result.backup_dir is None
    assert not result.manifest_updated
    assert _snapshot(project) == before
    assert _text(project, ".rn-init.json") == manifest_before
    wire_ops = result.phase("wire").details["operations"]
    assert [op["action"] for op in wire_ops] == ["injected", "injected"]


def test_every_contribution_of_one_capability_is_wired(project: Path, templates_root: Path) -> None:
    write_plugin(
        templates_root,
        "multi.steps",
        runtimeContributions=[
            {"type": "init-step", "step": "firstStep()"},
            {"type": "init-step", "step": "secondStep()"},
        ],
    )

    plan = make_modulator(project).plan("multi.steps")
    assert [op.operation_id for op in plan.wiring] == [
        "multi.steps-init-steps-init-step",
        "multi.steps-init-steps-init-step-2",
    ]

    result = make_modulator(project).install("multi.steps")

    assert result.success, result.errors
    wire_ops = result.phase("wire").details["operations"]
    assert [op["action"] for op in wire_ops] == ["injected", "injected"]
    core_init = _text(project, CORE_INIT)
    assert core_init.index("firstStep();") < core_init.index("secondStep();")

    again = make_modulator(project).install("multi.steps", allow_reinstall=True)
    assert [op["action"] for op in again.phase("wire").details["operations"]] == ["skipped", "skipped"]
    assert _text(project, CORE_INIT).count("secondStep();") == 1


def test_legacy_manifest_is_not_rewritten_by_read_only_runs(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    legacy = json.loads(_text(project, ".rn-init.json"))
    del legacy["schemaVersion"]
    (project / ".rn-init.json").write_text(json.dumps(legacy), encoding="utf-8")
    manifest_bytes = (project / ".rn-init.json").read_bytes()

    modulator = make_modulator(project)
    modulator.plan("auth.firebase")
    assert modulator.install("auth.firebase", dry_run=True).success
    assert modulator.remove("never.installed").success

    assert (project / ".rn-init.json").read_bytes() == manifest_bytes

    assert make_modulator(project).install("auth.firebase").success
    assert read_manifest(project)["schemaVersion"] == json.loads(_text(project, ".rn-init.json"))["schemaVersion"]
    assert "schemaVersion" in json.loads(_text(project, ".rn-init.json"))


def test_second_install_is_blocked_unless_reinstall(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    make_modulator(project).install("auth.firebase")
    after_first = _snapshot(project, include_manifest=False)

    with pytest.raises(ConflictError) as exc:
        make_modulator(project).plan("auth.firebase")
    assert exc.value.conflicts[0].type == "reinstall"
    assert "--reinstall" in exc.value.conflicts[0].remediation

    result = make_modulator(project).install("auth.firebase", allow_reinstall=True)
    assert result.success, result.errors
    assert [op["action"] for op in result.phase("wire").details["operations"]] == ["skipped", "skipped"]
    assert _snapshot(project, include_manifest=False) == after_first
    manifest = read_manifest(project)
    assert len(manifest["plugins"]) == 1


def test_all_conflicts_are_reported_together(project: Path, templates_root: Path) -> None:
    write_plugin(templates_root, "auth.supabase", slots=[{"slot": "auth", "mode": "single"}])
    write_plugin(templates_root, "analytics.segment", conflictsWith=["auth.firebase"])
    write_plugin(templates_root, "storage.mmkv")
    _auth(
        templates_root,
        slots=[{"slot": "auth", "mode": "single"}],
        requires=["storage.mmkv", "crypto.native"],
    )
    make_modulator(project).install("auth.supabase")
    make_modulator(project).install("analytics.segment")

    with pytest.raises(ConflictError) as exc:
        make_modulator(project).plan("auth.firebase")

    by_type = {}
    for conflict in exc.value.conflicts:
        by_type.setdefault(conflict.type, []).append(conflict)
    assert by_type["conflictsWith"][0].remediation == "rnkit plugin remove analytics.segment"
    assert by_type["slot"][0].remediation == "rnkit plugin remove auth.supabase"
    deps = {c.affected[1]: c for c in by_type["dependency"]}
    assert deps["storage.mmkv"].remediation == "rnkit plugin add storage.mmkv"
    assert "neither installed nor available" in deps["crypto.native"].description
    assert len(exc.value.context["conflicts"]) == 4
    assert get_capability(read_manifest(project), "plugin", "auth.firebase") is None


def test_multi_slots_do_not_collide(project: Path, templates_root: Path) -> None:
    write_plugin(templates_root, "ui.toast", slots=[{"slot": "overlay", "mode": "multi"}])
    write_plugin(templates_root, "ui.modal", slots=[{"slot": "overlay", "mode": "multi"}])
    make_modulator(project).install("ui.toast")
    assert make_modulator(project).install("ui.modal").success


def test_validation_errors_surface_before_mutation(project: Path, templates_root: Path) -> None:
    write_plugin(templates_root, "ota.codepush", support={"targets": ["bare"]})
    _auth(templates_root, optionsSchema={"type": "object", "properties": {"debug": {"type": "boolean"}}})
    before = _snapshot(project)

    with pytest.raises(ValidationError, match="does not support target 'expo'"):
        make_modulator(project).plan("ota.codepush")
    with pytest.raises(ValidationError, match="Invalid options"):
        make_modulator(project).plan("auth.firebase", options={"debug": "yes"})
    with pytest.raises(PackNotFoundError):
        make_modulator(project).plan("nope")
    assert _snapshot(project) == before


def test_uninitialized_project(project_root: Path, templates_root: Path) -> None:
    write_project_config(project_root, templates_root)
    with pytest.raises(ProjectNotInitializedError):
        make_modulator(project_root).plan("anything")


def test_options_select_variant_and_are_recorded(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    variant = templates_root / "plugins" / "auth-firebase" / "variants" / "expo" / "ts" / "provider:google"
    variant.mkdir(parents=True)
    (variant / "index.ts").write_text("export const provider = 'google';\n", encoding="utf-8")

    result = make_modulator(project).install("auth.firebase", options={"provider": "google"})

    assert result.success
    assert result.phase("scaffold").details["variant"] == "variants/expo/ts/provider:google"
    assert _text(project, f"{AUTH_DIR}/index.ts") == "export const provider = 'google';\n"
    record = get_capability(read_manifest(project), "plugin", "auth.firebase")
    assert record["options"] == {"provider": "google"}


def test_link_failure_keeps_running_phases(project: Path, templates_root: Path) -> None:
    _auth(templates_root, dependencies={"runtime": [{"name": "firebase"}]})

    result = make_modulator(project, installer=FailingInstaller()).install("auth.firebase")

    assert not result.success
    link = result.phase("link")
    assert link.action == "failed"
    assert "exit code 1" in link.error and "E404" in link.error
    assert result.phase("wire").success and result.phase("manifest").success
    assert get_capability(read_manifest(project), "plugin", "auth.firebase") is not None


def test_restore_on_failure_reverts_everything(project: Path, templates_root: Path) -> None:
    _auth(templates_root, dependencies={"runtime": [{"name": "firebase"}]})
    before = _snapshot(project)
    manifest_before = read_manifest(project)

    result = make_modulator(project, installer=FailingInstaller()).install(
        "auth.firebase", restore_on_failure=True
    )

    assert not result.success
    assert RUNTIME in result.restored_files
    assert f"{AUTH_DIR}/index.ts" in result.restored_files
    assert _snapshot(project) == before
    assert read_manifest(project)["plugins"] == manifest_before["plugins"]


def test_patch_failure_names_capability_and_anchor(project: Path, templates_root: Path) -> None:
    _auth(
        templates_root,
        patches=[
            {"type": "text-anchor", "operationId": "auth-init", "file": CORE_INIT, "anchor": "no such line", "content": "x();"},
            {"type": "json", "operationId": "auth-scheme", "file": "app.json", "path": "expo.scheme", "value": "auth"},
        ],
    )

    result = make_modulator(project).install("auth.firebase")

    patch = result.phase("patch")
    assert not patch.success
    assert "capability: auth.firebase" in patch.error
    assert "anchor 'no such line'" in patch.error
    assert json.loads(_text(project, "app.json"))["expo"]["scheme"] == "auth"
    assert result.phase("verify").success


def test_gate_fails_when_a_used_marker_is_broken(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    runtime = project / RUNTIME
    runtime.write_text(_text(project, RUNTIME).replace("// @rns-marker:imports:end\n", ""), encoding="utf-8")

    result = make_modulator(project).install("auth.firebase")

    assert not result.success
    assert result.phase("gate").action == "failed"
    assert "imports" in result.phase("gate").error
    assert [p.phase for p in result.phases] == list(INSTALL_PHASES)
    assert not result.phase("wire").success


def test_broken_extensions_only_warn(project: Path, templates_root: Path) -> None:
    _auth(templates_root)
    (project / ".rns" / "extensions.yaml").write_text("screens: [", encoding="utf-8")

    result = make_modulator(project).install("auth.firebase")

    assert result.success
    assert any("extensions.yaml" in w for w in result.phase("verify").warnings)


def test_module_install_never_creates_user_files(project: Path, templates_root: Path) -> None:
    write_module(templates_root, "settings", files={"SettingsScreen.tsx": "export default null;\n"})

    result = make_modulator(project).install("settings")

    assert result.success
    assert not (project / "src" / "modules" / "settings").exists()
    record = get_capability(read_manifest(project), "module", "settings")
    assert record["ownedFiles"] == []
    assert record["ownedDirs"] == []
