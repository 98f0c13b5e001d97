from __future__ import annotations

from pathlib import Path

from rnkit.core.modulator import REMOVE, REMOVE_PHASES
from rnkit.core.state import get_capability, read_manifest

from helpers.packs import pack_manifest, provider_plugin, write_pack, write_plugin
from helpers.projects import make_modulator

AUTH_DIR = "packages/@rns/plugin-auth.firebase"


def _install_auth(project: Path, templates_root: Path) -> None:
    write_plugin(
        templates_root,
        "auth.firebase",
        files={"index.ts": "export {};\n", "src/deep/hooks.ts": "export {};\n"},
        **provider_plugin("auth.firebase", "AuthProvider"),
    )
    assert make_modulator(project).install("auth.firebase").success


def test_remove_unknown_capability_is_a_noop(project: Path) -> None:
    manifest_bytes = (project / ".rn-init.json").read_bytes()

    modulator = make_modulator(project)
    plan = modulator.plan("never.installed", REMOVE)
    result = modulator.apply(plan)

    assert plan.is_noop
    assert plan.to_dict()["filesToRemove"] == []
    assert result.success
    assert [(p.phase, p.action) for p in result.phases] == [("remove", "skipped")]
    assert (project / ".rn-init.json").read_bytes() == manifest_bytes


def test_remove_deletes_owned_files_and_record(project: Path, templates_root: Path) -> None:
    _install_auth(project, templates_root)

    result = make_modulator(project).remove("auth.firebase")

    assert result.success, result.errors
    assert [p.phase for p in result.phases] == list(REMOVE_PHASES)
    assert not (project / AUTH_DIR).exists()
    assert get_capability(read_manifest(project), "plugin", "auth.firebase") is None
    clean = result.phase("clean").details
    assert sorted(clean["removedFiles"]) == [f"{AUTH_DIR}/index.ts", f"{AUTH_DIR}/src/deep/hooks.ts"]
    assert AUTH_DIR in clean["removedDirs"]
    backup = Path(result.backup_dir)
    assert (backup / AUTH_DIR / "index.ts").is_file()
    assert (backup / ".rn-init.json").is_file()


def test_remove_warns_about_leftover_wiring(project: Path, templates_root: Path) -> None:
    _install_auth(project, templates_root)

    result = make_modulator(project).remove("auth.firebase")

    warnings = result.phase("verify").warnings
    assert any("still present in packages/@rns/runtime/index.tsx" in w for w in warnings)
    assert result.success


def test_remove_keeps_unowned_files_in_owned_dirs(project: Path, templates_root: Path) -> None:
    _install_auth(project, templates_root)
    extra = project / AUTH_DIR / "notes.md"
    extra.write_text("mine\n", encoding="utf-8")

    result = make_modulator(project).remove("auth.firebase")

    assert extra.read_text(encoding="utf-8") == "mine\n"
    assert not (project / AUTH_DIR / "index.ts").exists()
    assert any("not empty" in w for w in result.phase("clean").warnings)


def test_remove_never_touches_user_zone_files(project: Path, templates_root: Path) -> None:
    manifest = pack_manifest("theme.basic", "plugin", defaultDestinationMapping="src/theme")
    write_pack(
        templates_root,
        "plugins",
        "theme.basic",
        manifest=manifest,
        files={"colors.ts": "export const primary = 'red';\n"},
        descriptor={"id": "theme.basic", "name": "Theme", "version": "1.0.0", "support": {"targets": ["expo"]}},
    )
    assert make_modulator(project).install("theme.basic").success
    colors = project / "src" / "theme" / "colors.ts"
    assert colors.is_file()

    result = make_modulator(project).remove("theme.basic")

    assert colors.is_file()
    assert any("User-owned file kept: src/theme/colors.ts" in w for w in result.phase("clean").warnings)
    assert get_capability(read_manifest(project), "plugin", "theme.basic") is None


def test_remove_dry_run_deletes_nothing(project: Path, templates_root: Path) -> None:
    _install_auth(project, templates_root)
    manifest_bytes = (project / ".rn-init.json").read_bytes()

    result = make_modulator(project).remove("auth.firebase", dry_run=True)

    assert result.success
    assert [p.phase for p in result.phases] == list(REMOVE_PHASES)
    assert result.phase("manifest").action == "skipped"
    assert (project / AUTH_DIR / "index.ts").is_file()
    assert (project / ".rn-init.json").read_bytes() == manifest_bytes
    assert result.backup_dir is None


def test_reinstall_after_remove(project: Path, templates_root: Path) -> None:
    _install_auth(project, templates_root)
    assert make_modulator(project).remove("auth.firebase").success

    result = make_modulator(project).install("auth.firebase")

    assert result.success, result.errors
    assert (project / AUTH_DIR / "index.ts").is_file()
    runtime = (project / "packages/@rns/runtime/index.tsx").read_text(encoding="utf-8")
    assert runtime.count("@rns-inject:auth.firebase-providers-provider:") == 1
