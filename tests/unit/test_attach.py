from __future__ import annotations

from pathlib import Path

import pytest

from rnkit.core.attach import (
    AttachMode,
    attach_pack,
    iter_backed_up_files,
    list_backup_directories,
    restore_from_backup,
)
from rnkit.core.attach.engine import collect_files, is_ignored
from rnkit.core.exceptions import PackNotFoundError, ValidationError
from rnkit.core.packs import PackCatalog, PackKind, ResolutionContext, resolve_variant

from helpers.packs import write_module, write_plugin

DEST = "packages/@rns/plugin-auth.firebase"


def _plugin(templates_root: Path, files=None):
    write_plugin(
        templates_root,
        "auth.firebase",
        files=files
        or {
            "index.ts": "export * from './src/provider';\n",
            "src/provider.tsx": "export const Provider = null;\n",
            "src/hooks/useAuth.ts": "export const useAuth = () => null;\n",
            "debug.log": "noise\n",
        },
    )
    return PackCatalog(templates_root).get(PackKind.PLUGIN, "auth.firebase")


def _variant(pack, target="expo", language="ts"):
    return resolve_variant(pack, ResolutionContext.build(target, language))


def test_collect_files_dirs_first_then_sorted(tmp_path: Path) -> None:
    for rel in ("b.ts", "a.ts", "z/inner.ts", "m/x.ts", "variants/expo/v.ts"):
        target = tmp_path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("", encoding="utf-8")
    assert collect_files(tmp_path, exclude_variants=True) == ["m/x.ts", "z/inner.ts", "a.ts", "b.ts"]


def test_ignore_patterns_match_paths_and_segments() -> None:
    patterns = ("pack.json", "node_modules", "*.log", ".github/workflows/*.yml")
    assert is_ignored("pack.json", patterns)
    assert is_ignored("lib/node_modules/x/index.js", patterns)
    assert is_ignored("logs/build.log", patterns)
    assert is_ignored(".github/workflows/ci.yml", patterns)
    assert not is_ignored("src/pack.json.ts", patterns)


def test_first_attach_creates_owned_files(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    report = attach_pack(pack, _variant(pack), project_root, mode=AttachMode.PLUGIN)

    assert report.created == [
        f"{DEST}/src/hooks/useAuth.ts",
        f"{DEST}/src/provider.tsx",
        f"{DEST}/index.ts",
    ]
    assert sorted(report.ignored) == ["debug.log", "pack.json", "plugin.json"]
    assert report.owned_files_candidate == report.created
    assert report.backed_up_files == []
    assert (project_root / DEST / "index.ts").read_text(encoding="utf-8") == "export * from './src/provider';\n"
    assert not (project_root / DEST / "debug.log").exists()


def test_second_attach_is_a_noop(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    attach_pack(pack, _variant(pack), project_root)
    before = {p: p.read_bytes() for p in (project_root / DEST).rglob("*") if p.is_file()}

    report = attach_pack(pack, _variant(pack), project_root)

    assert report.created == [] and report.updated == []
    assert len(report.skipped) == 3
    assert sorted(report.owned_files_candidate) == sorted(report.skipped)
    assert {p: p.read_bytes() for p in (project_root / DEST).rglob("*") if p.is_file()} == before


def test_changed_system_file_is_backed_up_then_overwritten(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    attach_pack(pack, _variant(pack), project_root)
    target = project_root / DEST / "index.ts"
    target.write_text("// local edit\n", encoding="utf-8")

    report = attach_pack(pack, _variant(pack), project_root)

    assert report.updated == [f"{DEST}/index.ts"]
    assert report.backed_up_files == [f"{DEST}/index.ts"]
    backup = Path(report.backup_dir) / DEST / "index.ts"
    assert backup.read_text(encoding="utf-8") == "// local edit\n"
    assert target.read_text(encoding="utf-8") == "export * from './src/provider';\n"

    restored = restore_from_backup(project_root, Path(report.backup_dir))
    assert restored == [f"{DEST}/index.ts"]
    assert target.read_text(encoding="utf-8") == "// local edit\n"


def test_dry_run_reports_same_shape_without_writing(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    report = attach_pack(pack, _variant(pack), project_root, dry_run=True)

    assert len(report.created) == 3
    assert report.backup_dir is None
    assert list(project_root.iterdir()) == []


def test_variant_overlays_pack_root(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(
        templates_root,
        files={
            "index.ts": "root\n",
            "shared.ts": "shared\n",
            "variants/bare/index.ts": "bare\n",
            "variants/bare/native.ts": "native\n",
        },
    )
    report = attach_pack(pack, _variant(pack, target="bare"), project_root)

    assert report.variant == "variants/bare"
    assert (project_root / DEST / "index.ts").read_text(encoding="utf-8") == "bare\n"
    assert (project_root / DEST / "shared.ts").read_text(encoding="utf-8") == "shared\n"
    assert (project_root / DEST / "native.ts").is_file()
    assert not (project_root / DEST / "variants").exists()


def test_user_code_pack_never_writes(templates_root: Path, project_root: Path) -> None:
    write_module(templates_root, "settings", files={"index.ts": "x\n", "screen.tsx": "y\n"})
    pack = PackCatalog(templates_root).get(PackKind.MODULE, "settings")
    existing = project_root / "src/modules/settings/index.ts"
    existing.parent.mkdir(parents=True)
    existing.write_text("mine\n", encoding="utf-8")

    report = attach_pack(pack, _variant(pack), project_root, mode=AttachMode.MODULE)

    assert report.conflicts == ["src/modules/settings/index.ts"]
    assert report.skipped == ["src/modules/settings/screen.tsx"]
    assert report.created == [] and report.owned_files_candidate == []
    assert existing.read_text(encoding="utf-8") == "mine\n"
    assert not (project_root / "src/modules/settings/screen.tsx").exists()


def test_directory_in_place_of_file_is_a_conflict(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root, files={"index.ts": "x\n"})
    (project_root / DEST / "index.ts").mkdir(parents=True)
    report = attach_pack(pack, _variant(pack), project_root)
    assert report.conflicts == [f"{DEST}/index.ts"]


def test_mode_must_match_pack_kind(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    with pytest.raises(ValidationError, match="module mode"):
        attach_pack(pack, _variant(pack), project_root, mode=AttachMode.MODULE)


def test_variant_outside_pack_is_rejected(tmp_path: Path, templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    with pytest.raises(ValidationError, match="outside pack"):
        attach_pack(pack, elsewhere, project_root)
    with pytest.raises(PackNotFoundError):
        attach_pack(pack, tmp_path / "missing", project_root)


def test_one_backup_directory_per_call(templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    first = attach_pack(pack, _variant(pack), project_root)
    second = attach_pack(pack, _variant(pack), project_root)
    dirs = list_backup_directories(project_root)
    assert {str(d) for d in dirs} == {first.backup_dir, second.backup_dir}
    assert all(iter_backed_up_files(d) == [] for d in dirs)


def _seed(root: Path) -> None:
    (root / DEST / "native.ts").mkdir(parents=True)
    (root / DEST / "shared.ts").write_text("shared\n", encoding="utf-8")
    (root / DEST / "index.ts").write_text("local\n", encoding="utf-8")
    user_file = root / "src/modules/settings/index.ts"
    user_file.parent.mkdir(parents=True)
    user_file.write_text("mine\n", encoding="utf-8")


def _tree(root: Path) -> dict:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in root.rglob("*")
        if p.is_file() and ".rns" not in p.relative_to(root).parts
    }


def test_attach_is_deterministic_across_identical_trees(tmp_path: Path, templates_root: Path) -> None:
    plugin = _plugin(
        templates_root,
        files={
            "index.ts": "root\n",
            "shared.ts": "shared\n",
            "src/util.ts": "util\n",
            "variants/bare/index.ts": "bare\n",
            "variants/bare/native.ts": "native\n",
        },
    )
    write_module(templates_root, "settings", files={"index.ts": "x\n", "screen.tsx": "y\n"})
    module = PackCatalog(templates_root).get(PackKind.MODULE, "settings")

    outcomes = []
    for name in ("first", "second"):
        root = tmp_path / name
        _seed(root)
        reports = [
            attach_pack(plugin, _variant(plugin, target="bare"), root),
            attach_pack(module, _variant(module), root),
        ]
        outcomes.append(([{k: v for k, v in r.to_dict().items() if k != "backup_dir"} for r in reports], _tree(root)))

    assert outcomes[0] == outcomes[1]
    plugin_report = outcomes[0][0][0]
    assert plugin_report["processed"] == ["src/util.ts", "index.ts", "pack.json", "plugin.json", "shared.ts", "native.ts"]
    assert plugin_report["created"] == [f"{DEST}/src/util.ts"]
    assert plugin_report["updated"] == [f"{DEST}/index.ts"]
    assert plugin_report["skipped"] == [f"{DEST}/shared.ts"]
    assert plugin_report["conflicts"] == [f"{DEST}/native.ts"]
    module_report = outcomes[0][0][1]
    assert module_report["conflicts"] == ["src/modules/settings/index.ts"]
    assert module_report["skipped"] == ["src/modules/settings/screen.tsx"]


def test_dry_run_ignores_a_supplied_backup_dir(tmp_path: Path, templates_root: Path, project_root: Path) -> None:
    pack = _plugin(templates_root)
    attach_pack(pack, _variant(pack), project_root)
    target = project_root / DEST / "index.ts"
    target.write_text("// local edit\n", encoding="utf-8")
    backup_dir = tmp_path / "backup"

    report = attach_pack(pack, _variant(pack), project_root, dry_run=True, backup_dir=backup_dir)

    assert report.updated == [f"{DEST}/index.ts"]
    assert report.backup_dir is None
    assert report.backed_up_files == []
    assert target.read_text(encoding="utf-8") == "// local edit\n"
    assert not backup_dir.exists()
