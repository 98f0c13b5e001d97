"""CLI commands driven through the dispatcher with --json output."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from rnkit.cli._dispatcher import discover_commands, discover_domains, main
from rnkit.core.state import get_capability, read_manifest

from helpers.packs import provider_plugin, write_module, write_plugin
from helpers.projects import write_project_config

CLI_DIR = Path(__file__).resolve().parents[2] / "src" / "rnkit" / "cli"


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, dict]:
    code = main(list(argv))
    out = capsys.readouterr()
    stream = out.out if out.out.strip() else out.err
    return code, json.loads(stream)


@pytest.fixture
def cli_project(project_root: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]) -> Path:
    write_project_config(project_root, templates_root)
    code, payload = _run(capsys, "project", "init", "--project-root", str(project_root), "--json")
    assert code == 0, payload
    return project_root


def test_every_domain_is_discovered() -> None:
    assert set(discover_domains()) == {"module", "pack", "plugin", "project"}
    assert set(discover_commands("plugin")) == {"add", "list", "plan", "remove"}


def test_every_command_module_defines_entrypoints() -> None:
    missing = []
    for domain in discover_domains():
        for name, info in discover_commands(domain).items():
            if info["main"] is None or info["register_args"] is None:
                missing.append(f"{domain}.{name}")
    assert not missing


def test_no_domain_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    assert "usage: rnkit" in capsys.readouterr().out


def test_project_init_writes_manifest(cli_project: Path) -> None:
    manifest = read_manifest(cli_project)
    assert manifest["identity"]["name"] == "app"
    assert manifest["target"] == "expo"
    assert (cli_project / "packages/@rns/runtime/index.tsx").is_file()


def test_project_init_twice_fails(cli_project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "project", "init", "--project-root", str(cli_project), "--json")
    assert code == 2
    assert payload["code"] == "ManifestError"


def test_status_on_uninitialized_project(project_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "project", "status", "--project-root", str(project_root), "--json")
    assert code == 3
    assert payload["code"] == "ProjectNotInitializedError"


def test_plugin_add_list_and_status(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_plugin(templates_root, "auth.firebase", **provider_plugin("auth.firebase", "AuthProvider"))
    write_plugin(templates_root, "state.zustand")

    code, batch = _run(capsys, "plugin", "add", "auth.firebase", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert batch["succeeded"] == ["auth.firebase"]
    assert batch["results"]["auth.firebase"]["success"] is True

    code, listing = _run(capsys, "plugin", "list", "--project-root", str(cli_project), "--json")
    assert code == 0
    rows = {row["id"]: row for row in listing["capabilities"]}
    assert rows["auth.firebase"]["installed"] is True
    assert rows["state.zustand"]["installed"] is False

    code, status = _run(capsys, "project", "status", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert [r["id"] for r in status["manifest"]["plugins"]] == ["auth.firebase"]
    assert status["markerIssues"] == []


def test_plugin_add_again_is_skipped(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_plugin(templates_root, "state.zustand")
    assert main(["plugin", "add", "state.zustand", "--project-root", str(cli_project)]) == 0
    capsys.readouterr()

    code, batch = _run(capsys, "plugin", "add", "state.zustand", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert batch["skipped"] == ["state.zustand"]

    code, batch = _run(
        capsys, "plugin", "add", "state.zustand", "--reinstall", "--project-root", str(cli_project), "--json"
    )
    assert code == 0
    assert batch["succeeded"] == ["state.zustand"]


def test_plugin_add_module_id_fails(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_module(templates_root, "auth.screens")
    code, batch = _run(capsys, "plugin", "add", "auth.screens", "--project-root", str(cli_project), "--json")
    assert code == 1
    assert batch["failed"] == ["auth.screens"]
    assert "rnkit module add auth.screens" in batch["errors"]["auth.screens"]


def test_module_add(cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_module(templates_root, "auth.screens")
    code, batch = _run(capsys, "module", "add", "auth.screens", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert get_capability(read_manifest(cli_project), "module", "auth.screens") is not None


def test_plugin_plan_is_side_effect_free(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_plugin(templates_root, "auth.firebase", **provider_plugin("auth.firebase", "AuthProvider"))
    before = (cli_project / ".rn-init.json").read_bytes()

    code, plan = _run(capsys, "plugin", "plan", "auth.firebase", "--project-root", str(cli_project), "--json")

    assert code == 0
    assert plan["filesToCreate"] == ["packages/@rns/plugin-auth.firebase/index.ts"]
    assert [op["operationId"] for op in plan["runtimeWiring"]] == [
        "auth.firebase-imports-import",
        "auth.firebase-providers-provider",
    ]
    assert (cli_project / ".rn-init.json").read_bytes() == before
    assert not (cli_project / "packages/@rns/plugin-auth.firebase").exists()


def test_plugin_plan_rejects_bad_option(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_plugin(templates_root, "state.zustand")
    code, payload = _run(
        capsys, "plugin", "plan", "state.zustand", "-o", "oops", "--project-root", str(cli_project), "--json"
    )
    assert code == 2
    assert payload["error"] == "invalid_option"


def test_plugin_remove(cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_plugin(templates_root, "state.zustand")
    assert main(["plugin", "add", "state.zustand", "--project-root", str(cli_project)]) == 0
    capsys.readouterr()

    code, batch = _run(
        capsys, "plugin", "remove", "state.zustand", "never.added", "--project-root", str(cli_project), "--json"
    )

    assert code == 0
    assert batch["succeeded"] == ["state.zustand"]
    assert batch["skipped"] == ["never.added"]
    assert not (cli_project / "packages/@rns/plugin-state.zustand").exists()


def test_backups_and_restore(cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_plugin(templates_root, "auth.firebase", **provider_plugin("auth.firebase", "AuthProvider"))
    runtime = cli_project / "packages/@rns/runtime/index.tsx"
    original = runtime.read_text(encoding="utf-8")

    code, batch = _run(capsys, "plugin", "add", "auth.firebase", "--project-root", str(cli_project), "--json")
    assert code == 0
    backup_name = Path(batch["results"]["auth.firebase"]["backupDir"]).name
    assert runtime.read_text(encoding="utf-8") != original

    code, listing = _run(capsys, "project", "backups", "--project-root", str(cli_project), "--json")
    assert code == 0
    entry = next(b for b in listing["backups"] if b["name"] == backup_name)
    assert "packages/@rns/runtime/index.tsx" in entry["files"]

    code, restored = _run(
        capsys, "project", "restore", backup_name, "--project-root", str(cli_project), "--json"
    )
    assert code == 0
    assert "packages/@rns/runtime/index.tsx" in restored["restored"]
    assert runtime.read_text(encoding="utf-8") == original


def test_restore_unknown_backup(cli_project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "project", "restore", "nope", "--project-root", str(cli_project), "--json")
    assert code == 1
    assert payload["error"] == "not_found"


def test_pack_list_and_validate(
    cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_plugin(templates_root, "state.zustand")

    code, listing = _run(capsys, "pack", "list", "--kind", "plugin", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert [p["id"] for p in listing["packs"]] == ["state.zustand"]

    code, report = _run(capsys, "pack", "list", "--validate", "--project-root", str(cli_project), "--json")
    assert code == 0
    assert report == {"valid": True, "issues": []}


def test_pack_resolve(cli_project: Path, templates_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = write_plugin(templates_root, "state.zustand")
    variant = root / "variants" / "expo" / "ts"
    variant.mkdir(parents=True)

    code, payload = _run(
        capsys,
        "pack",
        "resolve",
        "plugin",
        "state.zustand",
        "--target",
        "expo",
        "--language",
        "ts",
        "--project-root",
        str(cli_project),
        "--json",
    )

    assert code == 0
    assert Path(payload["resolved"]) == variant
    assert payload["candidates"][-1] == str(root)
