from __future__ import annotations

from pathlib import Path

from rnkit.core.modulator import REMOVE, run_batch
from rnkit.core.packs.model import PackKind
from rnkit.core.state import get_capability, read_manifest

from helpers.packs import write_module, write_plugin
from helpers.projects import make_modulator


def _packs(templates_root: Path) -> None:
    write_plugin(templates_root, "state.zustand")
    write_plugin(templates_root, "storage.mmkv")
    write_module(templates_root, "auth.screens")


def test_batch_continues_after_failure(project: Path, templates_root: Path) -> None:
    _packs(templates_root)

    batch = run_batch(make_modulator(project), ["state.zustand", "does.not-exist", "storage.mmkv"])

    assert batch.succeeded == ["state.zustand", "storage.mmkv"]
    assert batch.failed == ["does.not-exist"]
    assert "does.not-exist" in batch.errors
    assert not batch.success
    manifest = read_manifest(project)
    assert get_capability(manifest, "plugin", "storage.mmkv") is not None


def test_batch_skips_already_installed(project: Path, templates_root: Path) -> None:
    _packs(templates_root)
    assert make_modulator(project).install("state.zustand").success

    batch = run_batch(make_modulator(project), ["state.zustand", "storage.mmkv"])

    assert batch.skipped == ["state.zustand"]
    assert batch.succeeded == ["storage.mmkv"]
    assert batch.success


def test_batch_rejects_wrong_kind(project: Path, templates_root: Path) -> None:
    _packs(templates_root)

    batch = run_batch(
        make_modulator(project),
        ["auth.screens", "state.zustand"],
        expected_kind=PackKind.PLUGIN,
    )

    assert batch.failed == ["auth.screens"]
    assert "rnkit module add auth.screens" in batch.errors["auth.screens"]
    assert batch.succeeded == ["state.zustand"]
    assert get_capability(read_manifest(project), "module", "auth.screens") is None


def test_batch_remove_counts_missing_as_skipped(project: Path, templates_root: Path) -> None:
    _packs(templates_root)
    assert make_modulator(project).install("storage.mmkv").success

    batch = run_batch(make_modulator(project), ["storage.mmkv", "never.installed"], REMOVE)

    assert batch.succeeded == ["storage.mmkv"]
    assert batch.skipped == ["never.installed"]
    assert batch.results["never.installed"].phases[0].phase == "remove"
    assert get_capability(read_manifest(project), "plugin", "storage.mmkv") is None


def test_batch_dry_run_and_summary(project: Path, templates_root: Path) -> None:
    _packs(templates_root)
    before = (project / ".rn-init.json").read_bytes()

    batch = run_batch(make_modulator(project), ["state.zustand", "nope.nope"], dry_run=True)

    assert (project / ".rn-init.json").read_bytes() == before
    summary = batch.to_dict()
    assert summary["operation"] == "install"
    assert summary["counts"] == {"succeeded": 1, "skipped": 0, "failed": 1}
    assert summary["results"]["state.zustand"]["dryRun"] is True
    assert list(summary["errors"]) == ["nope.nope"]
