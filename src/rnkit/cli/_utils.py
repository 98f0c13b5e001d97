"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List

from rnkit.core.config.domains import LoggingConfig, PathsConfig, TimeoutsConfig
from rnkit.core.deps import SubprocessInstaller, detect_package_manager
from rnkit.core.exceptions import ExitCode, RnkitError
from rnkit.core.modulator import BatchResult, Modulator, ModulatorContext, ModulatorResult, run_batch
from rnkit.core.packs.model import PackKind
from rnkit.core.state.manifest import KIND_KEYS, is_initialized, read_manifest
from rnkit.core.state.permissions import load_bundled_permission_catalog
from rnkit.core.stdlib_logging import configure_stdlib_logging
from rnkit.core.utils.paths import resolve_project_root

from ._args import parse_options
from ._output import OutputFormatter

logger = logging.getLogger(__name__)


def get_project_root(args: argparse.Namespace) -> Path:
    """Project root from ``--project-root`` or auto-detected."""
    if getattr(args, "project_root", None):
        return Path(args.project_root).expanduser().resolve()
    return resolve_project_root()


def setup_logging(project_root: Path, *, verbose: bool = False) -> None:
    """Send this invocation's log records to ``.rns/logs/<file>``."""
    paths = PathsConfig(project_root)
    log_cfg = LoggingConfig(project_root)
    configure_stdlib_logging(
        log_path=project_root / paths.logs_dir / log_cfg.file,
        level=log_cfg.level,
        verbose=verbose,
    )


def build_context(args: argparse.Namespace) -> ModulatorContext:
    """Context wired with the real package manager and permission catalog."""
    root = get_project_root(args)
    verbose = bool(getattr(args, "verbose", False))
    setup_logging(root, verbose=verbose)
    ctx = ModulatorContext.create(root, verbose=verbose)
    ctx.permission_catalog.set_implementation(load_bundled_permission_catalog())

    fallback = None
    if is_initialized(root, state_file=ctx.paths.state_file):
        fallback = read_manifest(root, state_file=ctx.paths.state_file).get("packageManager")
    ctx.installer.set_implementation(
        SubprocessInstaller(
            detect_package_manager(root, fallback=fallback),
            timeout=TimeoutsConfig(root).package_install_seconds,
        )
    )
    return ctx


def print_result(formatter: OutputFormatter, result: ModulatorResult) -> None:
    """Text rendering of one modulator result (phases, warnings, errors)."""
    label = "dry-run " if result.dry_run else ""
    status = "ok" if result.success else "FAILED"
    formatter.text(f"{result.operation} {result.capability_id} ({label}{status})")
    for phase in result.phases:
        mark = "-" if phase.action == "skipped" else ("✓" if phase.success else "✗")
        line = f"  {mark} {phase.phase}: {phase.action}"
        if phase.error:
            line += f" ({phase.error})"
        formatter.text(line)
    for warning in result.warnings:
        formatter.text(f"  warning: {warning}")
    if result.backup_dir:
        formatter.text(f"  backup: {result.backup_dir}")
    if result.restored_files:
        formatter.text(f"  restored: {', '.join(result.restored_files)}")


def print_batch(formatter: OutputFormatter, batch: BatchResult) -> int:
    """Render a batch and return its exit code."""
    if formatter.json_mode:
        formatter.json_output(batch.to_dict())
    else:
        for capability_id, result in batch.results.items():
            print_result(formatter, result)
        for capability_id in batch.failed:
            if capability_id not in batch.results or not batch.results[capability_id].phases:
                formatter.text(f"{batch.operation} {capability_id} (FAILED)\n  {batch.errors.get(capability_id, '')}")
        for capability_id in batch.skipped:
            if capability_id in batch.errors:
                formatter.text(f"{batch.operation} {capability_id} (skipped)\n  {batch.errors[capability_id]}")
        formatter.text(
            f"{len(batch.succeeded)} succeeded, {len(batch.skipped)} skipped, {len(batch.failed)} failed"
        )
    return 0 if batch.success else 1


def run_capability_batch(args: argparse.Namespace, kind: PackKind, operation: str) -> int:
    """Shared body of `<kind> add` and `<kind> remove`."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        options = parse_options(getattr(args, "options", None))
        ctx = build_context(args)
        batch = run_batch(
            Modulator(ctx),
            unique(args.ids),
            operation,
            options=options,
            dry_run=bool(getattr(args, "dry_run", False)),
            allow_reinstall=bool(getattr(args, "reinstall", False)),
            restore_on_failure=bool(getattr(args, "restore_on_failure", False)),
            expected_kind=kind,
        )
    except argparse.ArgumentTypeError as exc:
        formatter.error(exc, error_code="invalid_option")
        return int(ExitCode.VALIDATION_STATE_FAILURE)
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)
    return print_batch(formatter, batch)


def list_capabilities(args: argparse.Namespace, kind: PackKind) -> int:
    """Shared body of `<kind> list`: available capabilities and what is installed."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        ctx = build_context(args)
        installed: Dict[str, Any] = {}
        if is_initialized(ctx.project_root, state_file=ctx.paths.state_file):
            manifest = ctx.read_manifest()
            installed = {r["id"]: r for r in manifest.get(KIND_KEYS[kind.value]) or []}
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    rows = []
    for descriptor in ctx.registry.list(kind):
        record = installed.get(descriptor.id)
        if getattr(args, "installed", False) and record is None:
            continue
        rows.append(
            {
                "id": descriptor.id,
                "name": descriptor.name,
                "version": descriptor.version,
                "category": descriptor.category,
                "targets": list(descriptor.targets),
                "installed": record is not None,
                "installedVersion": record.get("version") if record else None,
            }
        )

    if formatter.json_mode:
        formatter.json_output({"kind": kind.value, "capabilities": rows})
        return 0
    if not rows:
        formatter.text(f"No {kind.value}s found")
        return 0
    for row in rows:
        mark = "*" if row["installed"] else " "
        formatter.text(f"{mark} {row['id']:<28} {row['version']:<10} {row['category'] or '-'}")
    return 0


def unique(values: List[str]) -> List[str]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


__all__ = [
    "build_context",
    "get_project_root",
    "list_capabilities",
    "print_batch",
    "print_result",
    "run_capability_batch",
    "setup_logging",
    "unique",
]
