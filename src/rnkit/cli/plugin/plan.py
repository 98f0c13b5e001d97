"""
rnkit plugin plan command.

SUMMARY: Show what installing or removing a plugin would do

Computes the plan without touching the project: files to create and modify,
dependencies, runtime wiring, patches, permissions and conflicts.
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_option_flag, add_standard_flags, build_context, parse_options
from rnkit.core.exceptions import ConflictError, ExitCode, RnkitError
from rnkit.core.modulator import INSTALL, REMOVE, Modulator, ModulatorPlan

SUMMARY = "Show what installing or removing a plugin would do"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("plugin_id", help="Plugin id")
    parser.add_argument(
        "--remove",
        action="store_true",
        help="Plan a removal instead of an install",
    )
    parser.add_argument("--reinstall", action="store_true", help="Plan a reinstall of an installed plugin")
    add_option_flag(parser)
    add_standard_flags(parser)


def _print_plan(formatter: OutputFormatter, plan: ModulatorPlan) -> None:
    formatter.text(f"Plan: {plan.operation} {plan.kind.value} {plan.capability_id} {plan.version}".rstrip())
    if plan.is_noop:
        formatter.text("  nothing to do (not installed)")
        return
    if plan.variant:
        formatter.text_kv("variant", plan.variant)
    if plan.destination:
        formatter.text_kv("destination", plan.destination)
    sections = [
        ("create", plan.files_to_create),
        ("modify", plan.files_to_modify),
        ("remove", plan.files_to_remove),
        ("remove dir", plan.dirs_to_remove),
    ]
    for label, paths in sections:
        for path in paths:
            formatter.text(f"  {label}: {path}")
    for spec in plan.dependencies.runtime:
        formatter.text(f"  dependency: {spec.spec()}")
    for spec in plan.dependencies.dev:
        formatter.text(f"  dev dependency: {spec.spec()}")
    for op in plan.wiring:
        formatter.text(f"  wire: {op.operation_id} -> {op.file}")
    for patch in plan.patches:
        formatter.text(f"  patch: {patch.operation_id} -> {patch.file}")
    permission_ids = plan.permissions.get("permissionIds") or []
    if permission_ids:
        formatter.text_kv("permissions", ", ".join(permission_ids))
    for conflict in plan.conflicts:
        formatter.text(f"  {conflict.severity}: {conflict.description}")


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        options = parse_options(args.options)
        modulator = Modulator(build_context(args))
        plan = modulator.plan(
            args.plugin_id,
            REMOVE if args.remove else INSTALL,
            options=options,
            allow_reinstall=args.reinstall,
        )
    except argparse.ArgumentTypeError as exc:
        formatter.error(exc, error_code="invalid_option")
        return int(ExitCode.VALIDATION_STATE_FAILURE)
    except ConflictError as exc:
        if formatter.json_mode:
            formatter.error(exc, error_code="conflict")
        else:
            formatter.error(exc)
            for conflict in exc.conflicts:
                formatter.text(f"  fix: {conflict.remediation}")
        return int(exc.exit_code)
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    if formatter.json_mode:
        formatter.json_output(plan.to_dict())
    else:
        _print_plan(formatter, plan)
    return 0
