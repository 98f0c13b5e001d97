"""
rnkit project init command.

SUMMARY: Initialize a project: attach the base pack and write .rn-init.json

The base pack lays down the runtime package (packages/@rns/runtime) with
every marker region plugins wire into.
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_dry_run_flag, add_standard_flags, build_context
from rnkit.core.config.domains import ProjectConfig
from rnkit.core.deps import PACKAGE_MANAGERS, detect_package_manager
from rnkit.core.exceptions import RnkitError
from rnkit.core.modulator import initialize_project

SUMMARY = "Initialize a project: attach the base pack and write .rn-init.json"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("--name", help="Project name (default: directory name)")
    parser.add_argument("--display-name", help="Display name (default: name)")
    parser.add_argument("--bundle-id", help="iOS bundle id / Android application id")
    parser.add_argument("--target", choices=["expo", "bare"], help="Target platform setup")
    parser.add_argument("--language", choices=["ts", "js"], help="Source language")
    parser.add_argument("--package-manager", choices=list(PACKAGE_MANAGERS), help="Package manager")
    add_dry_run_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        ctx = build_context(args)
        defaults = ProjectConfig(ctx.project_root)
        name = args.name or ctx.project_root.name
        package_manager = args.package_manager or detect_package_manager(
            ctx.project_root, fallback=defaults.default_package_manager
        )
        report, manifest = initialize_project(
            ctx,
            name=name,
            target=args.target or defaults.default_target,
            language=args.language or defaults.default_language,
            package_manager=package_manager,
            display_name=args.display_name,
            bundle_id=args.bundle_id,
            workspace_model=defaults.workspace_model,
            dry_run=args.dry_run,
        )
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    suffix = " (dry-run)" if args.dry_run else ""
    formatter.success(
        {"attach": report.to_dict(), "manifest": manifest},
        f"Initialized {name} at {ctx.project_root}{suffix}: "
        f"{len(report.created)} created, {len(report.updated)} updated, {len(report.skipped)} skipped",
    )
    for path in report.conflicts:
        formatter.text(f"  conflict: {path}")
    return 0
