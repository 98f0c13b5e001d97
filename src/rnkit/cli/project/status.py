"""
rnkit project status command.

SUMMARY: Show installed capabilities, permissions and marker health
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_standard_flags, build_context
from rnkit.core.exceptions import RnkitError
from rnkit.core.wiring.markers import validate_markers

SUMMARY = "Show installed capabilities, permissions and marker health"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        ctx = build_context(args)
        manifest = ctx.read_manifest()
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    issues = validate_markers(ctx.project_root, ctx.wiring.markers)
    extensions = ctx.extensions.load()

    if formatter.json_mode:
        formatter.json_output(
            {
                "projectRoot": str(ctx.project_root),
                "manifest": manifest,
                "markerIssues": [str(i) for i in issues],
                "extensions": extensions.to_dict(),
            }
        )
        return 0

    identity = manifest.get("identity") or {}
    formatter.text(f"{identity.get('displayName') or identity.get('name')} ({ctx.project_root})")
    formatter.text_kv("target", manifest.get("target"))
    formatter.text_kv("language", manifest.get("language"))
    formatter.text_kv("package manager", manifest.get("packageManager"))
    formatter.text_kv("schema", manifest.get("schemaVersion"))
    for key in ("plugins", "modules"):
        records = manifest.get(key) or []
        formatter.text(f"{key} ({len(records)}):")
        for record in records:
            formatter.text(f"  - {record['id']} {record.get('version', '')}")
    permission_ids = (manifest.get("permissions") or {}).get("permissionIds") or []
    formatter.text_kv("permissions", ", ".join(permission_ids) or "none", prefix="")
    formatter.text_kv("extensions", extensions.source, prefix="")
    for warning in extensions.warnings:
        formatter.text(f"  warning: {warning}")
    if issues:
        formatter.text("marker issues:")
        for issue in issues:
            formatter.text(f"  - {issue}")
    return 0
