"""
rnkit pack list command.

SUMMARY: List packs from every templates root

With --validate, every pack manifest is checked and all issues are printed;
the exit code is non-zero when any is found.
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_json_flag, add_project_root_flag, get_project_root
from rnkit.core.config.domains import PathsConfig
from rnkit.core.exceptions import ExitCode, RnkitError
from rnkit.core.packs.catalog import PackCatalog
from rnkit.core.packs.model import PackKind
from rnkit.core.packs.variants import list_variants

SUMMARY = "List packs from every templates root"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--kind", choices=[k.value for k in PackKind], help="Only list packs of this kind")
    parser.add_argument("--validate", action="store_true", help="Validate every pack manifest")
    add_json_flag(parser)
    add_project_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    root = get_project_root(args)
    catalog = PackCatalog(PathsConfig(root).all_templates_roots)

    if args.validate:
        issues = catalog.validate_all()
        if formatter.json_mode:
            formatter.json_output({"valid": not issues, "issues": [str(i) for i in issues]})
        elif issues:
            for issue in issues:
                formatter.text(f"  - {issue}")
        else:
            formatter.text("All packs are valid")
        return int(ExitCode.VALIDATION_STATE_FAILURE) if issues else 0

    kinds = [PackKind(args.kind)] if args.kind else list(PackKind)
    rows = []
    try:
        for kind in kinds:
            for pack in catalog.discover(kind):
                rows.append(
                    {
                        **pack.manifest.to_dict(),
                        "root": str(pack.root),
                        "variants": list_variants(pack),
                    }
                )
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    if formatter.json_mode:
        formatter.json_output({"packs": rows})
        return 0
    for row in rows:
        targets = "/".join(row["supportedTargets"])
        languages = "/".join(row["supportedLanguages"])
        formatter.text(f"{row['type']:<7} {row['id']:<28} {row['delivery']:<10} {targets:<10} {languages}")
    return 0
