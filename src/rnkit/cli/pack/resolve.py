"""
rnkit pack resolve command.

SUMMARY: Show which variant directory a pack resolves to

Prints the candidate list in fallback order and the first one that exists.
"""

from __future__ import annotations

import argparse

from rnkit.cli import (
    OutputFormatter,
    add_json_flag,
    add_option_flag,
    add_project_root_flag,
    get_project_root,
    parse_options,
)
from rnkit.core.config.domains import PathsConfig
from rnkit.core.exceptions import ExitCode, RnkitError
from rnkit.core.packs.catalog import PackCatalog
from rnkit.core.packs.model import PackKind
from rnkit.core.packs.variants import ResolutionContext, get_variant_candidates, resolve_variant

SUMMARY = "Show which variant directory a pack resolves to"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("kind", choices=[k.value for k in PackKind], help="Pack kind")
    parser.add_argument("pack_id", help="Pack id")
    parser.add_argument("--target", required=True, choices=["expo", "bare"])
    parser.add_argument("--language", required=True, choices=["ts", "js"])
    add_option_flag(parser)
    add_json_flag(parser)
    add_project_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    root = get_project_root(args)
    try:
        ctx = ResolutionContext.build(args.target, args.language, parse_options(args.options))
        pack = PackCatalog(PathsConfig(root).all_templates_roots).get(PackKind(args.kind), args.pack_id)
        candidates = get_variant_candidates(
            pack.root, ctx, preferred=pack.manifest.variant_resolution_hints.get("preferredVariant")
        )
        resolved = resolve_variant(pack, ctx)
    except argparse.ArgumentTypeError as exc:
        formatter.error(exc, error_code="invalid_option")
        return int(ExitCode.VALIDATION_STATE_FAILURE)
    except RnkitError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return int(exc.exit_code)

    if formatter.json_mode:
        formatter.json_output(
            {
                "pack": pack.id,
                "kind": pack.kind.value,
                "optionsKey": ctx.options_key,
                "candidates": [str(c) for c in candidates],
                "resolved": str(resolved),
            }
        )
        return 0
    for candidate in candidates:
        mark = "->" if candidate == resolved else "  "
        formatter.text(f"{mark} {candidate}")
    return 0
