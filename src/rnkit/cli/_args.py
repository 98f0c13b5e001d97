"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

import yaml


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_project_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --project-root flag for project root override."""
    parser.add_argument(
        "--project-root",
        type=str,
        help="Override project root path (default: nearest directory holding .rn-init.json)",
    )


def add_dry_run_flag(parser: argparse.ArgumentParser) -> None:
    """Add --dry-run flag."""
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Show what would be done without making changes",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    """Add --verbose flag."""
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )


def add_option_flag(parser: argparse.ArgumentParser) -> None:
    """Add repeatable --option key=value."""
    parser.add_argument(
        "--option",
        "-o",
        dest="options",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Capability option (repeatable); values are parsed as YAML scalars",
    )


def add_capability_ids_arg(parser: argparse.ArgumentParser, kind: str) -> None:
    parser.add_argument("ids", nargs="+", metavar=f"{kind}-id", help=f"{kind.title()} id(s)")


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    """Add --json, --project-root and --verbose."""
    add_json_flag(parser)
    add_project_root_flag(parser)
    add_verbose_flag(parser)


def parse_options(raw: Optional[List[str]]) -> Dict[str, Any]:
    """Turn ``["a=1", "b=x"]`` into ``{"a": 1, "b": "x"}``.

    Raises:
        argparse.ArgumentTypeError: On an entry without ``=``.
    """
    out: Dict[str, Any] = {}
    for entry in raw or []:
        key, sep, value = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid --option '{entry}': expected KEY=VALUE")
        out[key] = yaml.safe_load(value) if value.strip() else ""
    return out


__all__ = [
    "add_capability_ids_arg",
    "add_dry_run_flag",
    "add_json_flag",
    "add_option_flag",
    "add_project_root_flag",
    "add_standard_flags",
    "add_verbose_flag",
    "parse_options",
]
