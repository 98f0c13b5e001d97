"""
rnkit plugin list command.

SUMMARY: List available plugins (installed ones are starred)
"""

from __future__ import annotations

import argparse

from rnkit.cli import add_standard_flags, list_capabilities
from rnkit.core.packs.model import PackKind

SUMMARY = "List available plugins (installed ones are starred)"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--installed", action="store_true", help="Only list installed plugins")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    return list_capabilities(args, PackKind.PLUGIN)
