"""
rnkit plugin add command.

SUMMARY: Install one or more plugins

Plans each plugin against the project manifest, then applies it through the
gate, scaffold, link, wire, patch, manifest and verify phases. Ids are
processed in order; a failure on one id never stops the rest.
"""

from __future__ import annotations

import argparse

from rnkit.cli import (
    add_capability_ids_arg,
    add_dry_run_flag,
    add_option_flag,
    add_standard_flags,
    run_capability_batch,
)
from rnkit.core.modulator import INSTALL
from rnkit.core.packs.model import PackKind

SUMMARY = "Install one or more plugins"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_capability_ids_arg(parser, "plugin")
    add_option_flag(parser)
    add_dry_run_flag(parser)
    parser.add_argument(
        "--reinstall",
        action="store_true",
        help="Apply again when the plugin is already installed",
    )
    parser.add_argument(
        "--restore-on-failure",
        action="store_true",
        help="Restore every backed-up file when an install fails",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    return run_capability_batch(args, PackKind.PLUGIN, INSTALL)
