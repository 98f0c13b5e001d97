"""
rnkit module add command.

SUMMARY: Install one or more modules

Modules are delivered as user code under src/modules/<id>; existing files
are reported as conflicts and never overwritten.
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

SUMMARY = "Install one or more modules"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_capability_ids_arg(parser, "module")
    add_option_flag(parser)
    add_dry_run_flag(parser)
    parser.add_argument("--reinstall", action="store_true", help="Apply again when already installed")
    parser.add_argument(
        "--restore-on-failure",
        action="store_true",
        help="Restore every backed-up file when an install fails",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    return run_capability_batch(args, PackKind.MODULE, INSTALL)
