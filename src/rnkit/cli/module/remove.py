"""
rnkit module remove command.

SUMMARY: Remove one or more modules
"""

from __future__ import annotations

import argparse

from rnkit.cli import add_capability_ids_arg, add_dry_run_flag, add_standard_flags, run_capability_batch
from rnkit.core.modulator import REMOVE
from rnkit.core.packs.model import PackKind

SUMMARY = "Remove one or more modules"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_capability_ids_arg(parser, "module")
    add_dry_run_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    return run_capability_batch(args, PackKind.MODULE, REMOVE)
