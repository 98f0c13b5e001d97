"""
rnkit plugin remove command.

SUMMARY: Remove one or more plugins

Deletes only the files the manifest records as owned by each plugin and
strips its manifest entry. Removing a plugin that is not installed is a
no-op.
"""

from __future__ import annotations

import argparse

from rnkit.cli import add_capability_ids_arg, add_dry_run_flag, add_standard_flags, run_capability_batch
from rnkit.core.modulator import REMOVE
from rnkit.core.packs.model import PackKind

SUMMARY = "Remove one or more plugins"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_capability_ids_arg(parser, "plugin")
    add_dry_run_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    return run_capability_batch(args, PackKind.PLUGIN, REMOVE)
