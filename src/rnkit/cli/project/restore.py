"""
rnkit project restore command.

SUMMARY: Copy the files of a backup directory back over the project

Restoring is always manual; rnkit never restores on its own unless an
install is run with --restore-on-failure.
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_json_flag, add_project_root_flag, get_project_root, setup_logging
from rnkit.core.attach.backup import list_backup_directories, restore_from_backup
from rnkit.core.config.domains import PathsConfig
from rnkit.core.exceptions import ExitCode

SUMMARY = "Copy the files of a backup directory back over the project"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("backup", nargs="?", help="Backup directory name (default: the newest)")
    add_json_flag(parser)
    add_project_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    root = get_project_root(args)
    setup_logging(root)
    backups = list_backup_directories(root, backups_dir=PathsConfig(root).backups_dir)
    if args.backup:
        matches = [b for b in backups if b.name == args.backup]
    else:
        matches = backups[:1]
    if not matches:
        formatter.error(FileNotFoundError(f"Backup not found: {args.backup or '(none exist)'}"), error_code="not_found")
        return int(ExitCode.GENERIC_FAILURE)

    restored = restore_from_backup(root, matches[0])
    formatter.success(
        {"backup": matches[0].name, "restored": restored},
        f"Restored {len(restored)} file(s) from {matches[0].name}",
    )
    return 0
