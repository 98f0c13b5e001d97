"""
rnkit project backups command.

SUMMARY: List backup directories, newest first
"""

from __future__ import annotations

import argparse

from rnkit.cli import OutputFormatter, add_json_flag, add_project_root_flag, get_project_root
from rnkit.core.attach.backup import iter_backed_up_files, list_backup_directories
from rnkit.core.config.domains import PathsConfig

SUMMARY = "List backup directories, newest first"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--files", action="store_true", help="Also list the files held by each backup")
    add_json_flag(parser)
    add_project_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    root = get_project_root(args)
    backups = list_backup_directories(root, backups_dir=PathsConfig(root).backups_dir)
    rows = [{"name": b.name, "path": str(b), "files": iter_backed_up_files(b)} for b in backups]

    if formatter.json_mode:
        formatter.json_output({"backups": rows})
        return 0
    if not rows:
        formatter.text("No backups")
        return 0
    for row in rows:
        formatter.text(f"{row['name']}  ({len(row['files'])} file(s))")
        if args.files:
            for rel in row["files"]:
                formatter.text(f"    {rel}")
    return 0
