"""Attachment engine and backups."""
from .backup import (
    backup_file,
    create_backup_directory,
    iter_backed_up_files,
    list_backup_directories,
    restore_from_backup,
)
from .engine import AttachMode, AttachmentReport, attach_pack, collect_files, is_ignored, mode_for_pack

__all__ = [
    "AttachMode",
    "AttachmentReport",
    "attach_pack",
    "backup_file",
    "collect_files",
    "create_backup_directory",
    "is_ignored",
    "iter_backed_up_files",
    "list_backup_directories",
    "mode_for_pack",
    "restore_from_backup",
]
