"""File I/O helpers (atomic writes, locked reads)."""
from .utils import (
    ensure_directory,
    ensure_parent_dir,
    read_json,
    read_text,
    read_yaml_safe,
    write_bytes_atomic,
    write_json_atomic,
    write_text_atomic,
    write_yaml_atomic,
)

__all__ = [
    "ensure_directory",
    "ensure_parent_dir",
    "read_json",
    "read_text",
    "read_yaml_safe",
    "write_json_atomic",
    "write_text_atomic",
    "write_bytes_atomic",
    "write_yaml_atomic",
]
