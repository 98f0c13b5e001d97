"""File I/O utilities for rnkit core.

Single source of truth for safe file access patterns:
- Atomic writes with fsync and advisory locks
- Shared-lock JSON reads
- YAML support with consistent error handling
"""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, TextIO, Union

import yaml

PathLike = Union[str, Path]


def ensure_parent_dir(path: PathLike) -> None:
    """Ensure the parent directory for ``path`` exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` (and parents) if missing and return it."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def _atomic_write(path: Path, write_fn: Callable[[TextIO], None], *, encoding: str = "utf-8") -> None:
    """Write to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory
    - File is fsync'd, then atomically replaced
    - Any leftover temp file is cleaned up on failure
    """
    path = Path(path)
    ensure_parent_dir(path)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=encoding,
            dir=str(path.parent),
            prefix=f".{path.name}.",
            delete=False,
            newline="",
        ) as f:
            tmp_path = Path(f.name)
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            write_fn(f)
            f.flush()
            os.fsync(f.fileno())
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def write_text_atomic(path: PathLike, content: str, *, encoding: str = "utf-8") -> None:
    """Atomically write ``content`` to ``path``."""
    _atomic_write(Path(path), lambda f: f.write(content), encoding=encoding)


def write_bytes_atomic(path: PathLike, data: bytes) -> None:
    """Atomically write raw bytes to ``path`` (temp file + fsync + rename)."""
    path = Path(path)
    ensure_parent_dir(path)
    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=str(path.parent), prefix=f".{path.name}.", delete=False) as f:
            tmp_path = Path(f.name)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def write_json_atomic(path: PathLike, data: Any, *, indent: int = 2, sort_keys: bool = False) -> None:
    """Atomically write JSON with a trailing newline.

    Key order is preserved by default so patched project files keep their layout.
    """
    payload = json.dumps(data, indent=indent, sort_keys=sort_keys, ensure_ascii=False) + "\n"
    write_text_atomic(path, payload)


def write_yaml_atomic(path: PathLike, data: Any) -> None:
    """Atomically write YAML using ``yaml.safe_dump``."""
    _atomic_write(
        Path(path),
        lambda f: yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False),
    )


def read_text(path: PathLike, *, encoding: str = "utf-8") -> str:
    """Read a text file, preserving line endings."""
    with open(path, "r", encoding=encoding, newline="") as f:
        return f.read()


def read_json(path: PathLike) -> Any:
    """Read JSON under a shared advisory lock.

    Raises:
        FileNotFoundError: If the file is missing.
        json.JSONDecodeError: If the content is not valid JSON.
    """
    with open(path, "r", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_SH)
        try:
            return json.load(f)
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def read_yaml_safe(path: PathLike, default: Any = None, *, raise_on_error: bool = False) -> Any:
    """Read YAML with error handling.

    Returns ``default`` when the file is missing. Invalid YAML returns
    ``default`` unless ``raise_on_error`` is set.
    """
    p = Path(path)
    if not p.exists():
        return default
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        if raise_on_error:
            raise
        return default
    return default if data is None else data


__all__ = [
    "ensure_parent_dir",
    "ensure_directory",
    "write_text_atomic",
    "write_bytes_atomic",
    "write_json_atomic",
    "write_yaml_atomic",
    "read_text",
    "read_json",
    "read_yaml_safe",
]
