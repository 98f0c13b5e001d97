"""Project path helpers.

Destination paths recorded in reports and in the project manifest are always
project-relative POSIX strings so they compare equal across platforms.
"""
from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Union

PathLike = Union[str, Path]

# Environment override for project root detection (tests, CI).
PROJECT_ROOT_ENV = "RNKIT_PROJECT_ROOT"
DEFAULT_STATE_FILE = ".rn-init.json"


def resolve_project_root(start: Optional[PathLike] = None, *, state_file: str = DEFAULT_STATE_FILE) -> Path:
    """Resolve the project root.

    Resolution priority:
    1. ``RNKIT_PROJECT_ROOT`` environment variable
    2. Nearest ancestor of ``start`` (default: CWD) holding the state file
    3. ``start`` itself
    """
    env_root = os.environ.get(PROJECT_ROOT_ENV)
    if env_root:
        return Path(env_root).expanduser().resolve()

    origin = Path(start or Path.cwd()).expanduser().resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / state_file).exists():
            return candidate
    return origin


def safe_join(root: PathLike, rel_path: str) -> Path:
    """Join a project-relative path onto ``root``, refusing escapes."""
    base = Path(root).resolve()
    target = (base / rel_path).resolve()
    if target != base and base not in target.parents:
        raise ValueError(f"Path escapes project root: {rel_path}")
    return target


@lru_cache(maxsize=128)
def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
            continue
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$")


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Match a POSIX relative path against a glob where ``**`` spans directories."""
    return bool(_glob_to_regex(pattern).match(rel_path))


def in_zones(rel_path: str, patterns: Iterable[str]) -> bool:
    """Return True when ``rel_path`` matches any of the zone globs."""
    normalized = rel_path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return any(matches_glob(normalized, p) for p in patterns)


__all__ = [
    "PROJECT_ROOT_ENV",
    "DEFAULT_STATE_FILE",
    "resolve_project_root",
    "safe_join",
    "matches_glob",
    "in_zones",
]
