"""Process-wide logging setup for the rnkit CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; this
module is the single place that attaches handlers.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from rnkit.core.file_io.utils import ensure_directory

_CONFIGURED_LOG_PATH: str | None = None
_RNKIT_FILE_HANDLER: logging.Handler | None = None
_RNKIT_STDERR_HANDLER: logging.Handler | None = None


def _level_from_name(name: str) -> int:
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else logging.INFO


def configure_stdlib_logging(*, log_path: Path, level: str = "INFO", verbose: bool = False) -> None:
    """Configure stdlib logging to write to ``log_path``.

    ``verbose`` lowers the level to DEBUG and mirrors records to stderr so
    per-phase diagnostics are visible. Idempotent per process for the same file.
    """
    global _CONFIGURED_LOG_PATH, _RNKIT_FILE_HANDLER, _RNKIT_STDERR_HANDLER

    resolved = str(Path(log_path).resolve())
    effective = logging.DEBUG if verbose else _level_from_name(level)
    root = logging.getLogger()

    if _CONFIGURED_LOG_PATH != resolved or _RNKIT_FILE_HANDLER is None:
        ensure_directory(Path(resolved).parent)
        if _RNKIT_FILE_HANDLER is not None:
            root.removeHandler(_RNKIT_FILE_HANDLER)
            _RNKIT_FILE_HANDLER.close()
        fh = logging.FileHandler(resolved, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(fh)
        _RNKIT_FILE_HANDLER = fh
        _CONFIGURED_LOG_PATH = resolved

    _RNKIT_FILE_HANDLER.setLevel(effective)
    root.setLevel(effective)

    if verbose and _RNKIT_STDERR_HANDLER is None:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.DEBUG)
        sh.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(sh)
        _RNKIT_STDERR_HANDLER = sh


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove handlers installed by ``configure_stdlib_logging``."""
    global _CONFIGURED_LOG_PATH, _RNKIT_FILE_HANDLER, _RNKIT_STDERR_HANDLER
    root = logging.getLogger()
    for h in (_RNKIT_FILE_HANDLER, _RNKIT_STDERR_HANDLER):
        if h is not None:
            root.removeHandler(h)
            h.close()
    _CONFIGURED_LOG_PATH = None
    _RNKIT_FILE_HANDLER = None
    _RNKIT_STDERR_HANDLER = None


__all__ = ["configure_stdlib_logging", "reset_stdlib_logging_for_tests"]
