"""Subprocess helpers with configured timeouts."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from time import perf_counter
from typing import Any, Sequence

logger = logging.getLogger(__name__)


def configured_timeout(cwd: Path | str | None = None) -> float:
    """Return the package-install timeout from configuration."""
    from rnkit.core.config.domains import TimeoutsConfig

    root = Path(cwd) if cwd else None
    return float(TimeoutsConfig(project_root=root).package_install_seconds)


def run_with_timeout(cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Run a subprocess using the configured timeout.

    Args:
        cmd: Command argv passed through to ``subprocess.run``.
        **kwargs: Additional arguments forwarded to ``subprocess.run``.
            An explicit ``timeout`` wins over configuration.

    Returns:
        CompletedProcess from ``subprocess.run``.

    Raises:
        subprocess.TimeoutExpired: When the command exceeds its timeout.
    """
    explicit_timeout = kwargs.pop("timeout", None)
    timeout = explicit_timeout if explicit_timeout is not None else configured_timeout(kwargs.get("cwd"))

    start = perf_counter()
    logger.debug("subprocess.start argv=%s cwd=%s timeout=%s", list(cmd), kwargs.get("cwd"), timeout)
    try:
        result = subprocess.run(list(cmd), timeout=timeout, **kwargs)
    except subprocess.TimeoutExpired:
        logger.warning("subprocess.timeout argv=%s after %.0fs", list(cmd), timeout)
        raise
    logger.debug(
        "subprocess.end argv=%s returncode=%s duration_ms=%.1f",
        list(cmd),
        result.returncode,
        (perf_counter() - start) * 1000.0,
    )
    return result


__all__ = ["configured_timeout", "run_with_timeout"]
