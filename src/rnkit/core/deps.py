"""Package-manager collaborator used by the link phase."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from rnkit.core.exceptions import PackageManagerError
from rnkit.core.utils.subprocess import run_with_timeout

logger = logging.getLogger(__name__)

PACKAGE_MANAGERS = ("npm", "pnpm", "yarn")

# Checked in order; the first lockfile found decides.
LOCKFILES: Tuple[Tuple[str, str], ...] = (
    ("package-lock.json", "npm"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
)

_ADD_COMMANDS: Dict[str, Tuple[List[str], str]] = {
    "npm": (["npm", "install"], "--save-dev"),
    "pnpm": (["pnpm", "add"], "--save-dev"),
    "yarn": (["yarn", "add"], "--dev"),
}


def detect_package_manager(project_root: Path, fallback: Optional[str] = None) -> str:
    """Pick the package manager from lockfiles, else ``fallback``, else npm."""
    root = Path(project_root)
    for lockfile, manager in LOCKFILES:
        if (root / lockfile).is_file():
            return manager
    if fallback in PACKAGE_MANAGERS:
        return str(fallback)
    return "npm"


@dataclass
class InstallResult:
    success: bool
    command: List[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


@runtime_checkable
class PackageInstaller(Protocol):
    """Adds packages to, and installs, a JavaScript project."""

    def add(self, project_root: Path, packages: Sequence[str], *, dev: bool = False) -> InstallResult:
        ...

    def install(self, project_root: Path) -> InstallResult:
        ...


class NoopInstaller:
    """Default installer: records requests and reports success."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[str, ...], bool]] = []

    def add(self, project_root: Path, packages: Sequence[str], *, dev: bool = False) -> InstallResult:
        self.calls.append(("add", tuple(packages), dev))
        return InstallResult(success=True)

    def install(self, project_root: Path) -> InstallResult:
        self.calls.append(("install", (), False))
        return InstallResult(success=True)


class SubprocessInstaller:
    """Runs ``npm``/``pnpm``/``yarn`` with the configured install timeout."""

    def __init__(self, package_manager: Optional[str] = None, *, timeout: Optional[float] = None) -> None:
        if package_manager is not None and package_manager not in PACKAGE_MANAGERS:
            raise PackageManagerError(f"Unsupported package manager: {package_manager}")
        self.package_manager = package_manager
        self.timeout = timeout

    def _manager(self, project_root: Path) -> str:
        return self.package_manager or detect_package_manager(project_root)

    def _run(self, project_root: Path, cmd: List[str]) -> InstallResult:
        kwargs: Dict[str, object] = {"cwd": str(project_root), "capture_output": True, "text": True}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        try:
            proc = run_with_timeout(cmd, **kwargs)
        except FileNotFoundError as exc:
            raise PackageManagerError(f"Package manager not found: {cmd[0]}", context={"command": cmd}) from exc
        except subprocess.TimeoutExpired as exc:
            raise PackageManagerError(
                f"'{' '.join(cmd)}' timed out after {exc.timeout:.0f}s",
                context={"command": cmd},
            ) from exc
        result = InstallResult(
            success=proc.returncode == 0,
            command=cmd,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            returncode=proc.returncode,
        )
        if not result.success:
            logger.warning("%s exited with %s", " ".join(cmd), proc.returncode)
        return result

    def add(self, project_root: Path, packages: Sequence[str], *, dev: bool = False) -> InstallResult:
        base, dev_flag = _ADD_COMMANDS[self._manager(project_root)]
        cmd = [*base, *packages]
        if dev:
            cmd.append(dev_flag)
        return self._run(project_root, cmd)

    def install(self, project_root: Path) -> InstallResult:
        return self._run(project_root, [self._manager(project_root), "install"])


__all__ = [
    "LOCKFILES",
    "PACKAGE_MANAGERS",
    "InstallResult",
    "NoopInstaller",
    "PackageInstaller",
    "SubprocessInstaller",
    "detect_package_manager",
]
