from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Iterable, List, Mapping, Optional


class ExitCode(IntEnum):
    """Process exit codes returned by CLI commands."""

    SUCCESS = 0
    GENERIC_FAILURE = 1
    VALIDATION_STATE_FAILURE = 2
    REPO_NOT_FOUND = 3


class RnkitError(Exception):
    """Base exception for rnkit."""

    exit_code: ExitCode = ExitCode.GENERIC_FAILURE
    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "exitCode": int(self.exit_code),
            "context": self.context,
        }


class ValidationError(RnkitError, ValueError):
    """Raised when a descriptor, manifest or request fails validation.

    Every issue found is kept in ``issues`` so callers can report them all
    at once instead of fixing one problem per run.
    """

    exit_code = ExitCode.VALIDATION_STATE_FAILURE

    def __init__(
        self,
        message: str = "",
        *,
        issues: Iterable[str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.issues: List[str] = list(issues or [])
        full = message
        if self.issues:
            bullet = "\n".join(f"  - {issue}" for issue in self.issues)
            full = f"{message}\n{bullet}" if message else bullet
        ctx = dict(context or {})
        if self.issues:
            ctx.setdefault("issues", list(self.issues))
        RnkitError.__init__(self, full, context=ctx)
        ValueError.__init__(self, full)


class DuplicatePackError(ValidationError):
    """Raised when two packs of the same kind declare the same id."""


class PackNotFoundError(RnkitError, FileNotFoundError):
    """Raised when a pack or its manifest cannot be found."""

    exit_code = ExitCode.VALIDATION_STATE_FAILURE

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        FileNotFoundError.__init__(self, message)


class VariantResolutionError(RnkitError, ValueError):
    """Raised when no variant of a pack matches the resolution context."""

    exit_code = ExitCode.VALIDATION_STATE_FAILURE

    def __init__(
        self,
        message: str = "",
        *,
        candidates: Iterable[str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.candidates: List[str] = list(candidates or [])
        ctx = dict(context or {})
        if self.candidates:
            ctx["candidates"] = list(self.candidates)
        RnkitError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)


class ConflictError(RnkitError):
    """Raised when a plan is blocked by one or more capability conflicts."""

    exit_code = ExitCode.VALIDATION_STATE_FAILURE

    def __init__(
        self,
        message: str = "",
        *,
        conflicts: Optional[List[Any]] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.conflicts: List[Any] = list(conflicts or [])
        super().__init__(message, context=context)


class ZoneViolationError(RnkitError, ValueError):
    """Raised when an edit targets a file outside the system-owned zone."""

    exit_code = ExitCode.VALIDATION_STATE_FAILURE

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class MarkerError(RnkitError, ValueError):
    """Raised when a marker region is missing or malformed."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class PatchError(RnkitError, ValueError):
    """Raised when a patch operation cannot be applied."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ProjectNotInitializedError(RnkitError, FileNotFoundError):
    """Raised when the project manifest is missing."""

    exit_code = ExitCode.REPO_NOT_FOUND

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        FileNotFoundError.__init__(self, message)


class ManifestError(ValidationError):
    """Raised when the project manifest is unreadable or fails its schema."""


class RegistryNotInitializedError(RnkitError, RuntimeError):
    """Raised when the capability registry is used before ``initialize()``."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class PackageManagerError(RnkitError, RuntimeError):
    """Raised for failures of the external package manager."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RnkitError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


__all__ = [
    "ExitCode",
    "RnkitError",
    "ValidationError",
    "DuplicatePackError",
    "PackNotFoundError",
    "VariantResolutionError",
    "ConflictError",
    "ZoneViolationError",
    "MarkerError",
    "PatchError",
    "ProjectNotInitializedError",
    "ManifestError",
    "RegistryNotInitializedError",
    "PackageManagerError",
]
