"""Plan and result structures of the modulator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from rnkit.core.packs.model import PackKind
from rnkit.core.patches.model import PatchOperation
from rnkit.core.registry.descriptors import PackageSpec
from rnkit.core.wiring.contributions import WiringOperation

INSTALL = "install"
REMOVE = "remove"

INSTALL_PHASES: Tuple[str, ...] = ("gate", "scaffold", "link", "wire", "patch", "manifest", "verify")
REMOVE_PHASES: Tuple[str, ...] = ("gate", "clean", "manifest", "verify")


@dataclass(frozen=True)
class Conflict:
    """A reason an install cannot proceed, with the command that resolves it."""

    type: str
    description: str
    affected: Tuple[str, ...] = ()
    severity: str = "error"
    remediation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "affectedPlugins": list(self.affected),
            "severity": self.severity,
            "remediation": self.remediation,
        }


@dataclass(frozen=True)
class DependencyPlan:
    runtime: Tuple[PackageSpec, ...] = ()
    dev: Tuple[PackageSpec, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.runtime and not self.dev

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runtime": [p.to_dict() for p in self.runtime],
            "dev": [p.to_dict() for p in self.dev],
        }


@dataclass(frozen=True)
class ModulatorPlan:
    """Everything an install or remove would do. Never partially built."""

    capability_id: str
    kind: PackKind
    operation: str
    version: str = ""
    options: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    dependencies: DependencyPlan = DependencyPlan()
    wiring: Tuple[WiringOperation, ...] = ()
    patches: Tuple[PatchOperation, ...] = ()
    permissions: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    conflicts: Tuple[Conflict, ...] = ()
    files_to_create: Tuple[str, ...] = ()
    files_to_modify: Tuple[str, ...] = ()
    files_to_remove: Tuple[str, ...] = ()
    dirs_to_remove: Tuple[str, ...] = ()
    manifest_updates: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    variant: Optional[str] = None
    destination: Optional[str] = None
    reinstall: bool = False

    @property
    def operation_id(self) -> str:
        return f"{self.kind.value}-{self.capability_id}"

    @property
    def is_noop(self) -> bool:
        return (
            self.operation == REMOVE
            and not self.files_to_remove
            and not self.dirs_to_remove
            and not self.manifest_updates
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capabilityId": self.capability_id,
            "kind": self.kind.value,
            "operation": self.operation,
            "version": self.version,
            "options": dict(self.options),
            "variant": self.variant,
            "destination": self.destination,
            "reinstall": self.reinstall,
            "dependencies": self.dependencies.to_dict(),
            "runtimeWiring": [op.to_dict() for op in self.wiring],
            "patches": [p.to_dict() for p in self.patches],
            "permissions": dict(self.permissions),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "filesToCreate": list(self.files_to_create),
            "filesToModify": list(self.files_to_modify),
            "filesToRemove": list(self.files_to_remove),
            "dirsToRemove": list(self.dirs_to_remove),
            "manifestUpdates": dict(self.manifest_updates),
        }


@dataclass
class PhaseResult:
    phase: str
    success: bool = True
    action: str = "executed"
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"phase": self.phase, "success": self.success, "action": self.action}
        if self.error:
            out["error"] = self.error
        if self.warnings:
            out["warnings"] = list(self.warnings)
        if self.details:
            out["details"] = self.details
        return out


@dataclass
class ModulatorResult:
    capability_id: str
    operation: str
    dry_run: bool = False
    phases: List[PhaseResult] = field(default_factory=list)
    backup_dir: Optional[str] = None
    manifest_updated: bool = False
    restored_files: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """AND of every phase that was not skipped."""
        return all(p.success for p in self.phases if p.action != "skipped")

    @property
    def errors(self) -> List[str]:
        return [f"{p.phase}: {p.error}" for p in self.phases if p.error]

    @property
    def warnings(self) -> List[str]:
        return [w for p in self.phases for w in p.warnings]

    def phase(self, name: str) -> Optional[PhaseResult]:
        for p in self.phases:
            if p.phase == name:
                return p
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capabilityId": self.capability_id,
            "operation": self.operation,
            "success": self.success,
            "dryRun": self.dry_run,
            "phases": [p.to_dict() for p in self.phases],
            "warnings": self.warnings,
            "errors": self.errors,
            "backupDir": self.backup_dir,
            "manifestUpdated": self.manifest_updated,
            "restoredFiles": list(self.restored_files),
        }


__all__ = [
    "INSTALL",
    "INSTALL_PHASES",
    "REMOVE",
    "REMOVE_PHASES",
    "Conflict",
    "DependencyPlan",
    "ModulatorPlan",
    "ModulatorResult",
    "PhaseResult",
]
