"""The modulator: plan, then apply, one capability at a time.

``plan`` is side-effect free and raises before anything is touched when the
capability cannot be installed. ``apply`` runs the fixed phases in order and
never raises for phase failures; every failure lands in its phase result and
the remaining phases still run.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from rnkit.core.attach.backup import backup_file, create_backup_directory, restore_from_backup
from rnkit.core.attach.engine import AttachmentReport, attach_pack
from rnkit.core.exceptions import (
    ConflictError,
    PackageManagerError,
    RnkitError,
    ValidationError,
)
from rnkit.core.idempotency import INJECT_PREFIX
from rnkit.core.packs.model import Delivery, PackKind
from rnkit.core.packs.variants import ResolutionContext, resolve_variant
from rnkit.core.patches.engine import apply_patches
from rnkit.core.registry.descriptors import CapabilityDescriptor
from rnkit.core.state.manifest import (
    add_capability,
    get_capability,
    installed_ids,
    make_record,
    remove_capability,
    write_manifest,
)
from rnkit.core.state.permissions import summarize_permissions
from rnkit.core.utils.paths import in_zones, safe_join
from rnkit.core.wiring.engine import duplicate_injections, wire
from rnkit.core.wiring.contributions import WiringOperation
from rnkit.core.wiring.markers import validate_markers

from .conflicts import detect_conflicts
from .context import ModulatorContext
from .plan import (
    INSTALL,
    REMOVE,
    Conflict,
    DependencyPlan,
    ModulatorPlan,
    ModulatorResult,
    PhaseResult,
)

logger = logging.getLogger(__name__)

CAPABILITY_KINDS = (PackKind.PLUGIN, PackKind.MODULE)


class Modulator:
    """Installs and removes capabilities in the project of ``context``."""

    def __init__(self, context: ModulatorContext) -> None:
        self.context = context

    @property
    def project_root(self) -> Path:
        return self.context.project_root

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------
    def plan(
        self,
        capability_id: str,
        operation: str = INSTALL,
        *,
        options: Optional[Mapping[str, Any]] = None,
        allow_reinstall: bool = False,
    ) -> ModulatorPlan:
        """Compute everything ``operation`` would do, without side effects.

        Raises:
            ProjectNotInitializedError: When the project has no manifest.
            PackNotFoundError: When no pack provides ``capability_id``.
            ValidationError: When the capability does not support the
                project target or ``options`` fail its options schema.
            ConflictError: Listing every error-severity conflict.
            VariantResolutionError: When no variant fits the project.
        """
        if operation == REMOVE:
            return self._plan_remove(capability_id)
        if operation != INSTALL:
            raise ValueError(f"Unknown operation: {operation!r}")
        return self._plan_install(capability_id, dict(options or {}), allow_reinstall)

    def _plan_install(self, capability_id: str, options: Dict[str, Any], allow_reinstall: bool) -> ModulatorPlan:
        ctx = self.context
        manifest = ctx.read_manifest()
        descriptor = ctx.registry.get(capability_id)
        target = str(manifest.get("target", ""))
        language = str(manifest.get("language", ""))

        if not descriptor.supports_target(target):
            raise ValidationError(
                f"'{capability_id}' does not support target '{target}'. "
                f"Supported targets: {', '.join(descriptor.targets)}",
                context={"capability": capability_id, "target": target},
            )
        descriptor.validate_options(options)

        existing = get_capability(manifest, descriptor.kind.value, capability_id)
        if existing is not None and not allow_reinstall:
            conflict = Conflict(
                type="reinstall",
                description=(
                    f"'{capability_id}' is already installed (version {existing.get('version', '?')}). "
                    f"Pass --reinstall to apply it again or remove it first: "
                    f"rnkit {descriptor.kind.value} remove {capability_id}"
                ),
                affected=(capability_id,),
                remediation=f"rnkit {descriptor.kind.value} add {capability_id} --reinstall",
            )
            raise ConflictError(
                conflict.description,
                conflicts=[conflict],
                context={"capability": capability_id, "conflicts": [conflict.to_dict()]},
            )

        conflicts = detect_conflicts(descriptor, manifest, ctx.registry)
        blocking = [c for c in conflicts if c.severity == "error"]
        if blocking:
            listing = "\n".join(f"  - {c.description}" for c in blocking)
            raise ConflictError(
                f"Cannot install '{capability_id}':\n{listing}",
                conflicts=blocking,
                context={"capability": capability_id, "conflicts": [c.to_dict() for c in blocking]},
            )

        pack = descriptor.pack
        variant_path = resolve_variant(pack, ResolutionContext.build(target, language, options))
        preview = self._attach(descriptor, variant_path, dry_run=True)

        wiring = tuple(self._wiring_operations(descriptor))
        permissions = summarize_permissions(
            {capability_id: descriptor.permissions}, ctx.permission_catalog.get()
        )
        plan = ModulatorPlan(
            capability_id=capability_id,
            kind=descriptor.kind,
            operation=INSTALL,
            version=descriptor.version,
            options=options,
            dependencies=DependencyPlan(
                runtime=tuple(descriptor.runtime_dependencies),
                dev=tuple(descriptor.dev_dependencies),
            ),
            wiring=wiring,
            patches=tuple(descriptor.patches),
            permissions=permissions,
            conflicts=tuple(conflicts),
            files_to_create=tuple(preview.created),
            files_to_modify=tuple(
                [*preview.updated, *sorted({op.file for op in wiring}), *sorted({p.file for p in descriptor.patches})]
            ),
            manifest_updates={
                "action": "add",
                "kind": descriptor.kind.value,
                "id": capability_id,
                "version": descriptor.version,
                "options": dict(options),
            },
            variant=preview.variant,
            destination=preview.destination,
            reinstall=existing is not None,
        )
        logger.info(
            "Planned install of %s '%s': %d file(s) to create, %d wiring op(s), %d patch(es)",
            descriptor.kind.value,
            capability_id,
            len(plan.files_to_create),
            len(plan.wiring),
            len(plan.patches),
        )
        return plan

    def _plan_remove(self, capability_id: str) -> ModulatorPlan:
        manifest = self.context.read_manifest()
        descriptor = self.context.registry.find(capability_id)
        for kind in CAPABILITY_KINDS:
            record = get_capability(manifest, kind.value, capability_id)
            if record is not None:
                return ModulatorPlan(
                    capability_id=capability_id,
                    kind=kind,
                    operation=REMOVE,
                    version=str(record.get("version", "")),
                    options=dict(record.get("options") or {}),
                    files_to_remove=tuple(record.get("ownedFiles") or ()),
                    dirs_to_remove=tuple(record.get("ownedDirs") or ()),
                    manifest_updates={"action": "remove", "kind": kind.value, "id": capability_id},
                )
        logger.info("'%s' is not installed; remove is a no-op", capability_id)
        kind = descriptor.kind if descriptor is not None else PackKind.PLUGIN
        return ModulatorPlan(capability_id=capability_id, kind=kind, operation=REMOVE)

    def _wiring_operations(self, descriptor: CapabilityDescriptor) -> List[WiringOperation]:
        markers = self.context.wiring.markers
        ops: List[WiringOperation] = []
        seen: Dict[Tuple[str, str], int] = {}
        for contribution in descriptor.contributions:
            definition = markers.get(contribution.marker_type)
            if definition is None:
                raise ValidationError(
                    f"'{descriptor.id}' contributes to unknown marker '{contribution.marker_type}'",
                    context={"capability": descriptor.id},
                )
            key = (contribution.marker_type, contribution.type)
            seen[key] = seen.get(key, 0) + 1
            ops.append(
                WiringOperation(
                    capability_id=descriptor.id,
                    marker_type=contribution.marker_type,
                    file=definition.file,
                    contribution=contribution,
                    occurrence=seen[key],
                )
            )
        return ops

    def _attach(
        self,
        descriptor: CapabilityDescriptor,
        variant_path: Path,
        *,
        dry_run: bool,
        backup_dir: Optional[Path] = None,
    ) -> AttachmentReport:
        paths = self.context.paths
        return attach_pack(
            descriptor.pack,
            variant_path,
            self.project_root,
            dry_run=dry_run,
            backup_dir=backup_dir,
            ignore_patterns=self.context.attach.ignore_patterns,
            workspace_packages_dir=paths.workspace_packages_dir,
            modules_dir=paths.modules_dir,
            backups_dir=paths.backups_dir,
        )

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------
    def apply(
        self,
        plan: ModulatorPlan,
        *,
        dry_run: bool = False,
        restore_on_failure: bool = False,
    ) -> ModulatorResult:
        """Execute ``plan``. Phase failures are reported, never raised."""
        if plan.operation == REMOVE:
            return self._apply_remove(plan, dry_run=dry_run)
        return self._apply_install(plan, dry_run=dry_run, restore_on_failure=restore_on_failure)

    def install(
        self,
        capability_id: str,
        *,
        options: Optional[Mapping[str, Any]] = None,
        dry_run: bool = False,
        allow_reinstall: bool = False,
        restore_on_failure: bool = False,
    ) -> ModulatorResult:
        plan = self.plan(capability_id, INSTALL, options=options, allow_reinstall=allow_reinstall)
        return self.apply(plan, dry_run=dry_run, restore_on_failure=restore_on_failure)

    def remove(self, capability_id: str, *, dry_run: bool = False) -> ModulatorResult:
        return self.apply(self.plan(capability_id, REMOVE), dry_run=dry_run)

    def _run_phase(
        self, result: ModulatorResult, name: str, fn: Callable[..., None], *args: Any
    ) -> PhaseResult:
        phase = PhaseResult(phase=name)
        try:
            fn(phase, *args)
        except (RnkitError, OSError) as exc:
            logger.debug("phase %s failed", name, exc_info=True)
            phase.success = False
            phase.action = "failed"
            phase.error = str(exc)
        if self.context.verbose:
            logger.info("[%s] %s %s: %s", result.capability_id, name, phase.action, phase.error or "ok")
        result.phases.append(phase)
        return phase

    def _apply_install(self, plan: ModulatorPlan, *, dry_run: bool, restore_on_failure: bool) -> ModulatorResult:
        ctx = self.context
        result = ModulatorResult(capability_id=plan.capability_id, operation=INSTALL, dry_run=dry_run)
        descriptor = ctx.registry.get(plan.capability_id)
        backup_dir: Optional[Path] = None
        state: Dict[str, Any] = {"report": None}

        self._run_phase(result, "gate", self._gate_install, plan, descriptor)

        if not dry_run:
            backup_dir = create_backup_directory(
                self.project_root, plan.operation_id, backups_dir=ctx.paths.backups_dir
            )
            result.backup_dir = str(backup_dir)

        self._run_phase(result, "scaffold", self._scaffold, plan, descriptor, dry_run, backup_dir, state)
        self._run_phase(result, "link", self._link, plan, dry_run)
        self._run_phase(result, "wire", self._wire, plan, dry_run, backup_dir)
        self._run_phase(result, "patch", self._patch, plan, dry_run, backup_dir)
        manifest_phase = self._run_phase(
            result, "manifest", self._update_manifest, plan, descriptor, dry_run, backup_dir, state
        )
        result.manifest_updated = manifest_phase.success and manifest_phase.action == "executed"
        self._run_phase(result, "verify", self._verify_install, plan, dry_run, state)

        if restore_on_failure and not result.success and backup_dir is not None:
            self._restore(result, backup_dir, state)

        logger.info(
            "Install of '%s' %s%s",
            plan.capability_id,
            "succeeded" if result.success else "failed",
            " [dry-run]" if dry_run else "",
        )
        return result

    def _gate_install(self, phase: PhaseResult, plan: ModulatorPlan, descriptor: CapabilityDescriptor) -> None:
        ctx = self.context
        manifest = ctx.read_manifest()
        blocking = [c for c in detect_conflicts(descriptor, manifest, ctx.registry) if c.severity == "error"]
        if blocking:
            raise ConflictError(
                "; ".join(c.description for c in blocking),
                conflicts=blocking,
                context={"capability": plan.capability_id, "conflicts": [c.to_dict() for c in blocking]},
            )
        used = {op.marker_type for op in plan.wiring}
        problems: List[str] = []
        for issue in validate_markers(self.project_root, ctx.wiring.markers):
            if issue.marker_type in used:
                problems.append(str(issue))
            else:
                phase.warnings.append(str(issue))
        if problems:
            raise ValidationError("Marker regions needed for wiring are missing or corrupt", issues=problems)

    def _scaffold(
        self,
        phase: PhaseResult,
        plan: ModulatorPlan,
        descriptor: CapabilityDescriptor,
        dry_run: bool,
        backup_dir: Optional[Path],
        state: Dict[str, Any],
    ) -> None:
        manifest = self.context.read_manifest()
        variant_path = resolve_variant(
            descriptor.pack,
            ResolutionContext.build(str(manifest.get("target", "")), str(manifest.get("language", "")), plan.options),
        )
        report = self._attach(descriptor, variant_path, dry_run=dry_run, backup_dir=backup_dir)
        state["report"] = report
        phase.details = {
            "variant": report.variant,
            "destination": report.destination,
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
        }
        for path in report.conflicts:
            phase.warnings.append(f"Existing file left untouched: {path}")

    def _link(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool) -> None:
        deps = plan.dependencies
        if deps.is_empty:
            phase.action = "skipped"
            return
        phase.details = deps.to_dict()
        if dry_run:
            phase.action = "skipped"
            return
        installer = self.context.installer.get()
        steps = []
        if deps.runtime:
            steps.append(lambda: installer.add(self.project_root, [p.spec() for p in deps.runtime], dev=False))
        if deps.dev:
            steps.append(lambda: installer.add(self.project_root, [p.spec() for p in deps.dev], dev=True))
        steps.append(lambda: installer.install(self.project_root))
        for step in steps:
            outcome = step()
            if not outcome.success:
                command = " ".join(outcome.command) or "package manager"
                raise PackageManagerError(
                    f"'{command}' failed with exit code {outcome.returncode}: {outcome.stderr.strip()}",
                    context={"command": outcome.command},
                )

    def _wire(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool, backup_dir: Optional[Path]) -> None:
        if not plan.wiring:
            phase.action = "skipped"
            return
        results = wire(
            self.project_root,
            plan.wiring,
            dry_run=dry_run,
            backup_dir=backup_dir,
            system_zones=self.context.wiring.system_zones,
            backups_dir=self.context.paths.backups_dir,
            placement=self._installed_wiring_ranks(plan.capability_id),
        )
        phase.details = {"operations": [r.to_dict() for r in results]}
        errors = [f"{r.operation_id}: {r.error}" for r in results if not r.success]
        if errors:
            phase.success = False
            phase.action = "failed"
            phase.error = "; ".join(errors)

    def _installed_wiring_ranks(self, capability_id: str) -> Dict[str, tuple]:
        """Sort keys of the wiring contributed by the other installed capabilities."""
        ranks: Dict[str, tuple] = {}
        for other_id in installed_ids(self.context.read_manifest()):
            descriptor = self.context.registry.find(other_id)
            if descriptor is None or other_id == capability_id:
                continue
            try:
                operations = self._wiring_operations(descriptor)
            except ValidationError as exc:
                logger.warning("Cannot rank wiring of '%s': %s", other_id, exc)
                continue
            ranks.update((op.operation_id, op.sort_key) for op in operations)
        return ranks

    def _patch(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool, backup_dir: Optional[Path]) -> None:
        if not plan.patches:
            phase.action = "skipped"
            return
        results = apply_patches(
            self.project_root,
            plan.patches,
            dry_run=dry_run,
            backup_dir=backup_dir,
            backups_dir=self.context.paths.backups_dir,
        )
        phase.details = {"operations": [r.to_dict() for r in results]}
        errors = [r.error for r in results if not r.success and r.error]
        if errors:
            phase.success = False
            phase.action = "failed"
            phase.error = "; ".join(errors)

    def _update_manifest(
        self,
        phase: PhaseResult,
        plan: ModulatorPlan,
        descriptor: CapabilityDescriptor,
        dry_run: bool,
        backup_dir: Optional[Path],
        state: Dict[str, Any],
    ) -> None:
        ctx = self.context
        manifest = ctx.read_manifest()
        report: Optional[AttachmentReport] = state["report"]
        owned_files = set(report.owned_files_candidate if report else ())
        owned_dirs = set()
        if descriptor.pack.manifest.delivery is Delivery.WORKSPACE and plan.destination not in (None, "", "."):
            owned_dirs.add(str(plan.destination))

        previous = get_capability(manifest, plan.kind.value, plan.capability_id)
        if previous is not None:
            owned_files.update(previous.get("ownedFiles") or ())
            owned_dirs.update(previous.get("ownedDirs") or ())

        record = make_record(
            plan.capability_id,
            plan.version,
            options=plan.options,
            owned_files=owned_files,
            owned_dirs=owned_dirs,
            permissions=descriptor.permissions,
        )
        phase.details = {"ownedFiles": record["ownedFiles"], "ownedDirs": record["ownedDirs"]}
        if dry_run:
            phase.action = "skipped"
            return
        if backup_dir is not None:
            backup_file(self.project_root, backup_dir, ctx.paths.state_file)
        write_manifest(
            self.project_root,
            add_capability(manifest, plan.kind.value, record),
            state_file=ctx.paths.state_file,
        )

    def _verify_install(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool, state: Dict[str, Any]) -> None:
        ctx = self.context
        for rel in sorted({d.file for d in ctx.wiring.markers.values()}):
            path = self.project_root / rel
            if not path.is_file():
                continue
            for op_id in duplicate_injections(path.read_text(encoding="utf-8")):
                phase.warnings.append(f"Duplicate injection of '{op_id}' in {rel}")
        for issue in validate_markers(self.project_root, ctx.wiring.markers):
            phase.warnings.append(str(issue))
        phase.warnings.extend(ctx.extensions.load().warnings)
        report: Optional[AttachmentReport] = state["report"]
        if report is not None and not dry_run:
            for rel in report.owned_files_candidate:
                if not (self.project_root / rel).is_file():
                    phase.warnings.append(f"Owned file missing after install: {rel}")

    def _restore(self, result: ModulatorResult, backup_dir: Path, state: Dict[str, Any]) -> None:
        restored = restore_from_backup(self.project_root, backup_dir)
        report: Optional[AttachmentReport] = state["report"]
        for rel in report.created if report else ():
            path = self.project_root / rel
            if path.is_file():
                path.unlink()
                restored.append(rel)
        result.restored_files = sorted(set(restored))
        logger.warning(
            "Install of '%s' failed; restored %d file(s) from %s",
            result.capability_id,
            len(result.restored_files),
            backup_dir,
        )

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------
    def _apply_remove(self, plan: ModulatorPlan, *, dry_run: bool) -> ModulatorResult:
        result = ModulatorResult(capability_id=plan.capability_id, operation=REMOVE, dry_run=dry_run)
        if plan.is_noop:
            result.phases.append(
                PhaseResult(
                    phase="remove",
                    action="skipped",
                    details={"reason": f"'{plan.capability_id}' is not installed"},
                )
            )
            return result

        backup_dir: Optional[Path] = None
        self._run_phase(result, "gate", self._gate_remove, plan)
        if not dry_run:
            backup_dir = create_backup_directory(
                self.project_root, f"remove-{plan.operation_id}", backups_dir=self.context.paths.backups_dir
            )
            result.backup_dir = str(backup_dir)
        self._run_phase(result, "clean", self._clean, plan, dry_run, backup_dir)
        manifest_phase = self._run_phase(result, "manifest", self._strip_manifest, plan, dry_run, backup_dir)
        result.manifest_updated = manifest_phase.success and manifest_phase.action == "executed"
        self._run_phase(result, "verify", self._verify_remove, plan, dry_run)
        logger.info(
            "Remove of '%s' %s%s",
            plan.capability_id,
            "succeeded" if result.success else "failed",
            " [dry-run]" if dry_run else "",
        )
        return result

    def _gate_remove(self, phase: PhaseResult, plan: ModulatorPlan) -> None:
        manifest = self.context.read_manifest()
        if get_capability(manifest, plan.kind.value, plan.capability_id) is None:
            raise ValidationError(f"'{plan.capability_id}' is no longer recorded as installed")

    def _clean(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool, backup_dir: Optional[Path]) -> None:
        user_zones = self.context.wiring.user_zones
        removed: List[str] = []
        for rel in plan.files_to_remove:
            if in_zones(rel, user_zones):
                phase.warnings.append(f"User-owned file kept: {rel}")
                continue
            path = safe_join(self.project_root, rel)
            if not path.is_file():
                continue
            if not dry_run:
                if backup_dir is not None:
                    backup_file(self.project_root, backup_dir, rel)
                path.unlink()
            removed.append(rel)

        removed_dirs: List[str] = []
        for rel in sorted(plan.dirs_to_remove, key=len, reverse=True):
            if in_zones(rel, user_zones) or in_zones(f"{rel}/", user_zones):
                phase.warnings.append(f"User-owned directory kept: {rel}")
                continue
            path = safe_join(self.project_root, rel)
            if not path.is_dir() or dry_run:
                continue
            removed_dirs.extend(_prune_empty_dirs(self.project_root, path))
            if path.exists():
                phase.warnings.append(f"Directory not empty, kept: {rel}")
        phase.details = {"removedFiles": removed, "removedDirs": removed_dirs}

    def _strip_manifest(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool, backup_dir: Optional[Path]) -> None:
        if dry_run:
            phase.action = "skipped"
            return
        ctx = self.context
        manifest = ctx.read_manifest()
        if backup_dir is not None:
            backup_file(self.project_root, backup_dir, ctx.paths.state_file)
        write_manifest(
            self.project_root,
            remove_capability(manifest, plan.kind.value, plan.capability_id),
            state_file=ctx.paths.state_file,
        )

    def _verify_remove(self, phase: PhaseResult, plan: ModulatorPlan, dry_run: bool) -> None:
        needle = f"{INJECT_PREFIX}{plan.capability_id}-"
        for rel in sorted({d.file for d in self.context.wiring.markers.values()}):
            path = self.project_root / rel
            if path.is_file() and needle in path.read_text(encoding="utf-8"):
                phase.warnings.append(
                    f"Runtime wiring for '{plan.capability_id}' is still present in {rel}; remove it by hand"
                )
        if dry_run:
            return
        user_zones = self.context.wiring.user_zones
        for rel in plan.files_to_remove:
            if not in_zones(rel, user_zones) and (self.project_root / rel).exists():
                phase.warnings.append(f"Owned file still present after remove: {rel}")


def _prune_empty_dirs(project_root: Path, top: Path) -> List[str]:
    """Remove empty directories under and including ``top``, deepest first."""
    removed: List[str] = []
    for dirpath, _dirs, _files in os.walk(top, topdown=False):
        current = Path(dirpath)
        if not any(current.iterdir()):
            current.rmdir()
            removed.append(current.relative_to(project_root).as_posix())
    return removed


__all__ = ["CAPABILITY_KINDS", "Modulator"]
