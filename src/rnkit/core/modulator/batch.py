"""Sequential multi-capability runs."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rnkit.core.exceptions import ConflictError, RnkitError
from rnkit.core.packs.model import PackKind

from .engine import Modulator
from .plan import INSTALL, REMOVE, ModulatorResult

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    operation: str
    succeeded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    results: Dict[str, ModulatorResult] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "success": self.success,
            "counts": {
                "succeeded": len(self.succeeded),
                "skipped": len(self.skipped),
                "failed": len(self.failed),
            },
            "succeeded": list(self.succeeded),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
            "errors": dict(self.errors),
            "results": {cid: r.to_dict() for cid, r in self.results.items()},
        }


def _is_reinstall(exc: ConflictError) -> bool:
    return bool(exc.conflicts) and all(getattr(c, "type", "") == "reinstall" for c in exc.conflicts)


def run_batch(
    modulator: Modulator,
    capability_ids: Sequence[str],
    operation: str = INSTALL,
    *,
    options: Optional[Mapping[str, Any]] = None,
    dry_run: bool = False,
    allow_reinstall: bool = False,
    restore_on_failure: bool = False,
    expected_kind: Optional[PackKind] = None,
) -> BatchResult:
    """Run ``operation`` for each id in order; one failure never stops the rest.

    An install of an already installed capability counts as skipped, as does
    removing something that is not installed.

    When ``expected_kind`` is given, ids of another kind fail without being
    planned.
    """
    batch = BatchResult(operation=operation)
    for capability_id in capability_ids:
        if expected_kind is not None:
            descriptor = modulator.context.registry.find(capability_id)
            if descriptor is not None and descriptor.kind is not expected_kind:
                batch.failed.append(capability_id)
                batch.errors[capability_id] = (
                    f"'{capability_id}' is a {descriptor.kind.value}, not a {expected_kind.value}; "
                    f"use: rnkit {descriptor.kind.value} {'add' if operation == INSTALL else 'remove'} {capability_id}"
                )
                continue
        try:
            plan = modulator.plan(
                capability_id,
                operation,
                options=options,
                allow_reinstall=allow_reinstall,
            )
            if operation == REMOVE and plan.is_noop:
                batch.skipped.append(capability_id)
                batch.results[capability_id] = modulator.apply(plan, dry_run=dry_run)
                continue
            result = modulator.apply(plan, dry_run=dry_run, restore_on_failure=restore_on_failure)
        except ConflictError as exc:
            if _is_reinstall(exc):
                logger.info("Skipping '%s': already installed", capability_id)
                batch.skipped.append(capability_id)
            else:
                batch.failed.append(capability_id)
            batch.errors[capability_id] = str(exc)
            continue
        except RnkitError as exc:
            logger.error("%s of '%s' failed: %s", operation, capability_id, exc)
            batch.failed.append(capability_id)
            batch.errors[capability_id] = str(exc)
            continue

        batch.results[capability_id] = result
        if result.success:
            batch.succeeded.append(capability_id)
        else:
            batch.failed.append(capability_id)
            batch.errors[capability_id] = "; ".join(result.errors)

    logger.info(
        "Batch %s: %d succeeded, %d skipped, %d failed",
        operation,
        len(batch.succeeded),
        len(batch.skipped),
        len(batch.failed),
    )
    return batch


__all__ = ["BatchResult", "run_batch"]
