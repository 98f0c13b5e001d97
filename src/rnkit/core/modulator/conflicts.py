"""Install-time conflict detection.

Three categories are checked against what the project manifest records as
installed: explicit mutual exclusion (``conflictsWith``, in either
direction), exclusive slot collisions and missing required capabilities.
Every conflict is returned; callers decide whether to block.
"""
from __future__ import annotations

from typing import Any, List, Mapping

from rnkit.core.registry.descriptors import CapabilityDescriptor
from rnkit.core.registry.registry import CapabilityRegistry
from rnkit.core.state.manifest import installed_ids

from .plan import Conflict


def _command(registry: CapabilityRegistry, verb: str, capability_id: str) -> str:
    descriptor = registry.find(capability_id)
    kind = descriptor.kind.value if descriptor is not None else "plugin"
    return f"rnkit {kind} {verb} {capability_id}"


def detect_conflicts(
    descriptor: CapabilityDescriptor,
    manifest: Mapping[str, Any],
    registry: CapabilityRegistry,
) -> List[Conflict]:
    installed = [cid for cid in installed_ids(manifest) if cid != descriptor.id]
    conflicts: List[Conflict] = []

    for other_id in installed:
        other = registry.find(other_id)
        declared = other_id in descriptor.conflicts_with
        reverse = other is not None and descriptor.id in other.conflicts_with
        if declared or reverse:
            fix = _command(registry, "remove", other_id)
            conflicts.append(
                Conflict(
                    type="conflictsWith",
                    description=(
                        f"'{descriptor.id}' cannot be installed alongside installed '{other_id}'. "
                        f"Remove it first: {fix}"
                    ),
                    affected=(descriptor.id, other_id),
                    remediation=fix,
                )
            )

    for claim in descriptor.slots:
        if not claim.exclusive:
            continue
        for other_id in installed:
            other = registry.find(other_id)
            if other is None:
                continue
            if any(s.slot == claim.slot and s.exclusive for s in other.slots):
                fix = _command(registry, "remove", other_id)
                conflicts.append(
                    Conflict(
                        type="slot",
                        description=(
                            f"Slot '{claim.slot}' is already occupied by '{other_id}'. "
                            f"Only one capability can occupy it; to install '{descriptor.id}' first run: {fix}"
                        ),
                        affected=(descriptor.id, other_id),
                        remediation=fix,
                    )
                )

    for required_id in descriptor.requires:
        if required_id in installed:
            continue
        if registry.has(required_id):
            fix = _command(registry, "add", required_id)
            conflicts.append(
                Conflict(
                    type="dependency",
                    description=(
                        f"'{descriptor.id}' requires '{required_id}', which is not installed. "
                        f"Install it first: {fix}"
                    ),
                    affected=(descriptor.id, required_id),
                    remediation=fix,
                )
            )
        else:
            conflicts.append(
                Conflict(
                    type="dependency",
                    description=(
                        f"'{descriptor.id}' requires '{required_id}', which is neither installed "
                        f"nor available in any pack root."
                    ),
                    affected=(descriptor.id, required_id),
                    remediation=f"Add a pack providing '{required_id}' to paths.extra_templates_roots",
                )
            )

    return conflicts


__all__ = ["detect_conflicts"]
