"""Capability descriptors (``plugin.json`` / ``module.json``).

A descriptor lives in the root of its pack and declares everything the
modulator needs to plan an install: slots, requirements, conflicts,
dependencies, runtime contributions, patches and permissions. A pack
without a descriptor gets a minimal one derived from its ``pack.json``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import Draft202012Validator

from rnkit.core.exceptions import ValidationError
from rnkit.core.packs.model import Pack, PackKind
from rnkit.core.patches.model import PatchOperation
from rnkit.core.schemas.validation import validate_payload
from rnkit.core.wiring.contributions import Contribution

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAMES: Dict[PackKind, str] = {
    PackKind.PLUGIN: "plugin.json",
    PackKind.MODULE: "module.json",
}


@dataclass(frozen=True)
class SlotClaim:
    slot: str
    mode: str = "single"

    @property
    def exclusive(self) -> bool:
        return self.mode == "single"


@dataclass(frozen=True)
class PackageSpec:
    name: str
    version: str = ""

    def spec(self) -> str:
        """``name@version`` as passed to the package manager."""
        return f"{self.name}@{self.version}" if self.version else self.name

    def to_dict(self) -> Dict[str, str]:
        out = {"name": self.name}
        if self.version:
            out["version"] = self.version
        return out


@dataclass
class CapabilityDescriptor:
    id: str
    kind: PackKind
    name: str
    version: str
    pack: Pack
    category: str = ""
    description: str = ""
    targets: Tuple[str, ...] = ()
    platforms: Tuple[str, ...] = ()
    slots: List[SlotClaim] = field(default_factory=list)
    requires: List[str] = field(default_factory=list)
    conflicts_with: List[str] = field(default_factory=list)
    runtime_dependencies: List[PackageSpec] = field(default_factory=list)
    dev_dependencies: List[PackageSpec] = field(default_factory=list)
    contributions: List[Contribution] = field(default_factory=list)
    patches: List[PatchOperation] = field(default_factory=list)
    permissions: List[Dict[str, Any]] = field(default_factory=list)
    options_schema: Dict[str, Any] = field(default_factory=dict)

    def supports_target(self, target: str) -> bool:
        return not self.targets or target in self.targets

    def validate_options(self, options: Mapping[str, Any]) -> None:
        """Check user options against ``optionsSchema``.

        Raises:
            ValidationError: Listing every violation.
        """
        if not self.options_schema:
            return
        validator = Draft202012Validator(self.options_schema)
        issues = sorted(
            (".".join(str(p) for p in e.absolute_path) or "options") + f": {e.message}"
            for e in validator.iter_errors(dict(options))
        )
        if issues:
            raise ValidationError(
                f"Invalid options for '{self.id}'",
                issues=issues,
                context={"capability": self.id},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, pack: Pack) -> "CapabilityDescriptor":
        """Build from schema-validated descriptor data."""
        support = data.get("support") or {}
        deps = data.get("dependencies") or {}
        capability_id = str(data["id"])
        return cls(
            id=capability_id,
            kind=pack.kind,
            name=str(data.get("name") or capability_id),
            version=str(data.get("version") or "0.0.0"),
            pack=pack,
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            targets=tuple(support.get("targets") or ()),
            platforms=tuple(support.get("platforms") or ()),
            slots=[SlotClaim(str(s["slot"]), str(s.get("mode", "single"))) for s in data.get("slots") or []],
            requires=[str(r) for r in data.get("requires") or []],
            conflicts_with=[str(c) for c in data.get("conflictsWith") or []],
            runtime_dependencies=[PackageSpec(p["name"], str(p.get("version", ""))) for p in deps.get("runtime") or []],
            dev_dependencies=[PackageSpec(p["name"], str(p.get("version", ""))) for p in deps.get("dev") or []],
            contributions=[Contribution.from_dict(c) for c in data.get("runtimeContributions") or []],
            patches=[PatchOperation.from_dict(capability_id, p) for p in data.get("patches") or []],
            permissions=[dict(p) for p in data.get("permissions") or []],
            options_schema=dict(data.get("optionsSchema") or {}),
        )

    @classmethod
    def from_pack(cls, pack: Pack) -> "CapabilityDescriptor":
        """Minimal descriptor for a pack that ships none."""
        return cls(
            id=pack.id,
            kind=pack.kind,
            name=pack.manifest.description or pack.id,
            version="0.0.0",
            pack=pack,
            targets=tuple(pack.manifest.supported_targets),
        )


def load_descriptor(pack: Pack) -> CapabilityDescriptor:
    """Load and validate the descriptor shipped in ``pack``.

    Raises:
        ValidationError: When the descriptor is unreadable, fails its schema
            or declares an id different from the pack's.
    """
    filename = DESCRIPTOR_FILENAMES.get(pack.kind)
    if filename is None:
        raise ValidationError(f"Pack '{pack.id}' of kind {pack.kind.value} is not a capability")
    path = pack.root / filename
    if not path.is_file():
        logger.debug("Pack %s has no %s; using its pack.json", pack.id, filename)
        return CapabilityDescriptor.from_pack(pack)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{path}: invalid JSON: {exc}", context={"path": str(path)}) from exc

    try:
        validate_payload(data, "capability-descriptor", label=str(path))
    except ValidationError as exc:
        raise ValidationError(
            f"Invalid capability descriptor {path}",
            issues=[f"{path}: {issue}" for issue in exc.issues],
            context={"path": str(path)},
        ) from exc
    if data["id"] != pack.id:
        raise ValidationError(
            f"{path}: id '{data['id']}' does not match pack id '{pack.id}'",
            context={"path": str(path)},
        )
    return CapabilityDescriptor.from_dict(data, pack=pack)


__all__ = [
    "DESCRIPTOR_FILENAMES",
    "CapabilityDescriptor",
    "PackageSpec",
    "SlotClaim",
    "load_descriptor",
]
