from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

MANIFEST_FILENAME = "pack.json"
BASE_PACK_ID = "base"


class PackKind(str, Enum):
    """Pack kind as written in ``pack.json`` ``type``.

    ``core`` is the base kind: it carries the project skeleton itself.
    """

    CORE = "core"
    PLUGIN = "plugin"
    MODULE = "module"


class Delivery(str, Enum):
    """How a pack's files are owned once attached."""

    WORKSPACE = "workspace"
    USER_CODE = "user-code"


@dataclass(frozen=True)
class PackManifest:
    id: str
    type: PackKind
    delivery: Delivery
    supported_targets: Tuple[str, ...]
    supported_languages: Tuple[str, ...]
    variant_resolution_hints: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    default_destination_mapping: Optional[str] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackManifest":
        """Build a manifest from already-validated ``pack.json`` data."""
        return cls(
            id=str(data["id"]),
            type=PackKind(data["type"]),
            delivery=Delivery(data["delivery"]),
            supported_targets=tuple(data["supportedTargets"]),
            supported_languages=tuple(data["supportedLanguages"]),
            variant_resolution_hints=dict(data.get("variantResolutionHints") or {}),
            default_destination_mapping=data.get("defaultDestinationMapping"),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "delivery": self.delivery.value,
            "supportedTargets": list(self.supported_targets),
            "supportedLanguages": list(self.supported_languages),
        }
        if self.variant_resolution_hints:
            out["variantResolutionHints"] = dict(self.variant_resolution_hints)
        if self.default_destination_mapping:
            out["defaultDestinationMapping"] = self.default_destination_mapping
        return out

    @property
    def operation_id(self) -> str:
        """Idempotency key for attaching this pack, e.g. ``plugin-auth.firebase``."""
        return f"{self.type.value}-{self.id}"


@dataclass(frozen=True)
class Pack:
    """A discovered, validated pack. Immutable after load."""

    manifest: PackManifest
    root: Path

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def kind(self) -> PackKind:
        return self.manifest.type

    @property
    def is_base(self) -> bool:
        return self.kind is PackKind.CORE and self.id == BASE_PACK_ID


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    code: str
    message: str
    severity: str = "error"

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


__all__ = [
    "MANIFEST_FILENAME",
    "BASE_PACK_ID",
    "PackKind",
    "Delivery",
    "PackManifest",
    "Pack",
    "ValidationIssue",
]
