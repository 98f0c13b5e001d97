"""Patch operations and their results."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from rnkit.core.exceptions import ValidationError
from rnkit.core.idempotency import validate_operation_id

from .xml_patch import MANIFEST_ACTIONS, MANIFEST_ELEMENTS, PLIST_MODES

JSON_KINDS = ("json", "expo-config")
TEXT_KINDS = ("text-anchor", "gradle", "podfile")
PLIST_KINDS = ("plist", "entitlements")
MANIFEST_KINDS = ("android-manifest",)

JSON_MODES = ("set", "merge", "append")
TEXT_MODES = ("before", "after")


@dataclass(frozen=True)
class PatchOperation:
    """An anchored, idempotent edit of one configuration or native file.

    JSON patches use ``path``/``value``/``mode`` (set, merge, append); text
    patches use ``anchor``/``content``/``mode`` (before, after). Plist and
    entitlements patches use ``key``/``value``/``mode`` (set, append);
    Android manifest patches use ``element``/``name``/``attributes``/``action``.
    """

    capability_id: str
    operation_id: str
    file: str
    type: str
    mode: str = ""
    path: str = ""
    value: Any = None
    anchor: str = ""
    content: str = ""
    ensure_unique: bool = False
    key: str = ""
    element: str = ""
    name: str = ""
    attributes: Tuple[Tuple[str, str], ...] = ()
    action: str = "add"

    @property
    def family(self) -> str:
        if self.type in JSON_KINDS:
            return "json"
        if self.type in TEXT_KINDS:
            return "text"
        if self.type in PLIST_KINDS:
            return "plist"
        if self.type in MANIFEST_KINDS:
            return "android-manifest"
        return "unknown"

    @property
    def effective_mode(self) -> str:
        if self.mode:
            return self.mode
        if self.family == "text":
            return "after"
        return "set"

    @property
    def location(self) -> str:
        """JSON path, plist key, manifest element or anchor, for error messages."""
        if self.family == "json":
            return f"path '{self.path}'"
        if self.family == "plist":
            return f"key '{self.key}'"
        if self.family == "android-manifest":
            return f"{self.element} '{self.name}'"
        return f"anchor {self.anchor!r}"

    @classmethod
    def from_dict(cls, capability_id: str, data: Mapping[str, Any]) -> "PatchOperation":
        try:
            op = cls(
                capability_id=capability_id,
                operation_id=validate_operation_id(str(data.get("operationId", ""))),
                file=str(data["file"]),
                type=str(data["type"]),
                mode=str(data.get("mode") or ""),
                path=str(data.get("path") or ""),
                value=data.get("value"),
                anchor=str(data.get("anchor") or ""),
                content=str(data.get("content") or ""),
                ensure_unique=bool(data.get("ensureUnique", False)),
                key=str(data.get("key") or ""),
                element=str(data.get("element") or data.get("manifestOp") or ""),
                name=str(data.get("name") or ""),
                attributes=tuple((str(k), str(v)) for k, v in (data.get("attributes") or {}).items()),
                action=str(data.get("action") or "add"),
            )
        except (KeyError, ValueError) as exc:
            raise ValidationError(
                f"Invalid patch for '{capability_id}': {exc}",
                context={"capability": capability_id, "patch": dict(data)},
            ) from exc
        issues = op.problems()
        if issues:
            raise ValidationError(
                f"Invalid patch '{op.operation_id}' for '{capability_id}'",
                issues=issues,
                context={"capability": capability_id},
            )
        return op

    def problems(self) -> List[str]:
        out: List[str] = []
        if self.family == "json":
            if not self.path:
                out.append("JSON patches need a 'path'")
            if self.effective_mode not in JSON_MODES:
                out.append(f"mode must be one of {', '.join(JSON_MODES)}")
        elif self.family == "text":
            if not self.anchor:
                out.append("text patches need an 'anchor'")
            if not self.content:
                out.append("text patches need 'content'")
            if self.effective_mode not in TEXT_MODES:
                out.append(f"mode must be one of {', '.join(TEXT_MODES)}")
        elif self.family == "plist":
            if not self.key:
                out.append(f"{self.type} patches need a 'key'")
            if self.value is None:
                out.append(f"{self.type} patches need a 'value'")
            if self.effective_mode not in PLIST_MODES:
                out.append(f"mode must be one of {', '.join(PLIST_MODES)}")
        elif self.family == "android-manifest":
            if self.element not in MANIFEST_ELEMENTS:
                out.append(f"element must be one of {', '.join(MANIFEST_ELEMENTS)}")
            if not self.name:
                out.append("android-manifest patches need a 'name'")
            if self.action not in MANIFEST_ACTIONS:
                out.append(f"action must be one of {', '.join(MANIFEST_ACTIONS)}")
        else:
            out.append(f"unknown patch type '{self.type}'")
        return out

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "capabilityId": self.capability_id,
            "operationId": self.operation_id,
            "file": self.file,
            "type": self.type,
            "mode": self.effective_mode,
        }
        if self.family == "json":
            out["path"] = self.path
            out["value"] = self.value
        elif self.family == "text":
            out["anchor"] = self.anchor
            out["content"] = self.content
            out["ensureUnique"] = self.ensure_unique
        elif self.family == "plist":
            out["key"] = self.key
            out["value"] = self.value
        else:
            del out["mode"]
            out["element"] = self.element
            out["name"] = self.name
            out["attributes"] = dict(self.attributes)
            out["action"] = self.action
        return out


@dataclass
class PatchResult:
    success: bool
    file: str
    capability_id: str
    operation_id: str
    patch_type: str
    action: str
    error: Optional[str] = None
    backup_path: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


__all__ = [
    "JSON_KINDS",
    "TEXT_KINDS",
    "MANIFEST_KINDS",
    "PLIST_KINDS",
    "PatchOperation",
    "PatchResult",
]
