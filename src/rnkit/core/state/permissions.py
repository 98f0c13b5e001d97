"""Permission aggregation and catalog lookups."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Set, runtime_checkable

from rnkit.data import read_yaml


def normalize_requirements(raw: Iterable[Any]) -> List[Dict[str, Any]]:
    """Return ``[{permissionId, mandatory}]`` with duplicates collapsed.

    A permission listed twice is mandatory if any listing is.
    """
    merged: Dict[str, bool] = {}
    for item in raw or []:
        if isinstance(item, str):
            pid, mandatory = item, True
        else:
            pid, mandatory = str(item["permissionId"]), bool(item.get("mandatory", True))
        merged[pid] = merged.get(pid, False) or mandatory
    return [{"permissionId": pid, "mandatory": mandatory} for pid, mandatory in merged.items()]


def aggregate_permissions(records: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Build the manifest ``permissions`` block from installed records.

    A permission is ``mandatory`` when any capability requires it and
    ``optional`` only when no capability does. Lists are sorted.
    """
    all_ids: Set[str] = set()
    mandatory: Set[str] = set()
    by_capability: Dict[str, List[str]] = {}
    for record in records:
        reqs = normalize_requirements(record.get("permissions") or [])
        if not reqs:
            continue
        by_capability[str(record["id"])] = sorted(r["permissionId"] for r in reqs)
        for req in reqs:
            all_ids.add(req["permissionId"])
            if req["mandatory"]:
                mandatory.add(req["permissionId"])
    return {
        "permissionIds": sorted(all_ids),
        "mandatory": sorted(mandatory),
        "optional": sorted(all_ids - mandatory),
        "byPlugin": dict(sorted(by_capability.items())),
    }


@runtime_checkable
class PermissionCatalog(Protocol):
    """Read-only permission records keyed by permission id."""

    def get(self, permission_id: str) -> Optional[Mapping[str, Any]]:
        ...


class NullPermissionCatalog:
    def get(self, permission_id: str) -> Optional[Mapping[str, Any]]:
        return None


class MappingPermissionCatalog:
    def __init__(self, entries: Mapping[str, Mapping[str, Any]]) -> None:
        self._entries = {str(k): dict(v or {}) for k, v in entries.items()}

    def get(self, permission_id: str) -> Optional[Mapping[str, Any]]:
        return self._entries.get(permission_id)

    def ids(self) -> List[str]:
        return sorted(self._entries)


def load_bundled_permission_catalog() -> MappingPermissionCatalog:
    return MappingPermissionCatalog(read_yaml("permissions", "catalog.yaml"))


def summarize_permissions(
    requirements_by_capability: Mapping[str, Iterable[Any]],
    catalog: PermissionCatalog,
) -> Dict[str, Any]:
    """Plan-time permission summary with native keys resolved from ``catalog``.

    Ids missing from the catalog are listed under ``unknown``.
    """
    records = [{"id": cid, "permissions": list(reqs)} for cid, reqs in requirements_by_capability.items()]
    summary = aggregate_permissions(records)
    plist_keys: Set[str] = set()
    android_permissions: Set[str] = set()
    unknown: List[str] = []
    for pid in summary["permissionIds"]:
        entry = catalog.get(pid)
        if entry is None:
            unknown.append(pid)
            continue
        plist_keys.update((entry.get("ios") or {}).get("plistKeys") or [])
        android_permissions.update((entry.get("android") or {}).get("permissions") or [])
    summary["iosPlistKeys"] = sorted(plist_keys)
    summary["androidPermissions"] = sorted(android_permissions)
    summary["unknown"] = unknown
    return summary


__all__ = [
    "MappingPermissionCatalog",
    "NullPermissionCatalog",
    "PermissionCatalog",
    "aggregate_permissions",
    "load_bundled_permission_catalog",
    "normalize_requirements",
    "summarize_permissions",
]
