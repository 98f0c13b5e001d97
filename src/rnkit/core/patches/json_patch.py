"""Dot-path edits of JSON documents (app.json, package.json, ...)."""
from __future__ import annotations

import copy
from typing import Any, Dict, List

from rnkit.core.exceptions import PatchError


def merge_objects(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive object merge: nested objects merge, any other value replaces."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_objects(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _split(path: str) -> List[str]:
    parts = [p for p in path.split(".") if p]
    if not parts:
        raise PatchError(f"Empty JSON path: {path!r}")
    return parts


def get_path(document: Any, path: str, default: Any = None) -> Any:
    current = document
    for part in _split(path):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def apply_json_patch(document: Dict[str, Any], path: str, value: Any, mode: str = "set") -> Dict[str, Any]:
    """Apply one edit and return the updated document (input is not mutated).

    ``set`` replaces the value; ``merge`` deep-merges objects and keeps
    existing sibling keys; ``append`` adds items to an array unless already
    present. Missing intermediate objects are created.

    Raises:
        PatchError: When an intermediate value is not an object, or when
            ``append`` targets an existing non-array value.
    """
    if not isinstance(document, dict):
        raise PatchError("JSON patch target must be an object at the top level")
    result = copy.deepcopy(document)
    parts = _split(path)
    current: Dict[str, Any] = result
    for i, part in enumerate(parts[:-1]):
        nxt = current.get(part)
        if nxt is None:
            nxt = {}
            current[part] = nxt
        elif not isinstance(nxt, dict):
            raise PatchError(f"Cannot descend into '{'.'.join(parts[:i + 1])}': not an object")
        current = nxt

    key = parts[-1]
    if mode == "set":
        current[key] = copy.deepcopy(value)
    elif mode == "merge":
        existing = current.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            current[key] = merge_objects(existing, value)
        else:
            current[key] = copy.deepcopy(value)
    elif mode == "append":
        existing = current.setdefault(key, [])
        if not isinstance(existing, list):
            raise PatchError(f"Cannot append to '{path}': existing value is not an array")
        for item in value if isinstance(value, list) else [value]:
            if item not in existing:
                existing.append(copy.deepcopy(item))
    else:
        raise PatchError(f"Unknown JSON patch mode: {mode}")
    return result


__all__ = ["apply_json_patch", "get_path", "merge_objects"]
