"""Anchored, idempotent edits of configuration and native files."""
from .engine import apply_patches
from .json_patch import apply_json_patch, get_path, merge_objects
from .model import JSON_KINDS, MANIFEST_KINDS, PLIST_KINDS, TEXT_KINDS, PatchOperation, PatchResult
from .text_patch import apply_text_patch
from .xml_patch import apply_android_manifest_patch, apply_plist_patch

__all__ = [
    "JSON_KINDS",
    "MANIFEST_KINDS",
    "PLIST_KINDS",
    "TEXT_KINDS",
    "PatchOperation",
    "PatchResult",
    "apply_android_manifest_patch",
    "apply_json_patch",
    "apply_patches",
    "apply_plist_patch",
    "apply_text_patch",
    "get_path",
    "merge_objects",
]
