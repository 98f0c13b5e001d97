"""Idempotency token grammar.

Every edit rnkit makes to a generated or native file leaves a token that a
later run can detect byte-for-byte. The grammar is::

    inject-token    = "@rns-inject:" operation-id ":" timestamp
    operation-token = "@rns-operation:" operation-id
    operation-id    = 1*( ALPHA / DIGIT / "." / "_" / "-" )
    timestamp       = ISO 8601 UTC, e.g. 2024-01-05T09:30:12.123Z

Tokens are written inside a line comment of the host file (``// `` for
JS/TS/Gradle, ``# `` for Ruby/YAML/properties, ``{/* */}`` inside JSX).

Detection:
- an inject token for ``op`` is present when the text contains
  ``@rns-inject:<op>:`` (the trailing colon stops ``op`` from matching a
  longer id such as ``op-2``);
- an operation token for ``op`` is present when ``@rns-operation:<op>`` is
  followed by optional spaces, an optional ``*/`` or ``-->`` and end of line.

JSON documents cannot carry comments, so applied operation ids are stored
in a top-level ``_rns_patches`` array instead.
"""
from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Dict, List

from rnkit.core.utils.time import utc_timestamp

INJECT_PREFIX = "@rns-inject:"
OPERATION_PREFIX = "@rns-operation:"
JSON_PATCHES_KEY = "_rns_patches"

OPERATION_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")

_HASH_COMMENT_SUFFIXES = {".rb", ".properties", ".yaml", ".yml", ".sh", ".env", ".toml", ".cfg"}
_HASH_COMMENT_NAMES = {"Podfile", "Gemfile", "Fastfile", ".env", "Brewfile"}
_XML_COMMENT_SUFFIXES = {".xml", ".plist", ".entitlements"}


def validate_operation_id(operation_id: str) -> str:
    """Return ``operation_id`` or raise ``ValueError`` if it breaks the grammar."""
    if not isinstance(operation_id, str) or not OPERATION_ID_RE.match(operation_id):
        raise ValueError(
            f"Invalid operation id {operation_id!r}: use letters, digits, '.', '_' or '-'"
        )
    return operation_id


def inject_token(operation_id: str, timestamp: str | None = None) -> str:
    """Return the bare inject token for ``operation_id``."""
    validate_operation_id(operation_id)
    return f"{INJECT_PREFIX}{operation_id}:{timestamp or utc_timestamp()}"


def inject_comment(operation_id: str, timestamp: str | None = None, *, jsx: bool = False) -> str:
    """Return the inject token wrapped as a line comment.

    Example: ``// @rns-inject:auth-providers-provider:2024-01-05T09:30:12.123Z``
    """
    token = inject_token(operation_id, timestamp)
    if jsx:
        return "{/* " + token + " */}"
    return f"// {token}"


def has_inject_token(text: str, operation_id: str) -> bool:
    return f"{INJECT_PREFIX}{validate_operation_id(operation_id)}:" in text


def comment_prefix_for(path: str) -> str:
    """Return the line-comment opener for a file, by name or extension."""
    p = PurePosixPath(path.replace("\\", "/"))
    if p.name in _HASH_COMMENT_NAMES or p.suffix in _HASH_COMMENT_SUFFIXES:
        return "#"
    if p.suffix in _XML_COMMENT_SUFFIXES:
        return "<!--"
    return "//"


def operation_comment(operation_id: str, path: str) -> str:
    """Return the operation token as a comment line suited to ``path``."""
    validate_operation_id(operation_id)
    prefix = comment_prefix_for(path)
    token = f"{OPERATION_PREFIX}{operation_id}"
    if prefix == "<!--":
        return f"<!-- {token} -->"
    return f"{prefix} {token}"


def has_operation_token(text: str, operation_id: str) -> bool:
    pattern = re.compile(
        re.escape(OPERATION_PREFIX + validate_operation_id(operation_id)) + r"[ \t]*(?:\*/|-->)?[ \t]*$",
        re.MULTILINE,
    )
    return bool(pattern.search(text))


def json_applied_operations(data: Any) -> List[str]:
    if not isinstance(data, dict):
        return []
    applied = data.get(JSON_PATCHES_KEY)
    return [str(x) for x in applied] if isinstance(applied, list) else []


def json_has_operation(data: Any, operation_id: str) -> bool:
    return validate_operation_id(operation_id) in json_applied_operations(data)


def json_record_operation(data: Dict[str, Any], operation_id: str) -> Dict[str, Any]:
    """Record ``operation_id`` in ``data`` (mutates and returns ``data``)."""
    applied = json_applied_operations(data)
    if operation_id not in applied:
        applied.append(validate_operation_id(operation_id))
    data[JSON_PATCHES_KEY] = applied
    return data


__all__ = [
    "INJECT_PREFIX",
    "OPERATION_PREFIX",
    "JSON_PATCHES_KEY",
    "validate_operation_id",
    "inject_token",
    "inject_comment",
    "has_inject_token",
    "comment_prefix_for",
    "operation_comment",
    "has_operation_token",
    "json_applied_operations",
    "json_has_operation",
    "json_record_operation",
]
