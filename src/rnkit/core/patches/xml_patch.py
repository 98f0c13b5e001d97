"""Edits of iOS property lists, entitlements and AndroidManifest.xml.

These files are edited as text: entries are inserted before the closing tag
of the top-level ``<dict>`` or ``<manifest>``/``<application>`` element so
the rest of the file keeps its formatting. Every inserted entry is preceded
by an ``<!-- @rns-operation:<id> -->`` comment.
"""
from __future__ import annotations

import re
from typing import Any, Mapping, Optional
from xml.sax.saxutils import escape, quoteattr

from rnkit.core.exceptions import PatchError
from rnkit.core.idempotency import OPERATION_PREFIX, operation_comment

PLIST_MODES = ("set", "append")
MANIFEST_ELEMENTS = ("permission", "feature", "meta-data", "activity", "service", "receiver")
MANIFEST_ACTIONS = ("add", "remove")

# Elements that live inside <application> rather than directly under <manifest>.
_APPLICATION_ELEMENTS = {"meta-data", "activity", "service", "receiver"}
_TAG_FOR = {"permission": "uses-permission", "feature": "uses-feature"}

_SCALAR_VALUE = (
    r"<true\s*/>|<false\s*/>|<array\s*/>"
    r"|<(?P<tag>string|integer|real|date|data)>.*?</(?P=tag)>|<array>.*?</array>"
)


def _newline_of(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _closing_tag_line(text: str, tag: str, file: str) -> int:
    """Return the offset of the start of the line holding ``</tag>``."""
    closing = f"</{tag}>"
    index = text.rfind(closing)
    if index == -1:
        raise PatchError(f"No closing {closing} found in {file}", context={"file": file, "tag": tag})
    return text.rfind("\n", 0, index) + 1


def _indent_at(text: str, line_start: int) -> str:
    line = text[line_start:].split("\n", 1)[0]
    return line[: len(line) - len(line.lstrip())]


def plist_value(value: Any, indent: str = "\t", nl: str = "\n") -> str:
    """Render a value as a plist element; lists become ``<array>`` of strings."""
    if isinstance(value, bool):
        return "<true/>" if value else "<false/>"
    if isinstance(value, int):
        return f"<integer>{value}</integer>"
    if isinstance(value, float):
        return f"<real>{value}</real>"
    if isinstance(value, (list, tuple)):
        if not value:
            return "<array/>"
        items = "".join(f"{nl}{indent}\t<string>{escape(str(v))}</string>" for v in value)
        return f"<array>{items}{nl}{indent}</array>"
    if isinstance(value, str):
        return f"<string>{escape(value)}</string>"
    raise PatchError(f"Unsupported plist value type: {type(value).__name__}")


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(
        r"(?P<lead>[ \t]*)<key>" + re.escape(escape(key)) + r"</key>\s*(?P<value>" + _SCALAR_VALUE + ")",
        re.DOTALL,
    )


def apply_plist_patch(
    text: str,
    *,
    file: str,
    operation_id: str,
    key: str,
    value: Any,
    mode: str = "set",
) -> Optional[str]:
    """Set or extend one key of the top-level dictionary.

    ``set`` adds the key, or replaces its scalar or array value. ``append``
    adds the missing strings of ``value`` to the key's array, creating it
    when absent. Returns None when the file already holds the result.

    Raises:
        PatchError: When the document has no ``</dict>``, or ``append``
            targets a key whose value is not an array.
    """
    if mode not in PLIST_MODES:
        raise PatchError(f"Unknown plist patch mode: {mode}", context={"file": file})
    nl = _newline_of(text)
    match = _key_pattern(key).search(text)
    if match is None and f"<key>{escape(key)}</key>" in text:
        raise PatchError(
            f"Cannot patch '{key}' in {file}: its current value is not a scalar or array",
            context={"file": file, "key": key},
        )

    if match is None:
        line_start = _closing_tag_line(text, "dict", file)
        indent = _indent_at(text, line_start) + "\t"
        if mode == "append" and not isinstance(value, (list, tuple)):
            value = [value]
        rendered = plist_value(value, indent, nl)
        block = nl.join([
            indent + operation_comment(operation_id, file),
            f"{indent}<key>{escape(key)}</key>",
            indent + rendered,
        ]) + nl
        return text[:line_start] + block + text[line_start:]

    indent = match.group("lead")
    current = match.group("value")
    if mode == "append":
        items = value if isinstance(value, (list, tuple)) else [value]
        if not current.startswith("<array"):
            raise PatchError(
                f"Cannot append to '{key}' in {file}: existing value is not an array",
                context={"file": file, "key": key},
            )
        missing = [v for v in items if f"<string>{escape(str(v))}</string>" not in current]
        if not missing:
            return None
        existing = re.findall(r"<string>(.*?)</string>", current, re.DOTALL)
        merged = [*existing, *(escape(str(v)) for v in missing)]
        body = "".join(f"{nl}{indent}\t<string>{item}</string>" for item in merged)
        replacement = f"<array>{body}{nl}{indent}</array>"
    else:
        replacement = plist_value(value, indent, nl)
        if replacement == current:
            return None
    start, end = match.span("value")
    return text[:start] + replacement + text[end:]


def manifest_element(kind: str, name: str, attributes: Optional[Mapping[str, str]] = None) -> str:
    """Render one AndroidManifest element as a self-closing tag."""
    if kind not in MANIFEST_ELEMENTS:
        raise PatchError(f"Unknown android-manifest element: {kind}")
    attrs = {"name": name, **dict(attributes or {})}
    if kind == "feature":
        attrs.setdefault("required", "false")
    rendered = " ".join(f"android:{k}={quoteattr(str(v))}" for k, v in attrs.items())
    return f"<{_TAG_FOR.get(kind, kind)} {rendered} />"


def _element_pattern(kind: str, name: str) -> re.Pattern[str]:
    tag = re.escape(_TAG_FOR.get(kind, kind))
    return re.compile(r"<" + tag + r"\b[^>]*android:name=[\"']" + re.escape(name) + r"[\"'][^>]*/?>")


def apply_android_manifest_patch(
    text: str,
    *,
    file: str,
    operation_id: str,
    element: str,
    name: str,
    attributes: Optional[Mapping[str, str]] = None,
    action: str = "add",
) -> Optional[str]:
    """Add or remove a ``uses-permission``, ``uses-feature`` or component element.

    Permissions and features go before ``</manifest>``; ``meta-data`` and
    components go before ``</application>``. An element with the same tag
    and ``android:name`` counts as present. ``remove`` deletes that element
    together with the operation comment above it. Returns None when nothing
    changes.

    Raises:
        PatchError: When the closing tag the element belongs under is missing.
    """
    if action not in MANIFEST_ACTIONS:
        raise PatchError(f"Unknown android-manifest action: {action}", context={"file": file})
    nl = _newline_of(text)
    token = operation_comment(operation_id, file)

    if action == "remove":
        pattern = re.compile(
            r"(?:[ \t]*<!-- " + re.escape(OPERATION_PREFIX) + r"[A-Za-z0-9._-]+ -->[ \t]*\r?\n)?"
            + r"[ \t]*" + _element_pattern(element, name).pattern + r"[ \t]*(?:\r?\n)?"
        )
        updated, count = pattern.subn("", text)
        return updated if count else None

    if _element_pattern(element, name).search(text):
        return None
    parent = "application" if element in _APPLICATION_ELEMENTS else "manifest"
    line_start = _closing_tag_line(text, parent, file)
    indent = _indent_at(text, line_start) + "    "
    block = nl.join([indent + token, indent + manifest_element(element, name, attributes)]) + nl
    return text[:line_start] + block + text[line_start:]


__all__ = [
    "MANIFEST_ACTIONS",
    "MANIFEST_ELEMENTS",
    "PLIST_MODES",
    "apply_android_manifest_patch",
    "apply_plist_patch",
    "manifest_element",
    "plist_value",
]
