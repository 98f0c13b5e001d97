"""Anchor-relative text insertion for Gradle files, Podfiles and the like."""
from __future__ import annotations

from rnkit.core.exceptions import PatchError
from rnkit.core.idempotency import operation_comment


def _newline_of(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def apply_text_patch(
    text: str,
    *,
    file: str,
    operation_id: str,
    anchor: str,
    content: str,
    mode: str = "after",
    ensure_unique: bool = False,
) -> str:
    """Insert ``content`` on its own lines before or after the anchor line.

    The inserted block is preceded by an operation token comment suited to
    ``file``. Lines of ``content`` are inserted verbatim.

    Raises:
        PatchError: When the anchor is missing, or occurs more than once and
            ``ensure_unique`` is set.
    """
    count = text.count(anchor)
    if count == 0:
        raise PatchError(f"Anchor not found in {file}: {anchor!r}", context={"file": file, "anchor": anchor})
    if ensure_unique and count > 1:
        raise PatchError(
            f"Anchor {anchor!r} occurs {count} times in {file}; it must be unique",
            context={"file": file, "anchor": anchor},
        )

    nl = _newline_of(text)
    block_lines = content.rstrip("\r\n").replace("\r\n", "\n").split("\n")
    indent = block_lines[0][: len(block_lines[0]) - len(block_lines[0].lstrip())]
    block = nl.join([indent + operation_comment(operation_id, file), *block_lines]) + nl

    index = text.index(anchor)
    if mode == "before":
        pos = text.rfind("\n", 0, index) + 1
        return text[:pos] + block + text[pos:]
    if mode == "after":
        end = text.find("\n", index + len(anchor))
        if end == -1:
            return text + nl + block
        return text[: end + 1] + block + text[end + 1:]
    raise PatchError(f"Unknown text patch mode: {mode}", context={"file": file})


__all__ = ["apply_text_patch"]
