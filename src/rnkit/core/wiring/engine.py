"""Marker-based code wiring.

Edits are made line-wise inside marker regions of system-owned runtime
files. Each applied contribution leaves an inject token next to what it
inserted; a later run that finds the token inside the region skips the
operation. Text outside the edited region is preserved byte-for-byte,
except for named imports, which are merged into an existing
``import { ... } from '<source>'`` line when one is present.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rnkit.core.attach.backup import DEFAULT_BACKUPS_DIR, backup_file, create_backup_directory
from rnkit.core.config.domains.wiring import WiringConfig
from rnkit.core.exceptions import MarkerError, ZoneViolationError
from rnkit.core.file_io.utils import read_text, write_text_atomic
from rnkit.core.idempotency import INJECT_PREFIX, has_inject_token, inject_comment
from rnkit.core.utils.paths import in_zones, safe_join
from rnkit.core.utils.time import utc_timestamp

from .contributions import WiringOperation, render_call, render_props
from .markers import MarkerRegion, find_region

logger = logging.getLogger(__name__)

_NAMED_IMPORT_RE = re.compile(
    r"^(?P<indent>\s*)import\s*\{(?P<names>[^}]*)\}\s*from\s*(?P<q>['\"])(?P<source>[^'\"]+)(?P=q)\s*;?\s*$"
)
_INJECT_ID_RE = re.compile(re.escape(INJECT_PREFIX) + r"([A-Za-z0-9._-]+):")
_OPEN_TAG_RE = re.compile(r"^\s*<(?P<symbol>[A-Za-z_$][\w.$]*)[\s>]")


@dataclass
class WiringResult:
    success: bool
    file: str
    marker_type: str
    capability_id: str
    contribution_type: str
    operation_id: str
    action: str
    error: Optional[str] = None
    backup_path: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class _Document:
    """In-memory view of a file, split on its own newline convention."""

    def __init__(self, text: str) -> None:
        self.newline = "\r\n" if "\r\n" in text else "\n"
        self.lines: List[str] = text.split(self.newline)

    def text(self) -> str:
        return self.newline.join(self.lines)


def sort_operations(operations: Iterable[WiringOperation]) -> List[WiringOperation]:
    """Order by (order hint, capability id); stable for equal keys."""
    return sorted(operations, key=lambda op: op.sort_key)


def _indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _split_names(raw: str) -> List[str]:
    return [n.strip() for n in raw.split(",") if n.strip()]


def _imported_name(entry: str) -> str:
    return entry.split(" as ")[0].strip()


def named_imports(lines: Sequence[str]) -> Dict[str, Tuple[int, List[str]]]:
    """Map import source -> (line index, entries) for single-line named imports.

    The first declaration of a source wins.
    """
    found: Dict[str, Tuple[int, List[str]]] = {}
    for idx, line in enumerate(lines):
        m = _NAMED_IMPORT_RE.match(line)
        if m and m.group("source") not in found:
            found[m.group("source")] = (idx, _split_names(m.group("names")))
    return found


def _render_import(names: Sequence[str], source: str, quote: str = "'") -> str:
    return f"import {{ {', '.join(names)} }} from {quote}{source}{quote};"


def _grouped_imports(op: WiringOperation) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for ref in op.contribution.imports:
        symbols = grouped.setdefault(ref.source, [])
        if ref.symbol not in symbols:
            symbols.append(ref.symbol)
    return grouped


def imports_satisfied(lines: Sequence[str], op: WiringOperation) -> bool:
    """True when every requested symbol is already imported from its source."""
    existing = named_imports(lines)
    for source, symbols in _grouped_imports(op).items():
        if source not in existing:
            return False
        have = {_imported_name(n) for n in existing[source][1]}
        if any(s not in have for s in symbols):
            return False
    return True


def _insertion_index(
    lines: Sequence[str],
    region: MarkerRegion,
    op: WiringOperation,
    ranks: Mapping[str, tuple],
) -> int:
    """Line before the first known contribution that sorts after ``op``, else the end marker."""
    for idx in region.body:
        found = _INJECT_ID_RE.search(lines[idx])
        if found is None:
            continue
        rank = ranks.get(found.group(1))
        if rank is not None and rank > op.sort_key:
            return idx
    return region.end


def _inject_import(lines: List[str], region: MarkerRegion, op: WiringOperation, token: str, at: int) -> None:
    existing = named_imports(lines)
    new_decls: List[str] = []
    for source, symbols in _grouped_imports(op).items():
        if source in existing:
            idx, entries = existing[source]
            have = {_imported_name(n) for n in entries}
            missing = [s for s in symbols if s not in have]
            if missing:
                m = _NAMED_IMPORT_RE.match(lines[idx])
                if m is None:
                    raise MarkerError(f"Import declaration for '{source}' changed while wiring {op.operation_id}")
                lines[idx] = m.group("indent") + _render_import(entries + missing, source, m.group("q"))
        else:
            new_decls.append(_render_import(symbols, source))
    indent = _indent(lines[region.end])
    lines[at:at] = [indent + token] + [indent + d for d in new_decls]


def provider_blocks(lines: Sequence[str], region: MarkerRegion) -> List[Tuple[str, int, int]]:
    """Return ``(operation id, token line, closing line)`` for each injected
    provider wrapper in ``region``, outermost first."""
    blocks: List[Tuple[str, int, int]] = []
    for idx in region.body:
        found = _INJECT_ID_RE.search(lines[idx])
        if found is None or idx + 1 >= region.end:
            continue
        tag = _OPEN_TAG_RE.match(lines[idx + 1])
        if tag is None:
            continue
        close = f"</{tag.group('symbol')}>"
        if close in lines[idx + 1]:
            blocks.append((found.group(1), idx, idx + 1))
            continue
        indent = _indent(lines[idx + 1])
        end = next((j for j in range(idx + 2, region.end) if lines[j] == indent + close), None)
        if end is not None:
            blocks.append((found.group(1), idx, end))
    return blocks


def _inject_provider(
    lines: List[str],
    region: MarkerRegion,
    op: WiringOperation,
    token: str,
    ranks: Mapping[str, tuple],
) -> None:
    provider = op.contribution.provider
    if provider is None:
        raise MarkerError("Provider contribution has no provider symbol")
    open_tag = f"<{provider.symbol}{render_props(op.contribution.props)}>"
    close_tag = f"</{provider.symbol}>"
    # Wrap the outermost known provider that sorts after this one; otherwise wrap {children}.
    for op_id, first, last in provider_blocks(lines, region):
        rank = ranks.get(op_id)
        if rank is None or rank <= op.sort_key or first == last:
            continue
        indent = _indent(lines[first])
        lines[first:last + 1] = [
            indent + token,
            indent + open_tag,
            *("  " + line for line in lines[first:last + 1]),
            indent + close_tag,
        ]
        return
    children = next((i for i in region.body if lines[i].strip() == "{children}"), None)
    if children is not None:
        indent = _indent(lines[children])
        lines[children:children + 1] = [
            indent + token,
            indent + open_tag,
            indent + "  {children}",
            indent + close_tag,
        ]
    else:
        indent = _indent(lines[region.end])
        lines[region.end:region.end] = [indent + token, f"{indent}{open_tag}{{children}}{close_tag}"]


def _inject_statement(lines: List[str], region: MarkerRegion, statement: str, token: str, at: int) -> None:
    indent = _indent(lines[region.end])
    lines[at:at] = [indent + token, indent + statement]


def _inject_root(lines: List[str], region: MarkerRegion, op: WiringOperation, token: str) -> None:
    root = op.contribution.root
    if root is None:
        raise MarkerError("Root contribution has no root symbol")
    indent = _indent(lines[region.end])
    lines[region.start + 1:region.end] = [indent + token, f"{indent}return <{root.symbol} />;"]


def _apply(
    lines: List[str],
    region: MarkerRegion,
    op: WiringOperation,
    timestamp: str,
    ranks: Mapping[str, tuple],
) -> None:
    token = inject_comment(op.operation_id, timestamp, jsx=region.jsx)
    ctype = op.contribution.type
    at = _insertion_index(lines, region, op, ranks)
    if ctype == "import":
        _inject_import(lines, region, op, token, at)
    elif ctype == "provider":
        _inject_provider(lines, region, op, token, ranks)
    elif ctype == "init-step":
        step = op.contribution.step
        if step is None:
            raise MarkerError("Init-step contribution has no step")
        _inject_statement(lines, region, render_call(step, op.contribution.args), token, at)
    elif ctype == "registration":
        registration = op.contribution.registration
        if registration is None:
            raise MarkerError("Registration contribution has no registration")
        _inject_statement(lines, region, render_call(registration), token, at)
    elif ctype == "root":
        _inject_root(lines, region, op, token)
    else:
        raise MarkerError(f"Unknown contribution type: {ctype}")


def duplicate_injections(text: str) -> List[str]:
    """Return operation ids whose inject token occurs more than once."""
    counts: Dict[str, int] = {}
    for op_id in _INJECT_ID_RE.findall(text):
        counts[op_id] = counts.get(op_id, 0) + 1
    return sorted(op_id for op_id, n in counts.items() if n > 1)


def wire(
    project_root: Path,
    operations: Sequence[WiringOperation],
    *,
    dry_run: bool = False,
    backup_dir: Optional[Path] = None,
    system_zones: Optional[Sequence[str]] = None,
    backups_dir: str = DEFAULT_BACKUPS_DIR,
    timestamp: Optional[str] = None,
    placement: Optional[Mapping[str, tuple]] = None,
) -> List[WiringResult]:
    """Apply wiring operations in deterministic order.

    Every operation gets a result; a failing operation never stops the
    remaining ones. Files are written after each injected operation, and
    snapshotted into ``backup_dir`` before their first change (a
    ``wire-<capability>`` directory is created when none is given).

    ``placement`` maps operation ids wired by earlier runs to their sort
    keys, so new contributions land among them (and providers nest) as if
    everything had been wired in one run.
    """
    project_root = Path(project_root)
    if system_zones is None:
        system_zones = WiringConfig(project_root).system_zones
    stamp = timestamp or utc_timestamp()
    ranks: Dict[str, tuple] = dict(placement or {})
    ranks.update((op.operation_id, op.sort_key) for op in operations)
    documents: Dict[str, _Document] = {}
    results: List[WiringResult] = []

    for op in sort_operations(operations):
        result = WiringResult(
            success=False,
            file=op.file,
            marker_type=op.marker_type,
            capability_id=op.capability_id,
            contribution_type=op.contribution.type,
            operation_id=op.operation_id,
            action="error",
        )
        results.append(result)

        try:
            if not in_zones(op.file, system_zones):
                raise ZoneViolationError(
                    f"Runtime wiring is only allowed in system-owned files "
                    f"({', '.join(system_zones)}). File: {op.file} (capability: {op.capability_id})",
                    context={"file": op.file, "capability": op.capability_id},
                )
            try:
                path = safe_join(project_root, op.file)
            except ValueError as exc:
                raise ZoneViolationError(str(exc), context={"file": op.file}) from exc
        except ZoneViolationError as exc:
            logger.warning("Zone violation for %s: %s", op.operation_id, exc)
            result.error = str(exc)
            continue

        doc = documents.get(op.file)
        if doc is None:
            if not path.is_file():
                result.error = f"File not found: {op.file} (capability: {op.capability_id})"
                continue
            doc = _Document(read_text(path))
            documents[op.file] = doc

        try:
            region = find_region(doc.lines, op.marker_type)
        except MarkerError as exc:
            result.error = f"{exc} in {op.file}"
            continue
        if region is None:
            result.error = f"Marker not found: @rns-marker:{op.marker_type} in {op.file}"
            continue

        region_text = "\n".join(doc.lines[region.start:region.end + 1])
        if has_inject_token(region_text, op.operation_id) or (
            op.contribution.type == "import" and imports_satisfied(doc.lines, op)
        ):
            logger.debug("wire skip %s (already present)", op.operation_id)
            result.success = True
            result.action = "skipped"
            continue

        new_lines = list(doc.lines)
        try:
            _apply(new_lines, region, op, stamp, ranks)
        except MarkerError as exc:
            result.error = str(exc)
            continue

        if not dry_run:
            if backup_dir is None:
                backup_dir = create_backup_directory(
                    project_root, f"wire-{op.capability_id}", backups_dir=backups_dir
                )
            snapshot = backup_file(project_root, backup_dir, op.file)
            result.backup_path = str(snapshot) if snapshot else None
            doc.lines = new_lines
            write_text_atomic(path, doc.text())
        else:
            doc.lines = new_lines
        logger.debug("wire inject %s -> %s:%s", op.operation_id, op.file, op.marker_type)
        result.success = True
        result.action = "injected"

    return results


__all__ = [
    "WiringResult",
    "duplicate_injections",
    "imports_satisfied",
    "named_imports",
    "provider_blocks",
    "sort_operations",
    "wire",
]
