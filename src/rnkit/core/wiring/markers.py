"""Named marker regions inside generated runtime files.

A region is delimited by two lines carrying ``@rns-marker:<type>:start`` and
``@rns-marker:<type>:end``; either as a line comment (``// ...``) or, inside
JSX, as ``{/* ... */}``. Contributions are only ever inserted between them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from rnkit.core.config.domains.wiring import MarkerDefinition
from rnkit.core.exceptions import MarkerError

_MARKER_RE = re.compile(r"@rns-marker:([A-Za-z0-9_-]+):(start|end)\b")


@dataclass(frozen=True)
class MarkerRegion:
    """Line span of one region. ``start``/``end`` index the marker lines."""

    marker_type: str
    start: int
    end: int
    jsx: bool = False

    @property
    def body(self) -> range:
        return range(self.start + 1, self.end)


@dataclass(frozen=True)
class MarkerIssue:
    marker_type: str
    file: str
    message: str
    severity: str = "error"

    def __str__(self) -> str:
        return f"{self.file}: {self.message}"


def remediation(definition: MarkerDefinition) -> str:
    return (
        f"Restore the region in {definition.file}:\n"
        f"  // {definition.start}\n"
        f"  // {definition.end}"
    )


def scan_markers(lines: Sequence[str]) -> Dict[str, List[Tuple[str, int]]]:
    """Return ``{type: [(kind, line_index), ...]}`` for every marker line."""
    found: Dict[str, List[Tuple[str, int]]] = {}
    for idx, line in enumerate(lines):
        m = _MARKER_RE.search(line)
        if m:
            found.setdefault(m.group(1), []).append((m.group(2), idx))
    return found


def find_region(lines: Sequence[str], marker_type: str) -> Optional[MarkerRegion]:
    """Locate a well-formed region, or raise ``MarkerError`` when it is corrupt.

    Returns None when the file has no marker lines of that type at all.
    """
    entries = scan_markers(lines).get(marker_type)
    if not entries:
        return None
    starts = [i for kind, i in entries if kind == "start"]
    ends = [i for kind, i in entries if kind == "end"]
    if len(starts) != 1 or len(ends) != 1:
        raise MarkerError(
            f"Marker '@rns-marker:{marker_type}' must appear exactly once as start and end "
            f"(found {len(starts)} start, {len(ends)} end)",
            context={"marker": marker_type},
        )
    start, end = starts[0], ends[0]
    if end <= start:
        raise MarkerError(
            f"Marker '@rns-marker:{marker_type}' is malformed: end (line {end + 1}) "
            f"precedes start (line {start + 1})",
            context={"marker": marker_type},
        )
    jsx = lines[start].lstrip().startswith("{/*")
    return MarkerRegion(marker_type=marker_type, start=start, end=end, jsx=jsx)


def validate_markers(project_root: Path, definitions: Dict[str, MarkerDefinition]) -> List[MarkerIssue]:
    """Check every configured region; returns one issue per problem found."""
    issues: List[MarkerIssue] = []
    cache: Dict[str, Optional[List[str]]] = {}
    for marker_type, definition in definitions.items():
        if definition.file not in cache:
            path = Path(project_root) / definition.file
            cache[definition.file] = path.read_text(encoding="utf-8").splitlines() if path.is_file() else None
        lines = cache[definition.file]
        if lines is None:
            if definition.required:
                issues.append(MarkerIssue(marker_type, definition.file, f"Marker file not found. {remediation(definition)}"))
            continue
        try:
            region = find_region(lines, marker_type)
        except MarkerError as exc:
            issues.append(MarkerIssue(marker_type, definition.file, f"{exc} {remediation(definition)}"))
            continue
        if region is None and definition.required:
            issues.append(
                MarkerIssue(
                    marker_type,
                    definition.file,
                    f"Required marker '@rns-marker:{marker_type}' not found. {remediation(definition)}",
                )
            )
    return issues


__all__ = [
    "MarkerIssue",
    "MarkerRegion",
    "find_region",
    "remediation",
    "scan_markers",
    "validate_markers",
]
