"""Pack catalog: discovery, validation and lookup of template packs.

Packs are discovered from one or more templates roots (bundled templates
first, then any extra roots from configuration). An id may appear only once
per kind across all roots.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from rnkit.core.exceptions import (
    DuplicatePackError,
    PackNotFoundError,
    ValidationError,
)

from .locations import expected_dir_name, iter_pack_dirs
from .manifest import load_pack_manifest
from .model import MANIFEST_FILENAME, Pack, PackKind, ValidationIssue

logger = logging.getLogger(__name__)


class PackCatalog:
    """Discovers packs under one or more templates roots.

    Discovery is lazy and cached per kind; packs are immutable once loaded.
    """

    def __init__(self, templates_roots: Union[Path, Sequence[Path]]) -> None:
        if isinstance(templates_roots, (str, Path)):
            templates_roots = [Path(templates_roots)]
        self.templates_roots: Tuple[Path, ...] = tuple(Path(p) for p in templates_roots)
        self._cache: Dict[PackKind, List[Pack]] = {}

    def _iter_dirs(self, kind: PackKind) -> Iterable[Path]:
        for root in self.templates_roots:
            yield from iter_pack_dirs(root, kind)

    def _load_kind(self, kind: PackKind) -> Tuple[List[Pack], List[str]]:
        packs: List[Pack] = []
        issues: List[str] = []
        seen: Dict[str, Path] = {}

        for pack_dir in self._iter_dirs(kind):
            if not (pack_dir / MANIFEST_FILENAME).is_file():
                logger.debug("Skipping %s: no %s", pack_dir, MANIFEST_FILENAME)
                continue
            try:
                manifest = load_pack_manifest(pack_dir)
            except ValidationError as exc:
                issues.extend(exc.issues or [str(exc)])
                continue

            source = pack_dir / MANIFEST_FILENAME
            if manifest.type is not kind:
                issues.append(
                    f"{source}: type: expected '{kind.value}' for a pack under "
                    f"{pack_dir.parent.name}/, got '{manifest.type.value}'"
                )
                continue
            if kind is not PackKind.CORE and pack_dir.name != expected_dir_name(manifest.id):
                issues.append(
                    f"{source}: id: pack id '{manifest.id}' requires directory "
                    f"'{expected_dir_name(manifest.id)}', found '{pack_dir.name}'"
                )
                continue
            if manifest.id in seen:
                raise DuplicatePackError(
                    f"Duplicate {kind.value} pack id '{manifest.id}'",
                    issues=[str(seen[manifest.id]), str(pack_dir)],
                    context={"id": manifest.id, "kind": kind.value},
                )
            seen[manifest.id] = pack_dir
            packs.append(Pack(manifest=manifest, root=pack_dir))

        return packs, issues

    def discover(self, kind: PackKind) -> List[Pack]:
        """Return every valid pack of ``kind``.

        Raises:
            ValidationError: Listing every invalid manifest of this kind.
            DuplicatePackError: When two packs share an id (both paths named).
        """
        kind = PackKind(kind)
        if kind not in self._cache:
            packs, issues = self._load_kind(kind)
            if issues:
                raise ValidationError(f"Invalid {kind.value} packs", issues=issues)
            logger.debug("Discovered %d %s pack(s)", len(packs), kind.value)
            self._cache[kind] = packs
        return list(self._cache[kind])

    def list_ids(self, kind: PackKind) -> List[str]:
        return [p.id for p in self.discover(kind)]

    def find(self, kind: PackKind, pack_id: str) -> Optional[Pack]:
        for pack in self.discover(kind):
            if pack.id == pack_id:
                return pack
        return None

    def get(self, kind: PackKind, pack_id: str) -> Pack:
        kind = PackKind(kind)
        pack = self.find(kind, pack_id)
        if pack is None:
            available = ", ".join(self.list_ids(kind)) or "none"
            raise PackNotFoundError(
                f"{kind.value.title()} pack '{pack_id}' not found (available: {available})",
                context={"kind": kind.value, "id": pack_id},
            )
        return pack

    def base_pack(self) -> Pack:
        packs = self.discover(PackKind.CORE)
        if not packs:
            roots = ", ".join(str(r) for r in self.templates_roots)
            raise PackNotFoundError(f"Base pack not found under {roots}")
        return packs[0]

    def validate_all(self) -> List[ValidationIssue]:
        """Validate every kind and return all issues instead of raising."""
        out: List[ValidationIssue] = []
        for kind in PackKind:
            try:
                _, issues = self._load_kind(kind)
            except DuplicatePackError as exc:
                out.append(ValidationIssue(kind.value, "duplicate", str(exc)))
                continue
            out.extend(ValidationIssue(kind.value, "manifest", msg) for msg in issues)
        return out

    def clear_cache(self) -> None:
        self._cache.clear()


__all__ = ["PackCatalog"]
