"""Variant resolution: pick the pack subtree for a target/language/options context."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional

from rnkit.core.exceptions import VariantResolutionError

from .model import Pack

logger = logging.getLogger(__name__)

VARIANTS_DIR = "variants"
DEFAULT_VARIANT = "default"


def _normalize_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"))
    # bool before int: JSON spelling keeps True -> "true"
    return json.dumps(value)


def normalize_options_key(options: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the canonical, order-independent key for an options map.

    >>> normalize_options_key({"b": 2, "a": True})
    'a:true|b:2'
    >>> normalize_options_key({}) is None
    True
    """
    if not options:
        return None
    return "|".join(f"{key}:{_normalize_value(options[key])}" for key in sorted(options))


@dataclass(frozen=True)
class ResolutionContext:
    target: str
    language: str
    options_key: Optional[str] = None

    @classmethod
    def build(cls, target: str, language: str, options: Optional[Mapping[str, Any]] = None) -> "ResolutionContext":
        return cls(target=target, language=language, options_key=normalize_options_key(options))

    def describe(self) -> str:
        parts = [f"target: {self.target}", f"language: {self.language}"]
        if self.options_key:
            parts.append(f"options: {self.options_key}")
        return "\n".join(f"  {p}" for p in parts)


def get_variant_candidates(pack_root: Path, ctx: ResolutionContext, *, preferred: Optional[str] = None) -> List[Path]:
    """Return candidate variant directories, most specific first.

    1. variants/<target>/<language>/<options-key>
    2. variants/<target>-<language>-<options-key>
    3. variants/<target>/<language>
    4. variants/<target>-<language>
    5. variants/<target>
    6. variants/<language>
    7. variants/default
    8. the pack root

    Candidates 1-2 exist only when an options key is present. A
    ``preferredVariant`` hint, when given, is tried before all of them.
    """
    root = Path(pack_root)
    vdir = root / VARIANTS_DIR
    out: List[Path] = []
    if preferred:
        out.append(vdir / preferred)
    if ctx.options_key:
        out.append(vdir / ctx.target / ctx.language / ctx.options_key)
        out.append(vdir / f"{ctx.target}-{ctx.language}-{ctx.options_key}")
    out.extend(
        [
            vdir / ctx.target / ctx.language,
            vdir / f"{ctx.target}-{ctx.language}",
            vdir / ctx.target,
            vdir / ctx.language,
            vdir / DEFAULT_VARIANT,
            root,
        ]
    )
    return out


def resolve_variant(pack: Pack, ctx: ResolutionContext) -> Path:
    """Return the first existing candidate directory for ``ctx``.

    Raises:
        VariantResolutionError: When the pack does not support the requested
            target or language, or when no candidate exists.
    """
    manifest = pack.manifest
    base_ctx = {"pack": pack.id, "kind": pack.kind.value, "target": ctx.target, "language": ctx.language}
    if ctx.target not in manifest.supported_targets:
        raise VariantResolutionError(
            f"Pack '{pack.id}' does not support target '{ctx.target}'. "
            f"Supported targets: {', '.join(manifest.supported_targets)}",
            context=base_ctx,
        )
    if ctx.language not in manifest.supported_languages:
        raise VariantResolutionError(
            f"Pack '{pack.id}' does not support language '{ctx.language}'. "
            f"Supported languages: {', '.join(manifest.supported_languages)}",
            context=base_ctx,
        )

    preferred = manifest.variant_resolution_hints.get("preferredVariant")
    candidates = get_variant_candidates(pack.root, ctx, preferred=preferred)
    for candidate in candidates:
        if candidate.is_dir():
            logger.debug("Resolved variant for %s: %s", pack.id, candidate)
            return candidate

    listing = "\n".join(f"  - {c}" for c in candidates)
    raise VariantResolutionError(
        f"No variant found for pack '{pack.id}' with:\n{ctx.describe()}\n"
        f"Expected variant paths:\n{listing}\nPack path: {pack.root}",
        candidates=[str(c) for c in candidates],
        context={**base_ctx, "options": ctx.options_key},
    )


def list_variants(pack: Pack) -> List[str]:
    """Return every variant directory of ``pack`` relative to ``variants/``."""
    vdir = pack.root / VARIANTS_DIR
    if not vdir.is_dir():
        return []
    return sorted(p.relative_to(vdir).as_posix() for p in vdir.rglob("*") if p.is_dir())


__all__ = [
    "VARIANTS_DIR",
    "ResolutionContext",
    "normalize_options_key",
    "get_variant_candidates",
    "resolve_variant",
    "list_variants",
]
