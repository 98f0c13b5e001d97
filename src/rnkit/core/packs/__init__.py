"""Template packs: manifests, discovery and variant resolution."""
from .catalog import PackCatalog
from .locations import destination_rel, expected_dir_name
from .manifest import load_pack_manifest, validate_pack_manifest_data
from .model import BASE_PACK_ID, Delivery, Pack, PackKind, PackManifest, ValidationIssue
from .variants import (
    ResolutionContext,
    get_variant_candidates,
    list_variants,
    normalize_options_key,
    resolve_variant,
)

__all__ = [
    "BASE_PACK_ID",
    "Delivery",
    "Pack",
    "PackCatalog",
    "PackKind",
    "PackManifest",
    "ResolutionContext",
    "ValidationIssue",
    "destination_rel",
    "expected_dir_name",
    "get_variant_candidates",
    "list_variants",
    "load_pack_manifest",
    "normalize_options_key",
    "resolve_variant",
    "validate_pack_manifest_data",
]
