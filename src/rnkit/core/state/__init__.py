"""Project state store."""
from .manifest import (
    CURRENT_SCHEMA_VERSION,
    KIND_KEYS,
    add_capability,
    create_manifest,
    get_capability,
    installed_ids,
    is_initialized,
    make_record,
    manifest_path,
    migrate_manifest,
    read_manifest,
    remove_capability,
    write_manifest,
)
from .permissions import (
    MappingPermissionCatalog,
    NullPermissionCatalog,
    PermissionCatalog,
    aggregate_permissions,
    load_bundled_permission_catalog,
    normalize_requirements,
    summarize_permissions,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "KIND_KEYS",
    "MappingPermissionCatalog",
    "NullPermissionCatalog",
    "PermissionCatalog",
    "add_capability",
    "aggregate_permissions",
    "create_manifest",
    "get_capability",
    "installed_ids",
    "is_initialized",
    "load_bundled_permission_catalog",
    "make_record",
    "manifest_path",
    "migrate_manifest",
    "normalize_requirements",
    "read_manifest",
    "remove_capability",
    "summarize_permissions",
    "write_manifest",
]
