"""Shared schema validation utilities.

rnkit validates pack manifests, capability descriptors and the project
manifest using JSON Schema. Schemas are stored as YAML files under
``rnkit/data/schemas`` and loaded in a single, consistent way.
"""
from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from rnkit.core.exceptions import ValidationError
from rnkit.data import read_yaml


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema by name.

    Automatically appends ``.schema.yaml`` if no extension is present.

    Raises:
        FileNotFoundError: If the schema doesn't exist.
        ValueError: If the schema is not a YAML mapping.
    """
    filename = schema_name
    if not (filename.endswith(".yaml") or filename.endswith(".yml")):
        filename = f"{filename}.schema.yaml"
    schema = read_yaml("schemas", filename)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


def _format_error(error: Any) -> str:
    if error.absolute_path:
        path_str = ".".join(str(p) for p in error.absolute_path)
        return f"{path_str}: {error.message}"
    return error.message


def validate_payload_safe(payload: Any, schema_name: str) -> List[str]:
    """Validate a payload and return every error message (empty if valid).

    Errors are sorted by document path so output is stable between runs.
    """
    schema = load_schema(schema_name)
    validator = Draft202012Validator(schema)
    errors = sorted(
        validator.iter_errors(payload),
        key=lambda e: (".".join(str(p) for p in e.absolute_path), e.message),
    )
    return [_format_error(e) for e in errors]


def validate_payload(payload: Any, schema_name: str, *, label: str | None = None) -> None:
    """Validate a payload against a bundled schema.

    Raises:
        ValidationError: Listing every schema violation found.
    """
    issues = validate_payload_safe(payload, schema_name)
    if issues:
        what = label or schema_name
        raise ValidationError(
            f"{what} failed validation ({len(issues)} issue(s))",
            issues=issues,
            context={"schema": schema_name},
        )


__all__ = ["load_schema", "validate_payload", "validate_payload_safe"]
