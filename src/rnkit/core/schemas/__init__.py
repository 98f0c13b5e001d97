"""JSON Schema validation for rnkit documents."""
from .validation import load_schema, validate_payload, validate_payload_safe

__all__ = ["load_schema", "validate_payload", "validate_payload_safe"]
