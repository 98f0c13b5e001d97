"""Structural edits at named marker regions of generated runtime files."""
from .contributions import MARKER_FOR_CONTRIBUTION, Contribution, SymbolRef, WiringOperation
from .engine import WiringResult, duplicate_injections, sort_operations, wire
from .markers import MarkerIssue, MarkerRegion, find_region, validate_markers

__all__ = [
    "MARKER_FOR_CONTRIBUTION",
    "Contribution",
    "MarkerIssue",
    "MarkerRegion",
    "SymbolRef",
    "WiringOperation",
    "WiringResult",
    "duplicate_injections",
    "find_region",
    "sort_operations",
    "validate_markers",
    "wire",
]
