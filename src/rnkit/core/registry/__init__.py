"""Capability descriptors and the registry that holds them."""
from .descriptors import DESCRIPTOR_FILENAMES, CapabilityDescriptor, PackageSpec, SlotClaim, load_descriptor
from .registry import CapabilityRegistry

__all__ = [
    "DESCRIPTOR_FILENAMES",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "PackageSpec",
    "SlotClaim",
    "load_descriptor",
]
