"""Explicitly constructed capability registry.

The registry is owned by whoever runs installs (normally the modulator
context) and passed by reference. ``initialize()`` loads every descriptor
once; any lookup before that raises ``RegistryNotInitializedError``.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rnkit.core.exceptions import (
    PackNotFoundError,
    RegistryNotInitializedError,
    ValidationError,
)
from rnkit.core.packs.catalog import PackCatalog
from rnkit.core.packs.model import PackKind

from .descriptors import DESCRIPTOR_FILENAMES, CapabilityDescriptor, load_descriptor

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    def __init__(self, catalog: PackCatalog) -> None:
        self.catalog = catalog
        self._descriptors: Optional[Dict[str, CapabilityDescriptor]] = None

    @property
    def initialized(self) -> bool:
        return self._descriptors is not None

    def initialize(self) -> "CapabilityRegistry":
        """Load every plugin and module descriptor. A second call is a no-op.

        Raises:
            ValidationError: Listing every invalid descriptor, and any id
                used by both a plugin and a module.
        """
        if self._descriptors is not None:
            return self
        descriptors: Dict[str, CapabilityDescriptor] = {}
        issues: List[str] = []
        for kind in DESCRIPTOR_FILENAMES:
            for pack in self.catalog.discover(kind):
                try:
                    descriptor = load_descriptor(pack)
                except ValidationError as exc:
                    issues.extend(exc.issues or [str(exc)])
                    continue
                if descriptor.id in descriptors:
                    other = descriptors[descriptor.id]
                    issues.append(
                        f"Capability id '{descriptor.id}' is used by both {other.pack.root} and {pack.root}"
                    )
                    continue
                descriptors[descriptor.id] = descriptor
        if issues:
            raise ValidationError("Invalid capability descriptors", issues=issues)
        self._descriptors = descriptors
        logger.debug("Capability registry initialized with %d capabilities", len(descriptors))
        return self

    def _require(self) -> Dict[str, CapabilityDescriptor]:
        if self._descriptors is None:
            raise RegistryNotInitializedError("Capability registry used before initialize()")
        return self._descriptors

    def has(self, capability_id: str) -> bool:
        return capability_id in self._require()

    def find(self, capability_id: str) -> Optional[CapabilityDescriptor]:
        return self._require().get(capability_id)

    def get(self, capability_id: str) -> CapabilityDescriptor:
        descriptor = self.find(capability_id)
        if descriptor is None:
            raise PackNotFoundError(
                f"Capability '{capability_id}' not found in the registry",
                context={"capability": capability_id},
            )
        return descriptor

    def list(self, kind: Optional[PackKind] = None) -> List[CapabilityDescriptor]:
        items = self._require().values()
        if kind is not None:
            items = [d for d in items if d.kind is PackKind(kind)]
        return sorted(items, key=lambda d: d.id)


__all__ = ["CapabilityRegistry"]
