"""Single-owner holder for swappable implementations.

Collaborators with a no-op default (package installer, permission catalog)
sit behind a holder owned by the modulator context. Replacing the
implementation is one explicit call; nothing is patched globally.
"""
from __future__ import annotations

import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ImplementationHolder(Generic[T]):
    def __init__(self, default: T, *, name: str = "") -> None:
        self._default = default
        self._impl = default
        self.name = name or type(default).__name__

    def get(self) -> T:
        return self._impl

    def set_implementation(self, impl: T) -> None:
        logger.debug("%s implementation set to %s", self.name, type(impl).__name__)
        self._impl = impl

    def reset(self) -> None:
        self._impl = self._default

    @property
    def is_default(self) -> bool:
        return self._impl is self._default


__all__ = ["ImplementationHolder"]
