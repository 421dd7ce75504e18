"""Persistence protocol — defines the contract all backends implement."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from tokenvault.core.types import CacheBlob, PersistenceIdentity, Timestamp


@runtime_checkable
class IPersistence(Protocol):
    """Protocol for token cache persistence backends (file, keyring)."""

    @property
    def identity(self) -> PersistenceIdentity:
        """Immutable identity fixed at construction."""
        ...

    @property
    def location(self) -> Path:
        """Filesystem path backing this instance (shadow file for keyring)."""
        ...

    @property
    def logger(self) -> logging.Logger:
        """Diagnostic sink given at construction."""
        ...

    async def save(self, contents: CacheBlob) -> None:
        """Persist contents atomically and advance the modification time."""
        ...

    async def load(self) -> Optional[CacheBlob]:
        """Return the last saved contents, or None if nothing was saved."""
        ...

    async def load_or_create(self, contents: CacheBlob) -> Optional[CacheBlob]:
        """Return existing contents, or persist ``contents`` and return None."""
        ...

    async def delete(self) -> bool:
        """Remove persisted state. Returns False if there was nothing to remove."""
        ...

    async def reload_necessary(self, last_sync: Timestamp) -> bool:
        """True iff the resource was modified strictly after ``last_sync``."""
        ...

    async def create_for_persistence_validation(self) -> IPersistence:
        """Build a probe instance at a reserved identity next to this one."""
        ...
