"""Token cache plugin: keeps an auth library's in-memory cache in sync with disk.

The host auth library calls ``before_cache_access`` before it reads or
writes its token cache and ``after_cache_access`` once it is done. The host
never runs the two concurrently for one cache, so the plugin keeps only a
single ``last_sync`` timestamp and needs no in-process locking.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from tokenvault.persistence.protocols import IPersistence

log = logging.getLogger(__name__)


@runtime_checkable
class SerializableTokenCache(Protocol):
    """What the plugin needs from the host's token cache."""

    def serialize(self) -> str: ...

    def deserialize(self, state: str) -> None: ...


@runtime_checkable
class TokenCacheContext(Protocol):
    token_cache: SerializableTokenCache
    cache_has_changed: bool


@dataclass
class CacheAccessContext:
    """Plain context object for hosts that don't bring their own."""

    token_cache: SerializableTokenCache
    cache_has_changed: bool = False


class PersistenceCachePlugin:
    """Before/after cache-access hooks backed by an :class:`IPersistence`.

    On first access, or when another process has written since our last
    sync, the persisted cache is deserialized into the host's cache. If
    nothing is persisted yet the in-memory cache becomes the initial state;
    the check and the initial write happen as one locked step so two
    processes starting together cannot both seed the cache.
    """

    def __init__(self, persistence: IPersistence) -> None:
        self._persistence = persistence
        self._last_sync: Optional[float] = None

    @property
    def persistence(self) -> IPersistence:
        return self._persistence

    @property
    def last_sync(self) -> Optional[float]:
        return self._last_sync

    async def before_cache_access(self, context: TokenCacheContext) -> None:
        if self._last_sync is not None and not await self._persistence.reload_necessary(self._last_sync):
            return

        existing = await self._persistence.load_or_create(context.token_cache.serialize())
        if existing is None:
            self._persistence.logger.debug(
                "Seeded %s with in-memory cache", self._persistence.identity.describe()
            )
        else:
            context.token_cache.deserialize(existing)
            self._persistence.logger.debug(
                "Reloaded cache from %s", self._persistence.identity.describe()
            )
        self._last_sync = time.time()

    async def after_cache_access(self, context: TokenCacheContext) -> None:
        if not context.cache_has_changed:
            return
        await self._persistence.save(context.token_cache.serialize())
        self._last_sync = time.time()
