"""Host integration hooks: token cache plugin and logging setup."""

from __future__ import annotations

from tokenvault.hooks.cache_plugin import (
    CacheAccessContext,
    PersistenceCachePlugin,
    SerializableTokenCache,
    TokenCacheContext,
)
from tokenvault.hooks.logging_config import setup_logging

__all__ = [
    "CacheAccessContext",
    "PersistenceCachePlugin",
    "SerializableTokenCache",
    "TokenCacheContext",
    "setup_logging",
]
