"""tokenvault: durable, optionally keyring-encrypted token cache persistence.

::

    from tokenvault import FilePersistence, KeyringPersistence, PersistenceCachePlugin

    persistence = await KeyringPersistence.create(
        "~/.myapp/token_cache.shadow", "myapp", "user@example.com"
    )
    await verify_persistence(persistence)
    plugin = PersistenceCachePlugin(persistence)
"""

from __future__ import annotations

from tokenvault.core.config import AppSettings, LockConfig, PersistenceConfig
from tokenvault.core.types import PersistenceIdentity
from tokenvault.exceptions import (
    ErrorKind,
    FileAccessError,
    LockTimeout,
    PartialDeleteError,
    PersistenceError,
    SecretStoreError,
    ValidationFailure,
)
from tokenvault.hooks import CacheAccessContext, PersistenceCachePlugin
from tokenvault.persistence import (
    CrossProcessLock,
    FilePersistence,
    IPersistence,
    KeyringPersistence,
    classify_error,
    create_persistence,
    verify_persistence,
)

__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "PersistenceConfig",
    "LockConfig",
    "PersistenceIdentity",
    "ErrorKind",
    "PersistenceError",
    "FileAccessError",
    "LockTimeout",
    "SecretStoreError",
    "PartialDeleteError",
    "ValidationFailure",
    "IPersistence",
    "FilePersistence",
    "KeyringPersistence",
    "CrossProcessLock",
    "classify_error",
    "create_persistence",
    "verify_persistence",
    "PersistenceCachePlugin",
    "CacheAccessContext",
]
