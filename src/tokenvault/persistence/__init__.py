"""Pluggable persistence backends for token caches."""

from __future__ import annotations

from tokenvault.persistence.errors import classify_error, wrap_error
from tokenvault.persistence.factory import create_persistence
from tokenvault.persistence.file_backend import FilePersistence
from tokenvault.persistence.keyring_backend import KeyringPersistence
from tokenvault.persistence.lock import CrossProcessLock
from tokenvault.persistence.protocols import IPersistence
from tokenvault.persistence.validation import verify_persistence

__all__ = [
    "IPersistence",
    "FilePersistence",
    "KeyringPersistence",
    "CrossProcessLock",
    "create_persistence",
    "verify_persistence",
    "classify_error",
    "wrap_error",
]
