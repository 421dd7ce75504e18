"""Exception hierarchy for tokenvault.

Every classified failure carries an :class:`ErrorKind` so callers can branch
on the category without ``isinstance`` ladders. Failures that do not match a
recognised environment signature are never wrapped; they propagate as-is.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    FILE_ACCESS = "file_access"
    LOCK_TIMEOUT = "lock_timeout"
    SECRET_STORE = "secret_store"
    PARTIAL_DELETE = "partial_delete"
    VALIDATION = "validation"


class PersistenceError(Exception):
    """Base exception for all classified persistence failures."""

    kind: ErrorKind = ErrorKind.FILE_ACCESS

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class FileAccessError(PersistenceError):
    """Path unreadable or unwritable for a reason other than non-existence."""

    kind = ErrorKind.FILE_ACCESS


class LockTimeout(PersistenceError):
    """Cross-process lock was not acquired within the configured bound."""

    kind = ErrorKind.LOCK_TIMEOUT

    def __init__(self, message: str, lock_path: str = "", waited: float = 0.0) -> None:
        super().__init__(message)
        self.lock_path = lock_path
        self.waited = waited


class SecretStoreError(PersistenceError):
    """OS secret store call failed: denied, locked, unreachable or missing."""

    kind = ErrorKind.SECRET_STORE


class PartialDeleteError(SecretStoreError):
    """Only one of the secret entry / shadow file pair was removed."""

    kind = ErrorKind.PARTIAL_DELETE

    def __init__(self, message: str, removed: str = "") -> None:
        super().__init__(message)
        self.removed = removed


class ValidationFailure(PersistenceError):
    """The probe instance failed its save/load/delete round trip."""

    kind = ErrorKind.VALIDATION


__all__ = [
    "ErrorKind",
    "PersistenceError",
    "FileAccessError",
    "LockTimeout",
    "SecretStoreError",
    "PartialDeleteError",
    "ValidationFailure",
]
