"""Classification of raw backend failures into the persistence taxonomy.

``classify_error`` is total: every exception maps either to an
:class:`ErrorKind` or to ``None`` (unclassified). Unclassified failures are
programming errors or unknown conditions and must propagate unchanged.
"""

from __future__ import annotations

from typing import Optional, TypeVar

from keyring.errors import KeyringError

from tokenvault.exceptions import ErrorKind, PersistenceError

E = TypeVar("E", bound=PersistenceError)


def classify_error(exc: BaseException) -> Optional[ErrorKind]:
    """Map a raw failure to a tagged error kind, or None if unrecognised."""
    if isinstance(exc, PersistenceError):
        return exc.kind
    if isinstance(exc, KeyringError):
        return ErrorKind.SECRET_STORE
    if isinstance(exc, OSError):
        return ErrorKind.FILE_ACCESS
    return None


def wrap_error(exc: BaseException, error_cls: type[E], context: str = "") -> E:
    """Build a classified exception preserving the original message and cause."""
    detail = str(exc) or type(exc).__name__
    message = f"{context}: {detail}" if context else detail
    wrapped = error_cls(message)
    wrapped.__cause__ = exc
    return wrapped
