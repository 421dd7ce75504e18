"""Keyring persistence backend — token cache kept in the OS secret store.

The ``keyring`` library maps a ``(service, account)`` pair onto the native
store: Keychain on macOS, Credential Manager on Windows, Secret Service or
the kernel keyring on Linux and the BSDs.

Secrets have no modification time, so each instance owns a
:class:`FilePersistence` pointed at a *shadow file*. Every save rewrites the
shadow with a fixed placeholder; its mtime is what other processes compare
in ``reload_necessary``. The secret itself never touches the shadow file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from tokenvault.core.config import LockConfig
from tokenvault.core.types import PersistenceIdentity
from tokenvault.exceptions import PartialDeleteError, SecretStoreError
from tokenvault.persistence.errors import classify_error, wrap_error
from tokenvault.persistence.file_backend import VALIDATION_SUFFIX, FilePersistence

log = logging.getLogger(__name__)

SHADOW_PLACEHOLDER = "{}"
VALIDATION_SERVICE_NAME = "tokenvault-validation-service"
VALIDATION_ACCOUNT_NAME = "tokenvault-validation-account"


class KeyringPersistence:
    """Stores the cache blob in the OS secret store, tracked by a shadow file."""

    def __init__(
        self,
        shadow: FilePersistence,
        service_name: str,
        account_name: str,
        keyring_backend: KeyringBackend,
    ) -> None:
        self._shadow = shadow
        self._keyring = keyring_backend
        self._identity = PersistenceIdentity(
            location=shadow.location,
            service_name=service_name,
            account_name=account_name,
        )

    @classmethod
    async def create(
        cls,
        location: Path | str,
        service_name: str,
        account_name: str,
        *,
        keyring_backend: Optional[KeyringBackend] = None,
        lock_config: Optional[LockConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> KeyringPersistence:
        """Build an instance whose shadow file lives at ``location``.

        The keyring backend is resolved here, per instance, rather than
        through the module-level ``keyring`` helpers, so independent cache
        identities in one process never share client state.

        Raises:
            ValueError: If service or account name is empty.
            FileAccessError: If the shadow file directory is not writable.
        """
        if not service_name or not account_name:
            raise ValueError("service_name and account_name must be non-empty")
        shadow = await FilePersistence.create(location, lock_config=lock_config, logger=logger or log)
        backend = keyring_backend if keyring_backend is not None else keyring.get_keyring()
        shadow.logger.debug(
            "Keyring persistence for %s/%s using %s",
            service_name, account_name, type(backend).__name__,
        )
        return cls(shadow, service_name, account_name, backend)

    @property
    def identity(self) -> PersistenceIdentity:
        return self._identity

    @property
    def location(self) -> Path:
        return self._shadow.location

    @property
    def logger(self) -> logging.Logger:
        return self._shadow.logger

    @property
    def keyring_backend(self) -> KeyringBackend:
        return self._keyring

    @property
    def service_name(self) -> str:
        return self._identity.service_name or ""

    @property
    def account_name(self) -> str:
        return self._identity.account_name or ""

    async def save(self, contents: str) -> None:
        self._call(
            "write", self._keyring.set_password, self.service_name, self.account_name, contents
        )
        # Placeholder rewrite advances the shadow mtime for other processes
        await self._shadow.save(SHADOW_PLACEHOLDER)

    async def load(self) -> Optional[str]:
        return self._get_entry()

    async def load_or_create(self, contents: str) -> Optional[str]:
        async with self._shadow.lock():
            existing = self._get_entry()
            if existing is None:
                self._call(
                    "write", self._keyring.set_password,
                    self.service_name, self.account_name, contents,
                )
        if existing is None:
            await self._shadow.save(SHADOW_PLACEHOLDER)
        return existing

    async def delete(self) -> bool:
        shadow_removed = await self._shadow.delete()
        try:
            entry_removed = self._delete_entry()
        except SecretStoreError as e:
            if shadow_removed:
                raise PartialDeleteError(
                    f"Shadow file {self.location} was removed but secret entry "
                    f"{self._identity.describe()} was not: {e.message}",
                    removed="shadow",
                ) from e
            raise
        return shadow_removed or entry_removed

    async def reload_necessary(self, last_sync: float) -> bool:
        return await self._shadow.reload_necessary(last_sync)

    async def create_for_persistence_validation(self) -> KeyringPersistence:
        probe = self.location.with_name(self.location.name + VALIDATION_SUFFIX)
        return await KeyringPersistence.create(
            probe,
            VALIDATION_SERVICE_NAME,
            VALIDATION_ACCOUNT_NAME,
            keyring_backend=self._keyring,
            lock_config=self._shadow.lock_config,
            logger=self.logger,
        )

    def _get_entry(self) -> Optional[str]:
        return self._call("read", self._keyring.get_password, self.service_name, self.account_name)

    def _delete_entry(self) -> bool:
        try:
            self._keyring.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError as e:
            # Raised both for a missing entry and for a refused delete
            if self._get_entry() is None:
                self.logger.debug("No secret entry for %s", self._identity.describe())
                return False
            raise self._wrap(e, "delete") from e
        except Exception as e:
            if classify_error(e) is None:
                raise
            raise self._wrap(e, "delete") from e
        return True

    def _call(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception as e:
            if classify_error(e) is None:
                raise
            raise self._wrap(e, action) from e

    def _wrap(self, exc: Exception, action: str) -> SecretStoreError:
        return wrap_error(
            exc, SecretStoreError, f"Secret store {action} failed for {self._identity.describe()}"
        )
