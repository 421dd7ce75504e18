"""Persistence factory — resolves the backend from config."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from tokenvault.exceptions import ValidationFailure
from tokenvault.persistence.file_backend import FilePersistence
from tokenvault.persistence.keyring_backend import KeyringPersistence
from tokenvault.persistence.protocols import IPersistence
from tokenvault.persistence.validation import verify_persistence

if TYPE_CHECKING:
    from keyring.backend import KeyringBackend

    from tokenvault.core.config import AppSettings

log = logging.getLogger(__name__)


async def create_persistence(
    settings: AppSettings,
    *,
    keyring_backend: Optional[KeyringBackend] = None,
    logger: Optional[logging.Logger] = None,
) -> IPersistence:
    """Create a persistence backend based on settings.

    When ``settings.persistence.verify_on_startup`` is set, the instance is
    validated before it is returned. A keyring backend that fails validation
    is replaced by a plaintext :class:`FilePersistence` at the same path only
    when ``allow_unencrypted_fallback`` is set.

    Args:
        settings: Application settings.
        keyring_backend: Explicit keyring backend; defaults to the host's.
        logger: Logger handed to the backend instance.

    Returns:
        A persistence instance satisfying :class:`IPersistence`.

    Raises:
        ValidationFailure: If validation fails and no fallback applies.
    """
    cfg = settings.persistence
    logger = logger or log

    persistence: IPersistence
    if cfg.backend == "keyring":
        persistence = await KeyringPersistence.create(
            cfg.cache_path,
            cfg.service_name,
            cfg.account_name,
            keyring_backend=keyring_backend,
            lock_config=settings.lock,
            logger=logger,
        )
    else:
        persistence = await FilePersistence.create(
            cfg.cache_path, lock_config=settings.lock, logger=logger
        )
    logger.info("Using %s persistence at %s", cfg.backend, persistence.identity.describe())

    if not cfg.verify_on_startup:
        return persistence

    try:
        await verify_persistence(persistence, lock_config=settings.lock)
    except ValidationFailure as e:
        if cfg.backend != "keyring" or not cfg.allow_unencrypted_fallback:
            raise
        logger.warning(
            "Secret store unusable (%s); falling back to UNENCRYPTED file at %s",
            e.message, cfg.cache_path,
        )
        persistence = await FilePersistence.create(
            cfg.cache_path, lock_config=settings.lock, logger=logger
        )
        await verify_persistence(persistence, lock_config=settings.lock)
    return persistence
