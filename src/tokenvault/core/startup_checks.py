"""Startup validation: fail-fast on critical misconfigurations."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenvault.core.config import AppSettings

log = logging.getLogger(__name__)


def validate_settings(settings: AppSettings) -> None:
    """Validate settings at startup. Raises ValueError on fatal misconfig."""
    _check_identity(settings)
    _check_lock(settings)
    _check_plaintext(settings)


def _check_identity(settings: AppSettings) -> None:
    """A keyring entry needs a non-empty service and account."""
    persistence = settings.persistence
    if persistence.backend != "keyring":
        return
    if not persistence.service_name.strip() or not persistence.account_name.strip():
        raise ValueError(
            "TOKENVAULT_PERSISTENCE_SERVICE_NAME and TOKENVAULT_PERSISTENCE_ACCOUNT_NAME "
            "must both be set when backend is 'keyring'."
        )


def _check_lock(settings: AppSettings) -> None:
    """Reject back-off settings that can never retry before the deadline."""
    lock = settings.lock
    if lock.initial_delay_seconds > lock.max_delay_seconds:
        raise ValueError(
            f"TOKENVAULT_LOCK_INITIAL_DELAY_SECONDS ({lock.initial_delay_seconds}) "
            f"exceeds TOKENVAULT_LOCK_MAX_DELAY_SECONDS ({lock.max_delay_seconds})."
        )
    if lock.max_delay_seconds > lock.timeout_seconds:
        raise ValueError(
            f"TOKENVAULT_LOCK_MAX_DELAY_SECONDS ({lock.max_delay_seconds}) "
            f"exceeds TOKENVAULT_LOCK_TIMEOUT_SECONDS ({lock.timeout_seconds})."
        )


def _check_plaintext(settings: AppSettings) -> None:
    """Warn about plaintext token caches where they are likely a mistake."""
    persistence = settings.persistence
    if persistence.backend != "file":
        return
    if persistence.allow_unencrypted_fallback:
        log.warning(
            "TOKENVAULT_PERSISTENCE_ALLOW_UNENCRYPTED_FALLBACK has no effect with backend=file; "
            "the cache is already stored unencrypted at %s",
            persistence.cache_path,
        )
    is_container = bool(
        os.environ.get("ECS_CONTAINER_METADATA_URI")
        or os.environ.get("KUBERNETES_SERVICE_HOST")
    )
    if is_container:
        log.warning(
            "File-backed token cache in a container environment. "
            "Cached tokens will be lost on container restart."
        )
