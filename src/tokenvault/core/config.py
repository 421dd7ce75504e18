"""Nested pydantic-settings configuration for tokenvault.

Each group reads its own ``TOKENVAULT_<GROUP>_*`` env vars, so either style
works::

    AppSettings().persistence.backend
    export TOKENVAULT_PERSISTENCE_BACKEND=keyring
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_CACHE_PATH = Path.home() / ".tokenvault" / "token_cache.json"


class PersistenceConfig(BaseSettings):
    """Persistence backend selection and identity.

    Env vars use ``TOKENVAULT_PERSISTENCE_`` prefix::

        export TOKENVAULT_PERSISTENCE_BACKEND=keyring
        export TOKENVAULT_PERSISTENCE_SERVICE_NAME=my-app
        export TOKENVAULT_PERSISTENCE_ACCOUNT_NAME=user@example.com
    """

    model_config = {"env_prefix": "TOKENVAULT_PERSISTENCE_"}

    backend: Literal["file", "keyring"] = "file"
    cache_path: Path = DEFAULT_CACHE_PATH
    service_name: str = "tokenvault"
    account_name: str = "default"
    verify_on_startup: bool = True
    allow_unencrypted_fallback: bool = False


class LockConfig(BaseSettings):
    """Cross-process write lock tuning.

    Env vars use ``TOKENVAULT_LOCK_`` prefix.
    """

    model_config = {"env_prefix": "TOKENVAULT_LOCK_"}

    timeout_seconds: float = Field(default=5.0, gt=0.0)
    initial_delay_seconds: float = Field(default=0.05, gt=0.0)
    max_delay_seconds: float = Field(default=1.0, gt=0.0)
    jitter_factor: float = Field(default=0.5, ge=0.0, le=1.0)


class ObservabilityConfig(BaseSettings):
    """Logging configuration.

    Env vars use ``TOKENVAULT_OBSERVABILITY_`` prefix.
    """

    model_config = {"env_prefix": "TOKENVAULT_OBSERVABILITY_"}

    log_level: str = "INFO"
    json_logs: bool = False


class AppSettings(BaseSettings):
    """Top-level settings aggregating all sub-configs."""

    persistence: PersistenceConfig = PersistenceConfig()
    lock: LockConfig = LockConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
