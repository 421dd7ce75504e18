"""Validation harness: prove a backend works on this host before trusting it.

The probe instance lives at a reserved identity derived from the real one
(same directory, reserved file name, reserved keyring service/account), so a
validation run never reads or writes the caller's real token cache.

Every process validating the same location shares that probe identity.
Validators take a dedicated lock around their round trip, and a probe payload
written by some other validator still counts as a successful read.
"""

from __future__ import annotations

import json
import uuid
from typing import Optional

from tokenvault.core.config import LockConfig
from tokenvault.exceptions import ValidationFailure
from tokenvault.persistence.errors import classify_error, wrap_error
from tokenvault.persistence.lock import CrossProcessLock
from tokenvault.persistence.protocols import IPersistence

PAYLOAD_KEY = "tokenvault_probe"
VERIFY_LOCK_SUFFIX = ".verify"


def is_probe_payload(contents: Optional[str]) -> bool:
    """True if ``contents`` is a payload some validation run wrote."""
    if contents is None:
        return False
    try:
        data = json.loads(contents)
    except ValueError:
        return False
    return isinstance(data, dict) and set(data) == {PAYLOAD_KEY} and isinstance(data[PAYLOAD_KEY], str)


async def verify_persistence(
    persistence: IPersistence, *, lock_config: Optional[LockConfig] = None
) -> None:
    """Run a save/load/delete round trip against a probe instance.

    The probe is deleted even when saving or loading fails.

    Args:
        persistence: Instance whose probe is exercised.
        lock_config: Bounds for the lock serializing concurrent validators.

    Raises:
        ValidationFailure: If the probe cannot be built, any step fails with
            a classified error, or the loaded contents are not a probe payload.
    """
    described = persistence.identity.describe()
    payload = json.dumps({PAYLOAD_KEY: uuid.uuid4().hex})

    try:
        probe = await persistence.create_for_persistence_validation()
        persistence.logger.debug("Validating persistence via probe at %s", probe.location)
        verify_target = probe.location.with_name(probe.location.name + VERIFY_LOCK_SUFFIX)
        async with CrossProcessLock.for_target(verify_target, lock_config, persistence.logger):
            try:
                await probe.save(payload)
                loaded = await probe.load()
            finally:
                await probe.delete()
    except Exception as e:
        if classify_error(e) is None:
            raise
        raise wrap_error(e, ValidationFailure, f"Persistence validation failed for {described}") from e

    if loaded != payload:
        if not is_probe_payload(loaded):
            raise ValidationFailure(
                f"Persistence validation failed for {described}: "
                f"probe returned {'nothing' if loaded is None else 'different contents'}"
            )
        persistence.logger.debug("Probe at %s held another validator's payload", probe.location)
    persistence.logger.info("Persistence validated for %s", described)
