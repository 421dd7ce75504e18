"""Tests for KeyringPersistence with in-memory keyring backends."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tests.fakes.fake_keyring import BuggyKeyring, DeleteRefusedKeyring, FakeKeyring, LockedKeyring
from tokenvault.core.config import LockConfig
from tokenvault.exceptions import FileAccessError, LockTimeout, PartialDeleteError, SecretStoreError
from tokenvault.persistence.keyring_backend import (
    SHADOW_PLACEHOLDER,
    VALIDATION_ACCOUNT_NAME,
    VALIDATION_SERVICE_NAME,
    KeyringPersistence,
)
from tokenvault.persistence.protocols import IPersistence


async def _create(path: Path, backend: FakeKeyring, **kwargs) -> KeyringPersistence:
    return await KeyringPersistence.create(
        path, "cache-svc", "user-1", keyring_backend=backend, **kwargs
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_identity_and_location(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        assert isinstance(persistence, IPersistence)
        assert persistence.location == cache_path
        assert persistence.identity.service_name == "cache-svc"
        assert persistence.identity.account_name == "user-1"
        assert persistence.identity.uses_secret_store
        assert persistence.keyring_backend is fake_keyring
        assert cache_path.parent.is_dir()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("service,account", [("", "user-1"), ("cache-svc", "")])
    async def test_rejects_empty_identity(
        self, cache_path: Path, fake_keyring: FakeKeyring, service: str, account: str
    ) -> None:
        with pytest.raises(ValueError):
            await KeyringPersistence.create(cache_path, service, account, keyring_backend=fake_keyring)

    @pytest.mark.asyncio
    async def test_resolves_host_keyring_per_instance(self, cache_path: Path) -> None:
        backend = FakeKeyring()
        with patch("tokenvault.persistence.keyring_backend.keyring.get_keyring", return_value=backend) as get:
            persistence = await KeyringPersistence.create(cache_path, "svc", "acct")
        get.assert_called_once()
        assert persistence.keyring_backend is backend

    @pytest.mark.asyncio
    async def test_independent_identities_do_not_interfere(self, tmp_path: Path, fake_keyring: FakeKeyring) -> None:
        a = await KeyringPersistence.create(tmp_path / "a", "svc", "alice", keyring_backend=fake_keyring)
        b = await KeyringPersistence.create(tmp_path / "b", "svc", "bob", keyring_backend=fake_keyring)
        await a.save("alice-cache")
        await b.save("bob-cache")
        assert await a.load() == "alice-cache"
        assert await b.load() == "bob-cache"
        assert await a.delete() is True
        assert await b.load() == "bob-cache"


class TestSaveLoad:
    @pytest.mark.asyncio
    async def test_example_scenario(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save('{"a":1}')
        assert await persistence.load() == '{"a":1}'
        assert await persistence.delete() is True
        assert await persistence.load() is None
        assert await persistence.delete() is False

    @pytest.mark.asyncio
    async def test_load_absent_returns_none(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        assert await persistence.load() is None

    @pytest.mark.asyncio
    async def test_secret_never_written_to_shadow(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save('{"RefreshToken": "super-secret"}')
        assert cache_path.read_text() == SHADOW_PLACEHOLDER
        assert fake_keyring.entries[("cache-svc", "user-1")] == '{"RefreshToken": "super-secret"}'

    @pytest.mark.asyncio
    async def test_load_ignores_shadow(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        cache_path.write_text("not the secret")
        assert await persistence.load() is None

    @pytest.mark.asyncio
    async def test_locked_keyring_wrapped_on_save(self, cache_path: Path) -> None:
        persistence = await _create(cache_path, LockedKeyring())
        with pytest.raises(SecretStoreError, match="Keyring is locked") as exc_info:
            await persistence.save("data")
        assert exc_info.value.__cause__ is not None
        assert not cache_path.exists()

    @pytest.mark.asyncio
    async def test_locked_keyring_wrapped_on_load(self, cache_path: Path) -> None:
        persistence = await _create(cache_path, LockedKeyring())
        with pytest.raises(SecretStoreError, match="read failed"):
            await persistence.load()

    @pytest.mark.asyncio
    async def test_unclassified_error_propagates_unchanged(self, cache_path: Path) -> None:
        persistence = await _create(cache_path, BuggyKeyring())
        with pytest.raises(TypeError, match="unexpected argument"):
            await persistence.save("data")
        with pytest.raises(TypeError):
            await persistence.load()

    @pytest.mark.asyncio
    async def test_shadow_write_failure_is_raised(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        with patch("tokenvault.persistence.file_backend.os.replace", side_effect=OSError(28, "No space left")):
            with pytest.raises(FileAccessError):
                await persistence.save("data")

    @pytest.mark.asyncio
    async def test_shadow_lock_timeout_is_raised(self, cache_path: Path, fake_keyring: FakeKeyring, fast_lock: LockConfig) -> None:
        persistence = await _create(cache_path, fake_keyring, lock_config=fast_lock)
        other = await _create(cache_path, fake_keyring, lock_config=fast_lock)
        async with other._shadow.lock():
            with pytest.raises(LockTimeout):
                await persistence.save("data")


class TestLoadOrCreate:
    @pytest.mark.asyncio
    async def test_seeds_entry_and_shadow(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        assert await persistence.load_or_create("seed") is None
        assert await persistence.load() == "seed"
        assert cache_path.read_text() == SHADOW_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_existing_entry_untouched(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save("existing")
        os.utime(cache_path, (1_000_000.0, 1_000_000.0))
        assert await persistence.load_or_create("seed") == "existing"
        assert await persistence.load() == "existing"
        assert cache_path.stat().st_mtime == 1_000_000.0


class TestDelete:
    @pytest.mark.asyncio
    async def test_removes_entry_and_shadow(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save("data")
        assert await persistence.delete() is True
        assert not cache_path.exists()
        assert fake_keyring.entries == {}

    @pytest.mark.asyncio
    async def test_true_if_only_shadow_existed(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        cache_path.write_text(SHADOW_PLACEHOLDER)
        assert await persistence.delete() is True

    @pytest.mark.asyncio
    async def test_true_if_only_entry_existed(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        fake_keyring.entries[("cache-svc", "user-1")] = "orphan"
        assert await persistence.delete() is True
        assert fake_keyring.entries == {}

    @pytest.mark.asyncio
    async def test_partial_delete_raises(self, cache_path: Path) -> None:
        backend = DeleteRefusedKeyring()
        persistence = await _create(cache_path, backend)
        await persistence.save("data")
        with pytest.raises(PartialDeleteError) as exc_info:
            await persistence.delete()
        assert exc_info.value.removed == "shadow"
        assert isinstance(exc_info.value.__cause__, SecretStoreError)
        assert not cache_path.exists()

    @pytest.mark.asyncio
    async def test_refused_delete_without_shadow_is_secret_store_error(self, cache_path: Path) -> None:
        backend = DeleteRefusedKeyring()
        backend.entries[("cache-svc", "user-1")] = "data"
        persistence = await _create(cache_path, backend)
        with pytest.raises(SecretStoreError) as exc_info:
            await persistence.delete()
        assert not isinstance(exc_info.value, PartialDeleteError)

    @pytest.mark.asyncio
    async def test_locked_keyring_after_shadow_removed_is_partial(self, cache_path: Path) -> None:
        persistence = await _create(cache_path, LockedKeyring())
        cache_path.write_text(SHADOW_PLACEHOLDER)
        with pytest.raises(PartialDeleteError):
            await persistence.delete()


class TestReloadNecessary:
    @pytest.mark.asyncio
    async def test_never_saved(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        assert await persistence.reload_necessary(0.0) is False

    @pytest.mark.asyncio
    async def test_delegates_to_shadow_mtime(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save("data")
        os.utime(cache_path, (2_000_000.0, 2_000_000.0))
        assert await persistence.reload_necessary(1_999_999.5) is True
        assert await persistence.reload_necessary(2_000_000.0) is False

    @pytest.mark.asyncio
    async def test_second_save_signals_other_processes(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        writer = await _create(cache_path, fake_keyring)
        reader = await _create(cache_path, fake_keyring)

        await writer.save("v1")
        t1 = 1_000_000.0
        os.utime(cache_path, (t1, t1))
        assert await reader.reload_necessary(t1) is False

        await writer.save("v2")
        assert await reader.reload_necessary(t1) is True
        assert await reader.load() == "v2"


class TestValidationInstance:
    @pytest.mark.asyncio
    async def test_reserved_probe_identity(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        probe = await persistence.create_for_persistence_validation()
        assert probe.identity.service_name == VALIDATION_SERVICE_NAME
        assert probe.identity.account_name == VALIDATION_ACCOUNT_NAME
        assert probe.location.parent == cache_path.parent
        assert probe.location != cache_path
        assert probe.keyring_backend is fake_keyring

    @pytest.mark.asyncio
    async def test_probe_round_trip_leaves_real_entry(self, cache_path: Path, fake_keyring: FakeKeyring) -> None:
        persistence = await _create(cache_path, fake_keyring)
        await persistence.save("real")
        probe = await persistence.create_for_persistence_validation()
        await probe.save("probe")
        assert await probe.delete() is True
        assert await persistence.load() == "real"
        assert cache_path.exists()
