"""Shared fixtures for tokenvault tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes.fake_keyring import FakeKeyring
from tokenvault.core.config import LockConfig


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Cache location inside a not-yet-existing subdirectory."""
    return tmp_path / "cache" / "token_cache.json"


@pytest.fixture
def fast_lock() -> LockConfig:
    """Short lock bounds so contention tests finish quickly."""
    return LockConfig(
        timeout_seconds=0.3,
        initial_delay_seconds=0.01,
        max_delay_seconds=0.05,
        jitter_factor=0.0,
    )


@pytest.fixture
def fake_keyring() -> FakeKeyring:
    return FakeKeyring()
