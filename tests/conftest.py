"""Shared pytest fixtures for all test types."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config import AuthSettings, Settings
from tests.helpers.sessions import TEST_SECRET


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a known JWT secret and cheap bcrypt rounds."""
    return Settings(auth=AuthSettings(jwt_secret=TEST_SECRET, bcrypt_rounds=4))


@pytest.fixture
def fake_redis() -> MagicMock:
    """Redis client double: nothing blacklisted, first login attempt."""
    redis = MagicMock()
    redis.exists = AsyncMock(return_value=0)
    redis.incr = AsyncMock(return_value=1)
    redis.expire = AsyncMock(return_value=True)
    redis.setex = AsyncMock(return_value=True)
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def patched_auth(test_settings: Settings, fake_redis: MagicMock) -> Iterator[Settings]:
    """Route auth and generation settings lookups to `test_settings` and Redis to `fake_redis`."""
    with (
        patch("src.api.auth.get_settings", return_value=test_settings),
        patch("src.api.generation.get_settings", return_value=test_settings),
        patch("src.api.auth._get_redis", new_callable=AsyncMock, return_value=fake_redis),
    ):
        yield test_settings
