"""Tests for the authentication flag cache and the auth gate."""

from unittest.mock import AsyncMock

import pytest

from server.core.AuthGate import AuthGate
from shared.clients.cache.AuthCacheInterface import AUTH_FLAG_TTL_SECONDS
from shared.clients.cache.memory.AuthCacheMemory import AuthCacheMemory
from shared.models.session import Session
from tests.conftest import FakeSessionClient


class TestAuthCacheMemory:
    @pytest.mark.asyncio
    async def test_set_get_expire(self, auth_cache) -> None:
        assert await auth_cache.get("u1") is None
        await auth_cache.set("u1")
        assert await auth_cache.get("u1") is True
        await auth_cache.expire("u1")
        assert await auth_cache.get("u1") is None

    @pytest.mark.asyncio
    async def test_expire_absent_is_not_an_error(self, auth_cache) -> None:
        await auth_cache.expire("never-set")

    @pytest.mark.asyncio
    async def test_flag_expires_after_ttl(self, auth_cache) -> None:
        await auth_cache.set("u1", ttl_seconds=0)
        assert await auth_cache.get("u1") is None

    def test_ttl_default_and_override(self, helper_config, env) -> None:
        assert AuthCacheMemory(helper_config).ttl_seconds == AUTH_FLAG_TTL_SECONDS
        env.setenv("AUTH_FLAG_TTL_SECONDS", "60")
        assert AuthCacheMemory(helper_config).ttl_seconds == 60

    def test_key_prefix(self, auth_cache) -> None:
        assert auth_cache.get_key("u1") == "user:authenticated:u1"


class TestAuthGate:
    @pytest.mark.asyncio
    async def test_cached_flag_answers_without_rederiving(self, helper_config, auth_cache) -> None:
        """A cached flag wins even for a session that would not re-derive as authenticated."""
        await auth_cache.set("guest-1")
        gate = AuthGate(helper_config, FakeSessionClient(), auth_cache)
        assert await gate.is_authenticated(Session(user_id="guest-1", is_anonymous=True)) is True

    @pytest.mark.asyncio
    async def test_signed_out_flag_is_not_rederived(self, helper_config, auth_cache) -> None:
        await auth_cache.set("user-1", authenticated=False)
        gate = AuthGate(helper_config, FakeSessionClient(), auth_cache)
        assert await gate.is_authenticated(Session(user_id="user-1", is_anonymous=False)) is False
        assert await auth_cache.get("user-1") is False

    @pytest.mark.asyncio
    async def test_miss_rederives_and_caches(self, helper_config, auth_cache) -> None:
        gate = AuthGate(helper_config, FakeSessionClient(), auth_cache)
        assert await gate.is_authenticated(Session(user_id="user-1", is_anonymous=False)) is True
        assert await auth_cache.get("user-1") is True

    @pytest.mark.asyncio
    async def test_anonymous_miss_is_unauthenticated(self, helper_config, auth_cache) -> None:
        gate = AuthGate(helper_config, FakeSessionClient(), auth_cache)
        assert await gate.is_authenticated(Session(user_id="guest-1", is_anonymous=True)) is False
        assert await auth_cache.get("guest-1") is None

    @pytest.mark.asyncio
    async def test_cache_is_injectable(self, helper_config) -> None:
        cache = AsyncMock()
        cache.get.return_value = None
        gate = AuthGate(helper_config, FakeSessionClient(), cache)
        await gate.is_authenticated(Session(user_id="user-1"))
        cache.get.assert_awaited_once_with("user-1")
        cache.set.assert_awaited_once_with("user-1")
