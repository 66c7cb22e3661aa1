"""
Unit tests for the Redis entitlement cache.
"""

import json

import pytest
from unittest.mock import AsyncMock, patch

from shared.errors import AccessLayerException
from shared.test_helpers import make_entitlement
from service_entitlements.app.cache.redis_cache import EntitlementCache
from service_entitlements.app.catalog.plans import Plan
from service_entitlements.app.catalog.roles import Role


class TestEntitlementCache:
    """Test cases for EntitlementCache."""

    @pytest.fixture
    def cache(self):
        cache = EntitlementCache("redis://localhost:6379/0", ttl_seconds=120)
        cache.redis = AsyncMock()
        return cache

    @pytest.fixture
    def entitlement(self):
        return make_entitlement(Plan.GROWTH, Role.ADMIN, extra_features=["fees.advanced"])

    @pytest.mark.asyncio
    async def test_get_miss(self, cache):
        cache.redis.get = AsyncMock(side_effect=[None, None])

        assert await cache.get("user-1") is None
        keys = [call.args[0] for call in cache.redis.get.await_args_list]
        assert keys == ["entitlement_version:user-1", "entitlement:user:user-1:v0"]

    @pytest.mark.asyncio
    async def test_get_hit(self, cache, entitlement):
        cache.redis.get = AsyncMock(side_effect=["3", json.dumps(entitlement.to_dict())])

        result = await cache.get("user-1")

        assert result == entitlement
        assert cache.redis.get.await_args_list[1].args[0] == "entitlement:user:user-1:v3"

    @pytest.mark.asyncio
    async def test_set_uses_ttl_and_version(self, cache, entitlement):
        cache.redis.get = AsyncMock(return_value="2")

        assert await cache.set("user-1", entitlement) is True

        key, ttl, payload = cache.redis.setex.await_args.args
        assert key == "entitlement:user:user-1:v2"
        assert ttl == 120
        assert json.loads(payload)["plan"] == "growth"

    @pytest.mark.asyncio
    async def test_set_with_pinned_version(self, cache, entitlement):
        cache.redis.get = AsyncMock(return_value="5")

        assert await cache.set("user-1", entitlement, 4) is True

        cache.redis.get.assert_not_awaited()
        assert cache.redis.setex.await_args.args[0] == "entitlement:user:user-1:v4"

    @pytest.mark.asyncio
    async def test_get_with_pinned_version(self, cache):
        cache.redis.get = AsyncMock(return_value=None)

        assert await cache.get("user-1", 7) is None
        cache.redis.get.assert_awaited_once_with("entitlement:user:user-1:v7")

    @pytest.mark.asyncio
    async def test_current_version(self, cache):
        cache.redis.get = AsyncMock(return_value="3")
        assert await cache.current_version("user-1") == 3

        cache.redis.get = AsyncMock(side_effect=ConnectionError("redis down"))
        assert await cache.current_version("user-1") is None

    @pytest.mark.asyncio
    async def test_write_after_invalidate_is_not_read(self, cache, entitlement):
        store = {}

        async def fake_get(key):
            return store.get(key)

        async def fake_setex(key, ttl, value):
            store[key] = value

        async def fake_incr(key):
            store[key] = str(int(store.get(key, 0)) + 1)
            return int(store[key])

        cache.redis.get = AsyncMock(side_effect=fake_get)
        cache.redis.setex = AsyncMock(side_effect=fake_setex)
        cache.redis.incr = AsyncMock(side_effect=fake_incr)

        version = await cache.current_version("user-1")
        await cache.invalidate("user-1")
        await cache.set("user-1", entitlement, version)

        assert await cache.get("user-1") is None

    @pytest.mark.asyncio
    async def test_invalidate_bumps_version(self, cache):
        cache.redis.incr = AsyncMock(return_value=4)

        assert await cache.invalidate("user-1") is True
        cache.redis.incr.assert_awaited_once_with("entitlement_version:user-1")

    @pytest.mark.asyncio
    async def test_version_bump_hides_old_entry(self, cache, entitlement):
        store = {}

        async def fake_get(key):
            return store.get(key)

        async def fake_setex(key, ttl, value):
            store[key] = value

        async def fake_incr(key):
            store[key] = str(int(store.get(key, 0)) + 1)
            return int(store[key])

        cache.redis.get = AsyncMock(side_effect=fake_get)
        cache.redis.setex = AsyncMock(side_effect=fake_setex)
        cache.redis.incr = AsyncMock(side_effect=fake_incr)

        await cache.set("user-1", entitlement)
        assert await cache.get("user-1") == entitlement

        await cache.invalidate("user-1")
        assert await cache.get("user-1") is None

    @pytest.mark.asyncio
    async def test_errors_are_misses(self, cache, entitlement):
        cache.redis.get = AsyncMock(side_effect=ConnectionError("redis down"))
        cache.redis.incr = AsyncMock(side_effect=ConnectionError("redis down"))

        assert await cache.get("user-1") is None
        assert await cache.set("user-1", entitlement) is False
        assert await cache.invalidate("user-1") is False

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_miss(self, cache):
        cache.redis.get = AsyncMock(side_effect=["1", "{not json"])
        assert await cache.get("user-1") is None

    @pytest.mark.asyncio
    async def test_health_check(self, cache):
        cache.redis.ping = AsyncMock(return_value=True)
        assert await cache.health_check() is True

        cache.redis.ping = AsyncMock(side_effect=ConnectionError("redis down"))
        assert await cache.health_check() is False

    @pytest.mark.asyncio
    async def test_start_failure(self):
        cache = EntitlementCache("redis://localhost:6379/0")
        client = AsyncMock()
        client.ping = AsyncMock(side_effect=ConnectionError("refused"))

        with patch("service_entitlements.app.cache.redis_cache.redis.from_url", return_value=client):
            with pytest.raises(AccessLayerException) as exc_info:
                await cache.start()

        assert exc_info.value.code == "REDIS_START_FAILED"
