"""
Integration tests for Entitlements service flow.

The service runs in-process with the in-memory membership store and an
EntitlementCache whose Redis client is replaced by a dict-backed fake.
"""

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.test_helpers import MockTokenGenerator, TestDataFactory, TestUser
from service_entitlements.app.cache.redis_cache import EntitlementCache
from service_entitlements.app.main import EntitlementsService
from service_entitlements.app.models import Membership
from service_entitlements.app.resolution.ports import InMemoryMembershipStore


class FakeRedis:
    """Just enough of redis.asyncio.Redis for EntitlementCache."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

    async def ping(self):
        return True


class TestEntitlementsFlow:
    """Integration tests for Entitlements service flow."""

    @pytest.fixture
    def store(self):
        return InMemoryMembershipStore(memberships=TestDataFactory.create_test_memberships())

    @pytest.fixture
    def cache(self):
        cache = EntitlementCache("redis://localhost:6379/0", ttl_seconds=300)
        cache.redis = FakeRedis()
        return cache

    @pytest.fixture
    def client(self, store, cache):
        config = get_config("entitlements", 8011, env="test", jwt_secret="test-secret")
        service = EntitlementsService(config=config, membership_store=store, cache=cache)
        return TestClient(service.app)

    @pytest.fixture
    def tokens(self):
        return MockTokenGenerator(secret="test-secret")

    @pytest.fixture
    def new_user(self):
        return TestUser(user_id="new-teacher", email="new@hillside.example", tenant_id="tenant-hillside")

    def test_join_tenant_then_upgrade(self, client, store, tokens, new_user):
        """A user joins a free tenant, the tenant upgrades, and the cache is invalidated."""
        headers = tokens.auth_headers(new_user)

        before = client.get("/entitlements/me", headers=headers).json()
        assert before["source"] == "default_no_membership"

        store.add_membership(Membership(
            user_id=new_user.user_id, tenant_id="tenant-hillside", role="teacher", plan="free"
        ))

        # Cached default is still served until invalidated
        cached = client.get("/entitlements/me", headers=headers).json()
        assert cached["source"] == "default_no_membership"

        client.post("/entitlements/invalidate", json={"user_id": new_user.user_id})
        joined = client.get("/entitlements/me", headers=headers).json()
        assert joined["source"] == "membership"
        assert joined["tenant_id"] == "tenant-hillside"

        routes = {item["path"]: item for item in client.get("/entitlements/routes", headers=headers).json()}
        assert routes["/analytics"]["allowed"] is False

        store.remove_memberships(new_user.user_id)
        store.add_membership(Membership(
            user_id=new_user.user_id, tenant_id="tenant-hillside", role="teacher", plan="growth"
        ))
        client.post("/entitlements/invalidate", json={"user_id": new_user.user_id})

        upgraded = client.get("/entitlements/me", headers=headers).json()
        assert upgraded["plan"] == "growth"

        routes = {item["path"]: item for item in client.get("/entitlements/routes", headers=headers).json()}
        assert routes["/analytics"]["allowed"] is True

    def test_tenant_override_flow(self, client, store):
        """A starter tenant buys online fees as an add-on."""
        check = {"user_id": "finance-starter", "gate": {"feature": "fees.online"}}

        denied = client.post("/entitlements/check", json=check).json()
        assert denied["allowed"] is False
        assert denied["upgrade"]["needed_plan"] == "growth"

        store.set_overrides("tenant-lakeside", ["fees.online"])
        client.post("/entitlements/invalidate", json={"user_id": "finance-starter"})

        allowed = client.post("/entitlements/check", json=check).json()
        assert allowed["allowed"] is True

    def test_outage_is_not_cached(self, client, store):
        """Fail-open defaults during an outage disappear once the store recovers."""
        store.fail_membership_lookups = True
        degraded = client.post("/entitlements/resolve", json={"user_id": "owner-growth"}).json()
        assert degraded["source"] == "default_lookup_failed"

        store.fail_membership_lookups = False
        recovered = client.post("/entitlements/resolve", json={"user_id": "owner-growth"}).json()
        assert recovered["source"] == "membership"
        assert recovered["plan"] == "growth"

    def test_health_reports_cache(self, client):
        data = client.get("/health").json()
        assert data["dependencies"] == {"membership_store": "ok", "redis": "ok"}
