"""
PostgreSQL membership store for Entitlements Service.
"""

from typing import FrozenSet, Optional

import asyncpg

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.logging import get_logger
from shared.errors import AccessLayerException, MembershipLookupError, OverrideFetchError
from ..models import Membership, MembershipStatus

MEMBERSHIP_QUERY = """
    SELECT
        tm.user_id,
        tm.tenant_id,
        COALESCE(tm.role, 'teacher') AS role,
        tm.status,
        COALESCE(t.plan, 'free') AS plan,
        t.name AS tenant_name
    FROM tenant_members tm
    LEFT JOIN tenants t ON t.id = tm.tenant_id
    WHERE tm.user_id = $1 AND tm.status = 'active'
    LIMIT 1
"""

ENABLED_FEATURES_QUERY = """
    SELECT feature FROM tenant_features
    WHERE tenant_id = $1 AND enabled = TRUE
"""


class PostgresMembershipStore:
    """Reads tenant memberships and feature overrides from PostgreSQL."""

    def __init__(self, dsn: str, breaker: Optional[CircuitBreaker] = None):
        self.dsn = dsn
        self.logger = get_logger("entitlements.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None
        self.breaker = breaker or CircuitBreaker(name="membership_db")

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            self.logger.info("PostgreSQL membership store started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL membership store", error=str(e))
            raise AccessLayerException("POSTGRES_START_FAILED", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL membership store stopped")

    async def _fetchrow(self, query: str, *args):
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def _fetch(self, query: str, *args):
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def lookup_active_membership(self, user_id: str) -> Optional[Membership]:
        """Active membership for a user; None when the user belongs to no tenant."""
        try:
            row = await self.breaker.call(self._fetchrow, MEMBERSHIP_QUERY, user_id)
        except CircuitBreakerOpenException as e:
            raise MembershipLookupError(str(e), details={"user_id": user_id}) from e
        except Exception as e:
            self.logger.error("Error loading membership", user_id=user_id, error=str(e))
            raise MembershipLookupError(str(e), details={"user_id": user_id}) from e

        if not row:
            return None

        return self._row_to_membership(row)

    async def list_enabled_features(self, tenant_id: str) -> FrozenSet[str]:
        """Features enabled for a tenant on top of its plan."""
        try:
            rows = await self.breaker.call(self._fetch, ENABLED_FEATURES_QUERY, tenant_id)
        except CircuitBreakerOpenException as e:
            raise OverrideFetchError(str(e), details={"tenant_id": tenant_id}) from e
        except Exception as e:
            self.logger.error("Error loading tenant features", tenant_id=tenant_id, error=str(e))
            raise OverrideFetchError(str(e), details={"tenant_id": tenant_id}) from e

        return frozenset(row['feature'] for row in rows)

    def _row_to_membership(self, row) -> Membership:
        """Convert database row to Membership object."""
        return Membership(
            user_id=str(row['user_id']),
            tenant_id=str(row['tenant_id']),
            role=row['role'],
            plan=row['plan'],
            status=MembershipStatus(row['status']),
            tenant_name=row['tenant_name']
        )

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception:
            return False
