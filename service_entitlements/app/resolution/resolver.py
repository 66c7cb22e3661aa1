"""
Entitlement resolution: membership + plan + role + tenant overrides.
"""

import asyncio
import time
from typing import FrozenSet, Optional

from shared.errors import ConfigurationError, MembershipLookupError
from shared.logging import get_logger, set_user_context
from ..cache.redis_cache import EntitlementCache
from ..catalog.plans import Plan, PlanCatalog, DEFAULT_PLAN_CATALOG, parse_plan
from ..catalog.roles import Role, RoleCapabilityCatalog, DEFAULT_ROLE_CATALOG, parse_role
from ..models import EffectiveEntitlement, EntitlementSource, Membership
from ..telemetry import AccessTelemetry
from .ports import MembershipResolver, TenantFeatureOverrideStore

DEFAULT_PLAN = Plan.FREE
DEFAULT_ROLE = Role.TEACHER


class EntitlementResolver:
    """Computes a user's effective entitlement."""

    def __init__(
        self,
        membership_resolver: MembershipResolver,
        override_store: TenantFeatureOverrideStore,
        plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG,
        role_catalog: RoleCapabilityCatalog = DEFAULT_ROLE_CATALOG,
        telemetry: Optional[AccessTelemetry] = None,
        strict_membership_lookup: bool = False,
        cache: Optional[EntitlementCache] = None
    ):
        self.membership_resolver = membership_resolver
        self.override_store = override_store
        self.plan_catalog = plan_catalog
        self.role_catalog = role_catalog
        self.telemetry = telemetry or AccessTelemetry()
        self.strict_membership_lookup = strict_membership_lookup
        self.cache = cache
        self.logger = get_logger("entitlements.resolver")

    def default_entitlement(self, source: EntitlementSource) -> EffectiveEntitlement:
        """Entitlement for users without a usable membership."""
        return EffectiveEntitlement(
            plan=DEFAULT_PLAN,
            role=DEFAULT_ROLE,
            features=self.plan_catalog.features_for_plan(DEFAULT_PLAN),
            capabilities=self.role_catalog.capabilities_for_role(DEFAULT_ROLE),
            source=source,
        )

    async def resolve(self, user_id: str) -> EffectiveEntitlement:
        """Resolve the effective entitlement for a user.

        Raises ConfigurationError when the stored plan is not in the catalog,
        and MembershipLookupError on lookup failure in strict mode.
        """
        start_time = time.time()
        version = None

        if self.cache is not None:
            # Writes go under the version read here, not the one current at write time
            version = await self.cache.current_version(user_id)
            cached = await self.cache.get(user_id, version)
            self.telemetry.track_cache(cached is not None)
            if cached is not None:
                return cached

        entitlement, cacheable = await self._resolve_uncached(user_id)

        if self.cache is not None and cacheable and version is not None:
            await self.cache.set(user_id, entitlement, version)

        self.telemetry.track_resolution(entitlement.source, time.time() - start_time)
        return entitlement

    async def invalidate(self, user_id: str) -> bool:
        """Force the next resolve() for this user to hit the stores."""
        if self.cache is None:
            return False
        return await self.cache.invalidate(user_id)

    async def _resolve_uncached(self, user_id: str):
        try:
            membership = await self.membership_resolver.lookup_active_membership(user_id)
        except ConfigurationError:
            raise
        except Exception as e:
            if self.strict_membership_lookup:
                if isinstance(e, MembershipLookupError):
                    raise
                if isinstance(e, asyncio.TimeoutError):
                    raise MembershipLookupError("Membership lookup timed out", details={"user_id": user_id}) from e
                raise MembershipLookupError(str(e), details={"user_id": user_id}) from e
            # Fail open to the lowest tier so a store outage does not lock everyone out
            self.logger.error(
                "Membership lookup failed, using default entitlement",
                user_id=user_id,
                error=str(e)
            )
            return self.default_entitlement(EntitlementSource.DEFAULT_LOOKUP_FAILED), False

        if membership is None:
            self.logger.debug("No active membership, using default entitlement", user_id=user_id)
            return self.default_entitlement(EntitlementSource.DEFAULT_NO_MEMBERSHIP), True

        set_user_context(user_id, membership.tenant_id)
        return await self._from_membership(membership)

    async def _from_membership(self, membership: Membership):
        plan = parse_plan(membership.plan)
        role = parse_role(membership.role)
        if role is Role.UNKNOWN:
            self.logger.warning(
                "Unrecognized role, using fallback capabilities",
                tenant_id=membership.tenant_id,
                role=membership.role,
                fallback_role=self.role_catalog.fallback_role.value
            )

        overrides, complete = await self._fetch_overrides(membership.tenant_id)

        entitlement = EffectiveEntitlement(
            plan=plan,
            role=role,
            features=self.plan_catalog.features_for_plan(plan) | overrides,
            capabilities=self.role_catalog.capabilities_for_role(role),
            tenant_id=membership.tenant_id,
            source=EntitlementSource.MEMBERSHIP,
        )
        return entitlement, complete

    async def _fetch_overrides(self, tenant_id: str):
        try:
            return frozenset(await self.override_store.list_enabled_features(tenant_id)), True
        except Exception as e:
            # Any fetch error degrades to plan features only
            self.telemetry.track_override_failure(tenant_id, str(e) or type(e).__name__)
            empty: FrozenSet[str] = frozenset()
            return empty, False
