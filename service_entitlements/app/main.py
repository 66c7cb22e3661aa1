"""
Entitlements service for the Campus Access Layer.

/entitlements/me and /entitlements/routes authenticate the bearer token.
Routes tagged "internal" take a user_id from the body and must only be
reachable from other Campus services (the gateway, billing webhooks).
"""

from dataclasses import asdict
from typing import List, Optional

from fastapi import Header

from shared.base_service import BaseService
from shared.circuit_breaker import CircuitBreaker
from shared.config import ServiceConfig
from shared.errors import ConfigurationError, ExternalServiceError
from shared.logging import set_user_context

from .auth.token import TokenVerifier
from .cache.redis_cache import EntitlementCache
from .catalog.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from .catalog.roles import DEFAULT_ROLE_CATALOG, RoleCapabilityCatalog
from .gates.evaluator import GateEvaluator
from .gates.routes import visible_routes
from .gates.upgrade import UpgradeAdvisor
from .models import (
    AccessDecision, EffectiveEntitlement, UpgradeHint,
    ResolveRequest, InvalidateRequest, EntitlementResponse,
    GateCheckRequest, GateCheckResponse, DenialReasonModel, UpgradeHintModel,
    RouteVisibilityResponse, MinimumPlanResponse
)
from .persistence.postgres import PostgresMembershipStore
from .resolution.ports import InMemoryMembershipStore
from .resolution.resolver import EntitlementResolver
from .telemetry import AccessTelemetry

SERVICE_NAME = "entitlements"
SERVICE_PORT = 8011


def _hint_model(hint: Optional[UpgradeHint]) -> Optional[UpgradeHintModel]:
    if hint is None:
        return None
    return UpgradeHintModel(**asdict(hint))


def _reason_model(decision: AccessDecision) -> DenialReasonModel:
    return DenialReasonModel(**asdict(decision.reason))


class EntitlementsService(BaseService):
    """Entitlements service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        membership_store=None,
        cache: Optional[EntitlementCache] = None,
        plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG,
        role_catalog: RoleCapabilityCatalog = DEFAULT_ROLE_CATALOG
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.telemetry = AccessTelemetry(self.metrics)
        self.membership_store = membership_store or self._build_membership_store()
        self.cache = cache
        if self.cache is None and self.config.entitlement_cache_enabled:
            self.cache = EntitlementCache(self.config.redis_url, self.config.entitlement_cache_ttl_seconds)

        self.plan_catalog = plan_catalog
        self.role_catalog = role_catalog
        self.resolver = EntitlementResolver(
            membership_resolver=self.membership_store,
            override_store=self.membership_store,
            plan_catalog=plan_catalog,
            role_catalog=role_catalog,
            telemetry=self.telemetry,
            strict_membership_lookup=self.config.strict_membership_lookup,
            cache=self.cache
        )
        self.evaluator = GateEvaluator(plan_catalog)
        self.advisor = UpgradeAdvisor(plan_catalog, billing_url=self.config.billing_url)
        self.token_verifier = TokenVerifier(
            self.config.jwt_secret,
            algorithms=self.config.jwt_algorithms,
            audience=self.config.jwt_audience
        )

        self._setup_entitlements_routes()

    def _build_membership_store(self):
        if self.config.membership_backend == "postgres":
            breaker = CircuitBreaker(
                failure_threshold=self.config.membership_breaker_threshold,
                recovery_timeout=self.config.membership_breaker_recovery_seconds,
                name="membership_db"
            )
            return PostgresMembershipStore(self.config.postgres_dsn, breaker=breaker)
        if self.config.membership_backend != "memory":
            raise ConfigurationError(
                f"Unknown membership backend: {self.config.membership_backend!r}",
                details={"allowed": ["memory", "postgres"]}
            )
        self.logger.warning("Using in-memory membership store; every user resolves to the default entitlement")
        return InMemoryMembershipStore()

    async def _resolve(self, user_id: str) -> EffectiveEntitlement:
        try:
            return await self.resolver.resolve(user_id)
        except ConfigurationError as e:
            # Bad plan or role values in the membership store, not in the request
            self.logger.error("Stored membership data is invalid", user_id=user_id, error=e.message)
            raise ExternalServiceError("membership", e.message, details=e.details, code=e.code) from e

    def _setup_entitlements_routes(self):
        """Set up entitlements-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Campus Access Layer - Entitlements Service",
                "version": "1.0.0",
                "capabilities": ["plan_catalog", "role_catalog", "gates", "upgrade_hints"]
            }

        @self.app.get("/entitlements/me", response_model=EntitlementResponse, tags=["entitlements"])
        async def get_my_entitlements(authorization: Optional[str] = Header(None)):
            """Resolve entitlements for the bearer of the access token."""
            user_id = self.token_verifier.authenticate(authorization)
            set_user_context(user_id)
            entitlement = await self._resolve(user_id)
            return EntitlementResponse.from_entitlement(user_id, entitlement)

        @self.app.post("/entitlements/resolve", response_model=EntitlementResponse, tags=["internal"])
        async def resolve_entitlements(request: ResolveRequest):
            """Resolve entitlements for a user id.

            Internal: trusts the caller's user_id. Expose only on the service network.
            """
            set_user_context(request.user_id)
            entitlement = await self._resolve(request.user_id)
            return EntitlementResponse.from_entitlement(request.user_id, entitlement)

        @self.app.post("/entitlements/check", response_model=GateCheckResponse, tags=["internal"])
        async def check_gate(request: GateCheckRequest):
            """Evaluate a gate for a user. Internal, like /entitlements/resolve."""
            gate = request.gate.to_descriptor()
            set_user_context(request.user_id)
            entitlement = await self._resolve(request.user_id)

            decision = self.evaluator.check(entitlement, gate)
            self.telemetry.track_gate_decision(decision, request.context)

            return GateCheckResponse(
                allowed=decision.allowed,
                reason=_reason_model(decision),
                upgrade=_hint_model(self.advisor.hint_for(decision))
            )

        @self.app.get("/entitlements/routes", response_model=List[RouteVisibilityResponse], tags=["entitlements"])
        async def get_route_visibility(authorization: Optional[str] = Header(None)):
            """Navigation routes with their lock state for the token bearer."""
            user_id = self.token_verifier.authenticate(authorization)
            set_user_context(user_id)
            entitlement = await self._resolve(user_id)

            return [
                RouteVisibilityResponse(
                    path=item.route.path,
                    label_key=item.route.label_key,
                    module=item.route.module,
                    allowed=item.allowed,
                    upgrade=_hint_model(item.upgrade)
                )
                for item in visible_routes(entitlement, self.evaluator, self.advisor, self.telemetry)
            ]

        @self.app.post("/entitlements/invalidate", tags=["internal"])
        async def invalidate_entitlements(request: InvalidateRequest):
            """Drop cached entitlements after a plan, role or override change."""
            invalidated = await self.resolver.invalidate(request.user_id)
            self.metrics.record_business_event("entitlements_invalidated")
            return {"user_id": request.user_id, "invalidated": invalidated}

        @self.app.get("/catalog/plans")
        async def get_plans():
            """Plan tiers in ascending order with their features."""
            return {
                "order": [plan.value for plan in self.plan_catalog.plan_order()],
                "plans": self.plan_catalog.to_dict()
            }

        @self.app.get("/catalog/roles")
        async def get_roles():
            """Role capability table."""
            return {
                "roles": self.role_catalog.to_dict(),
                "fallback_role": self.role_catalog.fallback_role.value
            }

        @self.app.get("/catalog/features/{feature}/minimum-plan", response_model=MinimumPlanResponse)
        async def get_minimum_plan(feature: str):
            """Cheapest plan that unlocks a feature."""
            minimum_plan = self.advisor.minimum_plan_for(feature)
            return MinimumPlanResponse(
                feature=feature,
                minimum_plan=minimum_plan,
                granted=minimum_plan is not None
            )

    async def _check_dependencies(self):
        """Check entitlements service dependencies."""
        dependencies = {}

        store_name = "postgres" if isinstance(self.membership_store, PostgresMembershipStore) else "membership_store"
        try:
            if await self.membership_store.health_check():
                dependencies[store_name] = "ok"
            else:
                dependencies[store_name] = "error"
        except Exception:
            dependencies[store_name] = "error"

        if self.cache is not None:
            try:
                if await self.cache.health_check():
                    dependencies["redis"] = "ok"
                else:
                    dependencies["redis"] = "error"
            except Exception:
                dependencies["redis"] = "error"

        return dependencies

    async def start(self):
        """Start entitlements service components."""
        if isinstance(self.membership_store, PostgresMembershipStore):
            await self.membership_store.start()
        if self.cache is not None:
            await self.cache.start()

        self.logger.info(
            "Entitlements service started",
            membership_backend=type(self.membership_store).__name__,
            cache_enabled=self.cache is not None,
            strict_membership_lookup=self.config.strict_membership_lookup
        )

    async def stop(self):
        """Stop entitlements service components."""
        if isinstance(self.membership_store, PostgresMembershipStore):
            await self.membership_store.stop()
        if self.cache is not None:
            await self.cache.stop()

        self.logger.info("Entitlements service stopped")


def create_app():
    """Create entitlements service application."""
    service = EntitlementsService()
    return service.app


if __name__ == "__main__":
    service = EntitlementsService()
    service.run()
