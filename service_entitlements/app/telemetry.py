"""
Access telemetry: structured events for resolutions, gate decisions and
locked UI surfaces.
"""

from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .catalog.plans import Plan
from .models import AccessDecision, EntitlementSource


def denial_kind(decision: AccessDecision) -> str:
    """Short label for the clause that blocked a decision."""
    reason = decision.reason
    if decision.allowed:
        return "none"
    if reason.needed_plan is not None:
        return "plan"
    if reason.missing_feature is not None:
        return "feature"
    return "capability"


class AccessTelemetry:
    """Emits access events to the structured log and Prometheus."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics
        self.logger = get_logger("entitlements.telemetry")

    def _count(self, metric_name: str, **labels):
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def track_resolution(self, source: EntitlementSource, duration: float):
        self._count("entitlement_resolutions_total", source=source.value)
        if self.metrics is not None:
            self.metrics.observe_histogram("entitlement_resolution_duration_seconds", duration)

    def track_override_failure(self, tenant_id: str, error: str):
        self._count("override_fetch_failures_total")
        self.logger.warning(
            "Tenant feature overrides unavailable, using plan features only",
            tenant_id=tenant_id,
            error=error
        )

    def track_cache(self, hit: bool):
        self._count("entitlement_cache_total", result="hit" if hit else "miss")

    def track_gate_decision(self, decision: AccessDecision, context: str):
        kind = denial_kind(decision)
        self._count(
            "gate_decisions_total",
            decision="allow" if decision.allowed else "deny",
            reason=kind
        )
        self.logger.debug(
            "Gate evaluated",
            allowed=decision.allowed,
            reason=kind,
            plan=decision.reason.current_plan.value,
            context=context
        )

    def track_route_locked(self, path: str, decision: AccessDecision):
        reason = decision.reason
        self._count("access_locked_total", event="route_locked", context=path)
        self.logger.info(
            "route_locked",
            path=path,
            reason=denial_kind(decision),
            plan=reason.current_plan.value,
            needed_plan=reason.needed_plan.value if reason.needed_plan else None,
            feature=reason.missing_feature,
            capability=reason.missing_capability
        )

    def track_action_locked(self, capability: Optional[str], plan: Plan, context: str):
        self._count("access_locked_total", event="action_locked", context=context)
        self.logger.info(
            "action_locked",
            capability=capability or "unknown",
            plan=plan.value,
            context=context
        )

    def track_feature_locked_viewed(self, feature: str, plan: Plan,
                                    needed_plan: Optional[Plan], context: str):
        self._count("access_locked_total", event="feature_locked_viewed", context=context)
        self.logger.info(
            "feature_locked_viewed",
            feature=feature,
            plan=plan.value,
            needed_plan=needed_plan.value if needed_plan else None,
            context=context
        )

    def track_upgrade_shown(self, needed_plan: Optional[Plan], context: str):
        self._count("access_locked_total", event="upgrade_shown", context=context)
        self.logger.info(
            "upgrade_shown",
            needed_plan=needed_plan.value if needed_plan else "addon",
            context=context
        )
