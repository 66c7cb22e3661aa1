"""
Gate evaluation, upgrade hints and the consumer render contract.
"""

from .evaluator import GateEvaluator
from .upgrade import UpgradeAdvisor, minimum_plan_for, plan_label
from .consumer import GateConsumer, GateOutcome, GateView, RenderMode
from .routes import ROUTE_GATES, RouteVisibility, visible_routes
from ..models import EffectiveEntitlement, GateDescriptor

_default_evaluator = GateEvaluator()


def allow(entitlement: EffectiveEntitlement, gate: GateDescriptor) -> bool:
    """Evaluate a gate against the default plan catalog."""
    return _default_evaluator.allow(entitlement, gate)


__all__ = [
    "GateEvaluator",
    "UpgradeAdvisor",
    "minimum_plan_for",
    "plan_label",
    "GateConsumer",
    "GateOutcome",
    "GateView",
    "RenderMode",
    "ROUTE_GATES",
    "RouteVisibility",
    "visible_routes",
    "allow",
]
