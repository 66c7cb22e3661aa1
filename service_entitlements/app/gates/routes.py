"""
Navigation route registry and route visibility.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import AccessDecision, EffectiveEntitlement, GateDescriptor, RouteGate, UpgradeHint
from ..telemetry import AccessTelemetry
from .evaluator import GateEvaluator
from .upgrade import UpgradeAdvisor

ROUTE_GATES: Sequence[RouteGate] = (
    RouteGate("/students", "nav.students", "core", GateDescriptor(feature="students.view", needed_plan="free")),
    RouteGate("/courses", "nav.courses", "core", GateDescriptor(feature="courses.view", needed_plan="free")),
    RouteGate("/classes", "nav.classes", "core", GateDescriptor(feature="classes.view", needed_plan="free")),
    RouteGate("/attendance", "labels.attendance", "core",
              GateDescriptor(feature="attendance.view", needed_plan="free")),
    RouteGate("/results", "labels.results", "core", GateDescriptor(feature="results.view", needed_plan="free")),
    RouteGate("/fees", "nav.fees", "core", GateDescriptor(feature="fees.view_overview", needed_plan="free")),
    RouteGate("/analytics", "nav.analytics", "growth",
              GateDescriptor(feature="analytics.view", needed_plan="growth")),
    RouteGate("/settings", "nav.settings", "core", GateDescriptor(capability="org.manage", needed_plan="free")),
)


@dataclass(frozen=True)
class RouteVisibility:
    route: RouteGate
    decision: AccessDecision
    upgrade: Optional[UpgradeHint] = None

    @property
    def allowed(self) -> bool:
        return self.decision.allowed


def visible_routes(entitlement: EffectiveEntitlement,
                   evaluator: GateEvaluator,
                   advisor: UpgradeAdvisor,
                   telemetry: Optional[AccessTelemetry] = None,
                   routes: Sequence[RouteGate] = ROUTE_GATES) -> List[RouteVisibility]:
    """Evaluate every registered route; locked routes carry their upgrade hint."""
    results = []
    for route in routes:
        decision = evaluator.check(entitlement, route.gate)
        if decision.allowed:
            results.append(RouteVisibility(route=route, decision=decision))
            continue
        if telemetry is not None:
            telemetry.track_route_locked(route.path, decision)
        results.append(RouteVisibility(route=route, decision=decision, upgrade=advisor.hint_for(decision)))
    return results
