"""
Gate evaluation engine for the Entitlements Service.
"""

from typing import Dict

from ..catalog.plans import Plan, PlanCatalog, DEFAULT_PLAN_CATALOG
from ..models import AccessDecision, DenialReason, EffectiveEntitlement, GateDescriptor


class GateEvaluator:
    """Evaluates (capability AND feature AND plan-rank) gates.

    Evaluation is pure: no I/O, no counters, no exceptions for unknown
    feature or capability tags (they simply fail their clause). An empty
    gate is satisfied, so sensitive call sites must always name at least
    one requirement.
    """

    def __init__(self, plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG):
        self.plan_catalog = plan_catalog

    def allow(self, entitlement: EffectiveEntitlement, gate: GateDescriptor) -> bool:
        """Return True when every clause of the gate holds."""
        return self.check(entitlement, gate).allowed

    def check(self, entitlement: EffectiveEntitlement, gate: GateDescriptor) -> AccessDecision:
        """Evaluate a gate and report the first failing clause.

        Clauses are checked plan rank first, then feature, then capability,
        so the reason points at the cheapest fix (an upgrade) when several
        clauses fail.
        """
        current = entitlement.plan

        if gate.needed_plan is not None and not self.meets_plan(current, gate.needed_plan):
            return AccessDecision(
                allowed=False,
                reason=DenialReason(current_plan=current, needed_plan=gate.needed_plan)
            )

        if gate.feature is not None and gate.feature not in entitlement.features:
            return AccessDecision(
                allowed=False,
                reason=DenialReason(current_plan=current, missing_feature=gate.feature)
            )

        if gate.capability is not None and gate.capability not in entitlement.capabilities:
            return AccessDecision(
                allowed=False,
                reason=DenialReason(current_plan=current, missing_capability=gate.capability)
            )

        return AccessDecision(allowed=True, reason=DenialReason(current_plan=current))

    def meets_plan(self, current: Plan, needed: Plan) -> bool:
        return self.plan_catalog.rank(current) >= self.plan_catalog.rank(needed)

    def allow_all(self, entitlement: EffectiveEntitlement,
                  gates: Dict[str, GateDescriptor]) -> Dict[str, bool]:
        """Evaluate several named gates against one entitlement."""
        return {name: self.allow(entitlement, gate) for name, gate in gates.items()}
