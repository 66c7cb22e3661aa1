"""
Minimum-plan lookup and upgrade messaging for blocked gates.
"""

from typing import Optional

from ..catalog.plans import Plan, PlanCatalog, DEFAULT_PLAN_CATALOG
from ..models import AccessDecision, UpgradeHint

PERMISSION_MESSAGE = "You do not have permission to access this area."
UNAVAILABLE_MESSAGE = "This feature is not available on any plan."


def minimum_plan_for(feature: str, plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG) -> Optional[Plan]:
    """Cheapest plan, by catalog order, whose feature set contains the feature.

    Returns None when no plan grants it, which usually means a misspelled
    feature name at the call site. Relies on the catalog's tiers being
    supersets of each other: the first match is treated as authoritative.
    """
    for plan in plan_catalog.plan_order():
        if feature in plan_catalog.features_for_plan(plan):
            return plan
    return None


def plan_label(plan: Plan) -> str:
    return f"Requires {plan.value.upper()} plan"


class UpgradeAdvisor:
    """Turns gate denials into upgrade hints for the UI."""

    def __init__(self, plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG, billing_url: str = "/billing"):
        self.plan_catalog = plan_catalog
        self.billing_url = billing_url

    def minimum_plan_for(self, feature: str) -> Optional[Plan]:
        return minimum_plan_for(feature, self.plan_catalog)

    def hint_for(self, decision: AccessDecision) -> Optional[UpgradeHint]:
        """Build the hint for a denied decision; None when the gate passed."""
        if decision.allowed:
            return None

        reason = decision.reason

        if reason.needed_plan is not None:
            return UpgradeHint(
                message=plan_label(reason.needed_plan),
                needed_plan=reason.needed_plan,
                cta_href=self.billing_url,
            )

        if reason.missing_feature is not None:
            needed = self.minimum_plan_for(reason.missing_feature)
            if needed is None:
                return UpgradeHint(message=UNAVAILABLE_MESSAGE, feature=reason.missing_feature)
            return UpgradeHint(
                message=plan_label(needed),
                needed_plan=needed,
                feature=reason.missing_feature,
                cta_href=self.billing_url,
            )

        # Role-level denial: upgrading the plan would not help
        return UpgradeHint(message=PERMISSION_MESSAGE)
