"""
Plan catalog: subscription tiers and the product features each one unlocks.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple, Union

from shared.errors import ConfigurationError


class Plan(str, Enum):
    """Subscription tiers, declared in ascending order."""
    FREE = "free"
    STARTER = "starter"
    GROWTH = "growth"
    SCALE = "scale"
    ENTERPRISE = "enterprise"


PLAN_ORDER: Tuple[Plan, ...] = tuple(Plan)


def parse_plan(value: Union[str, Plan]) -> Plan:
    """Parse an untrusted plan value.

    Unknown values raise ConfigurationError instead of falling back to a
    default tier, since a silently substituted plan changes what a tenant
    can access.
    """
    if isinstance(value, Plan):
        return value
    if isinstance(value, str):
        try:
            return Plan(value.strip().lower())
        except ValueError:
            pass
    raise ConfigurationError(
        f"Unknown plan: {value!r}",
        details={"plan": str(value), "allowed": [p.value for p in PLAN_ORDER]}
    )


# Plan -> features, as served by the access-data endpoint the dashboard uses.
DEFAULT_PLAN_FEATURES: Dict[Plan, List[str]] = {
    Plan.FREE: [
        'attendance.view', 'attendance.mark',
        'results.view',
        'classes.view', 'courses.view', 'students.view',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual',
        'notices.view', 'notices.send',
        'org.manage', 'staff.invite', 'settings.integrations',
    ],
    Plan.STARTER: [
        'attendance.view', 'attendance.mark', 'attendance.bulk_import',
        'results.view', 'results.enter', 'results.export',
        'classes.view', 'classes.crud', 'classes.reschedule',
        'courses.view', 'courses.crud', 'courses.export',
        'students.view', 'students.crud',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual',
        'notices.view', 'notices.send',
        'org.manage', 'staff.invite', 'settings.integrations',
        'analytics.view',
    ],
    Plan.GROWTH: [
        'attendance.view', 'attendance.mark', 'attendance.bulk_import',
        'results.view', 'results.enter', 'results.export',
        'classes.view', 'classes.crud', 'classes.reschedule',
        'courses.view', 'courses.crud', 'courses.export',
        'students.view', 'students.crud',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual', 'fees.online', 'fees.reminders.email',
        'notices.view', 'notices.send', 'notices.analytics',
        'org.manage', 'staff.invite', 'settings.integrations',
        'analytics.view',
        'portal.parent',
        'api.read',
    ],
    Plan.SCALE: [
        'attendance.view', 'attendance.mark', 'attendance.bulk_import',
        'results.view', 'results.enter', 'results.export',
        'classes.view', 'classes.crud', 'classes.reschedule',
        'courses.view', 'courses.crud', 'courses.export',
        'students.view', 'students.crud',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual', 'fees.online', 'fees.reminders.email',
        'fees.reminders.smswa', 'fees.reconcile',
        'notices.view', 'notices.send', 'notices.analytics',
        'org.manage', 'staff.invite', 'settings.integrations',
        'analytics.view',
        'portal.parent',
        'api.read', 'api.rw',
        'auth.sso',
        'audit.logs',
    ],
    Plan.ENTERPRISE: [
        'attendance.view', 'attendance.mark', 'attendance.bulk_import',
        'results.view', 'results.enter', 'results.export',
        'classes.view', 'classes.crud', 'classes.reschedule',
        'courses.view', 'courses.crud', 'courses.export',
        'students.view', 'students.crud',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual', 'fees.online', 'fees.reminders.email',
        'fees.reminders.smswa', 'fees.reconcile', 'fees.advanced',
        'notices.view', 'notices.send', 'notices.analytics',
        'org.manage', 'staff.invite', 'settings.integrations', 'settings.branding',
        'analytics.view',
        'portal.parent',
        'api.read', 'api.rw',
        'auth.sso',
        'audit.logs',
        'admissions.view', 'admissions.crud',
        'syllabus.advanced',
        'integrations.view',
    ],
}


class PlanCatalog:
    """Immutable plan -> feature table with tier ordering."""

    def __init__(self, features_by_plan: Mapping[Plan, Iterable[str]], order: Tuple[Plan, ...] = PLAN_ORDER):
        missing = [plan.value for plan in order if plan not in features_by_plan]
        if missing:
            raise ConfigurationError(
                "Plan catalog is missing plans",
                details={"missing": missing}
            )

        self._order = tuple(order)
        self._ranks = MappingProxyType({plan: index for index, plan in enumerate(self._order)})
        self._features = MappingProxyType({
            plan: frozenset(features_by_plan[plan]) for plan in self._order
        })

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Iterable[str]]) -> "PlanCatalog":
        """Build a catalog from untrusted data (e.g. a JSON document)."""
        features_by_plan: Dict[Plan, List[str]] = {}
        for key, features in raw.items():
            plan = parse_plan(key)
            cleaned = [str(feature).strip() for feature in features]
            if any(not feature for feature in cleaned):
                raise ConfigurationError(
                    "Feature names must be non-empty",
                    details={"plan": plan.value}
                )
            features_by_plan[plan] = cleaned
        return cls(features_by_plan)

    def features_for_plan(self, plan: Plan) -> FrozenSet[str]:
        """Features unlocked by a plan."""
        return self._features[parse_plan(plan)]

    def plan_order(self) -> Tuple[Plan, ...]:
        """Plans in ascending tier order."""
        return self._order

    def rank(self, plan: Plan) -> int:
        """Zero-based position of the plan in plan_order()."""
        return self._ranks[parse_plan(plan)]

    def all_features(self) -> FrozenSet[str]:
        return frozenset().union(*self._features.values())

    def superset_violations(self) -> List[Tuple[Plan, Plan, FrozenSet[str]]]:
        """List (lower, higher, missing) triples where a higher tier loses features.

        The engine never enforces tier monotonicity itself; callers that load
        catalogs from outside the codebase can check it here.
        """
        violations = []
        for index, lower in enumerate(self._order):
            for higher in self._order[index + 1:]:
                missing = self._features[lower] - self._features[higher]
                if missing:
                    violations.append((lower, higher, frozenset(missing)))
        return violations

    def to_dict(self) -> Dict[str, List[str]]:
        return {plan.value: sorted(self._features[plan]) for plan in self._order}


DEFAULT_PLAN_CATALOG = PlanCatalog(DEFAULT_PLAN_FEATURES)
