"""
Catalog package.

Fixed, process-wide configuration tables consumed by the resolver:

- plans: subscription tiers (ascending) and the features each unlocks.
- roles: organisational roles and the capabilities each grants.

Both catalogs are immutable once built. The defaults are module-level
instances, but every consumer takes a catalog as a constructor argument
so alternate tables can be injected in tests.
"""

from .plans import Plan, PlanCatalog, PLAN_ORDER, DEFAULT_PLAN_CATALOG, parse_plan
from .roles import Role, RoleCapabilityCatalog, KNOWN_ROLES, DEFAULT_ROLE_CATALOG, parse_role

__all__ = [
    "Plan",
    "PlanCatalog",
    "PLAN_ORDER",
    "DEFAULT_PLAN_CATALOG",
    "parse_plan",
    "Role",
    "RoleCapabilityCatalog",
    "KNOWN_ROLES",
    "DEFAULT_ROLE_CATALOG",
    "parse_role",
]
