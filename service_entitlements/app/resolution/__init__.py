"""
Entitlement resolution.
"""

from .ports import InMemoryMembershipStore, MembershipResolver, TenantFeatureOverrideStore
from .resolver import DEFAULT_PLAN, DEFAULT_ROLE, EntitlementResolver

__all__ = [
    "InMemoryMembershipStore",
    "MembershipResolver",
    "TenantFeatureOverrideStore",
    "EntitlementResolver",
    "DEFAULT_PLAN",
    "DEFAULT_ROLE",
]
