"""
Lookup interfaces the resolver depends on, plus an in-memory implementation.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol

from shared.errors import MembershipLookupError, OverrideFetchError
from ..models import Membership


class MembershipResolver(Protocol):
    """Finds a user's active tenant membership.

    Implementations return None when the user has no active membership and
    raise MembershipLookupError when the backing store cannot answer.
    """

    async def lookup_active_membership(self, user_id: str) -> Optional[Membership]:
        ...


class TenantFeatureOverrideStore(Protocol):
    """Per-tenant features granted on top of the plan.

    Implementations raise OverrideFetchError when the store cannot answer.
    """

    async def list_enabled_features(self, tenant_id: str) -> FrozenSet[str]:
        ...


class InMemoryMembershipStore:
    """Dict-backed membership and override store for local runs and tests."""

    def __init__(self, memberships: Optional[Iterable[Membership]] = None,
                 overrides: Optional[Dict[str, Iterable[str]]] = None):
        self._memberships: Dict[str, List[Membership]] = {}
        self._overrides: Dict[str, FrozenSet[str]] = {}
        self.fail_membership_lookups = False
        self.fail_override_fetches = False

        for membership in memberships or []:
            self.add_membership(membership)
        for tenant_id, features in (overrides or {}).items():
            self.set_overrides(tenant_id, features)

    def add_membership(self, membership: Membership):
        self._memberships.setdefault(membership.user_id, []).append(membership)

    def remove_memberships(self, user_id: str):
        self._memberships.pop(user_id, None)

    def set_overrides(self, tenant_id: str, features: Iterable[str]):
        self._overrides[tenant_id] = frozenset(features)

    async def lookup_active_membership(self, user_id: str) -> Optional[Membership]:
        if self.fail_membership_lookups:
            raise MembershipLookupError("In-memory store configured to fail", details={"user_id": user_id})

        for membership in self._memberships.get(user_id, []):
            if membership.is_active:
                return membership
        return None

    async def list_enabled_features(self, tenant_id: str) -> FrozenSet[str]:
        if self.fail_override_fetches:
            raise OverrideFetchError("In-memory store configured to fail", details={"tenant_id": tenant_id})
        return self._overrides.get(tenant_id, frozenset())

    async def health_check(self) -> bool:
        return not self.fail_membership_lookups
