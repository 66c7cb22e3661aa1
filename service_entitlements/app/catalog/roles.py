"""
Role capability catalog: what each organisational role may do.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple, Union

from shared.errors import ConfigurationError


class Role(str, Enum):
    """Organisational roles within a tenant."""
    OWNER = "owner"
    ADMIN = "admin"
    TEACHER = "teacher"
    ADMISSIONS = "admissions"
    FINANCE = "finance"
    PARENT = "parent"
    STUDENT = "student"
    # Any role string the catalog does not know about
    UNKNOWN = "unknown"


KNOWN_ROLES = tuple(role for role in Role if role is not Role.UNKNOWN)

# Capability set used for Role.UNKNOWN
FALLBACK_ROLE = Role.TEACHER


def parse_role(value: Union[str, Role, None], strict: bool = False) -> Role:
    """Parse a role read from storage or a request.

    Unrecognised roles map to Role.UNKNOWN (which carries the teacher
    capability set). With strict=True they raise ConfigurationError instead.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            role = Role(value.strip().lower())
        except ValueError:
            role = None
        if role is not None and (role is not Role.UNKNOWN or not strict):
            return role
    if strict:
        raise ConfigurationError(
            f"Unknown role: {value!r}",
            details={"role": str(value), "allowed": [r.value for r in KNOWN_ROLES]}
        )
    return Role.UNKNOWN


# Role -> capabilities. Plan-agnostic: plan gating happens through features.
DEFAULT_ROLE_CAPABILITIES: Dict[Role, List[str]] = {
    Role.OWNER: [
        'classes.view', 'classes.crud', 'classes.take_attendance',
        'courses.view', 'courses.crud',
        'students.view', 'students.crud',
        'results.view', 'results.enter',
        'notices.send', 'notices.view',
        'org.manage', 'staff.invite',
        'settings.integrations', 'settings.branding',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual',
        'analytics.view',
        'portal.parent',
        'api.read', 'api.rw',
        'auth.sso',
        'audit.logs',
        'admissions.view', 'admissions.crud',
        'syllabus.advanced',
        'integrations.view',
    ],
    Role.ADMIN: [
        'classes.view', 'classes.crud', 'classes.take_attendance',
        'courses.view', 'courses.crud',
        'students.view', 'students.crud',
        'results.view', 'results.enter',
        'notices.send', 'notices.view',
        'org.manage', 'staff.invite',
        'settings.integrations',
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual',
        'analytics.view',
        'portal.parent',
        'api.read',
    ],
    Role.TEACHER: [
        'classes.view', 'classes.take_attendance',
        'courses.view',
        'students.view',
        'results.view', 'results.enter',
        'notices.send', 'notices.view',
        'attendance.view', 'attendance.mark',
    ],
    Role.ADMISSIONS: [
        'admissions.view', 'admissions.crud',
        'students.view', 'students.crud',
        'notices.view', 'notices.send',
    ],
    Role.FINANCE: [
        'fees.view_overview', 'fees.structures.basic', 'fees.record_manual',
        'analytics.view',
        'students.view',
    ],
    Role.PARENT: [
        'students.view',
        'results.view',
        'attendance.view',
        'notices.view',
    ],
    Role.STUDENT: [
        'results.view',
        'attendance.view',
        'notices.view',
    ],
}


class RoleCapabilityCatalog:
    """Immutable role -> capability table."""

    def __init__(self, capabilities_by_role: Mapping[Role, Iterable[str]], fallback_role: Role = FALLBACK_ROLE):
        missing = [role.value for role in KNOWN_ROLES if role not in capabilities_by_role]
        if missing:
            raise ConfigurationError(
                "Role catalog is missing roles",
                details={"missing": missing}
            )
        if fallback_role is Role.UNKNOWN:
            raise ConfigurationError("Fallback role must be a known role")

        self._fallback_role = fallback_role
        self._capabilities = MappingProxyType({
            role: frozenset(capabilities_by_role[role]) for role in KNOWN_ROLES
        })

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Iterable[str]]) -> "RoleCapabilityCatalog":
        """Build a catalog from untrusted data; unknown role keys are rejected."""
        capabilities_by_role: Dict[Role, List[str]] = {}
        for key, capabilities in raw.items():
            role = parse_role(key, strict=True)
            capabilities_by_role[role] = [str(cap).strip() for cap in capabilities]
        return cls(capabilities_by_role)

    @property
    def fallback_role(self) -> Role:
        return self._fallback_role

    def capabilities_for_role(self, role: Union[str, Role, None]) -> FrozenSet[str]:
        """Capabilities granted to a role."""
        parsed = parse_role(role)
        if parsed is Role.UNKNOWN:
            return self._capabilities[self._fallback_role]
        return self._capabilities[parsed]

    def roles(self) -> Tuple[Role, ...]:
        return KNOWN_ROLES

    def to_dict(self) -> Dict[str, List[str]]:
        return {role.value: sorted(self._capabilities[role]) for role in KNOWN_ROLES}


DEFAULT_ROLE_CATALOG = RoleCapabilityCatalog(DEFAULT_ROLE_CAPABILITIES)
