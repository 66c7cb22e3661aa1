"""
Entitlement data models for the Entitlements Service.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from shared.errors import ConfigurationError
from .catalog.plans import Plan, parse_plan
from .catalog.roles import Role


class MembershipStatus(str, Enum):
    """Tenant membership states; only ACTIVE is honoured."""
    ACTIVE = "active"
    INVITED = "invited"
    SUSPENDED = "suspended"


class EntitlementSource(str, Enum):
    """Where an effective entitlement came from."""
    MEMBERSHIP = "membership"
    DEFAULT_NO_MEMBERSHIP = "default_no_membership"
    DEFAULT_LOOKUP_FAILED = "default_lookup_failed"


@dataclass(frozen=True)
class Membership:
    """An externally resolved tenant membership joined with the tenant's plan."""
    user_id: str
    tenant_id: str
    role: str
    plan: str
    status: MembershipStatus = MembershipStatus.ACTIVE
    tenant_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE


@dataclass(frozen=True)
class EffectiveEntitlement:
    """Resolved plan, role, features and capabilities for one user."""
    plan: Plan
    role: Role
    features: FrozenSet[str]
    capabilities: FrozenSet[str]
    tenant_id: Optional[str] = None
    source: EntitlementSource = EntitlementSource.MEMBERSHIP

    @property
    def is_default(self) -> bool:
        return self.source != EntitlementSource.MEMBERSHIP

    def has_feature(self, feature: str) -> bool:
        return feature in self.features

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.value,
            "role": self.role.value,
            "features": sorted(self.features),
            "capabilities": sorted(self.capabilities),
            "tenant_id": self.tenant_id,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EffectiveEntitlement":
        return cls(
            plan=parse_plan(data["plan"]),
            role=Role(data["role"]),
            features=frozenset(data.get("features", [])),
            capabilities=frozenset(data.get("capabilities", [])),
            tenant_id=data.get("tenant_id"),
            source=EntitlementSource(data.get("source", EntitlementSource.MEMBERSHIP.value)),
        )


def _check_tag(kind: str, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(
            f"Gate {kind} must be a non-empty string",
            details={kind: repr(value)}
        )
    return value.strip()


@dataclass(frozen=True)
class GateDescriptor:
    """Point-of-use access requirement; omitted fields are satisfied."""
    capability: Optional[str] = None
    feature: Optional[str] = None
    needed_plan: Optional[Union[Plan, str]] = None

    def __post_init__(self):
        object.__setattr__(self, "capability", _check_tag("capability", self.capability))
        object.__setattr__(self, "feature", _check_tag("feature", self.feature))
        if self.needed_plan is not None:
            object.__setattr__(self, "needed_plan", parse_plan(self.needed_plan))

    @property
    def is_open(self) -> bool:
        return self.capability is None and self.feature is None and self.needed_plan is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GateDescriptor":
        """Accept both snake_case and the dashboard's {cap, feature, neededPlan} keys."""
        return cls(
            capability=data.get("capability", data.get("cap")),
            feature=data.get("feature"),
            needed_plan=data.get("needed_plan", data.get("neededPlan")),
        )


@dataclass(frozen=True)
class DenialReason:
    """Why a gate evaluated the way it did."""
    current_plan: Plan
    needed_plan: Optional[Plan] = None
    missing_feature: Optional[str] = None
    missing_capability: Optional[str] = None


@dataclass(frozen=True)
class AccessDecision:
    """Result of a gate check."""
    allowed: bool
    reason: DenialReason


@dataclass(frozen=True)
class UpgradeHint:
    """Upgrade messaging for a blocked gate."""
    message: str
    needed_plan: Optional[Plan] = None
    feature: Optional[str] = None
    cta_href: Optional[str] = None


@dataclass(frozen=True)
class RouteGate:
    """A navigation route guarded by a gate."""
    path: str
    label_key: str
    module: str
    gate: GateDescriptor = field(default_factory=GateDescriptor)


# API models


class GateModel(BaseModel):
    """Gate descriptor as sent by callers."""
    model_config = ConfigDict(populate_by_name=True)

    capability: Optional[str] = Field(
        None, validation_alias=AliasChoices("capability", "cap"), description="Required capability"
    )
    feature: Optional[str] = Field(None, description="Required feature")
    needed_plan: Optional[str] = Field(
        None, validation_alias=AliasChoices("needed_plan", "neededPlan"), description="Minimum plan"
    )

    def to_descriptor(self) -> GateDescriptor:
        return GateDescriptor(
            capability=self.capability,
            feature=self.feature,
            needed_plan=self.needed_plan,
        )


class ResolveRequest(BaseModel):
    """Request model for entitlement resolution."""
    user_id: str = Field(..., min_length=1, description="User ID")


class InvalidateRequest(BaseModel):
    """Request model for cache invalidation."""
    user_id: str = Field(..., min_length=1, description="User ID")


class EntitlementResponse(BaseModel):
    """Response model for a resolved entitlement."""
    user_id: str
    tenant_id: Optional[str] = None
    plan: Plan
    role: Role
    features: List[str]
    capabilities: List[str]
    source: EntitlementSource

    @classmethod
    def from_entitlement(cls, user_id: str, entitlement: EffectiveEntitlement) -> "EntitlementResponse":
        return cls(user_id=user_id, **entitlement.to_dict())


class GateCheckRequest(BaseModel):
    """Request model for a gate check."""
    user_id: str = Field(..., min_length=1, description="User ID")
    gate: GateModel = Field(default_factory=GateModel, description="Gate descriptor")
    context: str = Field("api", description="Call site tag for telemetry")


class DenialReasonModel(BaseModel):
    current_plan: Plan
    needed_plan: Optional[Plan] = None
    missing_feature: Optional[str] = None
    missing_capability: Optional[str] = None


class UpgradeHintModel(BaseModel):
    message: str
    needed_plan: Optional[Plan] = None
    feature: Optional[str] = None
    cta_href: Optional[str] = None


class GateCheckResponse(BaseModel):
    """Response model for a gate check."""
    allowed: bool = Field(..., description="Whether the gate is satisfied")
    reason: DenialReasonModel
    upgrade: Optional[UpgradeHintModel] = None


class RouteVisibilityResponse(BaseModel):
    path: str
    label_key: str
    module: str
    allowed: bool
    upgrade: Optional[UpgradeHintModel] = None


class MinimumPlanResponse(BaseModel):
    feature: str
    minimum_plan: Optional[Plan] = None
    granted: bool
