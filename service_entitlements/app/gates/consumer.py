"""
Gate consumer contract: what a protected UI element should render.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..models import AccessDecision, EffectiveEntitlement, GateDescriptor, UpgradeHint
from ..telemetry import AccessTelemetry
from .evaluator import GateEvaluator
from .upgrade import UpgradeAdvisor


class RenderMode(str, Enum):
    """How a blocked element should degrade."""
    HIDE = "hide"
    DISABLE = "disable"
    FALLBACK = "fallback"
    SOFT_LOCK = "soft_lock"


class GateOutcome(str, Enum):
    """What the consumer renders."""
    CONTENT = "content"
    NOTHING = "nothing"
    DISABLED = "disabled"
    FALLBACK = "fallback"
    UPGRADE_HINT = "upgrade_hint"


@dataclass(frozen=True)
class GateView:
    outcome: GateOutcome
    decision: AccessDecision
    hint: Optional[UpgradeHint] = None
    fallback: Any = None


class GateConsumer:
    """Maps a gate decision to a render outcome and records locked views."""

    def __init__(self, evaluator: GateEvaluator, advisor: UpgradeAdvisor,
                 telemetry: Optional[AccessTelemetry] = None):
        self.evaluator = evaluator
        self.advisor = advisor
        self.telemetry = telemetry or AccessTelemetry()

    def render(self, entitlement: EffectiveEntitlement, gate: GateDescriptor,
               mode: RenderMode = RenderMode.SOFT_LOCK, fallback: Any = None,
               context: str = "gate") -> GateView:
        decision = self.evaluator.check(entitlement, gate)
        if decision.allowed:
            return GateView(outcome=GateOutcome.CONTENT, decision=decision)

        hint = self.advisor.hint_for(decision)
        self._record_locked(entitlement, gate, decision, hint, context)

        if mode == RenderMode.HIDE:
            return GateView(outcome=GateOutcome.NOTHING, decision=decision)

        if mode == RenderMode.DISABLE:
            return GateView(outcome=GateOutcome.DISABLED, decision=decision, hint=hint)

        if mode == RenderMode.FALLBACK:
            if fallback is not None:
                return GateView(outcome=GateOutcome.FALLBACK, decision=decision, fallback=fallback)
            return GateView(outcome=GateOutcome.UPGRADE_HINT, decision=decision, hint=hint)

        # Soft lock: only plan or feature denials can be fixed by upgrading
        if hint is not None and hint.needed_plan is not None:
            return GateView(outcome=GateOutcome.UPGRADE_HINT, decision=decision, hint=hint)
        if fallback is not None:
            return GateView(outcome=GateOutcome.FALLBACK, decision=decision, fallback=fallback)
        return GateView(outcome=GateOutcome.NOTHING, decision=decision)

    def _record_locked(self, entitlement: EffectiveEntitlement, gate: GateDescriptor,
                       decision: AccessDecision, hint: Optional[UpgradeHint], context: str):
        reason = decision.reason
        if reason.missing_capability is not None:
            self.telemetry.track_action_locked(gate.capability, entitlement.plan, context)
        elif reason.missing_feature is not None:
            self.telemetry.track_feature_locked_viewed(
                reason.missing_feature, entitlement.plan, hint.needed_plan if hint else None, context
            )
        if hint is not None and hint.needed_plan is not None:
            self.telemetry.track_upgrade_shown(hint.needed_plan, context)
