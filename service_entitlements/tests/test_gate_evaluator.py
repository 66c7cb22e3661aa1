"""
Unit tests for the gate evaluator.
"""

import pytest

from shared.errors import ConfigurationError
from shared.test_helpers import make_entitlement
from service_entitlements.app.catalog.plans import Plan, PLAN_ORDER
from service_entitlements.app.catalog.roles import Role
from service_entitlements.app.gates import allow
from service_entitlements.app.gates.evaluator import GateEvaluator
from service_entitlements.app.models import EntitlementSource, GateDescriptor


class TestGateEvaluator:
    """Test cases for GateEvaluator."""

    @pytest.fixture
    def evaluator(self):
        return GateEvaluator()

    @pytest.fixture
    def growth_admin(self):
        return make_entitlement(Plan.GROWTH, Role.ADMIN)

    @pytest.fixture
    def free_teacher(self):
        return make_entitlement(Plan.FREE, Role.TEACHER)

    @pytest.mark.parametrize("plan", PLAN_ORDER)
    def test_empty_gate_allows(self, evaluator, plan):
        assert evaluator.allow(make_entitlement(plan, Role.STUDENT), GateDescriptor()) is True

    def test_growth_admin_analytics(self, evaluator, growth_admin):
        gate = GateDescriptor(feature="analytics.view", needed_plan="starter")
        assert evaluator.allow(growth_admin, gate) is True

    def test_free_teacher_cannot_create_classes(self, evaluator, free_teacher):
        gate = GateDescriptor(capability="classes.create", needed_plan="starter")
        assert evaluator.allow(free_teacher, gate) is False

    def test_unaffiliated_user_needs_growth(self, evaluator):
        default = make_entitlement(tenant_id=None, source=EntitlementSource.DEFAULT_NO_MEMBERSHIP)
        assert evaluator.allow(default, GateDescriptor(needed_plan=Plan.GROWTH)) is False

    def test_override_feature_opens_gate(self, evaluator):
        starter = make_entitlement(Plan.STARTER, Role.FINANCE, extra_features=["fees.online"])
        assert evaluator.allow(starter, GateDescriptor(feature="fees.online")) is True

    def test_unknown_tags_fail_closed(self, evaluator, growth_admin):
        assert evaluator.allow(growth_admin, GateDescriptor(feature="teleport.students")) is False
        assert evaluator.allow(growth_admin, GateDescriptor(capability="teleport.students")) is False

    def test_plan_rank_equal_passes(self, evaluator):
        scale = make_entitlement(Plan.SCALE, Role.OWNER)
        assert evaluator.allow(scale, GateDescriptor(needed_plan="scale")) is True
        assert evaluator.allow(scale, GateDescriptor(needed_plan="enterprise")) is False

    def test_allow_is_pure(self, evaluator, growth_admin):
        gate = GateDescriptor(capability="org.manage", feature="analytics.view", needed_plan="growth")
        results = {evaluator.allow(growth_admin, gate) for _ in range(5)}
        assert results == {True}

    def test_module_level_allow(self, growth_admin):
        assert allow(growth_admin, GateDescriptor(capability="org.manage")) is True

    def test_allow_all(self, evaluator, free_teacher):
        results = evaluator.allow_all(free_teacher, {
            "attendance": GateDescriptor(feature="attendance.view"),
            "analytics": GateDescriptor(feature="analytics.view", needed_plan="growth"),
            "settings": GateDescriptor(capability="org.manage"),
        })
        assert results == {"attendance": True, "analytics": False, "settings": False}


class TestGateCheck:
    """Test cases for GateEvaluator.check denial reasons."""

    @pytest.fixture
    def evaluator(self):
        return GateEvaluator()

    def test_allowed_reason_carries_plan(self, evaluator):
        decision = evaluator.check(make_entitlement(Plan.GROWTH, Role.ADMIN), GateDescriptor())
        assert decision.allowed is True
        assert decision.reason.current_plan == Plan.GROWTH
        assert decision.reason.needed_plan is None

    def test_plan_reported_before_feature_and_capability(self, evaluator):
        free_student = make_entitlement(Plan.FREE, Role.STUDENT)
        gate = GateDescriptor(capability="org.manage", feature="analytics.view", needed_plan="growth")

        decision = evaluator.check(free_student, gate)

        assert decision.allowed is False
        assert decision.reason.needed_plan == Plan.GROWTH
        assert decision.reason.missing_feature is None
        assert decision.reason.missing_capability is None

    def test_feature_reported_before_capability(self, evaluator):
        free_student = make_entitlement(Plan.FREE, Role.STUDENT)
        gate = GateDescriptor(capability="org.manage", feature="analytics.view")

        decision = evaluator.check(free_student, gate)

        assert decision.reason.missing_feature == "analytics.view"
        assert decision.reason.missing_capability is None

    def test_capability_denial(self, evaluator):
        growth_parent = make_entitlement(Plan.GROWTH, Role.PARENT)
        decision = evaluator.check(growth_parent, GateDescriptor(capability="org.manage"))

        assert decision.allowed is False
        assert decision.reason.missing_capability == "org.manage"

    @pytest.mark.parametrize("gate", [
        GateDescriptor(),
        GateDescriptor(feature="analytics.view"),
        GateDescriptor(capability="classes.crud", needed_plan="starter"),
        GateDescriptor(capability="results.enter", feature="results.view", needed_plan="free"),
        GateDescriptor(needed_plan="enterprise"),
    ])
    @pytest.mark.parametrize("plan,role", [
        (Plan.FREE, Role.TEACHER),
        (Plan.STARTER, Role.ADMIN),
        (Plan.ENTERPRISE, Role.STUDENT),
    ])
    def test_check_agrees_with_allow(self, evaluator, gate, plan, role):
        entitlement = make_entitlement(plan, role)
        assert evaluator.check(entitlement, gate).allowed == evaluator.allow(entitlement, gate)


class TestGateDescriptor:
    """Test cases for GateDescriptor validation."""

    def test_needed_plan_parsed(self):
        assert GateDescriptor(needed_plan="GROWTH").needed_plan == Plan.GROWTH

    def test_unknown_plan_rejected(self):
        with pytest.raises(ConfigurationError):
            GateDescriptor(needed_plan="platinum")

    @pytest.mark.parametrize("kwargs", [{"feature": ""}, {"capability": "   "}])
    def test_empty_tags_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            GateDescriptor(**kwargs)

    def test_from_dict_accepts_dashboard_keys(self):
        gate = GateDescriptor.from_dict({"cap": "classes.crud", "feature": "classes.view", "neededPlan": "starter"})
        assert gate == GateDescriptor(capability="classes.crud", feature="classes.view", needed_plan=Plan.STARTER)

    def test_is_open(self):
        assert GateDescriptor().is_open is True
        assert GateDescriptor(feature="classes.view").is_open is False
