"""
Tests for load condition checks.
"""

import pytest
from modstage.conditions import ConditionValidator
from modstage.conditions import check_feature_flags
from modstage.conditions import check_permissions
from modstage.status import StatusTracker
from modstage.testing import FakeAccessControl
from modstage.testing import make_context
from modstage.testing import make_module


class TestAccessChecks:
    @pytest.mark.asyncio
    async def test_fail_closed_without_access_control(self):
        ctx = make_context()

        assert await check_feature_flags(["x"], ctx) is False
        assert await check_permissions(["p"], ctx) is False

    @pytest.mark.asyncio
    async def test_nothing_required_passes_without_access_control(self):
        ctx = make_context()

        assert await check_feature_flags([], ctx) is True
        assert await check_permissions([], ctx) is True

    @pytest.mark.asyncio
    async def test_fail_closed_when_access_control_raises(self):
        ctx = make_context(access=FakeAccessControl(flags={"x"}, error=RuntimeError("store down")))

        assert await check_feature_flags(["x"], ctx) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("is_async", [False, True])
    async def test_queries_access_control(self, is_async):
        access = FakeAccessControl(flags={"x"}, permissions={"read"}, is_async=is_async)
        ctx = make_context(access=access)

        assert await check_feature_flags(["x"], ctx) is True
        assert await check_feature_flags(["x", "y"], ctx) is False
        assert await check_permissions(["read"], ctx) is True
        assert await check_permissions(["write"], ctx) is False
        assert access.queries[0] == ("flags", ["x"])


class TestConditionValidator:
    @pytest.mark.asyncio
    async def test_module_without_condition_passes(self):
        validator = ConditionValidator(StatusTracker())

        assert await validator.evaluate_load_conditions(make_module("plain"), make_context()) == []
        assert await validator.check_load_conditions(make_module("plain"), make_context()) is True

    @pytest.mark.asyncio
    async def test_collects_every_unmet_condition(self):
        validator = ConditionValidator(StatusTracker())
        module = make_module("reports", dependencies=["auth"], feature_flags=["x"], access_permissions=["p"])

        reasons = await validator.evaluate_load_conditions(module, make_context(access=FakeAccessControl()))

        assert reasons == [
            "feature flags not enabled: x",
            "permissions not granted: p",
            "dependency auth not loaded",
        ]

    @pytest.mark.asyncio
    async def test_dependency_must_be_loaded(self):
        status = StatusTracker()
        validator = ConditionValidator(status)
        module = make_module("reports", dependencies=["auth"])
        ctx = make_context()

        status.mark_loading("auth")
        assert await validator.check_load_conditions(module, ctx) is False

        status.mark_loaded("auth")
        assert await validator.check_load_conditions(module, ctx) is True

    @pytest.mark.asyncio
    async def test_gating_ignores_dependencies(self):
        validator = ConditionValidator(StatusTracker())
        module = make_module("billing", dependencies=["auth"], feature_flags=["billing"])

        allowed = make_context(access=FakeAccessControl(flags={"billing"}))
        denied = make_context(access=FakeAccessControl())

        assert await validator.check_gating_conditions(module, allowed) is True
        assert await validator.check_gating_conditions(module, denied) is False
