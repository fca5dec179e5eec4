"""
Tests for resource registration and init hooks.
"""

import asyncio
from unittest.mock import AsyncMock
from unittest.mock import Mock

import pytest
from modstage.context import MOCK_SERVICE
from modstage.exceptions import InitHookError
from modstage.exceptions import ModuleTimeoutError
from modstage.lifecycle import LifecycleManager
from modstage.mocks import MockService
from modstage.models import Route
from modstage.registry import ModuleRegistry
from modstage.status import StatusTracker
from modstage.testing import make_context
from modstage.testing import make_module


async def make_manager(modules, module_timeout=None):
    registry = ModuleRegistry()
    for module in modules:
        await registry.add_module(module)
    status = StatusTracker()
    return LifecycleManager(registry, status, module_timeout), status


class TestRegisterRoutes:
    @pytest.mark.asyncio
    async def test_lazy_routes_load_module_before_original_callback(self):
        calls = []
        original = Mock(side_effect=lambda to_state, from_state, deps: calls.append(("enter", to_state.name)))
        auto_load = AsyncMock(side_effect=lambda name: calls.append(("load", name)))
        route = Route(
            name="billing",
            path="/billing",
            on_enter=original,
            children=[Route(name="billing.invoices", path="/invoices")],
        )
        module = make_module("billing", load_type="lazy", routes=[route], deferred=True)
        manager, status = await make_manager([module])
        ctx = make_context()

        await manager.register_routes(module, ctx, auto_load)
        await ctx.router.navigate("billing")
        await ctx.router.navigate("billing.invoices")

        assert calls == [("load", "billing"), ("enter", "billing"), ("load", "billing.invoices")]
        assert status.is_registered("billing", "routes")
        # The module's own route objects stay untouched
        assert route.on_enter is original

    @pytest.mark.asyncio
    async def test_normal_routes_not_wrapped(self):
        route = Route(name="shop", path="/shop")
        module = make_module("shop", routes=[route])
        manager, _ = await make_manager([module])
        ctx = make_context()
        auto_load = AsyncMock()

        await manager.register_routes(module, ctx, auto_load)
        await ctx.router.navigate("shop")

        assert ctx.router.find_route("shop") is route
        auto_load.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_routes_registered_once(self):
        module = make_module("shop", routes=[Route(name="shop", path="/shop")])
        manager, _ = await make_manager([module])
        ctx = make_context()

        await manager.register_routes(module, ctx)
        await manager.register_routes(module, ctx)

        assert ctx.router.register_calls == [["shop"]]


class TestRegisterLocalization:
    @pytest.mark.asyncio
    async def test_bundles_registered_once(self):
        def add_bundles(store):
            store.add_resource_bundle("en", "shop", {"title": "Shop"})

        i18n = Mock(side_effect=add_bundles)
        module = make_module("shop", i18n=i18n)
        manager, status = await make_manager([module])
        ctx = make_context()

        await manager.register_resources(module, ctx)
        await manager.register_localization(module, ctx)

        assert i18n.call_count == 1
        assert ctx.i18n.translate("shop:title") == "Shop"
        assert status.is_registered("shop", "locale")


class TestInitializeModule:
    @pytest.mark.asyncio
    async def test_init_hook_receives_context(self):
        on_init = Mock()
        module = make_module("shop", on_init=on_init)
        manager, _ = await make_manager([module])
        ctx = make_context()

        await manager.initialize_module(module, ctx)

        on_init.assert_called_once_with(ctx)

    @pytest.mark.asyncio
    async def test_async_init_hook_awaited(self):
        on_init = AsyncMock()
        module = make_module("shop", on_init=on_init, deferred=True)
        manager, _ = await make_manager([module])
        ctx = make_context()

        await manager.initialize_module(module, ctx)

        on_init.assert_awaited_once_with(ctx)

    @pytest.mark.asyncio
    async def test_skip_init_hook(self):
        on_init = Mock()
        module = make_module("shop", on_init=on_init)
        manager, _ = await make_manager([module])

        await manager.initialize_module(module, make_context(), skip_init_hook=True)

        on_init.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("hook_type", [Mock, AsyncMock])
    async def test_init_hook_error_wrapped(self, hook_type):
        module = make_module("shop", on_init=hook_type(side_effect=ValueError("bad state")))
        manager, _ = await make_manager([module])

        with pytest.raises(InitHookError) as exc_info:
            await manager.initialize_module(module, make_context())

        assert exc_info.value.module_name == "shop"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert "bad state" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_init_hook_timeout(self):
        async def slow(ctx):
            await asyncio.sleep(1)

        module = make_module("shop", on_init=slow)
        manager, _ = await make_manager([module], module_timeout=0.01)

        with pytest.raises(ModuleTimeoutError) as exc_info:
            await manager.initialize_module(module, make_context())

        assert isinstance(exc_info.value, InitHookError)
        assert exc_info.value.timeout == 0.01


class TestMockHandlers:
    @pytest.mark.asyncio
    async def test_registered_once_in_development(self):
        module = make_module("shop", mock_handlers=["get-cart", "post-cart"])
        manager, status = await make_manager([module])
        ctx = make_context(environment="development", with_mocks=True)

        await manager.initialize_module(module, ctx, skip_init_hook=True)
        await manager.initialize_module(module, ctx)

        assert ctx.get_service(MOCK_SERVICE).handlers == ["get-cart", "post-cart"]
        assert status.is_registered("shop", "mocks")

    @pytest.mark.asyncio
    async def test_not_registered_outside_development(self):
        module = make_module("shop", mock_handlers=["get-cart"])
        manager, _ = await make_manager([module])
        ctx = make_context(environment="production")
        mocks = MockService()
        ctx.register_service(MOCK_SERVICE, mocks)

        await manager.initialize_module(module, ctx)

        assert mocks.handlers == []

    @pytest.mark.asyncio
    async def test_no_mock_service_is_fine(self):
        module = make_module("shop", mock_handlers=["get-cart"])
        manager, status = await make_manager([module])

        await manager.initialize_module(module, make_context(environment="development"))

        assert not status.is_registered("shop", "mocks")
