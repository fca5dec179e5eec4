"""
Module lifecycle - wiring a ready module into its collaborators.

Routes go to the router, text bundles to the localization store, mock handlers
to the mock service, and finally the module's own init hook runs. Every
registration happens at most once per module; the status tracker remembers
which resources a module already contributed.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any

from .context import MOCK_SERVICE
from .context import BootstrapContext
from .exceptions import InitHookError
from .exceptions import ModuleTimeoutError
from .models import ModuleConfig
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .models import Route
from .registry import ModuleRegistry
from .status import StatusTracker

logger = logging.getLogger(__name__)

AutoLoadHandler = Callable[[str], Awaitable[None]]


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def wrap_route_with_auto_load(route: Route, auto_load: AutoLoadHandler) -> Route:
    """
    Return a copy of ``route`` (and its children) whose ``on_enter`` first
    triggers ``auto_load`` for the target route, then runs the original
    callback if there was one.
    """
    original = route.on_enter

    async def on_enter(to_state: Any = None, from_state: Any = None, deps: Any = None) -> Any:
        route_name = getattr(to_state, "name", None) or route.name
        await auto_load(route_name)
        if original is not None:
            return await _maybe_await(original(to_state, from_state, deps))
        return None

    return route.model_copy(
        update={
            "on_enter": on_enter,
            "children": [wrap_route_with_auto_load(child, auto_load) for child in route.children],
        }
    )


class LifecycleManager:
    """
    Registers module resources and runs init hooks.

    Args:
        registry: Source of module configs and cached routes
        status: Tracks which resources each module already registered
        module_timeout: Seconds an init hook may run; None for no limit
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        status: StatusTracker,
        module_timeout: float | None = None,
    ):
        self.registry = registry
        self.status = status
        self.module_timeout = module_timeout

    async def register_routes(
        self,
        module: ModuleDescriptor,
        ctx: BootstrapContext,
        auto_load: AutoLoadHandler | None = None,
    ) -> None:
        """
        Register the module's routes with the router.

        LAZY module routes are wrapped so that the first navigation into them
        loads the module before the route's own ``on_enter`` runs.
        """
        if self.status.is_registered(module.name, "routes"):
            return

        routes = await self.registry.get_module_routes(module)
        if routes:
            if module.load_type == ModuleLoadType.LAZY and auto_load is not None:
                routes = [wrap_route_with_auto_load(route, auto_load) for route in routes]
            if ctx.router is None:
                logger.warning(f"No router available; routes of '{module.name}' not registered")
                return
            ctx.router.register_routes(routes)
            logger.debug(f"Registered {len(routes)} route(s) for '{module.name}'")

        self.status.mark_registered(module.name, "routes")

    async def register_localization(self, module: ModuleDescriptor, ctx: BootstrapContext) -> None:
        """Hand the module's text bundles to the localization store, once."""
        if self.status.is_registered(module.name, "locale"):
            return

        config = await self.registry.load_module_config(module)
        if config is not None and config.i18n is not None:
            if ctx.i18n is None:
                logger.warning(f"No localization store available; bundles of '{module.name}' not registered")
                return
            await _maybe_await(config.i18n(ctx.i18n))
            logger.debug(f"Registered localization for '{module.name}'")

        self.status.mark_registered(module.name, "locale")

    async def register_resources(
        self,
        module: ModuleDescriptor,
        ctx: BootstrapContext,
        auto_load: AutoLoadHandler | None = None,
    ) -> None:
        await self.register_routes(module, ctx, auto_load)
        await self.register_localization(module, ctx)

    async def initialize_module(
        self,
        module: ModuleDescriptor,
        ctx: BootstrapContext,
        skip_init_hook: bool = False,
    ) -> None:
        """
        Run the module's init hook and register its mock handlers.

        Args:
            module: Module to initialize
            ctx: Shared bootstrap context handed to the hook
            skip_init_hook: Only register mocks (route pre-registration passes)

        Raises:
            ConfigLoadError: Deferred config could not be resolved
            InitHookError: The init hook raised
            ModuleTimeoutError: The init hook exceeded ``module_timeout``
        """
        config = await self.registry.load_module_config(module)
        if config is None:
            return

        if not skip_init_hook and config.on_module_init is not None:
            await self._run_init_hook(module, config, ctx)

        self._register_mocks(module, config, ctx)

    async def _run_init_hook(
        self, module: ModuleDescriptor, config: ModuleConfig, ctx: BootstrapContext
    ) -> None:
        try:
            call = _maybe_await(config.on_module_init(ctx))
            if self.module_timeout is None:
                await call
            else:
                try:
                    await asyncio.wait_for(call, timeout=self.module_timeout)
                except asyncio.TimeoutError as e:
                    raise ModuleTimeoutError(module.name, self.module_timeout) from e
        except InitHookError:
            raise
        except Exception as e:
            raise InitHookError(module.name, f'Init hook of module "{module.name}" failed: {e}') from e

    def _register_mocks(self, module: ModuleDescriptor, config: ModuleConfig, ctx: BootstrapContext) -> None:
        if not config.mock_handlers or not ctx.is_development:
            return
        if self.status.is_registered(module.name, "mocks"):
            return

        mock_service = ctx.get_service(MOCK_SERVICE)
        if mock_service is None:
            return

        mock_service.add_handlers(list(config.mock_handlers))
        self.status.mark_registered(module.name, "mocks")
        logger.debug(f"Registered {len(config.mock_handlers)} mock handler(s) for '{module.name}'")
