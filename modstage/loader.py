"""
Module loader - the orchestrator facade.

Wires the registry, status tracker, condition validator, dependency resolver
and lifecycle manager together and exposes the activation phases:

1. ``init_init_modules()`` - INIT modules, strictly sequential; seals the registry
2. ``preload_routes()`` - routes and text of every other module, no init hooks
3. ``load_normal_modules()`` - NORMAL modules, level by level, concurrent within a level
4. ``load_lazy_module()`` / ``auto_load_module_by_route()`` - on demand

A module is activated at most once. Gate failures are recorded as ``failed``
and never raised.
"""

import asyncio
import contextvars
import logging
from typing import Any

from . import events
from .conditions import ConditionValidator
from .context import BootstrapContext
from .dependencies import DependencyResolver
from .exceptions import ConditionUnmetError
from .exceptions import ConfigurationError
from .exceptions import DependencyError
from .exceptions import UnknownModuleError
from .levels import build_levels
from .lifecycle import LifecycleManager
from .models import LoadReport
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .registry import ModuleRegistry
from .status import ModuleLoadStatus
from .status import StatusTracker

logger = logging.getLogger(__name__)


class ModuleLoader:
    """
    Staged, dependency-aware module activation.

    Sub-pieces are created here unless supplied, so tests can substitute any
    of them.

    Args:
        ctx: Shared bootstrap context (may be bound later with ``bind()``)
        registry: Module registry
        status: Status tracker
        module_timeout: Seconds an init hook may run; None for no limit
    """

    def __init__(
        self,
        ctx: BootstrapContext | None = None,
        registry: ModuleRegistry | None = None,
        status: StatusTracker | None = None,
        conditions: ConditionValidator | None = None,
        lifecycle: LifecycleManager | None = None,
        module_timeout: float | None = None,
    ):
        self.registry = registry or ModuleRegistry()
        self.status = status or StatusTracker()
        self.conditions = conditions or ConditionValidator(self.status)
        self.lifecycle = lifecycle or LifecycleManager(self.registry, self.status, module_timeout)
        self.resolver = DependencyResolver(self.registry, self.status, self._load_module)
        self._ctx: BootstrapContext | None = None
        self._in_flight: dict[str, asyncio.Future] = {}
        # Names being activated on the current task's call path
        self._activating: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
            f"modstage_activating_{id(self)}", default=()
        )
        if ctx is not None:
            self.bind(ctx)

    def bind(self, ctx: BootstrapContext) -> None:
        """Attach the loader to a bootstrap context."""
        self._ctx = ctx
        ctx.module_loader = self

    @property
    def ctx(self) -> BootstrapContext:
        if self._ctx is None:
            raise ConfigurationError("Module loader is not bound to a bootstrap context")
        return self._ctx

    @property
    def is_init_modules_loaded(self) -> bool:
        return self.registry.is_sealed

    async def _emit(self, event: str, data: dict[str, Any]) -> None:
        if self._ctx is not None:
            await self._ctx.hooks.emit(event, data)

    # --- Registration ---

    async def add_module(self, module: ModuleDescriptor) -> None:
        """
        Register a module.

        Raises:
            RegistryClosedError: INIT phase already completed
            DuplicateModuleError: Name already registered
            InvalidModuleError: INIT module with a load condition
        """
        await self.registry.add_module(module)
        await self._emit(
            events.MODULE_REGISTERED,
            {"module": module.name, "load_type": module.load_type.value},
        )

    async def add_modules(self, modules: list[ModuleDescriptor]) -> None:
        for module in modules:
            await self.add_module(module)

    # --- Activation phases ---

    async def init_init_modules(self) -> None:
        """
        Activate INIT modules one after another by priority, then seal the registry.

        Raises:
            ConfigurationError: Called more than once
            InitHookError: An INIT module's init hook raised (remaining modules
                are not started)
        """
        if self.registry.is_sealed:
            raise ConfigurationError("Init modules have already been loaded")

        ctx = self.ctx
        init_modules = self.registry.sort_by_priority(
            self.registry.get_modules_by_type(ModuleLoadType.INIT)
        )
        logger.info(f"Loading {len(init_modules)} INIT module(s)")

        for module in init_modules:
            await self._load_module(module, ctx)

        self.registry.seal()

    async def preload_routes(self) -> None:
        """
        Register routes and text of every non-INIT module that is not loaded yet.

        Init hooks do not run. LAZY modules whose flags or permissions are not
        met are left out; the dependencies of the remaining LAZY modules are
        fully loaded first. Failures are logged, never raised.
        """
        ctx = self.ctx
        candidates = [
            m
            for m in self.registry.get_modules()
            if m.load_type != ModuleLoadType.INIT and not self.status.is_loaded(m.name)
        ]
        levels = self._group_best_effort(candidates, mark_stuck_failed=False)

        for level in levels:
            results = await asyncio.gather(
                *(self._preload_module(module, ctx) for module in level),
                return_exceptions=True,
            )
            for module, result in zip(level, results):
                if isinstance(result, BaseException):
                    logger.warning(f"Route preload failed for '{module.name}': {result}")

    async def _preload_module(self, module: ModuleDescriptor, ctx: BootstrapContext) -> None:
        if module.load_type == ModuleLoadType.LAZY:
            if not await self.conditions.check_gating_conditions(module, ctx):
                logger.debug(f"Skipping route preload of '{module.name}': gate not met")
                return
            if module.dependencies:
                await self.resolver.load_dependencies(module, ctx)

        await self.lifecycle.register_resources(module, ctx, self.auto_load_module_by_route)
        await self.lifecycle.initialize_module(module, ctx, skip_init_hook=True)

    async def load_normal_modules(self) -> LoadReport:
        """
        Activate NORMAL modules level by level.

        Modules within a level run concurrently and each failure is isolated
        to its module: the rest of the level and later levels still run.
        Modules stuck in a cycle or on a missing dependency are marked failed.

        Returns:
            LoadReport of this pass (skipped = load conditions not met)

        Raises:
            ConfigurationError: INIT modules have not been loaded
        """
        if not self.registry.is_sealed:
            raise ConfigurationError("Init modules must be loaded first")

        ctx = self.ctx
        candidates = [
            m
            for m in self.registry.sort_by_priority(
                self.registry.get_modules_by_type(ModuleLoadType.NORMAL)
            )
            if not self.status.is_settled(m.name)
        ]
        levels = self._group_best_effort(candidates, mark_stuck_failed=True)
        report = LoadReport(levels=[[m.name for m in level] for level in levels])

        for index, level in enumerate(levels):
            names = [m.name for m in level]
            await self._emit(events.LEVEL_START, {"level": index, "modules": names})
            logger.debug(f"Loading level {index}: {names}")

            results = await asyncio.gather(
                *(self._load_with_dependencies(module, ctx) for module in level),
                return_exceptions=True,
            )
            for module, result in zip(level, results):
                if isinstance(result, BaseException):
                    logger.error(f"Module '{module.name}' failed in level {index}: {result}")

            await self._emit(events.LEVEL_COMPLETE, {"level": index, "modules": names})

        for module in candidates:
            status = self.status.status_of(module.name)
            if status == "loaded":
                report.loaded.append(module.name)
            elif isinstance(self.status.error_of(module.name), ConditionUnmetError):
                report.skipped.append(module.name)
            else:
                report.failed.append(module.name)

        logger.info(
            f"NORMAL modules: {len(report.loaded)} loaded, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    async def load_lazy_module(self, name: str) -> None:
        """
        Activate a LAZY module and its dependencies on demand.

        Raises:
            UnknownModuleError: No such module
            ConfigurationError: The module is not LAZY
            DependencyError: Missing or circular dependencies
            InitHookError: The module's init hook raised
        """
        module = self.registry.get_module(name)
        if module is None:
            raise UnknownModuleError(name)
        if module.load_type != ModuleLoadType.LAZY:
            raise ConfigurationError(f'Module "{name}" is not a lazy module')
        if self.status.is_settled(name) or self._is_busy(name):
            return

        await self._load_with_dependencies(module, self.ctx)

    async def auto_load_module_by_route(self, route_name: str) -> None:
        """Load the LAZY module owning ``route_name``, if any and not loaded yet."""
        module = self.registry.get_module_by_route_name(route_name)
        if module is None or module.load_type != ModuleLoadType.LAZY:
            return
        if self.status.is_loaded(module.name):
            return
        await self.load_lazy_module(module.name)

    # --- Internals ---

    def _is_busy(self, name: str) -> bool:
        return name in self._in_flight or self.status.is_loading(name)

    def _group_best_effort(
        self, candidates: list[ModuleDescriptor], mark_stuck_failed: bool
    ) -> list[list[ModuleDescriptor]]:
        try:
            return build_levels(candidates, self.status.is_loaded, self.registry.has_module)
        except DependencyError as e:
            logger.error(f"{e}; continuing without: {', '.join(e.modules)}")
            if mark_stuck_failed:
                for name in e.modules:
                    if not self.status.is_settled(name):
                        self.status.mark_failed(name, e.causes.get(name, e))
            return [[self.registry.get_module(name) for name in level] for level in e.levels]

    async def _load_with_dependencies(self, module: ModuleDescriptor, ctx: BootstrapContext) -> None:
        try:
            await self.resolver.load_dependencies(module, ctx)
        except DependencyError as e:
            if not self.status.is_settled(module.name):
                self.status.mark_failed(module.name, e)
                await self._emit(events.MODULE_FAILED, {"module": module.name, "error": str(e)})
            raise
        await self._load_module(module, ctx)

    async def _load_module(self, module: ModuleDescriptor, ctx: BootstrapContext) -> None:
        """
        Activate one module.

        A module in flight on another task is awaited. A module in flight
        further up this task's own activation path returns immediately.
        """
        name = module.name
        if self.status.is_settled(name):
            return

        pending = self._in_flight.get(name)
        chain = self._activating.get()
        if pending is not None:
            if name in chain:
                logger.debug(f"Module {name} is activating further up this call path")
                return
            await asyncio.shield(pending)
            return

        future = asyncio.get_running_loop().create_future()
        self._in_flight[name] = future
        token = self._activating.set(chain + (name,))
        try:
            await self._activate(module, ctx)
        finally:
            self._activating.reset(token)
            del self._in_flight[name]
            future.set_result(None)

    async def _activate(self, module: ModuleDescriptor, ctx: BootstrapContext) -> None:
        name = module.name
        reasons = await self.conditions.evaluate_load_conditions(module, ctx)
        if reasons:
            error = ConditionUnmetError(name, reasons)
            self.status.mark_failed(name, error)
            logger.info(f"[module:skipped] {error}")
            await self._emit(events.MODULE_SKIPPED, {"module": name, "reasons": reasons})
            return

        self.status.mark_loading(name)
        await self._emit(events.MODULE_LOADING, {"module": name, "load_type": module.load_type.value})

        try:
            await self.lifecycle.register_resources(module, ctx, self.auto_load_module_by_route)
            await self.lifecycle.initialize_module(module, ctx)
        except Exception as e:
            self.status.mark_failed(name, e)
            logger.error(f"[module:failed] {name}: {e}")
            await self._emit(events.MODULE_FAILED, {"module": name, "error": str(e)})
            raise

        self.status.mark_loaded(name)
        logger.info(f"[module:loaded] {name}")
        await self._emit(events.MODULE_LOADED, {"module": name, "load_type": module.load_type.value})

    # --- Diagnostics ---

    def has_module(self, name: str) -> bool:
        return self.registry.has_module(name)

    def get_module(self, name: str) -> ModuleDescriptor | None:
        return self.registry.get_module(name)

    def get_modules(self) -> list[ModuleDescriptor]:
        return self.registry.get_modules()

    def get_modules_by_type(self, load_type: ModuleLoadType) -> list[ModuleDescriptor]:
        return self.registry.get_modules_by_type(load_type)

    def get_module_by_route_name(self, route_name: str) -> ModuleDescriptor | None:
        return self.registry.get_module_by_route_name(route_name)

    def is_module_loaded(self, name: str) -> bool:
        return self.status.is_loaded(name)

    def get_module_status(self, name: str) -> ModuleLoadStatus | None:
        return self.status.status_of(name)

    def get_module_error(self, name: str) -> BaseException | None:
        return self.status.error_of(name)

    def status_snapshot(self) -> dict[str, dict[str, object]]:
        return self.status.snapshot()
