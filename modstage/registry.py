"""
Module registry - the set of known module descriptors.

Owns descriptor storage, the route-to-module index and the per-module route
cache. INIT module routes are indexed at registration; for modules with a
deferred config the index entries appear once the config resolves.
"""

import logging

from .deferred import DeferredConfig
from .exceptions import ConfigLoadError
from .exceptions import DuplicateModuleError
from .exceptions import InvalidModuleError
from .exceptions import RegistryClosedError
from .models import ModuleConfig
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .models import Route

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Registered module descriptors, in insertion order."""

    def __init__(self):
        self._modules: dict[str, ModuleDescriptor] = {}
        self._route_index: dict[str, str] = {}
        self._routes_cache: dict[str, list[Route]] = {}
        self._sealed = False

    @property
    def is_sealed(self) -> bool:
        """True once the INIT phase completed; no further additions allowed."""
        return self._sealed

    def seal(self) -> None:
        self._sealed = True
        logger.debug(f"Registry sealed with {len(self._modules)} modules")

    async def add_module(self, module: ModuleDescriptor) -> None:
        """
        Add a module to the registry.

        INIT modules have their routes resolved and indexed immediately.

        Args:
            module: Descriptor to add

        Raises:
            RegistryClosedError: INIT phase already completed
            DuplicateModuleError: A module with this name exists
            InvalidModuleError: INIT module carries a load condition
        """
        if self._sealed:
            raise RegistryClosedError(module.name)
        if module.name in self._modules:
            raise DuplicateModuleError(module.name)
        if module.load_type == ModuleLoadType.INIT and module.load_condition is not None:
            raise InvalidModuleError(f"INIT module '{module.name}' cannot declare a load condition")

        if module.load_type == ModuleLoadType.INIT:
            # Resolve before storing so a failed fetch leaves the registry untouched
            routes = await self._collect_routes(module)
            self._modules[module.name] = module
            self._cache_routes(module, routes)
        else:
            self._modules[module.name] = module

        logger.debug(f"Registered module '{module.name}' ({module.load_type.value})")

    async def add_modules(self, modules: list[ModuleDescriptor]) -> None:
        if self._sealed:
            raise RegistryClosedError()
        for module in modules:
            await self.add_module(module)

    def get_module(self, name: str) -> ModuleDescriptor | None:
        return self._modules.get(name)

    def get_modules(self) -> list[ModuleDescriptor]:
        return list(self._modules.values())

    def has_module(self, name: str) -> bool:
        return name in self._modules

    def get_modules_by_type(self, load_type: ModuleLoadType) -> list[ModuleDescriptor]:
        return [m for m in self._modules.values() if m.load_type == load_type]

    def get_module_by_route_name(self, route_name: str) -> ModuleDescriptor | None:
        """
        Find the module owning a route.

        Exact route name first, then the first dot-segment
        (``"billing.invoices"`` falls back to ``"billing"``).
        """
        name = self._route_index.get(route_name)
        if name is None:
            name = self._route_index.get(route_name.split(".")[0])
        return self._modules.get(name) if name else None

    def sort_by_priority(self, modules: list[ModuleDescriptor]) -> list[ModuleDescriptor]:
        """Stable sort ascending by load_priority; ties keep input order."""
        return sorted(modules, key=lambda m: m.load_priority)

    async def load_module_config(self, module: ModuleDescriptor) -> ModuleConfig | None:
        """
        Resolve the module's config if it was deferred.

        Raises:
            ConfigLoadError: Deferred config could not be fetched
        """
        if isinstance(module.config, DeferredConfig):
            try:
                return await module.config.resolve()
            except ConfigLoadError as e:
                raise ConfigLoadError(f'Failed to load config for module "{module.name}": {e}') from e
        return module.config

    async def get_module_routes(self, module: ModuleDescriptor) -> list[Route] | None:
        """
        Get the module's routes, calling its routes factory at most once.

        Resolves a deferred config first and indexes the routes on first use.

        Returns:
            List of routes, or None if the module defines none
        """
        if module.name in self._routes_cache:
            return self._routes_cache[module.name]

        routes = await self._collect_routes(module)
        if routes is None:
            return None
        self._cache_routes(module, routes)
        return routes

    async def _collect_routes(self, module: ModuleDescriptor) -> list[Route] | None:
        config = await self.load_module_config(module)
        if config is None or config.routes is None:
            return None
        return list(config.routes())

    def _cache_routes(self, module: ModuleDescriptor, routes: list[Route] | None) -> None:
        if routes is None:
            return
        self._routes_cache[module.name] = routes
        for route in routes:
            for node in route.walk():
                self._route_index[node.name] = module.name
                # First segment kept for lookups by section name; first owner wins
                self._route_index.setdefault(node.first_segment, module.name)
