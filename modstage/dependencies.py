"""
Dependency resolution for single-module activation.

Dependencies of one module are activated sequentially, depth first, in
ascending priority order. Concurrency across independent modules is the level
builder's job (levels.py), not this one's.
"""

import logging
from collections.abc import Awaitable
from collections.abc import Callable

from .context import BootstrapContext
from .exceptions import CircularDependencyError
from .exceptions import MissingDependencyError
from .models import ModuleDescriptor
from .registry import ModuleRegistry
from .status import StatusTracker

logger = logging.getLogger(__name__)

LoadModuleCallback = Callable[[ModuleDescriptor, BootstrapContext], Awaitable[None]]


class DependencyResolver:
    """
    Resolves and activates a module's declared dependencies.

    Args:
        registry: Where dependency names are looked up
        status: Load status of every module
        load_module: Shared "activate one module" operation, supplied by the
            loader facade so this class never calls back into it directly
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        status: StatusTracker,
        load_module: LoadModuleCallback,
    ):
        self.registry = registry
        self.status = status
        self.load_module = load_module

    def resolve_dependency_modules(self, name: str, dep_names: list[str]) -> list[ModuleDescriptor]:
        """
        Map dependency names to descriptors.

        Raises:
            MissingDependencyError: Lists every name not in the registry
        """
        missing = [dep for dep in dep_names if not self.registry.has_module(dep)]
        if missing:
            raise MissingDependencyError(name, missing)
        return [self.registry.get_module(dep) for dep in dep_names]

    async def load_dependencies(
        self,
        module: ModuleDescriptor,
        ctx: BootstrapContext,
        visiting: list[str] | None = None,
    ) -> None:
        """
        Ensure every dependency of ``module`` has been activated.

        Each dependency's own dependencies are handled first. Dependencies that
        are already loaded are skipped; the rest are handed to ``load_module``.

        Args:
            module: Module whose dependencies to activate
            ctx: Shared bootstrap context
            visiting: Ordered names on the current recursion path

        Raises:
            MissingDependencyError: A dependency is not registered
            CircularDependencyError: A dependency is already on the path
        """
        path = list(visiting or [])
        if module.name in path:
            raise CircularDependencyError(path[path.index(module.name):] + [module.name])
        path.append(module.name)

        dependencies = self.resolve_dependency_modules(module.name, module.dependencies)
        for dep in self.registry.sort_by_priority(dependencies):
            if self.status.is_loaded(dep.name):
                continue
            if dep.name in path:
                raise CircularDependencyError(path[path.index(dep.name):] + [dep.name])

            logger.debug(f"Loading dependency '{dep.name}' of '{module.name}'")
            await self.load_dependencies(dep, ctx, path)
            await self.load_module(dep, ctx)
