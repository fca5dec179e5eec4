"""Exception hierarchy for modstage."""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from .validation.base import ValidationCheck


class ModuleLoaderError(Exception):
    """Base exception for all module loading errors."""


# --- Configuration errors: fatal to the registration call ---


class ConfigurationError(ModuleLoaderError):
    """Module set or loader configuration is invalid."""


class DuplicateModuleError(ConfigurationError):
    """A module with the same name is already registered."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f'Module with name "{module_name}" already exists')


class RegistryClosedError(ConfigurationError):
    """Registration attempted after the INIT phase sealed the registry."""

    def __init__(self, module_name: str | None = None):
        self.module_name = module_name
        if module_name:
            message = f'Cannot add module "{module_name}" after INIT modules have been loaded'
        else:
            message = "Cannot add modules after INIT modules have been loaded"
        super().__init__(message)


class InvalidModuleError(ConfigurationError):
    """Descriptor violates a structural rule (e.g. INIT module with load conditions)."""


class UnknownModuleError(ConfigurationError):
    """Requested module is not present in the registry."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f'Module "{module_name}" not found')


class ManifestError(ConfigurationError):
    """Startup manifest could not be read or reported an error status."""


class ManifestValidationError(ManifestError):
    """Startup manifest failed validation."""

    def __init__(self, message: str, errors: list[ValidationCheck] | None = None):
        self.errors = errors or []
        super().__init__(message)


# --- Dependency graph errors: fatal at the scope that discovered them ---


class DependencyError(ModuleLoaderError):
    """Dependency graph could not be resolved (missing or circular dependencies).

    Errors raised while building load levels carry the partition computed so
    far in ``levels``, the names that could not be placed in ``modules`` and
    each of those names' own error in ``causes``.
    """

    def __init__(
        self,
        message: str,
        modules: list[str] | None = None,
        levels: list[list[Any]] | None = None,
    ):
        self.modules = modules or []
        self.levels = levels or []
        self.causes: dict[str, DependencyError] = {}
        super().__init__(message)


class MissingDependencyError(DependencyError):
    """One or more declared dependency names are not registered."""

    def __init__(
        self,
        module_name: str,
        missing: list[str],
        modules: list[str] | None = None,
        levels: list[list[Any]] | None = None,
    ):
        self.module_name = module_name
        self.missing = list(missing)
        super().__init__(
            f"Missing dependencies for module {module_name}: {', '.join(self.missing)}",
            modules=modules or [module_name],
            levels=levels,
        )


class CircularDependencyError(DependencyError):
    """Dependency relation contains a cycle."""

    def __init__(
        self,
        cycle: list[str],
        modules: list[str] | None = None,
        levels: list[list[Any]] | None = None,
    ):
        self.cycle = list(cycle)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(self.cycle)}",
            modules=modules or sorted(set(self.cycle)),
            levels=levels,
        )


# --- Runtime errors ---


class ConditionUnmetError(ModuleLoaderError):
    """Load conditions of a module are not satisfied.

    Recorded as the module's status error. The loader never raises it: an
    unmet gate is an expected outcome, not a failure of the caller.
    """

    def __init__(self, module_name: str, reasons: list[str]):
        self.module_name = module_name
        self.reasons = list(reasons)
        detail = "; ".join(self.reasons) if self.reasons else "unknown condition"
        super().__init__(f"Load conditions not met for module {module_name}: {detail}")


class InitHookError(ModuleLoaderError):
    """A module's init hook raised."""

    def __init__(self, module_name: str, message: str | None = None):
        self.module_name = module_name
        super().__init__(message or f'Init hook of module "{module_name}" failed')


class ModuleTimeoutError(InitHookError):
    """A module's init hook did not finish within the configured timeout."""

    def __init__(self, module_name: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            module_name,
            f'Init hook of module "{module_name}" timed out after {timeout}s',
        )


class ConfigLoadError(ModuleLoaderError):
    """Deferred module config could not be resolved."""


class StatusTransitionError(ModuleLoaderError):
    """Status record was asked to move backwards."""


class RouteNotFoundError(ModuleLoaderError, KeyError):
    """Router has no route with the requested name."""

    def __init__(self, route_name: str):
        self.route_name = route_name
        super().__init__(f'Route "{route_name}" not found')

    def __str__(self) -> str:
        return self.args[0]


class ServiceNotFoundError(ModuleLoaderError, KeyError):
    """Service locator has no entry for the requested key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Service not registered: {key}")

    def __str__(self) -> str:
        return self.args[0]
