"""
modstage - staged, dependency-aware activation of pluggable feature modules.
"""

__version__ = "0.1.0"

from .access import AccessControl
from .bootstrap import DEFAULT_STEPS
from .bootstrap import Bootstrap
from .client import ApiClient
from .conditions import ConditionValidator
from .config import BootstrapConfig
from .config import configure_logging
from .config import load_config
from .context import BootstrapContext
from .deferred import DeferredConfig
from .dependencies import DependencyResolver
from .exceptions import CircularDependencyError
from .exceptions import ConditionUnmetError
from .exceptions import ConfigLoadError
from .exceptions import ConfigurationError
from .exceptions import DependencyError
from .exceptions import DuplicateModuleError
from .exceptions import InitHookError
from .exceptions import InvalidModuleError
from .exceptions import ManifestError
from .exceptions import ManifestValidationError
from .exceptions import MissingDependencyError
from .exceptions import ModuleLoaderError
from .exceptions import ModuleTimeoutError
from .exceptions import RegistryClosedError
from .exceptions import RouteNotFoundError
from .exceptions import ServiceNotFoundError
from .exceptions import StatusTransitionError
from .exceptions import UnknownModuleError
from .hooks import HookRegistry
from .i18n import ResourceStore
from .interfaces import AccessDecider
from .interfaces import ConfigResolver
from .interfaces import LocalizationStore
from .interfaces import MockRegistrar
from .interfaces import RouteRegistrar
from .levels import build_levels
from .lifecycle import LifecycleManager
from .loader import ModuleLoader
from .manifest import ImportConfigResolver
from .manifest import StartupManifest
from .manifest import load_manifest_file
from .manifest import parse_manifest
from .manifest import to_descriptors
from .mocks import MockService
from .models import LoadCondition
from .models import LoadReport
from .models import ModuleConfig
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .models import Route
from .models import RouteMenu
from .registry import ModuleRegistry
from .routing import MenuItem
from .routing import RouterService
from .status import LoadStatusRecord
from .status import StatusTracker

__all__ = [
    "__version__",
    # Orchestration
    "ModuleLoader",
    "ModuleRegistry",
    "StatusTracker",
    "LoadStatusRecord",
    "ConditionValidator",
    "DependencyResolver",
    "LifecycleManager",
    "build_levels",
    "Bootstrap",
    "BootstrapContext",
    "DEFAULT_STEPS",
    "HookRegistry",
    # Models
    "ModuleDescriptor",
    "ModuleConfig",
    "ModuleLoadType",
    "LoadCondition",
    "LoadReport",
    "Route",
    "RouteMenu",
    "DeferredConfig",
    # Manifest and config
    "StartupManifest",
    "ImportConfigResolver",
    "parse_manifest",
    "load_manifest_file",
    "to_descriptors",
    "BootstrapConfig",
    "load_config",
    "configure_logging",
    # Collaborators
    "AccessControl",
    "ApiClient",
    "MenuItem",
    "MockService",
    "ResourceStore",
    "RouterService",
    "AccessDecider",
    "ConfigResolver",
    "LocalizationStore",
    "MockRegistrar",
    "RouteRegistrar",
    # Errors
    "ModuleLoaderError",
    "ConfigurationError",
    "DuplicateModuleError",
    "RegistryClosedError",
    "InvalidModuleError",
    "UnknownModuleError",
    "ManifestError",
    "ManifestValidationError",
    "DependencyError",
    "MissingDependencyError",
    "CircularDependencyError",
    "ConditionUnmetError",
    "InitHookError",
    "ModuleTimeoutError",
    "ConfigLoadError",
    "StatusTransitionError",
    "RouteNotFoundError",
    "ServiceNotFoundError",
]
