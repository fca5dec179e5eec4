"""
Shared bootstrap context.

The context is handed from bootstrap step to bootstrap step and is passed to
every module init hook. It carries the configuration, the collaborator handles
(router, localization store, API client) and a small service locator through
which modules and the loader find shared services such as access control.

Module init hooks get read-only-by-convention access; only bootstrap steps and
the loader mutate it.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any

from .exceptions import ServiceNotFoundError
from .hooks import HookRegistry

if TYPE_CHECKING:
    from .client import ApiClient
    from .config import BootstrapConfig
    from .i18n import ResourceStore
    from .interfaces import ConfigResolver
    from .loader import ModuleLoader
    from .models import ModuleConfig
    from .models import ModuleDescriptor
    from .routing import MenuItem
    from .routing import RouterService

logger = logging.getLogger(__name__)

# Well-known service keys
ACCESS_CONTROL = "access_control"
MOCK_SERVICE = "mock_service"
API_CLIENT = "api_client"


@dataclass
class BootstrapContext:
    """Mutable state shared by bootstrap steps and module init hooks."""

    config: "BootstrapConfig"
    router: "RouterService | None" = None
    i18n: "ResourceStore | None" = None
    api_client: "ApiClient | None" = None
    module_loader: "ModuleLoader | None" = None
    hooks: HookRegistry = field(default_factory=HookRegistry)
    params: dict[str, Any] = field(default_factory=dict)
    # Descriptors waiting to be registered by the module loader step
    modules: list["ModuleDescriptor"] = field(default_factory=list)
    catalog: dict[str, "ModuleConfig"] = field(default_factory=dict)
    config_resolver: "ConfigResolver | None" = None
    menu: list["MenuItem"] = field(default_factory=list)
    _services: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def environment(self) -> str:
        return self.config.environment

    @property
    def is_development(self) -> bool:
        return self.config.environment == "development"

    def register_service(self, key: str, service: Any) -> None:
        """
        Register a shared service that modules and the loader can look up.

        Args:
            key: Service key (e.g., 'access_control')
            service: The service instance
        """
        if key in self._services:
            logger.warning(f"Replacing existing service '{key}'")
        self._services[key] = service
        logger.debug(f"Registered service: {key}")

    def get_service(self, key: str) -> Any | None:
        """Get a registered service, or None if absent."""
        return self._services.get(key)

    def require_service(self, key: str) -> Any:
        """
        Get a registered service.

        Raises:
            ServiceNotFoundError: Nothing registered under this key
        """
        try:
            return self._services[key]
        except KeyError:
            raise ServiceNotFoundError(key) from None

    def has_service(self, key: str) -> bool:
        return key in self._services

    @property
    def services(self) -> dict[str, Any]:
        """Copy of the service map, for diagnostics."""
        return dict(self._services)
