"""
Collaborator interfaces for the module loader.
Uses Protocol classes for structural subtyping (no inheritance required).

The loader only ever talks to the router, the localization store, access
control, the mock service and remote config fetching through these narrow
shapes. The reference implementations in routing.py, i18n.py, access.py and
mocks.py satisfy them; hosts can plug in their own.
"""

from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol
from typing import runtime_checkable

if TYPE_CHECKING:
    from .models import ModuleConfig
    from .models import Route


@runtime_checkable
class AccessDecider(Protocol):
    """
    Answers capability and permission queries.

    Methods may be sync or async; the condition validator awaits whatever
    comes back.
    """

    def has_feature_flags(self, flags: list[str]) -> Any:
        """Return True if every flag is enabled."""
        ...

    def has_permissions(self, permissions: list[str]) -> Any:
        """Return True if the principal holds every permission."""
        ...


@runtime_checkable
class RouteRegistrar(Protocol):
    """Accepts navigation routes."""

    def register_routes(self, routes: list["Route"]) -> None:
        """Register routes; re-registering an existing name is a no-op."""
        ...


@runtime_checkable
class LocalizationStore(Protocol):
    """Accepts text resource bundles."""

    def add_resource_bundle(self, locale: str, namespace: str, bundle: dict[str, Any]) -> None:
        """Merge a bundle of keyed strings into the store."""
        ...


@runtime_checkable
class ConfigResolver(Protocol):
    """Turns a locator string into a module config."""

    async def resolve(self, locator: str) -> "ModuleConfig":
        """
        Fetch the config the locator points at.

        Args:
            locator: Import locator or URL

        Returns:
            The resolved ModuleConfig
        """
        ...


@runtime_checkable
class MockRegistrar(Protocol):
    """Accepts development mock handlers."""

    def add_handlers(self, handlers: list[Any]) -> None:
        """Register handlers."""
        ...
