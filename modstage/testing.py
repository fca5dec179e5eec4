"""
Testing utilities for modstage.
Provides fakes and builders for module loader tests.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from .config import BootstrapConfig
from .context import ACCESS_CONTROL
from .context import MOCK_SERVICE
from .context import BootstrapContext
from .deferred import DeferredConfig
from .events import ALL_EVENTS
from .hooks import HookRegistry
from .i18n import ResourceStore
from .mocks import MockService
from .models import LoadCondition
from .models import ModuleConfig
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .models import Route
from .routing import RouterService


class FakeAccessControl:
    """Access control answering from plain sets, optionally async or failing."""

    def __init__(
        self,
        flags: set[str] | None = None,
        permissions: set[str] | None = None,
        is_async: bool = False,
        error: Exception | None = None,
    ):
        self.flags = set(flags or ())
        self.permissions = set(permissions or ())
        self.is_async = is_async
        self.error = error
        self.queries: list[tuple[str, list[str]]] = []

    def _answer(self, kind: str, names: list[str], granted: set[str]) -> Any:
        self.queries.append((kind, list(names)))
        if self.error is not None:
            raise self.error
        result = all(name in granted for name in names)
        if self.is_async:
            return _resolved(result)
        return result

    def has_feature_flags(self, flags: list[str]) -> Any:
        return self._answer("flags", flags, self.flags)

    def has_permissions(self, permissions: list[str]) -> Any:
        return self._answer("permissions", permissions, self.permissions)


async def _resolved(value: Any) -> Any:
    return value


class RecordingRouter(RouterService):
    """Router that remembers every register_routes call."""

    def __init__(self, routes: list[Route] | None = None, app_prefix: str = ""):
        self.register_calls: list[list[str]] = []
        super().__init__(routes, app_prefix)

    def register_routes(self, routes: list[Route]) -> None:
        self.register_calls.append([route.name for route in routes])
        super().register_routes(routes)


class EventRecorder:
    """Records every lifecycle event emitted through a HookRegistry."""

    def __init__(self, hooks: HookRegistry | None = None):
        self.events: list[tuple[str, dict]] = []
        if hooks is not None:
            self.attach(hooks)

    def attach(self, hooks: HookRegistry) -> None:
        for event in ALL_EVENTS:
            hooks.register(event, self._record, name="event-recorder")

    async def _record(self, event: str, data: dict) -> None:
        self.events.append((event, dict(data)))

    def names(self, event_type: str | None = None) -> list[str]:
        """Module (or step) names of recorded events, optionally filtered by type."""
        return [
            data.get("module", data.get("step"))
            for event, data in self.events
            if event_type is None or event == event_type
        ]

    def get_events(self, event_type: str | None = None) -> list[tuple[str, dict]]:
        if event_type:
            return [e for e in self.events if e[0] == event_type]
        return list(self.events)


def make_context(
    environment: str = "test",
    access: Any | None = None,
    router: RouterService | None = None,
    with_mocks: bool = False,
    **config: Any,
) -> BootstrapContext:
    """Create a context with a router, localization store and optional access control."""
    ctx = BootstrapContext(
        config=BootstrapConfig(environment=environment, **config),
        router=router if router is not None else RecordingRouter(),
        i18n=ResourceStore(),
    )
    if access is not None:
        ctx.register_service(ACCESS_CONTROL, access)
    if with_mocks:
        ctx.register_service(MOCK_SERVICE, MockService())
    return ctx


def make_module(
    name: str,
    load_type: ModuleLoadType | str = ModuleLoadType.NORMAL,
    priority: int = 0,
    dependencies: list[str] | None = None,
    feature_flags: list[str] | None = None,
    access_permissions: list[str] | None = None,
    routes: list[Route] | None = None,
    on_init: Callable[[Any], Any] | None = None,
    i18n: Callable[[Any], Any] | None = None,
    mock_handlers: list[Any] | None = None,
    deferred: bool = False,
) -> ModuleDescriptor:
    """
    Build a descriptor with the given policy and behavior.

    With ``deferred=True`` the config is wrapped in a DeferredConfig whose
    locator is ``test:<name>``.
    """
    condition = None
    if dependencies or feature_flags or access_permissions:
        condition = LoadCondition(
            dependencies=list(dependencies or []),
            feature_flags=list(feature_flags or []),
            access_permissions=list(access_permissions or []),
        )

    route_list = list(routes) if routes is not None else None
    config = ModuleConfig(
        routes=(lambda: route_list) if route_list is not None else None,
        i18n=i18n,
        on_module_init=on_init,
        mock_handlers=list(mock_handlers or []),
    )

    if deferred:

        async def fetch(_: str) -> ModuleConfig:
            await asyncio.sleep(0)
            return config

        module_config: ModuleConfig | DeferredConfig = DeferredConfig(f"test:{name}", fetch)
    else:
        module_config = config

    return ModuleDescriptor(
        name=name,
        load_type=ModuleLoadType(load_type),
        load_priority=priority,
        load_condition=condition,
        config=module_config,
    )


async def wait_for(condition: Callable[[], bool], timeout: float = 1.0) -> bool:
    """
    Wait for a condition to become true.

    Returns:
        True if condition was met, False if timeout
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    while loop.time() - start < timeout:
        if condition():
            return True
        await asyncio.sleep(0.01)
    return False
