"""
In-memory reference router.

Keeps the registered route tree, resolves names to routes, runs
``on_enter``/``on_exit`` callbacks on navigation and builds the navigation
menu. Hosts with a real router engine implement the RouteRegistrar protocol
instead.
"""

import inspect
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import RouteNotFoundError
from .models import Route

logger = logging.getLogger(__name__)


class MenuItem(BaseModel):
    """Entry of the navigation menu."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    path: str  # Full route name
    text: str
    icon: str | None = None
    sort_order: int = 0
    navigate: bool = True
    always_expand: bool = False
    page_component: Any | None = None
    children: list["MenuItem"] = Field(default_factory=list)


@dataclass
class NavigationState:
    """Where the router is (or is going)."""

    name: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)


class RouterService:
    """
    Route store plus a minimal navigation engine.

    Args:
        routes: Routes known before any module registers its own
        app_prefix: Base path prepended to every built path
    """

    def __init__(self, routes: list[Route] | None = None, app_prefix: str = ""):
        self.app_prefix = app_prefix.rstrip("/")
        self._routes: list[Route] = []
        self._by_name: dict[str, Route] = {}
        self._dependencies: dict[str, Any] = {}
        self._current: NavigationState | None = None
        if routes:
            self.register_routes(routes)

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    @property
    def dependencies(self) -> dict[str, Any]:
        return dict(self._dependencies)

    @property
    def current(self) -> NavigationState | None:
        return self._current

    def register_routes(self, routes: list[Route]) -> None:
        """Add top-level routes; a name that is already known is skipped."""
        for route in routes:
            if route.name in self._by_name:
                logger.debug(f"Route '{route.name}' already registered, skipping")
                continue
            self._routes.append(route)
            for node in route.walk():
                self._by_name.setdefault(node.name, node)

    def find_route(self, name: str) -> Route | None:
        return self._by_name.get(name)

    def build_path(self, name: str) -> str:
        """Concatenate the paths of every known route along the dotted name."""
        segments = name.split(".")
        parts: list[str] = []
        for i in range(1, len(segments) + 1):
            node = self._by_name.get(".".join(segments[:i]))
            if node is not None and node.path:
                parts.append(node.path.strip("/"))
        return f"{self.app_prefix}/{'/'.join(p for p in parts if p)}"

    async def navigate(self, name: str, params: dict[str, Any] | None = None) -> NavigationState:
        """
        Move to a route.

        Runs the previous route's ``on_exit`` and then the target's
        ``on_enter``, each called as ``callback(to_state, from_state, dependencies)``.

        Raises:
            RouteNotFoundError: Unknown route name
        """
        route = self.find_route(name)
        if route is None:
            raise RouteNotFoundError(name)

        from_state = self._current
        to_state = NavigationState(name=name, path=self.build_path(name), params=dict(params or {}))

        if from_state is not None:
            previous = self.find_route(from_state.name)
            if previous is not None and previous.on_exit is not None:
                await _call(previous.on_exit, to_state, from_state, self._dependencies)

        if route.on_enter is not None:
            await _call(route.on_enter, to_state, from_state, self._dependencies)

        self._current = to_state
        logger.debug(f"Navigated to '{name}' ({to_state.path})")
        return to_state

    def post_init(self, callback: Callable[["RouterService"], Any]) -> None:
        """Let the host adjust the router once all routes are known."""
        callback(self)

    def set_dependencies(self, **dependencies: Any) -> None:
        """Values handed to every route callback."""
        self._dependencies.update(dependencies)

    def build_menu(self, routes: list[Route] | None = None) -> list[MenuItem]:
        """
        Build the navigation menu from routes that carry ``menu`` metadata.

        A route whose dotted name has a parent already in the menu is nested
        under it; children declared on a route are nested recursively. Every
        level is ordered by ``sort_order``.
        """
        counter = itertools.count()
        items: list[MenuItem] = []
        index: dict[str, MenuItem] = {}

        def make(route: Route) -> MenuItem:
            item = MenuItem(
                id=str(next(counter)),
                path=route.name,
                text=route.menu.text,
                icon=route.menu.icon,
                sort_order=route.menu.sort_order,
                navigate=route.menu.navigate,
                always_expand=route.menu.always_expand,
                page_component=route.page_component,
            )
            index[route.name] = item
            for child in route.children:
                if child.menu is not None:
                    item.children.append(make(child))
            return item

        for route in self._routes if routes is None else routes:
            if route.menu is None:
                continue
            parent = index.get(route.name.rpartition(".")[0])
            (parent.children if parent is not None else items).append(make(route))

        _sort_menu(items)
        return items


def _sort_menu(items: list[MenuItem]) -> None:
    items.sort(key=lambda item: item.sort_order)
    for item in items:
        _sort_menu(item.children)


async def _call(callback: Callable[..., Any], *args: Any) -> Any:
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
