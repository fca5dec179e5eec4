"""
Core data models for modstage.
Uses Pydantic for validation of module descriptors and routes.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

from .deferred import DeferredConfig


class ModuleLoadType(str, Enum):
    """When a module is activated."""

    INIT = "init"  # Sequentially, during bootstrap, before anything else
    NORMAL = "normal"  # Concurrently by dependency level, after first render
    LAZY = "lazy"  # On demand (first navigation or explicit request)


class LoadCondition(BaseModel):
    """Gate on a module's activation."""

    feature_flags: list[str] = Field(
        default_factory=list, description="Capability flags that must all be enabled"
    )
    access_permissions: list[str] = Field(
        default_factory=list, description="Permissions the principal must all hold"
    )
    dependencies: list[str] = Field(
        default_factory=list, description="Modules that must be loaded first"
    )

    def is_empty(self) -> bool:
        return not (self.feature_flags or self.access_permissions or self.dependencies)


class RouteMenu(BaseModel):
    """Menu metadata attached to a route."""

    text: str
    icon: str | None = None
    sort_order: int = 0
    navigate: bool = True
    always_expand: bool = False


class Route(BaseModel):
    """
    Named navigation target contributed by a module.

    ``name`` is the full dot-segmented name (``"billing.invoices"``); children
    carry full names as well. ``on_enter`` and ``on_exit`` are called by the
    router as ``callback(to_state, from_state, dependencies)`` and may be sync
    or async.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    path: str
    menu: RouteMenu | None = None
    page_component: Any | None = None
    children: list["Route"] = Field(default_factory=list)
    on_enter: Callable[..., Any] | None = None
    on_exit: Callable[..., Any] | None = None

    @property
    def first_segment(self) -> str:
        return self.name.split(".")[0]

    def walk(self) -> list["Route"]:
        """Return this route followed by all descendants, depth first."""
        result = [self]
        for child in self.children:
            result.extend(child.walk())
        return result


class ModuleConfig(BaseModel):
    """Behavior contributed by a module."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    routes: Callable[[], list[Route]] | None = Field(
        default=None, description="Factory returning the module's routes"
    )
    i18n: Callable[[Any], Any] | None = Field(
        default=None, description="Registers localization bundles; receives the store"
    )
    on_module_init: Callable[[Any], Any] | None = Field(
        default=None, description="One-time init hook; receives the bootstrap context"
    )
    mock_handlers: list[Any] = Field(
        default_factory=list, description="Auxiliary handlers for development mocks"
    )


class ModuleDescriptor(BaseModel):
    """
    Identity and policy metadata of a module.

    INIT modules may not carry a load condition. For any other type the config
    may be a DeferredConfig, resolved once on first use.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    description: str | None = None
    load_type: ModuleLoadType = ModuleLoadType.NORMAL
    load_priority: int = 0
    load_condition: LoadCondition | None = None
    config: ModuleConfig | DeferredConfig = Field(default_factory=ModuleConfig)

    @model_validator(mode="after")
    def _init_modules_have_no_conditions(self) -> "ModuleDescriptor":
        if self.load_type == ModuleLoadType.INIT and self.load_condition is not None:
            raise ValueError(f"INIT module '{self.name}' cannot declare a load condition")
        return self

    @property
    def dependencies(self) -> list[str]:
        return list(self.load_condition.dependencies) if self.load_condition else []

    @property
    def feature_flags(self) -> list[str]:
        return list(self.load_condition.feature_flags) if self.load_condition else []

    @property
    def access_permissions(self) -> list[str]:
        return list(self.load_condition.access_permissions) if self.load_condition else []

    @property
    def is_deferred(self) -> bool:
        """True if the config was supplied as a deferred value (resolved or not)."""
        return isinstance(self.config, DeferredConfig)

    @property
    def resolved_config(self) -> ModuleConfig | None:
        """The usable config, or None while a deferred config is unresolved."""
        if isinstance(self.config, DeferredConfig):
            return self.config.value
        return self.config


class LoadReport(BaseModel):
    """Outcome of a best-effort activation pass."""

    loaded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    levels: list[list[str]] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
