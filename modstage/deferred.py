"""
Deferred module configuration.

A deferred config starts as a locator and becomes a ModuleConfig after the
first successful resolve(). The object itself stays in the descriptor for the
whole session; only its internal state changes, so nothing that iterates over
descriptors ever sees an object swap.

Concurrent callers share a single in-flight fetch.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import Any

from .exceptions import ConfigLoadError

if TYPE_CHECKING:
    from .models import ModuleConfig

logger = logging.getLogger(__name__)


class DeferredConfig:
    """
    ``Unresolved(locator) | Resolved(config)``.

    Args:
        locator: Where the config lives (import locator, URL, ...)
        loader: Async callable mapping the locator to a ModuleConfig (or a
            dict that validates as one). Anything exposing an async
            ``resolve(locator)`` method is accepted as well.
    """

    def __init__(
        self,
        locator: str,
        loader: Callable[[str], Awaitable[Any]] | Any,
    ):
        if not locator:
            raise ValueError("Deferred config requires a non-empty locator")
        self.locator = locator
        self._loader = loader
        self._value: ModuleConfig | None = None
        self._pending: asyncio.Future | None = None

    @classmethod
    def from_awaitable(cls, awaitable: Awaitable[Any], locator: str = "<awaitable>") -> "DeferredConfig":
        """Wrap an already-started fetch (coroutine or future)."""

        async def _await_once(_: str) -> Any:
            return await awaitable

        return cls(locator, _await_once)

    @property
    def is_resolved(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> "ModuleConfig | None":
        """Resolved config, or None if resolve() has not completed."""
        return self._value

    async def resolve(self) -> "ModuleConfig":
        """
        Resolve the config once and memoize it.

        Returns:
            The resolved ModuleConfig

        Raises:
            ConfigLoadError: The loader raised or returned something that is
                not a module config. Failures are not memoized.
        """
        if self._value is not None:
            return self._value

        # Another task is already fetching - share its result
        if self._pending is not None:
            return await asyncio.shield(self._pending)

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending = future

        try:
            config = self._coerce(await self._call_loader())
        except asyncio.CancelledError:
            self._fail(future, ConfigLoadError(f"Loading config from '{self.locator}' was cancelled"))
            raise
        except ConfigLoadError as e:
            self._fail(future, e)
            raise
        except Exception as e:
            error = ConfigLoadError(f"Failed to load config from '{self.locator}': {e}")
            self._fail(future, error)
            raise error from e

        self._value = config
        self._pending = None
        future.set_result(config)
        logger.debug(f"Resolved deferred config from '{self.locator}'")
        return config

    def _fail(self, future: asyncio.Future, error: ConfigLoadError) -> None:
        self._pending = None
        future.set_exception(error)
        # Mark retrieved so the loop does not warn when nobody else was waiting
        future.exception()

    async def _call_loader(self) -> Any:
        # Resolver objects define resolve() on their class; anything else is called directly
        if getattr(type(self._loader), "resolve", None) is not None:
            result = self._loader.resolve(self.locator)
        else:
            result = self._loader(self.locator)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _coerce(self, raw: Any) -> "ModuleConfig":
        # Import here to avoid circular import (models imports this module)
        from .models import ModuleConfig

        if isinstance(raw, ModuleConfig):
            return raw
        if isinstance(raw, dict):
            return ModuleConfig.model_validate(raw)
        raise ConfigLoadError(
            f"Locator '{self.locator}' resolved to {type(raw).__name__}, expected a module config"
        )

    def __repr__(self) -> str:
        state = "resolved" if self.is_resolved else "unresolved"
        return f"DeferredConfig({self.locator!r}, {state})"
