"""
Hook system for module lifecycle events.
Observers run sequentially by priority; a failing observer never breaks loading.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

HookCallback = Callable[[str, dict[str, Any]], Any]


@dataclass
class HookHandler:
    """Registered hook handler with priority."""

    handler: HookCallback
    priority: int = 0
    name: str | None = None

    def __lt__(self, other: "HookHandler") -> bool:
        """Sort by priority (lower number = higher priority)."""
        return self.priority < other.priority


class HookRegistry:
    """
    Manages lifecycle observers with deterministic execution order.
    Handlers may be sync or async; their return values are ignored.
    """

    def __init__(self):
        self._handlers: dict[str, list[HookHandler]] = defaultdict(list)
        self._defaults: dict[str, Any] = {}

    def register(
        self,
        event: str,
        handler: HookCallback,
        priority: int = 0,
        name: str | None = None,
    ) -> Callable[[], None]:
        """
        Register a hook handler for an event.

        Args:
            event: Event name to hook into (see events.py)
            handler: Callable receiving (event, data)
            priority: Execution priority (lower = earlier)
            name: Optional handler name for debugging

        Returns:
            Unregister function
        """
        hook_handler = HookHandler(
            handler=handler, priority=priority, name=name or getattr(handler, "__name__", None)
        )

        self._handlers[event].append(hook_handler)
        self._handlers[event].sort()  # Stable, so equal priorities keep registration order

        logger.debug(f"Registered hook '{hook_handler.name}' for event '{event}' with priority {priority}")

        def unregister():
            """Remove this handler from the registry."""
            if hook_handler in self._handlers[event]:
                self._handlers[event].remove(hook_handler)
                logger.debug(f"Unregistered hook '{hook_handler.name}' from event '{event}'")

        return unregister

    # Alias
    on = register

    def set_default_fields(self, **defaults: Any) -> None:
        """Set fields merged into every emitted event (explicit data wins)."""
        self._defaults = defaults

    async def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        """
        Emit an event to all registered handlers.

        Args:
            event: Event name
            data: Event payload
        """
        handlers = self._handlers.get(event, [])
        if not handlers:
            return

        payload = {**self._defaults, **(data or {})}

        for hook_handler in list(handlers):
            try:
                result = hook_handler.handler(event, payload)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                logger.error(f"CancelledError in hook handler '{hook_handler.name}' for event '{event}'")
            except Exception as e:
                logger.error(f"Error in hook handler '{hook_handler.name}' for event '{event}': {e}")

    def list_handlers(self, event: str | None = None) -> dict[str, list[str]]:
        """
        List registered handlers.

        Args:
            event: Optional event to filter by

        Returns:
            Dict of event names to handler names
        """
        if event:
            handlers = self._handlers.get(event, [])
            return {event: [h.name for h in handlers if h.name is not None]}
        return {
            evt: [h.name for h in handlers if h.name is not None]
            for evt, handlers in self._handlers.items()
        }
