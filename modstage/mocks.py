"""Reference mock service collecting development request handlers."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class MockService:
    """Holds mock handlers contributed by modules in development."""

    def __init__(self):
        self._handlers: list[Any] = []

    @property
    def handlers(self) -> list[Any]:
        return list(self._handlers)

    def add_handlers(self, handlers: list[Any]) -> None:
        self._handlers.extend(handlers)
        logger.debug(f"Added {len(handlers)} mock handler(s), {len(self._handlers)} total")

    def reset(self) -> None:
        self._handlers.clear()
