"""
Per-module load status tracking.

Plain keyed storage plus convenience predicates. Records are created lazily on
the first activation attempt and live for the whole session.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Literal

from .exceptions import StatusTransitionError

logger = logging.getLogger(__name__)

ModuleLoadStatus = Literal["pending", "loading", "loaded", "failed"]
ResourceKind = Literal["routes", "locale", "mocks"]

# Allowed forward moves; failed and loaded are terminal
_TRANSITIONS: dict[ModuleLoadStatus, set[ModuleLoadStatus]] = {
    "pending": {"loading", "failed"},
    "loading": {"loaded", "failed"},
    "loaded": set(),
    "failed": set(),
}


@dataclass
class LoadStatusRecord:
    """Load state of one module."""

    status: ModuleLoadStatus = "pending"
    error: BaseException | None = None
    registered: set[ResourceKind] = field(default_factory=set)

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "error": str(self.error) if self.error else None,
            "registered": sorted(self.registered),
        }


class StatusTracker:
    """Keyed state machine of module load status."""

    def __init__(self):
        self._records: dict[str, LoadStatusRecord] = {}

    def get_record(self, name: str) -> LoadStatusRecord | None:
        return self._records.get(name)

    def _ensure(self, name: str) -> LoadStatusRecord:
        record = self._records.get(name)
        if record is None:
            record = LoadStatusRecord()
            self._records[name] = record
        return record

    def _move(self, name: str, status: ModuleLoadStatus) -> LoadStatusRecord:
        record = self._ensure(name)
        if status != record.status and status not in _TRANSITIONS[record.status]:
            raise StatusTransitionError(
                f"Module '{name}' cannot move from {record.status} to {status}"
            )
        record.status = status
        return record

    def mark_pending(self, name: str) -> None:
        """Create the record if it does not exist yet."""
        self._ensure(name)

    def mark_loading(self, name: str) -> None:
        self._move(name, "loading")

    def mark_loaded(self, name: str) -> None:
        record = self._move(name, "loaded")
        record.error = None

    def mark_failed(self, name: str, error: BaseException) -> None:
        record = self._move(name, "failed")
        record.error = error
        logger.debug(f"Module '{name}' marked failed: {error}")

    def status_of(self, name: str) -> ModuleLoadStatus | None:
        record = self._records.get(name)
        return record.status if record else None

    def error_of(self, name: str) -> BaseException | None:
        record = self._records.get(name)
        return record.error if record else None

    def is_loaded(self, name: str) -> bool:
        return self.status_of(name) == "loaded"

    def is_loading(self, name: str) -> bool:
        return self.status_of(name) == "loading"

    def is_settled(self, name: str) -> bool:
        """True once the module reached a terminal state."""
        return self.status_of(name) in ("loaded", "failed")

    def mark_registered(self, name: str, resource: ResourceKind) -> None:
        self._ensure(name).registered.add(resource)

    def is_registered(self, name: str, resource: ResourceKind) -> bool:
        record = self._records.get(name)
        return record is not None and resource in record.registered

    def names_with_status(self, status: ModuleLoadStatus) -> list[str]:
        return [name for name, record in self._records.items() if record.status == status]

    def snapshot(self) -> dict[str, dict[str, object]]:
        """JSON-friendly view of all records, for diagnostics."""
        return {name: record.to_dict() for name, record in self._records.items()}
