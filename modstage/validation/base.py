"""
Base types for manifest validation.

Provides ValidationCheck, the single result unit every validator emits.
"""

from dataclasses import asdict
from dataclasses import dataclass
from typing import Any
from typing import Literal

Severity = Literal["error", "warning", "info"]


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str
    severity: Severity = "error"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
