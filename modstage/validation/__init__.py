"""
Startup manifest validation.

Checks a manifest document before any module from it is registered:

    from modstage.validation import ManifestValidator

    result = ManifestValidator().validate(raw_manifest)
    if not result.passed:
        print(result.format_errors())
"""

from .base import ValidationCheck
from .manifest import ManifestValidationResult
from .manifest import ManifestValidator
from .manifest import find_cycle
from .manifest import is_import_locator
from .manifest import is_url_locator
from .manifest import is_valid_locator

__all__ = [
    "ValidationCheck",
    "ManifestValidationResult",
    "ManifestValidator",
    "find_cycle",
    "is_import_locator",
    "is_url_locator",
    "is_valid_locator",
]
