"""
Startup manifest validator.

Validates the raw manifest structure BEFORE any module is registered, so a
bad manifest fails with clear, actionable messages instead of a half-built
registry.

Example usage:
    from modstage.validation import ManifestValidator

    validator = ManifestValidator()
    result = validator.validate(raw_manifest)

    if not result.passed:
        print(result.format_errors())
        sys.exit(1)
"""

import re
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .base import ValidationCheck

LOAD_TYPES: set[str] = {"init", "normal"}
STATUSES: set[str] = {"ok", "error"}

_URL_LOCATOR = re.compile(r"^https?://[^/\s?#]+(/\S*)?$")
_IMPORT_LOCATOR = re.compile(
    r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*:[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$"
)


def is_url_locator(locator: str) -> bool:
    return bool(_URL_LOCATOR.match(locator))


def is_import_locator(locator: str) -> bool:
    """``package.module:attribute`` form."""
    return bool(_IMPORT_LOCATOR.match(locator))


def is_valid_locator(locator: str) -> bool:
    return is_url_locator(locator) or is_import_locator(locator)


@dataclass
class ManifestValidationResult:
    """Complete validation result for a startup manifest."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True if no error-severity checks failed."""
        return all(c.passed for c in self.checks if c.severity == "error")

    @property
    def errors(self) -> list[ValidationCheck]:
        """All failed error-severity checks."""
        return [c for c in self.checks if not c.passed and c.severity == "error"]

    @property
    def warnings(self) -> list[ValidationCheck]:
        """All failed warning-severity checks."""
        return [c for c in self.checks if not c.passed and c.severity == "warning"]

    def add(self, check: ValidationCheck) -> None:
        self.checks.append(check)

    def fail(self, name: str, message: str, severity: str = "error") -> None:
        self.add(ValidationCheck(name=name, passed=False, message=message, severity=severity))

    def summary(self) -> str:
        """Return a human-readable summary."""
        passed_count = sum(1 for c in self.checks if c.passed)
        status = "PASSED" if self.passed else "FAILED"
        return (
            f"{status}: {passed_count}/{len(self.checks)} checks passed "
            f"({len(self.errors)} errors, {len(self.warnings)} warnings)"
        )

    def format_errors(self) -> str:
        """Human-readable error summary for display."""
        if not self.errors:
            return "No errors"

        lines = ["Manifest Validation Failed:", ""]
        for i, error in enumerate(self.errors, 1):
            lines.append(f"  {i}. [{error.name}] {error.message}")
        lines.append("")
        lines.append(f"Total: {len(self.errors)} error(s)")
        return "\n".join(lines)


class ManifestValidator:
    """Validates startup manifest structure before module registration.

    Validates:
    - Root structure (dict with a known status and a data object)
    - Module list (names, load types, priorities, list-typed conditions)
    - Dependency graph (references resolve, no cycles)
    - Remote entry locators (URL or ``package.module:attribute``)
    - INIT modules carry no flags, permissions or dependencies

    Does NOT validate:
    - That remote entries can actually be fetched (that's the resolver's job)

    Args:
        catalog: Names of locally available module configs; when given,
            modules with an empty ``remoteEntry`` must appear in it
    """

    def __init__(self, catalog: set[str] | None = None):
        self.catalog = catalog

    def validate(self, manifest: Any) -> ManifestValidationResult:
        """Validate a raw manifest.

        Args:
            manifest: Parsed manifest document

        Returns:
            ManifestValidationResult with all validation checks
        """
        result = ManifestValidationResult()

        if not self._validate_root(result, manifest):
            return result  # Fatal - can't continue

        modules = manifest.get("data", {}).get("modules", [])
        if not isinstance(modules, list):
            result.fail("modules_type", f"data.modules must be a list, got {type(modules).__name__}")
            return result

        names = self._validate_modules(result, modules)
        self._validate_dependencies(result, modules, names)
        return result

    def _validate_root(self, result: ManifestValidationResult, manifest: Any) -> bool:
        """Check root-level structure. Returns False if fatal error."""
        if not isinstance(manifest, dict):
            result.fail("root_type", f"Manifest must be a dict, got {type(manifest).__name__}")
            return False

        status = manifest.get("status")
        if status not in STATUSES:
            result.fail("status", f"status must be one of {sorted(STATUSES)}, got {status!r}")
        elif status == "error":
            result.fail("status", "Manifest reports status 'error'", severity="warning")

        data = manifest.get("data")
        if not isinstance(data, dict):
            result.fail("data_type", "Manifest is missing the 'data' object")
            return False

        for section in ("features", "permissions"):
            value = data.get(section, {})
            if not isinstance(value, dict) or not all(isinstance(v, bool) for v in value.values()):
                result.fail(f"{section}_type", f"data.{section} must map names to booleans")

        result.add(ValidationCheck(name="root_structure", passed=True, message="Root structure valid", severity="info"))
        return True

    def _validate_modules(self, result: ManifestValidationResult, modules: list[Any]) -> set[str]:
        names: set[str] = set()
        for i, entry in enumerate(modules):
            label = f"modules[{i}]"
            if not isinstance(entry, dict):
                result.fail("module_type", f"{label} must be a dict, got {type(entry).__name__}")
                continue

            name = entry.get("name")
            if not isinstance(name, str) or not name:
                result.fail("module_name", f"{label} has no name")
                continue
            label = f"Module '{name}'"

            if name in names:
                result.fail("duplicate_name", f"{label} is declared more than once")
            names.add(name)

            load_type = entry.get("loadType")
            if load_type not in LOAD_TYPES:
                result.fail("load_type", f"{label} has loadType {load_type!r}, expected one of {sorted(LOAD_TYPES)}")

            priority = entry.get("loadPriority", 1)
            if isinstance(priority, bool) or not isinstance(priority, int):
                result.fail("load_priority", f"{label} has non-integer loadPriority {priority!r}")

            for key in ("dependencies", "featureFlags", "accessPermissions"):
                value = entry.get(key, [])
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    result.fail("condition_type", f"{label}: {key} must be a list of strings")

            if load_type == "init" and any(entry.get(k) for k in ("dependencies", "featureFlags", "accessPermissions")):
                result.fail("init_conditions", f"{label} is an INIT module and cannot declare load conditions")

            remote_entry = entry.get("remoteEntry", "")
            if not isinstance(remote_entry, str):
                result.fail("remote_entry", f"{label} has a non-string remoteEntry")
            elif remote_entry and not is_valid_locator(remote_entry):
                result.fail(
                    "remote_entry",
                    f"{label} has malformed remoteEntry {remote_entry!r} "
                    "(expected an http(s) URL or 'package.module:attribute')",
                )
            elif not remote_entry and self.catalog is not None and name not in self.catalog:
                result.fail("local_config", f"{label} is local but no config named '{name}' is available")

        return names

    def _validate_dependencies(
        self, result: ManifestValidationResult, modules: list[Any], names: set[str]
    ) -> None:
        graph: dict[str, list[str]] = {}
        for entry in modules:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                continue
            deps = entry.get("dependencies") or []
            if not isinstance(deps, list):
                continue
            deps = [d for d in deps if isinstance(d, str)]
            graph.setdefault(entry["name"], deps)

            unknown = [d for d in deps if d not in names]
            if unknown:
                result.fail(
                    "unknown_dependency",
                    f"Module '{entry['name']}' depends on unknown module(s): {', '.join(unknown)}",
                )

        cycle = find_cycle(graph)
        if cycle:
            result.fail("dependency_cycle", f"Circular dependency detected: {' -> '.join(cycle)}")
        else:
            result.add(ValidationCheck(name="dependency_graph", passed=True, message="No dependency cycles", severity="info"))


def find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """
    Find one cycle in a dependency graph.

    Returns:
        The cycle as a path that starts and ends on the same name, or None
    """
    done: set[str] = set()

    def visit(name: str, path: list[str]) -> list[str] | None:
        if name in path:
            return path[path.index(name):] + [name]
        if name in done or name not in graph:
            return None
        path.append(name)
        for dep in graph[name]:
            cycle = visit(dep, path)
            if cycle:
                return cycle
        path.pop()
        done.add(name)
        return None

    for name in graph:
        cycle = visit(name, [])
        if cycle:
            return cycle
    return None
