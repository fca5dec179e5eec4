"""
Startup manifest - modules discovered at startup instead of compiled in.

The manifest is a JSON (or YAML) document::

    {
      "status": "ok",
      "data": {
        "features": {"billing": true},
        "permissions": {"invoices.read": true},
        "params": {},
        "modules": [
          {"name": "billing", "loadType": "normal", "loadPriority": 2,
           "remoteEntry": "billing_module.config:module_config",
           "dependencies": ["auth"], "featureFlags": ["billing"]}
        ]
      }
    }

A module with an empty ``remoteEntry`` is local: its config is taken from a
catalog supplied by the host. Any other module gets a DeferredConfig resolved
on first use.
"""

import importlib
import inspect
import json
import logging
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .deferred import DeferredConfig
from .exceptions import ConfigLoadError
from .exceptions import ManifestError
from .exceptions import ManifestValidationError
from .interfaces import ConfigResolver
from .models import LoadCondition
from .models import ModuleConfig
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .validation import ManifestValidator
from .validation import is_import_locator

logger = logging.getLogger(__name__)


class ManifestModule(BaseModel):
    """One ``data.modules[]`` entry."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    version: str | None = None
    load_type: Literal["init", "normal"] = Field(alias="loadType")
    load_priority: int = Field(default=1, alias="loadPriority")
    remote_entry: str = Field(default="", alias="remoteEntry")
    dependencies: list[str] = Field(default_factory=list)
    feature_flags: list[str] = Field(default_factory=list, alias="featureFlags")
    access_permissions: list[str] = Field(default_factory=list, alias="accessPermissions")

    @property
    def is_local(self) -> bool:
        return self.remote_entry == ""


class ManifestData(BaseModel):
    features: dict[str, bool] = Field(default_factory=dict)
    permissions: dict[str, bool] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    modules: list[ManifestModule] = Field(default_factory=list)


class StartupManifest(BaseModel):
    """The startup manifest document."""

    status: Literal["ok", "error"]
    data: ManifestData = Field(default_factory=ManifestData)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ImportConfigResolver:
    """
    Resolves ``package.module:attribute`` locators with importlib.

    The attribute may be a ModuleConfig, a dict that validates as one, or a
    (possibly async) zero-argument factory returning either.
    """

    async def resolve(self, locator: str) -> ModuleConfig:
        if not is_import_locator(locator):
            raise ConfigLoadError(f"Not an import locator: '{locator}'")

        module_path, _, attr_path = locator.partition(":")
        try:
            target: Any = importlib.import_module(module_path)
        except ImportError as e:
            raise ConfigLoadError(f"Cannot import '{module_path}': {e}") from e

        for attr in attr_path.split("."):
            try:
                target = getattr(target, attr)
            except AttributeError as e:
                raise ConfigLoadError(f"'{module_path}' has no attribute '{attr_path}'") from e

        if callable(target) and not isinstance(target, ModuleConfig):
            target = target()
            if inspect.isawaitable(target):
                target = await target

        if isinstance(target, dict):
            return ModuleConfig.model_validate(target)
        if not isinstance(target, ModuleConfig):
            raise ConfigLoadError(f"'{locator}' is a {type(target).__name__}, expected a module config")
        return target


def read_manifest_file(path: str | Path) -> dict[str, Any]:
    """
    Read a manifest document from disk.

    ``.yaml``/``.yml`` files are parsed with PyYAML, everything else as JSON.

    Raises:
        ManifestError: File missing or unparseable
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ManifestError(f"Cannot parse manifest {path}: {e}") from e
    return data


def parse_manifest(raw: Any, catalog: set[str] | None = None) -> StartupManifest:
    """
    Validate and parse a raw manifest document.

    Args:
        raw: Parsed JSON/YAML document
        catalog: Names of locally available configs (enables the local check)

    Raises:
        ManifestValidationError: Validation failed (``errors`` holds the checks)
    """
    result = ManifestValidator(catalog).validate(raw)
    if not result.passed:
        raise ManifestValidationError(result.format_errors(), result.errors)
    for warning in result.warnings:
        logger.warning(f"Manifest: {warning.message}")
    return StartupManifest.model_validate(raw)


def load_manifest_file(path: str | Path, catalog: set[str] | None = None) -> StartupManifest:
    return parse_manifest(read_manifest_file(path), catalog)


def to_descriptors(
    manifest: StartupManifest,
    catalog: dict[str, ModuleConfig] | None = None,
    resolver: ConfigResolver | None = None,
) -> list[ModuleDescriptor]:
    """
    Turn manifest entries into module descriptors.

    Local modules missing from the catalog are skipped with a warning.

    Args:
        manifest: Parsed manifest
        catalog: Local module configs by name
        resolver: Resolves remote entries (defaults to ImportConfigResolver)

    Returns:
        Descriptors in manifest order
    """
    catalog = catalog or {}
    resolver = resolver or ImportConfigResolver()
    descriptors: list[ModuleDescriptor] = []

    for entry in manifest.data.modules:
        if entry.is_local:
            config = catalog.get(entry.name)
            if config is None:
                logger.warning(f"Skipping module '{entry.name}': no local config available")
                continue
        else:
            config = DeferredConfig(entry.remote_entry, resolver)

        load_type = ModuleLoadType(entry.load_type)
        condition = None
        if load_type != ModuleLoadType.INIT:
            condition = LoadCondition(
                feature_flags=entry.feature_flags,
                access_permissions=entry.access_permissions,
                dependencies=entry.dependencies,
            )
            if condition.is_empty():
                condition = None

        descriptors.append(
            ModuleDescriptor(
                name=entry.name,
                description=f"{entry.name} {entry.version}" if entry.version else None,
                load_type=load_type,
                load_priority=entry.load_priority,
                load_condition=condition,
                config=config,
            )
        )
        logger.debug(f"Manifest module '{entry.name}' ({load_type.value}, {'local' if entry.is_local else entry.remote_entry})")

    return descriptors
