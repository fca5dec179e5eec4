"""
Bootstrap configuration.

Loaded from a YAML or JSON file; a few environment variables override file
values:

- ``MODSTAGE_API_URL`` -> ``api_url``
- ``MODSTAGE_ENV`` -> ``environment``
- ``MODSTAGE_MODULE_TIMEOUT`` -> ``module_timeout`` (seconds)
"""

import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import Route

ENV_OVERRIDES: dict[str, str] = {
    "MODSTAGE_API_URL": "api_url",
    "MODSTAGE_ENV": "environment",
    "MODSTAGE_MODULE_TIMEOUT": "module_timeout",
}


class BootstrapConfig(BaseModel):
    """Settings consumed by the bootstrap pipeline."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_url: str = ""
    app_prefix: str = ""
    environment: Literal["production", "development", "test"] = "production"
    locales: list[str] = Field(default_factory=lambda: ["en"])
    default_locale: str = "en"
    initial_routes: list[Route] = Field(default_factory=list)
    manifest_path: str | None = None
    manifest_url: str | None = Field(
        default=None, description="Path on the API serving the startup manifest"
    )
    module_timeout: float | None = Field(default=None, gt=0)
    router_post_init: Callable[[Any], Any] | None = None
    log_level: str = "INFO"


def load_config(path: str | Path | None = None, **overrides: Any) -> BootstrapConfig:
    """
    Build a BootstrapConfig from a file, the environment and keyword overrides.

    Precedence (highest first): keyword overrides, environment, file.

    Raises:
        ConfigurationError: File unreadable or values invalid
    """
    values: dict[str, Any] = {}
    if path is not None:
        values.update(_read_file(Path(path)))

    for env_name, key in ENV_OVERRIDES.items():
        if env_value := os.environ.get(env_name):
            values[key] = env_value

    values.update(overrides)

    try:
        return BootstrapConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid bootstrap configuration: {e}") from e


def _read_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        data = yaml.safe_load(text) if path.suffix in (".yaml", ".yml") else json.loads(text)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot load config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must contain a mapping, got {type(data).__name__}")
    return data


def configure_logging(level: str = "INFO") -> None:
    """Basic stderr logging for command-line use. Library code never calls this."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
