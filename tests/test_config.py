"""
Tests for bootstrap configuration loading.
"""

import json

import pytest
from modstage.config import BootstrapConfig
from modstage.config import load_config
from modstage.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MODSTAGE_API_URL", "MODSTAGE_ENV", "MODSTAGE_MODULE_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()

    assert config == BootstrapConfig()
    assert config.environment == "production"
    assert config.locales == ["en"]
    assert config.module_timeout is None


def test_yaml_file(tmp_path):
    path = tmp_path / "modstage.yaml"
    path.write_text(
        "api_url: https://api.example.com\n"
        "environment: development\n"
        "locales: [en, de]\n"
        "initial_routes:\n"
        "  - name: home\n"
        "    path: /\n"
    )

    config = load_config(path)

    assert config.api_url == "https://api.example.com"
    assert config.environment == "development"
    assert config.locales == ["en", "de"]
    assert config.initial_routes[0].name == "home"


def test_precedence(tmp_path, monkeypatch):
    path = tmp_path / "modstage.json"
    path.write_text(json.dumps({"api_url": "https://file", "environment": "development"}))
    monkeypatch.setenv("MODSTAGE_API_URL", "https://env")
    monkeypatch.setenv("MODSTAGE_MODULE_TIMEOUT", "2.5")

    config = load_config(path, environment="test")

    assert config.api_url == "https://env"
    assert config.environment == "test"
    assert config.module_timeout == 2.5


def test_invalid_values(monkeypatch):
    monkeypatch.setenv("MODSTAGE_ENV", "staging")

    with pytest.raises(ConfigurationError, match="Invalid bootstrap configuration"):
        load_config()


def test_non_positive_timeout():
    with pytest.raises(ConfigurationError):
        load_config(module_timeout=0)


def test_file_errors(tmp_path):
    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n")
    empty = tmp_path / "empty.yaml"
    empty.write_text("")

    with pytest.raises(ConfigurationError, match="must contain a mapping"):
        load_config(not_mapping)
    with pytest.raises(ConfigurationError, match="Cannot load config"):
        load_config(tmp_path / "missing.json")
    assert load_config(empty) == BootstrapConfig()
