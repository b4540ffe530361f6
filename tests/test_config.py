"""Tests for sievedns.core.config."""

from __future__ import annotations

import pytest

from sievedns.core.config import (
    DEFAULT_TRUSTED_RATE_PER_RESOLVER,
    Config,
    MassDNSConfig,
    load_config,
)
from sievedns.core.errors import ConfigurationError


def test_default_config_instantiates():
    """Config can be created with all defaults."""
    cfg = Config()
    assert cfg.resolve.sanitize is True
    assert cfg.wildcard.enabled is True
    assert cfg.validation.enabled is True
    assert cfg.resolve.resolvers_file is None


def test_default_trusted_rate():
    cfg = Config()
    assert DEFAULT_TRUSTED_RATE_PER_RESOLVER == 10
    assert cfg.validation.rate_per_resolver == 10
    assert cfg.validation.rate_limit == 0.0


def test_default_trusted_resolvers():
    cfg = Config()
    assert "8.8.8.8" in cfg.validation.trusted_resolvers
    assert "1.1.1.1" in cfg.validation.trusted_resolvers


def test_massdns_config_defaults():
    mc = MassDNSConfig()
    assert mc.binary == "massdns"
    assert mc.hashmap_size == 10000


def test_output_destinations_default_to_none():
    out = Config().output
    assert out.domains is None
    assert out.records is None
    assert out.wildcard_roots is None
    assert out.wildcard_answers is None


def test_load_config_from_yaml(tmp_path):
    """load_config reads a YAML file and returns a valid Config."""
    yaml_content = (
        "resolve:\n  engine: builtin\n  rate_limit: 500\n"
        "wildcard:\n  tests: 5\n"
        "validation:\n  enabled: false\n"
    )
    config_file = tmp_path / "sievedns.yaml"
    config_file.write_text(yaml_content)

    cfg = load_config(str(config_file))
    assert cfg.resolve.engine == "builtin"
    assert cfg.resolve.rate_limit == 500
    assert cfg.wildcard.tests == 5
    assert cfg.validation.enabled is False


def test_load_config_missing_file_uses_defaults(tmp_path):
    """load_config falls back to defaults when the file does not exist."""
    cfg = load_config(str(tmp_path / "nonexistent.yaml"))
    assert cfg.resolve.engine == "massdns"


def test_load_config_empty_file(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")
    assert load_config(str(config_file)).wildcard.tests == 3


def test_env_override(monkeypatch):
    """Environment variables override config values."""
    monkeypatch.setenv("SIEVEDNS__VALIDATION__RATE_PER_RESOLVER", "4")
    monkeypatch.setenv("SIEVEDNS__RESOLVE__SANITIZE", "false")
    cfg = load_config("/nonexistent_path_that_does_not_exist.yaml")
    # The env override sets the value as a string; pydantic coerces it.
    assert cfg.validation.rate_per_resolver == 4
    assert cfg.resolve.sanitize is False


def test_invalid_env_value_raises_configuration_error(monkeypatch):
    monkeypatch.setenv("SIEVEDNS__RESOLVE__RATE_LIMIT", "fast")
    with pytest.raises(ConfigurationError, match="rate_limit"):
        load_config("/nonexistent_path_that_does_not_exist.yaml")


def test_malformed_yaml_raises_configuration_error(tmp_path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("resolve: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config(str(config_file))


def test_non_mapping_yaml_raises_configuration_error(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- resolve\n- wildcard\n")
    with pytest.raises(ConfigurationError):
        load_config(str(config_file))
