"""Configuration management for SIEVEDNS.

Loads configuration from ``sievedns.yaml``, with support for CLI overrides
and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from sievedns.core.errors import ConfigurationError

# Queries per second granted to each trusted resolver during validation
DEFAULT_TRUSTED_RATE_PER_RESOLVER = 10


class ResolveConfig(BaseModel):
    """Bulk resolution pass configuration."""

    resolvers_file: Optional[str] = None
    engine: str = "massdns"
    sanitize: bool = True
    rate_limit: float = 0.0
    timeout: int = 5
    concurrency: int = 500
    stage_timeout: Optional[float] = None


class MassDNSConfig(BaseModel):
    """Settings for the massdns subprocess engine."""

    binary: str = "massdns"
    hashmap_size: int = 10000


class WildcardConfig(BaseModel):
    """Wildcard detection and filtering."""

    enabled: bool = True
    tests: int = 3


class ValidationConfig(BaseModel):
    """Trusted resolver validation pass."""

    enabled: bool = True
    trusted_resolvers_file: Optional[str] = None
    trusted_resolvers: List[str] = Field(
        default_factory=lambda: ["8.8.8.8", "8.8.4.4", "1.1.1.1", "1.0.0.1"]
    )
    rate_per_resolver: float = DEFAULT_TRUSTED_RATE_PER_RESOLVER
    rate_limit: float = 0.0


class OutputConfig(BaseModel):
    """Output destinations. ``None`` discards the artifact."""

    domains: Optional[str] = None
    records: Optional[str] = None
    wildcard_roots: Optional[str] = None
    wildcard_answers: Optional[str] = None


class Config(BaseModel):
    """Top-level SIEVEDNS configuration."""

    resolve: ResolveConfig = Field(default_factory=ResolveConfig)
    massdns: MassDNSConfig = Field(default_factory=MassDNSConfig)
    wildcard: WildcardConfig = Field(default_factory=WildcardConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from a YAML file, applying environment variable overrides.

    Args:
        config_path: Optional path to a YAML configuration file. Defaults to
                     ``sievedns.yaml`` in the current working directory.

    Returns:
        Populated :class:`Config` instance.

    Raises:
        ConfigurationError: When the file cannot be read or parsed, or a value
                            (from the file or the environment) is invalid.
    """
    path = Path(config_path) if config_path else Path("sievedns.yaml")

    raw: Dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("r") as fh:
                raw = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"cannot load config {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"config {path} must be a mapping of sections")

    # Environment variable overrides (SIEVEDNS__SECTION__KEY=value)
    _apply_env_overrides(raw)

    try:
        return Config(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def _apply_env_overrides(raw: Dict[str, Any]) -> None:
    """Mutate *raw* in-place with values from environment variables.

    Environment variables follow the pattern ``SIEVEDNS__<SECTION>__<KEY>``.
    For example ``SIEVEDNS__VALIDATION__RATE_PER_RESOLVER=5``.
    """
    prefix = "SIEVEDNS__"
    for env_key, env_val in os.environ.items():
        if not env_key.startswith(prefix):
            continue
        parts = env_key[len(prefix):].lower().split("__")
        if len(parts) == 2:
            section, key = parts
            target = raw.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigurationError(f"config section {section!r} must be a mapping")
            target[key] = env_val
