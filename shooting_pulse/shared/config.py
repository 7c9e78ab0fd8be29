"""
Shooting Pulse - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides
- Type validation via Pydantic

Usage:
    from shooting_pulse.shared.config import get_config

    config = get_config()  # Uses SP_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    # Access config values
    threshold = config.modeling.threshold
    date_format = config.normalization.date_format
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "shooting-pulse"
    version: str = "0.1.0"
    description: str = "NYPD shooting incident analysis and murder-flag classifier"


class NormalizationConfig(BaseModel):
    """Raw record normalization settings."""

    date_format: str = "%m/%d/%Y"
    null_tokens: list[str] = Field(default_factory=lambda: ["", "(null)", "NULL", "NA", "N/A"])


class AggregationConfig(BaseModel):
    """Aggregation defaults."""

    default_granularity: Literal["month", "year"] = "month"


class ModelingConfig(BaseModel):
    """Logistic classifier settings."""

    threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    solver: str = "lbfgs"
    max_iter: int = 1000
    tolerance: float = 1e-6

    @field_validator("max_iter")
    @classmethod
    def validate_max_iter(cls, v: int) -> int:
        """Validate iteration budget."""
        if v < 1:
            raise ValueError(f"max_iter must be positive, got {v}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for Shooting Pulse.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables (SP_ prefix, "__" for nesting)

    Values present in YAML are passed as init arguments and win over the
    environment; environment variables fill everything the YAML leaves unset.
    """

    model_config = SettingsConfigDict(
        env_prefix="SP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    modeling: ModelingConfig = Field(default_factory=ModelingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path | None:
    """Get the configuration directory path, or None if there is none."""
    # Try relative path from the repository root
    config_dir = Path(__file__).parent.parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    return None


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    config_dir = _get_config_dir()
    if config_dir is None:
        logger.debug("No configs directory found, using built-in defaults")
        return {"environment": environment}

    env_dir = config_dir / "environments"

    base_config = _load_yaml_file(env_dir / "base.yaml")
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses SP_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.

    Example:
        config = get_config()
        config = get_config("prod")

        threshold = config.modeling.threshold
    """
    if environment is None:
        environment = os.getenv("SP_ENVIRONMENT", "dev")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    return Settings(**yaml_config)


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    return get_config(environment)
