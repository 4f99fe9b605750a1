# lorekeep/core/config.py
"""
Centralized configuration loading for lorekeep.

Usage:
    from lorekeep.core.config import load_config, LorekeepConfig

    config = load_config("config.yaml")          # validated LorekeepConfig
    config = load_config(allow_default=True)     # defaults when no file exists

Resolution order when no path is given:
    1. $LOREKEEP_CONFIG
    2. {workspace}/config.yaml
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lorekeep.core.paths import LorePaths

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LOREKEEP_CONFIG"


# =============================================================================
# Errors
# =============================================================================


class ConfigError(Exception):
    """Base error for configuration issues."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path:
            message = f"{message} (file: {path})"
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """Raised when a config file doesn't exist."""

    pass


class ConfigParseError(ConfigError):
    """Raised when YAML parsing fails."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when config doesn't match schema."""

    pass


# =============================================================================
# Schema
# =============================================================================


class RateLimitConfig(BaseModel):
    """Per-key sliding window limits for outbound service calls."""

    model_config = ConfigDict(extra="forbid")

    max_requests: int = Field(30, ge=1)
    window_seconds: float = Field(60.0, gt=0)
    max_keys: int = Field(1024, ge=1)


class GatewayConfig(BaseModel):
    """Extraction service endpoint."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field("http://localhost:54321/functions/v1", description="Service base URL")
    api_key: Optional[str] = Field(None, description="Bearer token")
    extract_path: str = Field("/extract-knowledge", description="Extraction endpoint path")
    timeout: float = Field(120.0, gt=0, description="Request timeout in seconds")


class ArbiterConfig(BaseModel):
    """Merge evaluation service endpoint and decision settings."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field("http://localhost:54321/functions/v1", description="Service base URL")
    api_key: Optional[str] = Field(None, description="Bearer token")
    evaluate_path: str = Field("/evaluate-merge", description="Merge evaluation endpoint path")
    timeout: float = Field(60.0, gt=0, description="Request timeout in seconds")
    temperature: float = Field(0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(1000, ge=1)
    similarity_threshold: float = Field(0.7, ge=0.0, le=1.0)
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig, description="Merge evaluations per item type"
    )


class JobsConfig(BaseModel):
    """Processing job lifecycle settings."""

    model_config = ConfigDict(extra="forbid")

    timeout_minutes: float = Field(30.0, gt=0, description="Ceiling for non-terminal jobs")
    sweep_interval_seconds: float = Field(60.0, gt=0, description="Abandoned-job sweep period")
    max_chunk_chars: int = Field(4000, ge=100, description="Max characters per extraction chunk")
    conflict_policy: str = Field("reject", pattern="^reject$", description="Second-request policy")


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field("INFO")


class LorekeepConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra="forbid")

    workspace: str = Field(".lorekeep", description="Workspace directory for state files")
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    arbiter: ArbiterConfig = Field(default_factory=ArbiterConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig, description="Extraction calls per project"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Loading
# =============================================================================


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML file and return it as a dictionary.

    Raises:
        ConfigNotFoundError: If file doesn't exist
        ConfigParseError: If YAML is invalid or the root is not a mapping
    """
    p = Path(path)

    if not p.exists():
        raise ConfigNotFoundError("Config file not found", path=p)

    if p.is_dir():
        raise ConfigError("Config path is a directory, not a file", path=p)

    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML syntax: {e}", path=p) from e

    if not isinstance(data, dict):
        raise ConfigParseError("Config root must be a mapping (dict)", path=p)

    logger.debug(f"Loaded config from {p}")
    return data


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the config path to load (explicit, env var, then workspace)."""
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    return LorePaths.config()


def load_config(
    path: Optional[Union[str, Path]] = None,
    allow_default: bool = False,
) -> LorekeepConfig:
    """
    Load and validate the lorekeep configuration.

    Args:
        path: Explicit config file path
        allow_default: Return defaults instead of raising when no file exists

    Raises:
        ConfigNotFoundError: If no file exists and allow_default is False
        ConfigParseError: If YAML is invalid
        ConfigValidationError: If the file doesn't match the schema
    """
    resolved = resolve_config_path(path)

    if not resolved.exists() and allow_default:
        logger.debug(f"No config at {resolved}, using defaults")
        return LorekeepConfig()

    data = load_yaml(resolved)

    try:
        return LorekeepConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration: {e}", path=resolved) from e


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "GatewayConfig",
    "ArbiterConfig",
    "JobsConfig",
    "RateLimitConfig",
    "LoggingConfig",
    "LorekeepConfig",
    "load_yaml",
    "load_config",
    "resolve_config_path",
]
