"""
Configuration management for the BidHub client.

Loads configuration from YAML into strict pydantic models. Every section must
be present in the file; unknown keys are rejected. The API base URL can be
overridden with the BIDHUB_API_BASE_URL environment variable.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

CONFIG_PATH_ENV_VAR = "BIDHUB_CONFIG_PATH"
BASE_URL_ENV_VAR = "BIDHUB_API_BASE_URL"
DEFAULT_CONFIG_FILENAME = "config.yaml"


class ApiConfig(BaseModel):
    """Remote API connection configuration."""

    model_config = ConfigDict(extra="forbid")
    base_url: str
    timeout_seconds: float = Field(gt=0)


class StorageConfig(BaseModel):
    """Persisted session storage configuration."""

    model_config = ConfigDict(extra="forbid")
    backend: Literal["memory", "file"]
    directory: str | None = None
    poll_interval_seconds: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def _require_directory_for_file_backend(self) -> StorageConfig:
        if self.backend == "file" and not self.directory:
            msg = "storage.directory is required when storage.backend is 'file'"
            raise ValueError(msg)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")
    level: str
    directory: str | None = None


class NoticesConfig(BaseModel):
    """User notice configuration."""

    model_config = ConfigDict(extra="forbid")
    ttl_seconds: float = Field(gt=0)


class DisplayConfig(BaseModel):
    """Display formatting configuration."""

    model_config = ConfigDict(extra="forbid")
    currency_symbol: str


class Settings(BaseModel):
    """
    Root configuration container.

    All sections are REQUIRED. Missing sections fail at load time.
    """

    model_config = ConfigDict(extra="forbid")
    api: ApiConfig
    storage: StorageConfig
    logging: LoggingConfig
    notices: NoticesConfig
    display: DisplayConfig


def get_config_path(config_path: Path | None = None) -> Path:
    """Determine the configuration file path.

    Resolution order: explicit argument, then the BIDHUB_CONFIG_PATH
    environment variable, then ``config.yaml`` in the working directory.
    """
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


def load_settings(config_path: Path | None = None) -> Settings:
    """Load Settings from YAML, applying environment overrides.

    Args:
        config_path: Explicit path to config.yaml. Falls back to
                     BIDHUB_CONFIG_PATH, then to ``config.yaml`` in the cwd.

    Returns:
        Validated Settings instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the file is not a YAML mapping.
        pydantic.ValidationError: If a section is missing or malformed.
    """
    path = get_config_path(config_path)
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict):
        msg = f"Invalid config file: {path}"
        raise ValueError(msg)

    base_url = os.environ.get(BASE_URL_ENV_VAR)
    if base_url:
        api_section = raw.setdefault("api", {})
        if isinstance(api_section, dict):
            api_section["base_url"] = base_url

    return Settings(**raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide cached Settings."""
    return load_settings()


def clear_settings_cache() -> None:
    """Forget the cached Settings so the next call reloads from disk."""
    get_settings.cache_clear()
