"""
Configuration management for browser-tools.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "BROWSER_TOOLS_"
HOME_ENV = "BROWSER_TOOLS_HOME"
DEFAULT_HOME = "~/.browser-tools"

SESSION_FILE_NAME = "ws.json"
USER_DATA_DIR_NAME = "user-data"
SELECTORS_FILE_NAME = "selectors.json"
SETTINGS_FILE_NAME = "settings.yaml"


class GeneralConfig(BaseModel):
    """General configuration."""

    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None


class BrowserConfig(BaseModel):
    """Browser process and connection configuration.

    A persistent browser listens on ``port``; temporary browsers pick a free
    local port on every launch.
    """

    host: str = "127.0.0.1"
    port: int = 9222
    headless: bool = False  # persistent `start`
    run_headless: bool = True  # temporary `run`
    executable: str | None = None
    extra_args: list[str] = Field(default_factory=list)

    startup_timeout: float = 10.0
    probe_interval: float = 0.2
    probe_timeout: float = 1.0
    terminate_grace: float = 5.0
    navigation_timeout: float = 30.0

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port out of range: {v}")
        return v


class RetryConfig(BaseModel):
    """Retry policy for navigation steps."""

    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=0.5, gt=0)
    max_delay: float = Field(default=2.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    jitter_factor: float = Field(default=0.0, ge=0.0, le=1.0)


class ScrapingConfig(BaseModel):
    """Extraction job defaults."""

    search_results: int = Field(default=5, ge=1)
    hn_limit: int = Field(default=10, ge=1)
    content_max_chars: int = 2000
    truncation_marker: str = "..."
    max_concurrent_fetches: int = Field(default=3, ge=1)
    wait_timeout: float = 10.0
    fetch_timeout: float = 20.0
    selectors_file: str | None = None


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    scraping: ScrapingConfig = Field(default_factory=ScrapingConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml from the config directory.

    A missing file is not an error; defaults apply.
    """
    path = config_dir / SETTINGS_FILE_NAME
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with BROWSER_TOOLS_ and use
    double underscores for nested keys.

    Example:
        BROWSER_TOOLS_BROWSER__PORT=9333
        BROWSER_TOOLS_RETRY__MAX_ATTEMPTS=5

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == HOME_ENV:
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split("__")
        if len(key_path) < 2:
            continue

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        try:
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif "." in value:
                current[final_key] = float(value)
            else:
                current[final_key] = int(value)
        except ValueError:
            current[final_key] = value

    return config


def get_config_dir() -> Path:
    """Directory holding the session record, selectors and settings.

    Defaults to ``~/.browser-tools``; override with BROWSER_TOOLS_HOME.
    """
    return Path(os.environ.get(HOME_ENV, DEFAULT_HOME)).expanduser()


def get_session_file() -> Path:
    return get_config_dir() / SESSION_FILE_NAME


def get_user_data_dir() -> Path:
    """Browser profile directory used by the persistent session."""
    return get_config_dir() / USER_DATA_DIR_NAME


def get_selectors_file(settings: Settings | None = None) -> Path:
    """Selector configuration path, honouring ``scraping.selectors_file``."""
    settings = settings or get_settings()
    if settings.scraping.selectors_file:
        return Path(settings.scraping.selectors_file).expanduser()
    return get_config_dir() / SELECTORS_FILE_NAME


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. settings.yaml in the config directory
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config = _load_yaml_config(get_config_dir())
    config = _apply_env_overrides(config)
    return Settings(**config)

