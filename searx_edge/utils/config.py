"""
Configuration management for searx-edge.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "SEARX_EDGE_"


class GeneralConfig(BaseModel):
    """General configuration."""

    project_name: str = "searx-edge"
    version: str = "0.1.0"
    log_level: str = "INFO"
    log_file: str | None = None
    json_logs: bool = True


class ServerConfig(BaseModel):
    """Inbound listener configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


class ProxyConfig(BaseModel):
    """Forwarding and response configuration."""

    model_config = ConfigDict(extra="forbid")

    # Target of the unauthorized fallback page
    redirect_url: str = "https://linux.do/t/topic/507581"
    refresh_seconds: int = 3
    strip_engines: bool = True
    default_category: str = "general"
    # Deadline of each outbound call (feed and upstream), seconds
    request_timeout: float = 30.0
    user_agent: str | None = None


class SelectionPolicy(BaseModel):
    """Criteria an instance must fully satisfy to be selected.

    Every option may be set to None (or left empty) to disable the check.
    """

    model_config = ConfigDict(extra="forbid")

    network_type: str | None = "normal"
    min_uptime: dict[str, float] = Field(default_factory=lambda: {"day": 100.0})
    max_initial_latency: float | None = 1.0
    max_search_latency: float | None = 1.0
    min_success: dict[str, float] = Field(
        default_factory=lambda: {"initial": 100.0, "search": 100.0, "search_go": 100.0}
    )
    required_engines: list[str] = Field(default_factory=list)
    max_engine_error_rate: float = 0.0
    blacklist: set[str] = Field(default_factory=lambda: {"searx.be", "darmarit.org"})


class SelectorConfig(BaseModel):
    """Upstream selection configuration."""

    feed_url: str = "https://searx.space/data/instances.json"
    # Explicit base URL that bypasses the health feed entirely
    override_url: str | None = None
    policy: SelectionPolicy = Field(default_factory=SelectionPolicy)


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    selector: SelectorConfig = Field(default_factory=SelectorConfig)


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_local_overrides(config_dir: Path) -> dict[str, Any]:
    """Load local.yaml overrides.

    Example local.yaml:
        settings:
          selector:
            override_url: https://searx.example.org

    Args:
        config_dir: Configuration directory path.

    Returns:
        Local overrides dictionary.
    """
    local_path = config_dir / "local.yaml"
    if not local_path.exists():
        return {}
    with open(local_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_yaml_with_local_override(
    config_dir: Path,
    filename: str,
    section_key: str | None = None,
) -> dict[str, Any]:
    """Load YAML file with local.yaml override support.

    Args:
        config_dir: Configuration directory path.
        filename: YAML filename (e.g., "settings.yaml").
        section_key: Key in local.yaml for overrides.
                     Defaults to filename without extension.

    Returns:
        Merged configuration dictionary.
    """
    config: dict[str, Any] = {}

    base_path = config_dir / filename
    if base_path.exists():
        with open(base_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    if section_key is None:
        section_key = Path(filename).stem

    local_overrides = _load_local_overrides(config_dir)
    if isinstance(local_overrides.get(section_key), dict):
        config = deep_merge(config, local_overrides[section_key])

    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with SEARX_EDGE_ and use
    double underscores for nested keys.

    Example:
        SEARX_EDGE_GENERAL__LOG_LEVEL=DEBUG

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}CONFIG_DIR":
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split("__")

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
    """Get the configuration directory."""
    return Path(os.environ.get(f"{ENV_PREFIX}CONFIG_DIR", "config"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files (settings.yaml, then local.yaml)
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config = load_yaml_with_local_override(get_config_dir(), "settings.yaml", "settings")
    config = _apply_env_overrides(config)
    return Settings(**config)
