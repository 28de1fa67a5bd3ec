"""
Configuration dataclasses for the relay list client.

This module defines the configuration structures used throughout the
package (API endpoint, request settings, logging) together with helpers
to load them from a JSON file and from the environment.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError


DEFAULT_API_BASE_URL = "https://api.mullvad.net"

# Request timeout for the relay list; applied per request, not client-wide.
RELAY_LIST_TIMEOUT = 15.0

VALID_LOG_LEVELS = ("debug", "info", "warn", "error")
VALID_OUTPUT_FORMATS = ("json", "text", "both")

ENV_API_URL = "RELAY_LIST_API_URL"
ENV_LOG_LEVEL = "RELAY_LIST_LOG_LEVEL"


@dataclass
class ClientConfig:
    """HTTP client configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    # Client-wide default; the relay list request uses RELAY_LIST_TIMEOUT.
    timeout_seconds: float = 10.0
    user_agent: str = "relay-list-client/0.1.0"
    verify_tls: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _validate(config: SystemConfig) -> SystemConfig:
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level: {config.logging.level}",
            details={"allowed": list(VALID_LOG_LEVELS)},
        )
    if config.logging.output_format not in VALID_OUTPUT_FORMATS:
        raise ConfigError(
            f"Invalid output format: {config.logging.output_format}",
            details={"allowed": list(VALID_OUTPUT_FORMATS)},
        )
    if not config.client.api_base_url.lower().startswith(("https://", "http://")):
        raise ConfigError(
            f"API base URL must be an http(s) URL: {config.client.api_base_url}",
        )
    if config.client.timeout_seconds <= 0:
        raise ConfigError("Timeout must be positive")
    return config


def config_from_dict(data: dict) -> SystemConfig:
    """
    Build a SystemConfig from a parsed JSON document.

    Missing sections and keys fall back to their defaults.

    Raises:
        ConfigError: If a value has the wrong type or is out of range
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object")

    try:
        client_data = data.get("client", {})
        client = ClientConfig(
            api_base_url=str(client_data.get("api_base_url", DEFAULT_API_BASE_URL)),
            timeout_seconds=float(client_data.get("timeout_seconds", ClientConfig.timeout_seconds)),
            user_agent=str(client_data.get("user_agent", ClientConfig.user_agent)),
            verify_tls=bool(client_data.get("verify_tls", True)),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=str(logging_data.get("level", "info")).lower(),
            output_format=str(logging_data.get("output_format", "text")).lower(),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return _validate(SystemConfig(client=client, logging=logging_config))


def config_to_dict(config: SystemConfig) -> dict:
    """Convert a SystemConfig to a JSON-serializable dictionary."""
    return {
        "client": {
            "api_base_url": config.client.api_base_url,
            "timeout_seconds": config.client.timeout_seconds,
            "user_agent": config.client.user_agent,
            "verify_tls": config.client.verify_tls,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
    }


def load_config_from_file(config_path: Path) -> SystemConfig:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig parsed from the file, or the defaults if it does not exist

    Raises:
        ConfigError: If the file is not valid JSON or holds invalid values
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return SystemConfig()
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Error loading config: {e}",
            details={"path": str(config_path)},
        ) from e

    return config_from_dict(data)


def save_config_to_file(config: SystemConfig, config_path: Path) -> None:
    """
    Save configuration to a JSON file, creating parent directories.

    Raises:
        ConfigError: If the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigError(
            f"Error saving config: {e}",
            details={"path": str(config_path)},
        ) from e


def apply_env_overrides(
    config: SystemConfig,
    dotenv_path: Optional[Path] = None,
) -> SystemConfig:
    """
    Apply overrides from the environment and a .env file.

    Without an explicit path, the .env file is searched for from the
    current directory upwards.

    Reads RELAY_LIST_API_URL and RELAY_LIST_LOG_LEVEL. Variables already set
    in the process environment take precedence over the .env file.
    """
    if dotenv_path is None:
        dotenv_path = find_dotenv(usecwd=True)
    load_dotenv(dotenv_path=dotenv_path, override=False)

    api_url = os.getenv(ENV_API_URL, "").strip()
    if api_url:
        config.client.api_base_url = api_url

    log_level = os.getenv(ENV_LOG_LEVEL, "").strip().lower()
    if log_level:
        config.logging.level = log_level

    return _validate(config)
