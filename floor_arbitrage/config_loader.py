"""
Configuration loading for the floor arbitrage system.

Reads YAML files, layers environment settings from a .env file, and
validates the result against the pydantic schemas.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError as SchemaValidationError

from .config_schema import (
    ClientConfig,
    SweepConfig,
    validate_client_config,
    validate_sweep_config,
)
from .constants import API_KEY_SETTING
from .exceptions import ConfigurationError
from .utils import deep_merge

logger = logging.getLogger(__name__)


def load_environment(dotenv_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load a .env file into the process environment.

    Variables that are already set are left untouched.

    Returns:
        True if a file was found and loaded
    """
    loaded = load_dotenv(dotenv_path=dotenv_path, override=False)
    if loaded:
        logger.debug(f"Loaded environment from {dotenv_path or '.env'}")
    return loaded


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration root must be a mapping: {config_path}",
            {"config_file": str(config_path)},
        )

    return config_dict


def _format_schema_error(error: SchemaValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def build_client_config(
    config_dict: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ClientConfig:
    """
    Validate a client configuration mapping.

    The API key falls back to RESERVOIR_API_KEY from the environment when
    neither the mapping nor the overrides supply one.

    Raises:
        ConfigurationError: If the configuration fails schema validation
    """
    merged = deep_merge(config_dict or {}, overrides or {})
    if not merged.get("api_key") and os.environ.get(API_KEY_SETTING):
        merged["api_key"] = os.environ[API_KEY_SETTING]

    try:
        return validate_client_config(merged)
    except SchemaValidationError as e:
        raise ConfigurationError(
            f"Client configuration validation failed: {_format_schema_error(e)}"
        )


def load_client_config(
    config_path: Union[str, Path],
    overrides: Optional[Dict[str, Any]] = None,
) -> ClientConfig:
    """
    Load the client section of a configuration file.

    The file may either be a bare client mapping or hold it under a
    top-level `client` key.

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    config_dict = load_yaml_config(config_path)
    section = config_dict.get("client", config_dict)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid client section in {config_path}")
    return build_client_config(section, overrides)


def load_sweep_config(config_path: Union[str, Path]) -> SweepConfig:
    """
    Load a sweep policy from the `sweep` key of a configuration file.

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    config_dict = load_yaml_config(config_path)
    section = config_dict.get("sweep")
    if not isinstance(section, dict):
        raise ConfigurationError(f"Missing sweep section in {config_path}")

    try:
        return validate_sweep_config(section)
    except SchemaValidationError as e:
        raise ConfigurationError(
            f"Sweep configuration validation failed: {_format_schema_error(e)}"
        )
