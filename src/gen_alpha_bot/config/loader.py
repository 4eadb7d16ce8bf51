"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from .schema import BotConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path | None = None) -> BotConfig:
    """
    Load configuration from a YAML file or from the environment.

    When ``path`` is given, the file is read, ``${VAR}`` references are
    substituted and the result is validated. Sections missing from the file
    are filled from the environment. Without a path the whole configuration
    comes from environment variables (and ``.env``).

    Args:
        path: Optional path to YAML configuration file

    Returns:
        Validated BotConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing, the YAML is malformed
            or config is invalid
        ValidationError: If config doesn't match schema
    """
    if path is None:
        return BotConfig()

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    yaml_with_env = substitute_env_vars(raw_yaml)
    try:
        config_dict: dict[str, Any] = yaml.safe_load(yaml_with_env) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    # Init kwargs take priority over environment values
    return BotConfig(**config_dict)
