"""YAML configuration loading with environment variable substitution."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from .settings import LifecycleConfig

CONFIG_PATH = Path("chectl.yaml")

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """

    def replacer(match: re.Match[str]) -> str:
        var_expr = match.group(1)

        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        if ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name}: {error_msg}")
            return value

        value = os.getenv(var_expr)
        if value is None:
            raise ValueError(f"Required environment variable {var_expr} not set")
        return value

    return _PLACEHOLDER.sub(replacer, text)


def read_config_data(file_path: Path = CONFIG_PATH) -> dict[str, Any]:
    """Read the ``config:`` section of a YAML file after env substitution.

    A ``.env`` file next to the YAML file is loaded first (existing
    environment variables win).

    Raises:
        ValueError: If the YAML cannot be parsed or has no ``config`` key
        FileNotFoundError: If the YAML file doesn't exist
    """
    load_dotenv(file_path.parent / ".env", override=False)

    with open(file_path) as f:
        content = f.read()

    content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict) or "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")
    return dict(loaded["config"] or {})


def load_config(
    file_path: Path = CONFIG_PATH,
    overrides: dict[str, Any] | None = None,
) -> LifecycleConfig:
    """
    Load and validate a lifecycle configuration file.

    Args:
        file_path: Path to the YAML file (default: chectl.yaml)
        overrides: Values that replace the file's (e.g. explicit CLI flags)

    Returns:
        Validated LifecycleConfig

    Raises:
        ValueError: If a required environment variable is missing, the YAML
                   structure is invalid or validation fails
        FileNotFoundError: If the YAML file doesn't exist
    """
    logger.info(f"Loading configuration from {file_path}")
    data = read_config_data(file_path)
    if overrides:
        logger.debug(f"Override keys: {sorted(overrides)}")
        data = merge_overrides(data, overrides)
    return build_config(data)


def merge_overrides(data: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides on top of file values; nested sections merge one level deep."""
    merged = dict(data)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def build_config(data: dict[str, Any]) -> LifecycleConfig:
    """Validate raw values into a LifecycleConfig.

    Raises:
        ValueError: With the pydantic message when validation fails
    """
    try:
        return LifecycleConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
