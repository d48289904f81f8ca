#!/usr/bin/env python3
"""
Configuration loading for the HCTM scripts.

Settings are merged from, lowest to highest precedence:

1. built-in defaults
2. environment variables (a .env file is loaded first when present)
3. a YAML config file

Command-line flags are applied on top by the scripts themselves.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .thermal import parse_bool

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = "/dev/nvme0"

DEFAULT_SETTINGS: Dict[str, Any] = {
    'device': DEFAULT_DEVICE,
    'nvme_bin': 'nvme',
    'save': False,
    'change_both': False,
    'report_dir': None,
    'output_format': None,
}

ENV_VARS: Dict[str, str] = {
    'HCTM_DEVICE': 'device',
    'HCTM_NVME_BIN': 'nvme_bin',
    'HCTM_SAVE': 'save',
    'HCTM_REPORT_DIR': 'report_dir',
    'HCTM_OUTPUT_FORMAT': 'output_format',
}

BOOL_KEYS = ('save', 'change_both')
OUTPUT_FORMATS = ('json', 'normal')


def _coerce(key: str, value: Any) -> Any:
    if key in BOOL_KEYS and not isinstance(value, bool):
        return parse_bool(value)
    if key == 'output_format' and value is not None and value not in OUTPUT_FORMATS:
        raise ValueError(f"Invalid output_format '{value}', expected one of {', '.join(OUTPUT_FORMATS)}")
    return value


def load_env_settings(env_file: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Read settings from HCTM_* environment variables.

    Args:
        env_file: Optional .env file; defaults to .env in the working directory

    Returns:
        Settings found in the environment
    """
    env_path = Path(env_file) if env_file else Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
        logger.debug(f"Loaded environment variables from {env_path}")
    elif env_file:
        raise ValueError(f"Environment file not found: {env_path}")

    settings: Dict[str, Any] = {}
    for env_name, key in ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            try:
                settings[key] = _coerce(key, value)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_name}: {e}") from e
    return settings


def load_yaml_settings(config_file: Union[str, Path]) -> Dict[str, Any]:
    """
    Read settings from a YAML file.

    Raises:
        ValueError: If the file cannot be read or is not a YAML mapping
    """
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Error loading config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")

    settings: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in DEFAULT_SETTINGS:
            logger.warning(f"Ignoring unknown config key '{key}' in {config_file}")
            continue
        settings[key] = _coerce(key, value)
    return settings


def load_settings(config_file: Optional[Union[str, Path]] = None,
                  env_file: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Build the effective settings from defaults, environment and YAML file.
    """
    settings = dict(DEFAULT_SETTINGS)
    settings.update(load_env_settings(env_file))
    if config_file:
        settings.update(load_yaml_settings(config_file))
    return settings
