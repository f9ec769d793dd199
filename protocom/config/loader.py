"""
Reads and writes protocom.json.

Every section is optional in the file; missing values take the model
defaults, unknown keys are rejected.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .models import AppConfig


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "protocom.json"


class ConfigurationError(Exception):
    """Config file unreadable, not JSON, or failing validation."""
    pass


def _describe_validation_error(error: ValidationError) -> str:
    lines = ["Configuration validation failed:"]
    for item in error.errors():
        location = " -> ".join(str(part) for part in item["loc"])
        lines.append(f"  - {location}: {item['msg']}")
    return "\n".join(lines)


def _read_json(config_path: Path) -> Dict[str, Any]:
    try:
        text = config_path.read_text(encoding="utf-8")
    except IOError as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e


def load_config(path: Optional[str] = None, create_missing: bool = True) -> AppConfig:
    """
    Load and validate the configuration file.

    Args:
        path: Config file, protocom.json in the working directory by default.
        create_missing: Write the defaults to ``path`` when it does not exist.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigurationError: If the file cannot be read or does not validate.
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)

    if not config_path.exists():
        logger.info(f"No config at {config_path}, using defaults")
        config = AppConfig()
        if create_missing:
            try:
                save_config(config, str(config_path))
            except ConfigurationError as e:
                logger.warning(f"Default config not written: {e}")
        return config

    try:
        config = AppConfig.model_validate(_read_json(config_path))
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(e)) from e

    logger.info(f"Configuration loaded from {config_path}")
    return config


def save_config(config: AppConfig, path: Optional[str] = None) -> None:
    """
    Write the configuration as indented JSON.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    try:
        config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    except IOError as e:
        raise ConfigurationError(f"Failed to write {config_path}: {e}") from e

    logger.info(f"Configuration written to {config_path}")
