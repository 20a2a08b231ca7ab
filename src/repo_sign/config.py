"""Configuration management for repository metadata signing.

Every path the signing core touches is injected from here; nothing in the
package embeds a filesystem location.
"""

import json
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: Literal["console", "json"] = "console"
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class SigningConfig(BaseModel):
    """Complete signing configuration."""

    # Signed root.json holding the root of trust
    root_path: Path

    # Key source locators (paths, file:// URLs, env:VAR, ...)
    key_sources: list[str] = Field(default_factory=list)

    logging: LoggingConfig = LoggingConfig()


def load_config(config_path: Path) -> SigningConfig:
    """Load configuration from file.

    Supports YAML and JSON formats. A relative ``root_path`` is resolved
    against the configuration file's directory.

    Args:
        config_path: Path to configuration file

    Returns:
        SigningConfig object

    Raises:
        ConfigError: If the file is unreadable, malformed or invalid
    """
    config_path = Path(config_path)
    if config_path.suffix not in (".yaml", ".yml", ".json"):
        raise ConfigError(str(config_path), f"unsupported config format: {config_path.suffix}")

    try:
        with open(config_path) as f:
            if config_path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(str(config_path), e.strerror or str(e)) from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(str(config_path), f"parse error: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(str(config_path), "top level must be a mapping")

    try:
        config = SigningConfig(**data)
    except ValidationError as e:
        raise ConfigError(str(config_path), str(e)) from e

    if not config.root_path.is_absolute():
        config.root_path = config_path.parent / config.root_path
    return config


def save_config(config: SigningConfig, config_path: Path) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Output path
    """
    config_path = Path(config_path)
    if config_path.suffix not in (".yaml", ".yml", ".json"):
        raise ConfigError(str(config_path), f"unsupported config format: {config_path.suffix}")

    data = config.model_dump(mode="json")

    with open(config_path, "w") as f:
        if config_path.suffix == ".json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
