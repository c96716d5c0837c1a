"""
Configuration management for boardctl.

Loads the YAML config file holding the board table and optional tool
settings, with environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from boardctl.errors import ConfigError


DEFAULT_CONFIG_FILE = Path("config.yaml")
DEFAULT_BOARD = "icicle"
DEFAULT_BY_ID_DIR = Path("/dev/serial/by-id")
DEFAULT_BAUD = 115200


@dataclass
class SerialConfig:
    """Serial console settings."""

    by_id_dir: Path = field(default_factory=lambda: DEFAULT_BY_ID_DIR)
    baud: int = DEFAULT_BAUD


@dataclass
class ConsoleConfig:
    """Credentials written by the scripted console login."""

    username: str = "root"
    password: str = "root"


@dataclass
class Config:
    """Main configuration for boardctl."""

    serial: SerialConfig = field(default_factory=SerialConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    log_level: str = "INFO"
    boards: Any = None
    path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Optional[Path] = None) -> "Config":
        """Create Config from dictionary."""
        serial_data = data.get("serial") or {}
        console_data = data.get("console") or {}
        if not isinstance(serial_data, dict):
            raise ConfigError("serial section must be a mapping")
        if not isinstance(console_data, dict):
            raise ConfigError("console section must be a mapping")

        serial = SerialConfig(
            by_id_dir=Path(serial_data.get("by_id_dir", str(DEFAULT_BY_ID_DIR))),
            baud=int(serial_data.get("baud", DEFAULT_BAUD)),
        )

        console = ConsoleConfig(
            username=str(console_data.get("username", "root")),
            password=str(console_data.get("password", "root")),
        )

        return cls(
            serial=serial,
            console=console,
            log_level=str(data.get("log_level", "INFO")),
            boards=data.get("boards"),
            path=path,
        )


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    """
    Pick the config file to load.

    Search order:
    1. Explicit path if provided
    2. BOARDCTL_CONFIG environment variable
    3. config.yaml in the working directory
    """
    if config_path:
        return Path(config_path)
    env_path = os.environ.get("BOARDCTL_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Environment variable overrides:
    - BOARDCTL_LOG_LEVEL: Override log_level
    - BOARDCTL_SERIAL_DIR: Override serial.by_id_dir
    - BOARDCTL_BAUD: Override serial.baud

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If the file is missing, unreadable or not a YAML mapping
    """
    path = resolve_config_path(config_path)

    try:
        with open(path) as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ConfigError(f"Config file {path} is not a mapping")

    try:
        config = Config.from_dict(config_data, path=path)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid setting in {path}: {e}") from e

    return _apply_env_overrides(config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if "BOARDCTL_LOG_LEVEL" in os.environ:
        config.log_level = os.environ["BOARDCTL_LOG_LEVEL"]

    if "BOARDCTL_SERIAL_DIR" in os.environ:
        config.serial.by_id_dir = Path(os.environ["BOARDCTL_SERIAL_DIR"])

    if "BOARDCTL_BAUD" in os.environ:
        try:
            config.serial.baud = int(os.environ["BOARDCTL_BAUD"])
        except ValueError:
            pass

    return config
