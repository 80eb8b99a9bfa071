"""Configuration management for the Todo Export application."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ConfigError
from .export import ExportFormat


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TODO_EXPORT_CONFIG"
DEFAULT_CONFIG_PATH = "~/.todo-export/config.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ConfigModel:
    """Global configuration model for Todo Export."""

    # Export defaults
    default_format: ExportFormat = ExportFormat.JSON
    include_completed: bool = True
    include_due_dates: bool = True
    batch_base_name: Optional[str] = None  # Defaults to todo-complete-backup

    # File paths
    export_dir: str = "~/.todo-export/exports"
    tasks_file: str = "~/.todo-export/tasks.json"

    # Date display
    timezone: str = "UTC"

    # Diagnostics
    log_level: str = "WARNING"

    def __post_init__(self):
        """Post-initialization setup."""
        self.export_dir = os.path.expanduser(self.export_dir)
        self.tasks_file = os.path.expanduser(self.tasks_file)

        if not isinstance(self.default_format, ExportFormat):
            try:
                self.default_format = ExportFormat(self.default_format)
            except ValueError:
                logger.warning("Unknown default_format %r, using json", self.default_format)
                self.default_format = ExportFormat.JSON

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            logger.warning("Unknown log_level %r, using WARNING", self.log_level)
            self.log_level = "WARNING"

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "default_format": self.default_format.value,
            "include_completed": self.include_completed,
            "include_due_dates": self.include_due_dates,
            "batch_base_name": self.batch_base_name,
            "export_dir": self.export_dir,
            "tasks_file": self.tasks_file,
            "timezone": self.timezone,
            "log_level": self.log_level,
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        known = {f.name for f in fields(cls)}
        for key in sorted(set(data) - known):
            logger.warning("Ignoring unknown config key %r", key)

        return cls(**{key: value for key, value in data.items() if key in known})

    def get_log_level(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


def get_config_path() -> Path:
    """Get the config file path, honoring the environment override."""
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()


class Config:
    """Configuration manager for Todo Export."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, or defaults if there is none.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed
        """
        if config_path is None:
            config_path = get_config_path()
        config_path = Path(config_path).expanduser()

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config = ConfigModel.from_yaml(f.read())
            except (OSError, yaml.YAMLError, TypeError) as e:
                raise ConfigError(f"Failed to load config from {config_path}: {e}") from e
            logger.debug("Loaded configuration from %s", config_path)
        else:
            logger.debug("No configuration at %s, using defaults", config_path)
            config = ConfigModel()

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Raises:
            ConfigError: If the file cannot be written
        """
        if config_path is None:
            config_path = get_config_path()
        config_path = Path(config_path).expanduser()

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(config.to_yaml())
        except OSError as e:
            raise ConfigError(f"Failed to save config to {config_path}: {e}") from e
        logger.info("Configuration saved to %s", config_path)

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the cached configuration."""
        cls._instance = None


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
