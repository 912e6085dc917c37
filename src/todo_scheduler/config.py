"""Configuration management for the Todo Scheduler application."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "TODO_SCHEDULER_DATA_DIR"


@dataclass
class ConfigModel:
    """Global configuration model for Todo Scheduler."""

    # File paths
    data_dir: str = "~/.todo_scheduler"
    tasks_file: str = "tasks.md"

    # Listing and search
    search_limit: int = 25
    search_date_format: str = "%d.%m.%Y"  # How dates are typed into --search
    display_date_format: str = "%Y-%m-%d"

    # Logging and UI
    log_level: str = "WARNING"
    no_color: bool = False

    def __post_init__(self):
        """Post-initialization setup."""
        self.data_dir = os.path.expanduser(self.data_dir)
        if self.search_limit <= 0:
            raise ValueError(f"search_limit must be positive, got {self.search_limit}")

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("configuration must be a YAML mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))

        return cls(**{k: v for k, v in data.items() if k in known})

    def get_tasks_path(self) -> Path:
        """Get the task file path."""
        return Path(self.data_dir) / self.tasks_file

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"


class Config:
    """Configuration manager for Todo Scheduler."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, falling back to defaults."""
        if cls._instance is not None:
            return cls._instance

        config = ConfigModel()
        env_data_dir = os.environ.get(DATA_DIR_ENV)
        if env_data_dir:
            config = ConfigModel(data_dir=env_data_dir)

        if config_path is None:
            config_path = config.get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    config = ConfigModel.from_yaml(f.read())
                logger.debug("Loaded configuration from %s", config_path)
            except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
                logger.warning("Failed to load config from %s: %s; using defaults", config_path, e)
        else:
            logger.debug("No configuration at %s; using defaults", config_path)

        if env_data_dir:
            config.data_dir = os.path.expanduser(env_data_dir)

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(config.to_yaml())
        logger.info("Configuration saved to %s", config_path)

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
