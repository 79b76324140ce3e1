#!/usr/bin/env python3
"""
Configuration Manager for Ping Phantom

Features:
- JSON configuration file
- Environment variable overrides
- JSON Schema validation of all parameters
- Default values matching the classic ping defaults
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration value fails validation."""
    pass


class ConfigSchema:
    """Configuration schema with validation"""

    SCHEMA = {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "required": ["version", "general", "session"],
        "properties": {
            "version": {"type": "string", "pattern": r"^\d+\.\d+\.\d+$"},
            "general": {
                "type": "object",
                "required": ["log_level", "colors_enabled"],
                "properties": {
                    "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
                    "colors_enabled": {"type": "boolean"}
                }
            },
            "session": {
                "type": "object",
                "required": ["count", "interval", "size", "ttl", "timeout"],
                "properties": {
                    "count": {"type": "integer", "minimum": 0},
                    "interval": {"type": "number", "minimum": 0},
                    "size": {"type": "integer", "minimum": 0, "maximum": 65515},
                    "ttl": {"type": "integer", "minimum": 1, "maximum": 255},
                    "timeout": {"type": "number", "exclusiveMinimum": 0, "maximum": 300},
                    "verify_checksum": {"type": "boolean"}
                }
            }
        }
    }

    @staticmethod
    def get_defaults() -> Dict[str, Any]:
        """Return default configuration"""
        return {
            "version": "1.0.0",
            "general": {
                "log_level": "WARNING",
                "colors_enabled": True
            },
            "session": {
                "count": 4,
                "interval": 1,
                "size": 32,
                "ttl": 64,
                "timeout": 2,
                "verify_checksum": False
            }
        }

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate a configuration document.

        Raises:
            ConfigError: With the dotted path of the first offending field
        """
        try:
            jsonschema.validate(instance=config, schema=cls.SCHEMA)
        except jsonschema.ValidationError as e:
            path = ".".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigError(f"{path}: {e.message}") from e


class ConfigManager:
    """
    Configuration manager with file, env, and validation support

    Usage:
        config = ConfigManager("pping_config.json")
        config.load()
        count = config.get("session.count")
        config.set("session.ttl", 128)
        config.save()
    """

    ENV_PREFIX = "PING_PHANTOM_"
    DEFAULT_FILE = "pping_config.json"

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to JSON config file (default: pping_config.json)
        """
        self.config_file = config_file or self.DEFAULT_FILE
        self.config = ConfigSchema.get_defaults()
        self.modified = False

    def load(self, config_file: Optional[str] = None) -> bool:
        """
        Load configuration from file

        Args:
            config_file: Optional path override

        Returns:
            True if loaded successfully, False if defaults are in use
        """
        if config_file:
            self.config_file = config_file

        path = Path(self.config_file)

        if not path.exists():
            logger.debug(f"Config file not found: {self.config_file}, using defaults")
            return False

        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Config load error ({self.config_file}): {e}")
            return False

        merged = ConfigSchema.get_defaults()
        self._merge_config(merged, loaded_config)

        try:
            ConfigSchema.validate(merged)
        except ConfigError as e:
            logger.warning(f"Config validation failed ({self.config_file}): {e}; using defaults")
            self.config = ConfigSchema.get_defaults()
            return False

        self.config = merged
        logger.debug(f"Config loaded: {self.config_file}")
        return True

    def save(self, config_file: Optional[str] = None) -> bool:
        """
        Save configuration to file

        Args:
            config_file: Optional path override

        Returns:
            True if saved successfully
        """
        if config_file:
            self.config_file = config_file

        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error(f"Config save error ({self.config_file}): {e}")
            return False

        logger.debug(f"Config saved: {self.config_file}")
        self.modified = False
        return True

    def _merge_config(self, base: Dict, override: Dict) -> None:
        """Deep merge configuration"""
        for key, value in override.items():
            if (key in base and
                    isinstance(base[key], dict) and
                    isinstance(value, dict)):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def validate(self) -> bool:
        """Validate the current configuration against the schema"""
        try:
            ConfigSchema.validate(self.config)
        except ConfigError as e:
            logger.warning(f"Validation error: {e}")
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation

        Args:
            key: Configuration key (e.g., "session.count")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        # Environment wins over file
        env_key = (self.ENV_PREFIX + key.upper().replace(".", "_"))
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._parse_env_value(env_value)

        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value"""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def set(self, key: str, value: Any) -> bool:
        """
        Set configuration value using dot notation

        The change is validated; an invalid value leaves the
        configuration untouched.

        Raises:
            ConfigError: If the resulting configuration is invalid
        """
        candidate = copy.deepcopy(self.config)
        keys = key.split(".")

        current = candidate
        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value

        ConfigSchema.validate(candidate)
        self.config = candidate
        self.modified = True
        return True

    def export_for_cli(self) -> Dict[str, Any]:
        """
        Export session defaults for CLI usage.

        Environment overrides are applied and the result is validated.

        Raises:
            ConfigError: If an environment override is invalid
        """
        exported = {
            "count": self.get("session.count"),
            "interval": self.get("session.interval"),
            "size": self.get("session.size"),
            "ttl": self.get("session.ttl"),
            "timeout": self.get("session.timeout"),
            "verify_checksum": self.get("session.verify_checksum", False),
            "log_level": self.get("general.log_level"),
            "colors_enabled": self.get("general.colors_enabled"),
        }

        effective = {
            "version": self.config.get("version", "1.0.0"),
            "general": {
                "log_level": exported["log_level"],
                "colors_enabled": exported["colors_enabled"],
            },
            "session": {
                key: exported[key]
                for key in ("count", "interval", "size", "ttl", "timeout", "verify_checksum")
            },
        }
        ConfigSchema.validate(effective)
        return exported


def create_default_config(filename: str = ConfigManager.DEFAULT_FILE) -> bool:
    """Create default configuration file"""
    config = ConfigManager(filename)
    config.config = ConfigSchema.get_defaults()
    return config.save()


if __name__ == "__main__":
    create_default_config()
