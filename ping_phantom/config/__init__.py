from .config_manager import ConfigError, ConfigManager, ConfigSchema, create_default_config

__all__ = [
    'ConfigError',
    'ConfigManager',
    'ConfigSchema',
    'create_default_config',
]
