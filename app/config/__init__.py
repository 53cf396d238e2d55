"""Configuration management module for the notification dispatcher."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import build_app_config, load_config, validate_config_file
from .models import (
    AdvancedConfig,
    AppConfig,
    AudienceConfig,
    DispatchConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    PushConfig,
    PushUrgency,
    ScheduleConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "build_app_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "DispatchConfig",
    "AudienceConfig",
    "ScheduleConfig",
    "EmailConfig",
    "PushConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    "PushUrgency",
    # Exceptions
    "ConfigurationError",
]
