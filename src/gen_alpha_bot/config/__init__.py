"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    BotConfig,
    HealthConfig,
    LoggingConfig,
    OpenAIConfig,
    RuntimeConfig,
    SlackConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "BotConfig",
    # Sections
    "SlackConfig",
    "OpenAIConfig",
    "LoggingConfig",
    "HealthConfig",
    "RuntimeConfig",
]
