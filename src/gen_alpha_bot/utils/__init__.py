"""Utility functions and helpers.

- errors: Exception hierarchy shared across layers
- security: Secret redaction
- logging: Structured logging with secret sanitization
- health: Offline configuration checks
- health_server: HTTP liveness responder
"""

from gen_alpha_bot.utils.errors import (
    BotError,
    SendError,
    StartupError,
    StreamConnectionError,
    TransformationError,
    UserLookupError,
)
from gen_alpha_bot.utils.health import HealthChecker, HealthReport, HealthStatus
from gen_alpha_bot.utils.logging import LogFormat, LogLevel, configure_logging
from gen_alpha_bot.utils.security import RedactionError, SecretRedactor

__all__ = [
    # Errors
    "BotError",
    "SendError",
    "StartupError",
    "StreamConnectionError",
    "TransformationError",
    "UserLookupError",
    # Health
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
    # Logging
    "LogFormat",
    "LogLevel",
    "configure_logging",
    # Security
    "RedactionError",
    "SecretRedactor",
]
