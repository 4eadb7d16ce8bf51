"""Structured logging setup with secret sanitization.

- JSON output for log aggregation, or colored console output for local runs
- Every entry passes through the secret redactor before it is rendered
- Per-message context (channel, timestamp) carried in contextvars so that
  concurrently processed messages never mix their log context
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Any, cast

import structlog

from gen_alpha_bot.utils.security import SecretRedactor, sanitize_for_logging

SERVICE_NAME = "gen-alpha-bot"


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_redactor: SecretRedactor | None = None


def _get_redactor() -> SecretRedactor:
    global _redactor
    if _redactor is None:
        _redactor = SecretRedactor()
    return _redactor


def sanitize_log_value(value: Any) -> Any:
    """Recursively redact secrets and strip control characters from log values.

    Args:
        value: Value to sanitize (can be nested dict/list/str)

    Returns:
        Sanitized value
    """
    if isinstance(value, str):
        return _get_redactor().redact(sanitize_for_logging(value))
    if isinstance(value, dict):
        return {k: sanitize_log_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_log_value(v) for v in value)
    return value


def secret_sanitizer(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor that redacts secrets from every log entry."""
    return cast(MutableMapping[str, Any], sanitize_log_value(event_dict))


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add the service name and version to every log entry."""
    from gen_alpha_bot._version import __version__

    event_dict["service"] = SERVICE_NAME
    event_dict["version"] = __version__
    return event_dict


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structlog on top of the standard logging module.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to also write to ``file_path``

    Example:
        configure_logging(level="DEBUG", log_format="console")
    """
    if isinstance(level, str):
        level = LogLevel(level.upper())
    if isinstance(log_format, str):
        log_format = LogFormat(log_format.lower())

    numeric_level = getattr(logging, level.value)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_context_processor,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        secret_sanitizer,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.plain_traceback
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if file_enabled and file_path:
        file_path = Path(file_path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(file_path))
        except OSError as e:
            # Keep console logging
            logging.getLogger("gen_alpha_bot.logging").warning(
                "Could not create log file %s: %s", file_path, e
            )

    for handler in handlers:
        handler.setLevel(numeric_level)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    # Socket Mode logs every frame at DEBUG
    logging.getLogger("slack_sdk").setLevel(max(numeric_level, logging.INFO))


@contextmanager
def message_context(channel_id: str, message_ts: str) -> Iterator[None]:
    """Bind a message's identifiers to every log call made inside the block.

    Each asyncio task runs in its own copy of the context, so binding inside
    a message task never leaks into other messages.

    Example:
        with message_context("C123", "1700000000.000100"):
            log.info("processing_message")  # includes channel_id and message_ts
    """
    with structlog.contextvars.bound_contextvars(channel_id=channel_id, message_ts=message_ts):
        yield
