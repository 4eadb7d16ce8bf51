"""Entry point for running the Gen Alpha bot.

This module provides the main entry point for the bot.
It handles:
- Configuration loading (YAML file or environment)
- Logging setup with secret sanitization
- Health responder lifecycle
- Bot lifecycle and exit codes
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from gen_alpha_bot._version import __version__
from gen_alpha_bot.config.schema import BotConfig
from gen_alpha_bot.utils.errors import BotError, StreamConnectionError
from gen_alpha_bot.utils.logging import LogFormat, LogLevel, configure_logging

log = structlog.get_logger()


def setup_logging(
    config: BotConfig | None = None,
    debug: bool = False,
    log_format: str | None = None,
) -> None:
    """Configure structured logging from CLI flags and, once loaded, the config.

    Command line flags win over the configuration file. Verbose mode
    (``logs``) or ``--debug`` lowers the level to DEBUG.

    Args:
        config: Loaded configuration, or None before it is available
        debug: Enable debug logging if True
        log_format: Output format override ("json" or "console")
    """
    if config is None:
        configure_logging(
            level=LogLevel.DEBUG if debug else LogLevel.INFO,
            log_format=log_format or LogFormat.CONSOLE,
        )
        return

    level = LogLevel.DEBUG if debug or config.logs else config.logging.level
    configure_logging(
        level=level,
        log_format=log_format or config.logging.format,
        file_path=config.logging.file.path,
        file_enabled=config.logging.file.enabled,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="gen-alpha-bot",
        description="Gen Alpha bot - translates selected Slack messages into Gen Alpha slang",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: read the environment)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit without connecting",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: from configuration)",
    )

    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run offline health checks and exit",
    )

    return parser.parse_args(argv)


async def run_bot(
    config_path: Path | None,
    debug: bool = False,
    log_format: str | None = None,
    dry_run: bool = False,
    health_check: bool = False,
) -> int:
    """Load configuration and run the bot until it is stopped.

    Args:
        config_path: Path to configuration file, or None for environment only
        debug: Force debug logging
        log_format: Log format override
        dry_run: If True, only validate config without starting
        health_check: If True, run health checks and exit

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    from gen_alpha_bot.config.loader import load_config

    log.info(
        "starting_gen_alpha_bot",
        version=__version__,
        config_path=str(config_path) if config_path else None,
    )

    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    setup_logging(config, debug=debug, log_format=log_format)
    log.info("configuration_loaded")

    if dry_run:
        log.info("dry_run_mode_config_valid")
        return 0

    if health_check:
        from gen_alpha_bot.utils.health import HealthChecker

        report = await HealthChecker(config).run_all_checks()
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.healthy else 1

    from gen_alpha_bot.core.bot import create_bot
    from gen_alpha_bot.utils.health_server import HealthServer

    health_server = HealthServer(config.health)
    if config.health.enabled:
        try:
            await health_server.start()
        except OSError as e:
            log.error("health_server_start_failed", port=config.health.port, error=str(e))

    try:
        bot = await create_bot(config)
        await bot.start()
    except StreamConnectionError as e:
        log.error("stream_connection_failed", error=str(e))
        return 1
    except BotError as e:
        log.error("bot_error", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1
    finally:
        await health_server.stop()

    return 0


def main() -> int:
    """Main entry point."""
    args = parse_args()

    setup_logging(debug=args.debug, log_format=args.format)

    try:
        return asyncio.run(
            run_bot(
                args.config,
                debug=args.debug,
                log_format=args.format,
                dry_run=args.dry_run,
                health_check=args.health_check,
            )
        )
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
