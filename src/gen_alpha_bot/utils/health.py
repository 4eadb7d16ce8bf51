"""Offline health checks for the bot configuration.

Run by ``gen-alpha-bot --health-check``. The checks look only at local
state (configuration values and the log file location); they never call
Slack or OpenAI.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import structlog

if TYPE_CHECKING:
    from gen_alpha_bot.config.schema import BotConfig

log = structlog.get_logger()


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Overall health report."""

    healthy: bool
    status: HealthStatus
    timestamp: datetime
    checks: list[CheckResult]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "healthy": self.healthy,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "details": c.details,
                }
                for c in self.checks
            ],
        }


def overall_status(checks: list[CheckResult]) -> HealthStatus:
    """Combine check results: any unhealthy check wins, then any degraded one."""
    if any(c.status == HealthStatus.UNHEALTHY for c in checks):
        return HealthStatus.UNHEALTHY
    if any(c.status == HealthStatus.DEGRADED for c in checks):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


class HealthChecker:
    """Checks that the configuration is usable.

    Example:
        checker = HealthChecker(config)
        report = await checker.run_all_checks()
        print(json.dumps(report.to_dict(), indent=2))
    """

    def __init__(self, config: BotConfig) -> None:
        self._config = config

    async def run_all_checks(self) -> HealthReport:
        """Run every check and combine the results.

        Returns:
            HealthReport; ``healthy`` is False only when a check is unhealthy.
        """
        log.info("health_check_start")
        timestamp = datetime.now(UTC)

        results = await asyncio.gather(
            self._check_filters(),
            self._check_slack_tokens(),
            self._check_openai(),
            self._check_log_file(),
            return_exceptions=True,
        )

        checks: list[CheckResult] = []
        for result in results:
            if isinstance(result, BaseException):
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=HealthStatus.UNHEALTHY,
                        message=f"Check failed with exception: {result}",
                    )
                )
            else:
                checks.append(result)

        status = overall_status(checks)
        report = HealthReport(
            healthy=status != HealthStatus.UNHEALTHY,
            status=status,
            timestamp=timestamp,
            checks=checks,
        )

        log.info(
            "health_check_complete",
            healthy=report.healthy,
            status=status.value,
            checks_run=len(checks),
        )
        return report

    async def _check_filters(self) -> CheckResult:
        slack = self._config.slack
        details = {
            "channels": "all" if slack.monitor_all_channels else len(slack.channel_ids),
            "target_users": len(slack.target_users),
            "reply_mode": slack.reply_mode,
        }
        if not slack.target_users:
            return CheckResult(
                name="filters",
                status=HealthStatus.UNHEALTHY,
                message="No target users configured",
                details=details,
            )
        return CheckResult(
            name="filters",
            status=HealthStatus.HEALTHY,
            message="Channel and user filters configured",
            details=details,
        )

    async def _check_slack_tokens(self) -> CheckResult:
        """Check Slack token format (validity requires an API call)."""
        slack = self._config.slack
        if not slack.bot_token.startswith("xoxb-"):
            return CheckResult(
                name="slack_tokens",
                status=HealthStatus.UNHEALTHY,
                message="Invalid bot token format",
            )
        if not slack.app_token.startswith("xapp-"):
            return CheckResult(
                name="slack_tokens",
                status=HealthStatus.UNHEALTHY,
                message="Invalid app token format",
            )
        return CheckResult(
            name="slack_tokens",
            status=HealthStatus.HEALTHY,
            message="Slack tokens configured",
        )

    async def _check_openai(self) -> CheckResult:
        openai = self._config.openai
        details = {"model": openai.model, "timeout": openai.timeout}

        if not openai.api_key or openai.api_key.startswith("${"):
            return CheckResult(
                name="openai",
                status=HealthStatus.UNHEALTHY,
                message="OpenAI API key not configured",
                details=details,
            )

        if urlparse(openai.base_url).scheme != "https":
            return CheckResult(
                name="openai",
                status=HealthStatus.DEGRADED,
                message="OpenAI endpoint is not using HTTPS",
                details=details,
            )

        return CheckResult(
            name="openai",
            status=HealthStatus.HEALTHY,
            message="OpenAI configured",
            details=details,
        )

    async def _check_log_file(self) -> CheckResult:
        file_config = self._config.logging.file
        if not file_config.enabled:
            return CheckResult(
                name="log_file",
                status=HealthStatus.HEALTHY,
                message="File logging disabled",
            )

        # Logging falls back to the console, so an unwritable path only degrades
        directory = file_config.path.parent
        while not directory.exists() and directory != directory.parent:
            directory = directory.parent
        if not os.access(directory, os.W_OK):
            return CheckResult(
                name="log_file",
                status=HealthStatus.DEGRADED,
                message=f"Log file location is not writable: {file_config.path}",
            )

        return CheckResult(
            name="log_file",
            status=HealthStatus.HEALTHY,
            message="Log file location writable",
            details={"path": str(file_config.path)},
        )
