"""Startup checks for the Slack app setup.

Verifies that the bot token works, that the bot is a member of the channels
it should watch, and that the configured target users exist. Problems are
logged as warnings and collected in a report; verification never stops the
bot from starting.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from .slack import WEB_API_ERRORS

if TYPE_CHECKING:
    from slack_sdk.web.async_client import AsyncWebClient

    from ...config.schema import SlackConfig

log = structlog.get_logger()

CHANNEL_TYPES = "public_channel,private_channel"
CHANNEL_PAGE_SIZE = 100

USER_ID_PATTERN = re.compile(r"^[UW][A-Z0-9]{8,}$")

SELF_TEST_TEMPLATE = (
    "🔍 Bot self-test message (timestamp: {timestamp}) - If you see this message but no "
    "events are logged, check your Event Subscriptions in Slack API"
)


def looks_like_user_id(value: str) -> bool:
    """Return True if a target user entry is a Slack user ID rather than a username."""
    return bool(USER_ID_PATTERN.match(value))


@dataclass
class SetupReport:
    """Result of a setup verification run."""

    bot_user_id: str | None = None
    bot_user_name: str | None = None
    team: str | None = None
    channels: list[str] = field(default_factory=list)
    problems: list[str] = field(default_factory=list)
    self_test_sent: bool = False

    @property
    def ok(self) -> bool:
        """Return True if no problems were found."""
        return not self.problems


class SlackSetupVerifier:
    """Checks the Slack workspace against the bot configuration.

    Example:
        verifier = SlackSetupVerifier(adapter.web_client, config.slack, send_self_test=True)
        report = await verifier.verify()
        if not report.ok:
            print(report.problems)
    """

    def __init__(
        self,
        client: AsyncWebClient,
        config: SlackConfig,
        send_self_test: bool = False,
    ) -> None:
        self._client = client
        self._config = config
        self._send_self_test = send_self_test

    async def verify(self) -> SetupReport:
        """Run all checks.

        Returns:
            SetupReport describing what was found.
        """
        report = SetupReport()
        log.info("setup_verification_start")

        try:
            auth = await self._client.auth_test()
        except WEB_API_ERRORS as e:
            self._problem(report, f"Authentication test failed: {e}")
            return report

        report.bot_user_id = auth.get("user_id")
        report.bot_user_name = auth.get("user")
        report.team = auth.get("team")
        log.info(
            "slack_auth_verified",
            user=report.bot_user_name,
            user_id=report.bot_user_id,
            team=report.team,
        )

        if self._config.monitor_all_channels:
            await self._verify_joined_channels(report)
        else:
            for channel_id in self._config.channel_ids:
                await self._verify_channel(report, channel_id)

        await self._verify_users(report)

        if self._send_self_test:
            await self._post_self_test(report)
        else:
            log.info("self_test_skipped", reason="debug mode disabled")

        log.info(
            "setup_verification_complete",
            ok=report.ok,
            problems=len(report.problems),
        )
        return report

    def _problem(self, report: SetupReport, message: str) -> None:
        report.problems.append(message)
        log.warning("setup_problem", problem=message)

    async def _verify_joined_channels(self, report: SetupReport) -> None:
        """List the channels the bot belongs to (all-channels mode)."""
        try:
            result = await self._client.users_conversations(
                types=CHANNEL_TYPES,
                limit=CHANNEL_PAGE_SIZE,
            )
        except WEB_API_ERRORS as e:
            self._problem(report, f"Error fetching channels: {e}")
            return

        channels: list[dict[str, Any]] = result.get("channels", [])
        if not channels:
            self._problem(
                report,
                "Bot is not a member of any channels. Add it with /invite @BotName",
            )
            return

        report.channels = [ch["id"] for ch in channels]
        for ch in channels:
            log.info("channel_joined", name=ch.get("name"), id=ch["id"])

        next_cursor = (result.get("response_metadata") or {}).get("next_cursor")
        if next_cursor:
            log.warning("channel_list_truncated", shown=CHANNEL_PAGE_SIZE)

    async def _verify_channel(self, report: SetupReport, channel_id: str) -> None:
        """Check that a configured channel exists and the bot is a member."""
        try:
            info = await self._client.conversations_info(channel=channel_id)
        except WEB_API_ERRORS as e:
            self._problem(report, f"Channel access error for {channel_id}: {e}")
            return

        name = (info.get("channel") or {}).get("name", channel_id)

        try:
            members_result = await self._client.conversations_members(channel=channel_id)
        except WEB_API_ERRORS as e:
            self._problem(report, f"Cannot verify membership for channel {name} ({channel_id}): {e}")
            return

        members: list[str] = members_result.get("members", [])
        if report.bot_user_id not in members:
            self._problem(
                report,
                f"Bot is NOT a member of channel {name} ({channel_id}). "
                f"Add it with /invite @{report.bot_user_name}",
            )
            return

        report.channels.append(channel_id)
        log.info("channel_verified", name=name, id=channel_id)

    async def _verify_users(self, report: SetupReport) -> None:
        """Check that every target user exists in the workspace."""
        usernames: set[str] | None = None

        for target in self._config.target_users:
            if looks_like_user_id(target):
                try:
                    result = await self._client.users_info(user=target)
                except WEB_API_ERRORS as e:
                    self._problem(report, f"Cannot get info for user ID {target}: {e}")
                    continue
                log.info(
                    "user_id_verified",
                    user_id=target,
                    username=(result.get("user") or {}).get("name"),
                )
                continue

            if usernames is None:
                try:
                    result = await self._client.users_list()
                except WEB_API_ERRORS as e:
                    self._problem(report, f"Cannot retrieve users list: {e}")
                    return
                usernames = {m.get("name", "") for m in result.get("members", [])}

            if target in usernames:
                log.info("username_verified", username=target)
            else:
                self._problem(
                    report,
                    f"Username '{target}' not found in workspace. "
                    "Check for typos or use the user ID instead.",
                )

    async def _post_self_test(self, report: SetupReport) -> None:
        """Post a self-test message to the first monitored channel."""
        if not report.channels:
            log.warning("self_test_skipped", reason="no channel available")
            return

        channel_id = report.channels[0]
        text = SELF_TEST_TEMPLATE.format(timestamp=datetime.now(UTC).isoformat())

        try:
            await self._client.chat_postMessage(channel=channel_id, text=text)
        except WEB_API_ERRORS as e:
            self._problem(report, f"Failed to send test message to {channel_id}: {e}")
            return

        report.self_test_sent = True
        log.info("self_test_sent", channel_id=channel_id)
