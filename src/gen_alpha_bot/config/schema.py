"""Pydantic models for configuration schema.

Every section is a ``BaseSettings`` with its own environment prefix so the
bot can be configured entirely from the environment (``SLACK_BOT_TOKEN``,
``OPENAI_API_KEY``, ...) or from a YAML file loaded by
:func:`gen_alpha_bot.config.loader.load_config`.
"""

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_FILE = ".env"

DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _split_csv(value: Any) -> list[str]:
    """Normalize a comma-separated string or a list into stripped, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class SlackConfig(BaseSettings):
    """Slack-specific configuration."""

    model_config = SettingsConfigDict(env_prefix="SLACK_", env_file=ENV_FILE, extra="ignore")

    bot_token: str
    app_token: str
    # Empty means every channel the bot has been added to
    channel_ids: Annotated[list[str], NoDecode] = []
    target_users: Annotated[list[str], NoDecode]
    reply_mode: Literal["channel", "thread"] = "channel"
    heartbeat_interval: float = Field(60.0, gt=0)
    verify_setup: bool | None = None

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate Slack bot token format."""
        if not v.startswith("xoxb-"):
            raise ValueError("Bot token must start with xoxb-")
        return v

    @field_validator("app_token")
    @classmethod
    def validate_app_token(cls, v: str) -> str:
        """Validate Slack app token format."""
        if not v.startswith("xapp-"):
            raise ValueError("App token must start with xapp-")
        return v

    @field_validator("channel_ids", "target_users", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> list[str]:
        """Accept comma-separated strings from the environment."""
        return _split_csv(v)

    @field_validator("target_users")
    @classmethod
    def require_target_users(cls, v: list[str]) -> list[str]:
        """At least one username or user ID must be configured."""
        if not v:
            raise ValueError("At least one target user is required")
        return v

    @property
    def monitor_all_channels(self) -> bool:
        """Return True when no explicit channel list was configured."""
        return not self.channel_ids


class OpenAIConfig(BaseSettings):
    """OpenAI-specific configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_", env_file=ENV_FILE, extra="ignore")

    api_key: str
    model: str = "gpt-4"
    max_tokens: int = Field(1024, ge=1)
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    timeout: float = Field(30.0, gt=0)
    base_url: str = DEFAULT_OPENAI_URL


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/gen-alpha-bot/bot.log")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=ENV_FILE, extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class HealthConfig(BaseSettings):
    """Health responder configuration."""

    model_config = SettingsConfigDict(env_prefix="HEALTH_", env_file=ENV_FILE, extra="ignore")

    enabled: bool = True
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(
        8080,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("port", "health_port"),
    )


class RuntimeConfig(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_prefix="RUNTIME_", env_file=ENV_FILE, extra="ignore")

    max_concurrent: int = Field(10, ge=1, le=100, description="Max concurrent message processing")


class BotConfig(BaseSettings):
    """Root configuration for the Gen Alpha bot."""

    model_config = SettingsConfigDict(env_file=ENV_FILE, extra="ignore")

    slack: SlackConfig = Field(default_factory=SlackConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    # Sends a self-test message during setup verification
    debug: bool = False
    # Verbose logging
    logs: bool = False

    @property
    def should_verify_setup(self) -> bool:
        """Setup verification runs when requested explicitly or in verbose mode."""
        if self.slack.verify_setup is not None:
            return self.slack.verify_setup
        return self.logs
