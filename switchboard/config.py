"""Configuration management for switchboard.

Loads ``settings.yaml`` and ``.env`` from a config directory into a
Config object. Property getters provide safe access with defaults for
platform credentials, command scope, HTTP and logging settings.
Environment variables take precedence over settings.yaml where both
are supported.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
import re
from pathlib import Path
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("switchboard.config")

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"

_SNOWFLAKE = re.compile(r"^\d{15,21}$")


class Config:
    """Central configuration manager.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise; callers that cannot
        run without a token use require_bot_token().
        """
        if not self.bot_token:
            logger.warning("no_bot_token", msg="REST calls will be rejected")
        app_id = self.application_id
        if app_id is not None and not _SNOWFLAKE.match(app_id):
            logger.error("config_invalid_value", key="application_id", value=app_id)
        guild_id = self.guild_id
        if guild_id and not _SNOWFLAKE.match(guild_id):
            logger.error("config_invalid_value", key="commands.guild_id", value=guild_id)

    @property
    def bot_token(self) -> str:
        """Bot token. Env var DISCORD_BOT_TOKEN takes precedence."""
        return os.environ.get("DISCORD_BOT_TOKEN") or self.settings.get("bot_token", "")

    def require_bot_token(self) -> str:
        """Return the bot token or raise ConfigurationError if unset."""
        token = self.bot_token
        if not token:
            raise ConfigurationError(
                "Bot token is not configured", setting_name="bot_token"
            )
        return token

    @property
    def application_id(self) -> Optional[str]:
        """Application id, or None to look it up from the API at start."""
        value = os.environ.get("DISCORD_APPLICATION_ID") or self.settings.get(
            "application_id"
        )
        return str(value) if value else None

    @property
    def guild_id(self) -> str:
        """Guild to publish commands in. Empty string means global."""
        commands_config = self.settings.get("commands", {})
        value = commands_config.get("guild_id")
        return str(value) if value else ""

    @property
    def api_base_url(self) -> str:
        """Platform REST API base URL. Env var DISCORD_API_URL takes precedence."""
        url = os.environ.get("DISCORD_API_URL") or self.settings.get(
            "api_base_url", DEFAULT_API_BASE_URL
        )
        return url.rstrip("/")

    @property
    def request_timeout(self) -> float:
        """Total timeout in seconds for one REST call (default 10)."""
        http_config = self.settings.get("http", {})
        val = http_config.get("timeout", 10)
        try:
            return float(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_timeout", value=val)
            return 10.0

    @property
    def log_dir(self) -> Optional[Path]:
        """Log directory path, or None for console-only logging."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return None

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"router": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
