"""Configuration loader.

Reads settings from a JSON file (default: ``config.json`` in the working
directory), or from YAML when the file name ends in ``.yaml``/``.yml``. Every
field has a default except the bot token, which may also be supplied through
the ``CRATE_UPD_BOT_TOKEN`` environment variable.

Validation is done by hand at load time; the first problem found raises
``ConfigError`` naming the offending field.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("config.json")
CONFIG_PATH_ENV_VAR = "CRATE_UPD_CONFIG"
BOT_TOKEN_ENV_VAR = "CRATE_UPD_BOT_TOKEN"

DEFAULT_INDEX_URL = "https://github.com/rust-lang/crates.io-index"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be loaded or is invalid."""


@dataclass(slots=True, frozen=True)
class Settings:
    """Process settings."""

    bot_token: str
    index_url: str = DEFAULT_INDEX_URL
    index_path: Path = Path("index")
    branch: str = "master"
    pull_delay: float = 300.0
    commit_delay_millis: int = 0
    broadcast_delay_millis: int = 0
    channel: int | None = None
    database: Path = Path("subscriptions.db")
    log_level: str = "INFO"

    @property
    def commit_delay(self) -> float:
        return self.commit_delay_millis / 1000

    @property
    def broadcast_delay(self) -> float:
        return self.broadcast_delay_millis / 1000

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_dict(cls, data: dict[str, Any], env: Mapping[str, str] | None = None) -> Settings:
        """Create Settings from a mapping, validating every known field."""
        env = os.environ if env is None else env

        unknown = sorted(set(data) - set(cls.__dataclass_fields__))
        if unknown:
            raise ConfigError(f"Unknown configuration field(s): {', '.join(unknown)}")

        bot_token = env.get(BOT_TOKEN_ENV_VAR) or data.get("bot_token")
        if not bot_token or not isinstance(bot_token, str):
            raise ConfigError(
                f"Missing required 'bot_token' field (or {BOT_TOKEN_ENV_VAR} environment variable)"
            )

        index_url = _string(data, "index_url", DEFAULT_INDEX_URL)
        index_path = Path(_string(data, "index_path", "index"))
        branch = _string(data, "branch", "master")
        database = Path(_string(data, "database", "subscriptions.db"))

        pull_delay = data.get("pull_delay", 300)
        if isinstance(pull_delay, bool) or not isinstance(pull_delay, (int, float)):
            raise ConfigError("Invalid 'pull_delay' field (must be a number of seconds)")
        if pull_delay <= 0:
            raise ConfigError("Invalid 'pull_delay' field (must be positive)")

        commit_delay_millis = _millis(data, "commit_delay_millis")
        broadcast_delay_millis = _millis(data, "broadcast_delay_millis")

        channel = data.get("channel")
        if channel is not None and (isinstance(channel, bool) or not isinstance(channel, int)):
            raise ConfigError("Invalid 'channel' field (must be an integer chat id)")

        log_level = _string(data, "log_level", "INFO").upper()
        if log_level not in _LOG_LEVELS:
            known = ", ".join(sorted(_LOG_LEVELS))
            raise ConfigError(f"Invalid 'log_level' field '{log_level}'. Known levels: {known}")

        return cls(
            bot_token=bot_token,
            index_url=index_url,
            index_path=index_path,
            branch=branch,
            pull_delay=float(pull_delay),
            commit_delay_millis=commit_delay_millis,
            broadcast_delay_millis=broadcast_delay_millis,
            channel=channel,
            database=database,
            log_level=log_level,
        )


def _string(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Invalid '{key}' field (must be non-empty string)")
    return value


def _millis(data: dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"Invalid '{key}' field (must be a non-negative integer)")
    return value


def _resolve_config_path(path: Path | str | None = None) -> Path:
    """Resolve the configuration file path.

    Priority:
    1. Explicit path argument
    2. CRATE_UPD_CONFIG environment variable
    3. Default path (config.json in the working directory)
    """
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)

    return DEFAULT_CONFIG_PATH


def _parse(config_path: Path, content: str) -> Any:
    if config_path.suffix.lower() in {".yaml", ".yml"}:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in configuration file: {exc}") from exc
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration file: {exc}") from exc


def load_settings(path: Path | str | None = None) -> Settings:
    """Load and validate settings from a JSON or YAML file.

    Raises:
        ConfigError: If the file cannot be read or contains invalid data.
    """
    config_path = _resolve_config_path(path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {exc}") from exc

    data = _parse(config_path, content)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be an object")

    return Settings.from_dict(data)
