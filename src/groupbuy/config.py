"""Configuration loading for the groupbuy engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

DEFAULT_DB_PATH = "groupbuy.db"
DEFAULT_DEADLINE_LEAD_DAYS = 7
DEFAULT_TIMEZONE = "UTC"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class Settings:
    """Engine settings.

    Attributes:
        db_path: Path to the SQLite database file (":memory:" for in-memory).
        deadline_lead_days: Days between the recruiting deadline and lesson start.
        timezone: IANA zone used to turn "now" into a calendar date.
        log_dir: Directory for log files (None means the logging default).
        log_level: Log level name (None means the logging default).
    """

    db_path: str = DEFAULT_DB_PATH
    deadline_lead_days: int = DEFAULT_DEADLINE_LEAD_DAYS
    timezone: str = DEFAULT_TIMEZONE
    log_dir: str | None = None
    log_level: str | None = None

    def __post_init__(self) -> None:
        if self.deadline_lead_days < 1:
            raise ConfigError(
                f"deadline_lead_days must be at least 1, got {self.deadline_lead_days}"
            )
        self.zone  # noqa: B018 - validates the zone name

    @property
    def zone(self) -> tzinfo:
        """Configured timezone as a tzinfo object."""
        if self.timezone == "UTC":
            return UTC
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone: {self.timezone}") from e

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a dictionary.

        Args:
            data: Mapping with any of the Settings field names.

        Returns:
            Parsed settings, unspecified fields keep their defaults.

        Raises:
            ConfigError: If a value has the wrong type or an unknown key is present.
        """
        known = {"db_path", "deadline_lead_days", "timezone", "log_dir", "log_level"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

        lead_days = data.get("deadline_lead_days", DEFAULT_DEADLINE_LEAD_DAYS)
        try:
            lead_days = int(lead_days)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"deadline_lead_days must be an integer, got {lead_days!r}") from e

        return cls(
            db_path=str(data.get("db_path", DEFAULT_DB_PATH)),
            deadline_lead_days=lead_days,
            timezone=str(data.get("timezone", DEFAULT_TIMEZONE)),
            log_dir=data.get("log_dir"),
            log_level=data.get("log_level"),
        )

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from GROUPBUY_* environment variables."""
        data: dict[str, Any] = {}
        env_map = {
            "GROUPBUY_DB_PATH": "db_path",
            "GROUPBUY_DEADLINE_LEAD_DAYS": "deadline_lead_days",
            "GROUPBUY_TIMEZONE": "timezone",
            "GROUPBUY_LOG_DIR": "log_dir",
            "GROUPBUY_LOG_LEVEL": "log_level",
        }
        for env_name, field_name in env_map.items():
            value = os.environ.get(env_name)
            if value:
                data[field_name] = value
        return cls.from_dict(data)


def load_settings(config_path: Path | str) -> Settings:
    """Load settings from a YAML file.

    Args:
        config_path: Path to a groupbuy.yaml file.

    Returns:
        Parsed settings.

    Raises:
        ConfigError: If the file doesn't exist or is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

    return Settings.from_dict(data)
