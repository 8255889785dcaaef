"""Centralized configuration and data paths.

All state lives in the slot-scheduler home directory
(``$SLOT_SCHEDULER_HOME``, defaulting to ``~/.slot-scheduler``):
    .env                     - client id/secret overrides (SLOT_SCHEDULER_CLIENT_ID, ...)
    config.json              - scheduler settings (calendar id, slot length, timezone)
    google/credentials.json  - Google OAuth client file from Cloud Console
    google/token.json        - stored OAuth tokens

This module auto-loads the .env file on import, making the client
overrides available to the credential manager.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slot_scheduler.exceptions import ConfigurationError

HOME_DIR = Path(os.environ.get("SLOT_SCHEDULER_HOME", Path.home() / ".slot-scheduler"))
GOOGLE_DIR = HOME_DIR / "google"

ENV_FILE = HOME_DIR / ".env"
CONFIG_FILE = HOME_DIR / "config.json"
GOOGLE_CREDENTIALS = GOOGLE_DIR / "credentials.json"
GOOGLE_TOKEN = GOOGLE_DIR / "token.json"

DEFAULT_CALENDAR_ID = "primary"
DEFAULT_SLOT_MINUTES = 30
DEFAULT_TIMEZONE = "America/Bogota"
DEFAULT_REDIRECT_URI = "http://localhost"

CLIENT_ID_ENV = "SLOT_SCHEDULER_CLIENT_ID"
CLIENT_SECRET_ENV = "SLOT_SCHEDULER_CLIENT_SECRET"


@dataclass
class SchedulerConfig:
    """User-editable scheduler settings.

    Every field is optional; defaults are applied by the consumers
    through the ``effective_*`` helpers.
    """

    calendar_id: str | None = None
    slot_minutes: int | None = None
    timezone: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchedulerConfig:
        """Build a config from stored JSON, treating blank values as unset."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if isinstance(value, str):
                value = value.strip()
            if value in ("", None):
                continue
            values[key] = value

        if "slot_minutes" in values:
            values["slot_minutes"] = _parse_slot_minutes(values["slot_minutes"])

        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize only the fields that are set."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    def effective_calendar_id(self) -> str:
        return self.calendar_id or DEFAULT_CALENDAR_ID

    def effective_slot_minutes(self) -> int:
        if self.slot_minutes is None:
            return DEFAULT_SLOT_MINUTES
        return _parse_slot_minutes(self.slot_minutes)

    def effective_timezone(self) -> ZoneInfo:
        name = self.timezone or DEFAULT_TIMEZONE
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown time zone: {name}") from e

    def effective_redirect_uri(self) -> str:
        return self.redirect_uri or DEFAULT_REDIRECT_URI


def _parse_slot_minutes(value: Any) -> int:
    """Validate a slot length as a positive whole number of minutes."""
    try:
        minutes = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"slot_minutes must be an integer, got {value!r}") from e
    if minutes <= 0:
        raise ConfigurationError(f"slot_minutes must be positive, got {minutes}")
    return minutes


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """Load scheduler settings.

    Args:
        path: Config file path. Defaults to ``config.json`` in the home directory.

    Returns:
        Loaded config, or an empty config if the file does not exist.

    Raises:
        ConfigurationError: If the file is not valid JSON.
    """
    config_path = Path(path) if path else CONFIG_FILE
    if not config_path.exists():
        return SchedulerConfig()

    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file {config_path}: expected a JSON object")

    return SchedulerConfig.from_dict(data)


def save_config(config: SchedulerConfig, path: str | Path | None = None) -> Path:
    """Persist scheduler settings.

    Args:
        config: Settings to store. Unset fields are omitted.
        path: Config file path. Defaults to ``config.json`` in the home directory.

    Returns:
        Path that was written.
    """
    config_path = Path(path) if path else CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)

    return config_path


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def ensure_google_dir() -> Path:
    """Create the google credentials directory if it doesn't exist.

    Returns:
        Path to google directory.
    """
    GOOGLE_DIR.mkdir(parents=True, exist_ok=True)
    return GOOGLE_DIR


def get_setup_status() -> dict:
    """Get status of configuration and credential files."""
    return {
        "home": str(HOME_DIR),
        "env_file": ENV_FILE.exists(),
        "config_file": CONFIG_FILE.exists(),
        "client_id_env": bool(os.environ.get(CLIENT_ID_ENV)),
        "client_secret_env": bool(os.environ.get(CLIENT_SECRET_ENV)),
        "google": {
            "credentials": GOOGLE_CREDENTIALS.exists(),
            "token": GOOGLE_TOKEN.exists(),
        },
    }


# Auto-load .env from the home directory on import
_loaded = _load_env_file(ENV_FILE)
