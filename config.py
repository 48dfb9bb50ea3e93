"""
Configuration settings for the Scout Bot.
Centralized location for all constants and settings.
"""
import os
from dataclasses import dataclass
from datetime import timedelta, timezone
from enum import Enum
from typing import Mapping, Optional

from dotenv import load_dotenv

from services.errors import ConfigError


class TriggerMode(str, Enum):
    """Which kind of progress drives the warnings."""
    TIME = "time"
    MATCHES = "matches"


# Env files, earliest wins (load_dotenv never overrides a value already set)
ENV_FILES = (".env.production", ".env.local", ".env")

# Timing Settings
RECONCILE_INTERVAL_SECONDS = 3
MATCH_FEED_INTERVAL_SECONDS = 30

# Warning thresholds
FAR_WARNING_TIME = timedelta(minutes=30)
NEAR_WARNING_TIME = timedelta(minutes=10)
FAR_WARNING_MATCHES = 3
NEAR_WARNING_MATCHES = 1

FAR_LABELS = {TriggerMode.TIME: "30 minutes", TriggerMode.MATCHES: "3 matches"}
NEAR_LABELS = {TriggerMode.TIME: "10 minutes", TriggerMode.MATCHES: "1 match!"}

# Competition is in EDT
COMP_TZ = timezone(-timedelta(hours=4))

# Embed Settings
EMBED_COLOR = (84, 182, 229)
EMBED_FOOTER = "Sussy scouter is on the clock, rejoice!"
NO_ONE_NAME = "No One 😔"

# (slot field, human label), in announcement order
ROLES = (
    ("blue1", "blue 1"),
    ("blue2", "blue 2"),
    ("blue3", "blue 3"),
    ("red1", "red 1"),
    ("red2", "red 2"),
    ("red3", "red 3"),
)

# Database
SCHEDULE_COLLECTION = "scheduleBlocks"
USERS_COLLECTION = "users"

# camelCase document fields per mode: (start, end, far flag, near flag)
BLOCK_FIELDS = {
    TriggerMode.TIME: ("startTime", "endTime", "min30", "min10"),
    TriggerMode.MATCHES: ("startMatch", "lastMatch", "threeAway", "oneAway"),
}

# The Blue Alliance
TBA_BASE_URL = "https://www.thebluealliance.com/api/v3"
TBA_AUTH_HEADER = "x-tba-auth-key"
DEFAULT_EVENT_KEY = "2023joh"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup."""
    db_uri: str
    default_db: str
    channel_id: int
    guild_id: int
    client_id: int
    token: str
    tba_secret: Optional[str]
    event_key: str = DEFAULT_EVENT_KEY
    trigger_mode: TriggerMode = TriggerMode.MATCHES


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name, "").strip()
    if not value:
        raise ConfigError(f"missing {name} in environment")
    return value


def _require_int(environ: Mapping[str, str], name: str) -> int:
    value = _require(environ, name)
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to os.environ after loading the env files.

    Raises:
        ConfigError: If a required value is missing or malformed.
    """
    if environ is None:
        for env_file in ENV_FILES:
            load_dotenv(env_file)
        environ = os.environ

    raw_mode = environ.get("TRIGGER_MODE", TriggerMode.MATCHES.value).strip().lower()
    try:
        trigger_mode = TriggerMode(raw_mode)
    except ValueError:
        raise ConfigError(f"TRIGGER_MODE must be 'time' or 'matches', got {raw_mode!r}") from None

    tba_secret = environ.get("TBA_SECRET", "").strip() or None
    if trigger_mode is TriggerMode.MATCHES and not tba_secret:
        raise ConfigError("missing TBA_SECRET in environment")

    return Settings(
        db_uri=_require(environ, "DB_URI"),
        default_db=_require(environ, "DEFAULT_DB"),
        channel_id=_require_int(environ, "CHANNEL_ID"),
        guild_id=_require_int(environ, "GUILD_ID"),
        client_id=_require_int(environ, "CLIENT_ID"),
        token=_require(environ, "TOKEN"),
        tba_secret=tba_secret,
        event_key=environ.get("TBA_EVENT_KEY", "").strip() or DEFAULT_EVENT_KEY,
        trigger_mode=trigger_mode,
    )
