"""
Exception types raised by the bot's services.
Transient errors abandon the current cycle; the rest stop the process.
"""
from typing import Optional


class ScoutBotError(Exception):
    """Base class for all bot errors."""


class ConfigError(ScoutBotError):
    """A required setting is missing or malformed."""


class QueryError(ScoutBotError):
    """Reading schedule blocks from the database failed."""


class PersistenceError(ScoutBotError):
    """A warning flag could not be written."""


class ScheduleShapeError(ScoutBotError):
    """The aggregation returned a document the models cannot represent."""


class MatchFeedError(ScoutBotError):
    """The match API request failed or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DeliveryError(ScoutBotError):
    """Sending the notification to Discord failed."""
