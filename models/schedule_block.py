"""
Schedule block and user records.
Handles mapping database documents onto typed records.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple, Union

from bson import ObjectId

import config
from config import TriggerMode
from services.errors import ScheduleShapeError

# datetime in time mode, match number in match mode
Progress = Union[datetime, int]


def _shape_error(doc: Mapping[str, Any], problem: str) -> ScheduleShapeError:
    return ScheduleShapeError(f"document {doc.get('_id')!r}: {problem}")


def _get_str(doc: Mapping[str, Any], key: str) -> str:
    value = doc.get(key)
    if not isinstance(value, str):
        raise _shape_error(doc, f"{key} should be a string, got {value!r}")
    return value


def _get_progress(doc: Mapping[str, Any], key: str, mode: TriggerMode) -> Progress:
    value = doc.get(key)
    if mode is TriggerMode.TIME:
        if not isinstance(value, datetime):
            raise _shape_error(doc, f"{key} should be a date, got {value!r}")
        # pymongo hands back naive UTC unless the client is tz_aware
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise _shape_error(doc, f"{key} should be an integer, got {value!r}")
    return value


def _get_flag(doc: Mapping[str, Any], key: str) -> bool:
    value = doc.get(key, False)
    if not isinstance(value, bool):
        raise _shape_error(doc, f"{key} should be a boolean, got {value!r}")
    return value


def _get_id(doc: Mapping[str, Any]) -> ObjectId:
    value = doc.get("_id")
    if not isinstance(value, ObjectId):
        raise _shape_error(doc, f"_id should be an ObjectId, got {value!r}")
    return value


@dataclass(frozen=True)
class User:
    """A volunteer's profile, read-only from the bot's side."""
    user_id: ObjectId
    username: str
    first_name: str
    last_name: str
    discord_id: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def mention(self) -> str:
        return f"<@{self.discord_id}>"

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> 'User':
        """Build a User from a `users` document."""
        if not isinstance(doc, Mapping):
            raise ScheduleShapeError(f"user should be a document, got {doc!r}")
        return cls(
            user_id=_get_id(doc),
            username=_get_str(doc, "username"),
            first_name=_get_str(doc, "firstName"),
            last_name=_get_str(doc, "lastName"),
            discord_id=_get_str(doc, "discordId"),
        )


@dataclass
class ScheduleBlock:
    """A stored schedule block with unresolved volunteer references."""
    block_id: ObjectId
    start: Progress
    end: Progress
    slot_ids: Tuple[Optional[ObjectId], ...]
    far_sent: bool = False
    near_sent: bool = False

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], mode: TriggerMode) -> 'ScheduleBlock':
        start_key, end_key, far_key, near_key = config.BLOCK_FIELDS[mode]
        slot_ids = []
        for slot, _ in config.ROLES:
            value = doc.get(slot)
            if value is not None and not isinstance(value, ObjectId):
                raise _shape_error(doc, f"{slot} should be an ObjectId, got {value!r}")
            slot_ids.append(value)

        return cls(
            block_id=_get_id(doc),
            start=_get_progress(doc, start_key, mode),
            end=_get_progress(doc, end_key, mode),
            slot_ids=tuple(slot_ids),
            far_sent=_get_flag(doc, far_key),
            near_sent=_get_flag(doc, near_key),
        )


@dataclass
class PopulatedScheduleBlock:
    """A schedule block with each slot resolved to its User (or None)."""
    block_id: ObjectId
    start: Progress
    end: Progress
    slots: Tuple[Optional[User], ...] = field(default=(None,) * len(config.ROLES))
    far_sent: bool = False
    near_sent: bool = False

    @property
    def has_volunteers(self) -> bool:
        return any(user is not None for user in self.slots)

    def assignments(self):
        """Yield (role label, user or None) in announcement order."""
        for (_, label), user in zip(config.ROLES, self.slots):
            yield label, user

    def pings(self) -> str:
        """Mentions for every filled slot, in role order."""
        return "".join(user.mention for user in self.slots if user is not None)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], mode: TriggerMode) -> 'PopulatedScheduleBlock':
        """
        Build a populated block from one aggregation result.

        Args:
            doc: Aggregation output document
            mode: Decides which start/end/flag fields are read

        Raises:
            ScheduleShapeError: If the document does not have the expected structure
        """
        start_key, end_key, far_key, near_key = config.BLOCK_FIELDS[mode]
        slots = []
        for slot, _ in config.ROLES:
            # $first of an empty lookup leaves the field out entirely
            value = doc.get(slot)
            slots.append(User.from_document(value) if value is not None else None)

        return cls(
            block_id=_get_id(doc),
            start=_get_progress(doc, start_key, mode),
            end=_get_progress(doc, end_key, mode),
            slots=tuple(slots),
            far_sent=_get_flag(doc, far_key),
            near_sent=_get_flag(doc, near_key),
        )
