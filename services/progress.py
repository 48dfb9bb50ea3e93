"""
Shared progress state.
Holds the latest completed match number behind a lock.
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressState:
    """Latest completed match number; None until the feed reports one."""

    def __init__(self, initial: Optional[int] = None):
        self._value = initial
        self._lock = asyncio.Lock()

    async def get(self) -> Optional[int]:
        async with self._lock:
            return self._value

    async def set(self, value: int) -> None:
        async with self._lock:
            self._value = value

    async def next_match(self) -> Optional[int]:
        """The match after the latest completed one."""
        value = await self.get()
        return None if value is None else value + 1
