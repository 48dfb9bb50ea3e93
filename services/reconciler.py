"""
Scouter reminder reconciliation.
Each cycle finds the next schedule block and decides whether a warning is due.
"""
from enum import Enum
from typing import Callable, Iterable, Optional

import config
from config import TriggerMode
from logger import get_logger
from models.schedule_block import PopulatedScheduleBlock, Progress
from services.errors import DeliveryError, PersistenceError, QueryError
from services.notifier import Notifier
from services.progress import ProgressState, utcnow
from services.schedule_store import ScheduleStore

log = get_logger()


class WarningLevel(Enum):
    FAR = "far"
    NEAR = "near"


def warning_label(level: WarningLevel, mode: TriggerMode) -> str:
    labels = config.FAR_LABELS if level is WarningLevel.FAR else config.NEAR_LABELS
    return labels[mode]


def select_next_block(blocks: Iterable[PopulatedScheduleBlock],
                      progress: Progress) -> Optional[PopulatedScheduleBlock]:
    """Earliest block that has not started yet; ties keep input order."""
    upcoming = [block for block in blocks if block.start > progress]
    if not upcoming:
        return None
    return min(upcoming, key=lambda block: block.start)


def decide_warning(block: PopulatedScheduleBlock, progress: Progress,
                   mode: TriggerMode) -> Optional[WarningLevel]:
    """
    Which warning, if any, is due for `block`.

    Far is checked first, so near can only fire once far has been sent.
    """
    remaining = block.start - progress
    if mode is TriggerMode.TIME:
        far_due = remaining <= config.FAR_WARNING_TIME
        near_due = remaining <= config.NEAR_WARNING_TIME
    else:
        far_due = remaining <= config.FAR_WARNING_MATCHES
        near_due = remaining == config.NEAR_WARNING_MATCHES

    if far_due and not block.far_sent:
        return WarningLevel.FAR
    if near_due and not block.near_sent:
        return WarningLevel.NEAR
    return None


class Reconciler:
    """Runs one reminder cycle at a time against the store and notifier."""

    def __init__(self, store: ScheduleStore, notifier: Notifier, mode: TriggerMode,
                 progress: Optional[ProgressState] = None,
                 clock: Callable = utcnow):
        if mode is TriggerMode.MATCHES and progress is None:
            raise ValueError("match mode needs a ProgressState")
        self.store = store
        self.notifier = notifier
        self.mode = mode
        self.progress = progress
        self.clock = clock

    async def current_progress(self) -> Optional[Progress]:
        if self.mode is TriggerMode.TIME:
            return self.clock()
        return await self.progress.get()

    async def run_cycle(self) -> Optional[WarningLevel]:
        """
        Run one cycle.

        Returns:
            The warning that fired, or None if the cycle was skipped

        Raises:
            ScheduleShapeError: If the store returned malformed blocks
        """
        progress = await self.current_progress()
        if progress is None:
            return None

        try:
            blocks = await self.store.find_all_populated()
        except QueryError as e:
            log.warning("Skipping cycle, could not load schedule: %s", e)
            return None

        block = select_next_block(blocks, progress)
        if block is None or not block.has_volunteers:
            return None

        level = decide_warning(block, progress, self.mode)
        if level is None:
            return None

        # Flag goes in first; a failed write must not lead to a send
        try:
            if level is WarningLevel.FAR:
                await self.store.mark_far_warning_sent(block)
            else:
                await self.store.mark_near_warning_sent(block)
        except PersistenceError as e:
            log.error("Not announcing block %s, flag write failed: %s", block.block_id, e)
            return None

        label = warning_label(level, self.mode)
        try:
            await self.notifier.notify(block, label)
        except DeliveryError as e:
            log.error("Lost %s warning for block %s: %s", level.value, block.block_id, e)
        return level
