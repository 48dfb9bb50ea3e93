"""
Schedule block storage service.
Handles reading populated blocks and marking warnings as sent.
"""
from typing import Any, Dict, List

from bson import ObjectId
from pymongo.errors import PyMongoError

import config
from config import TriggerMode
from logger import get_logger
from models.schedule_block import PopulatedScheduleBlock, ScheduleBlock
from services.errors import PersistenceError, QueryError

log = get_logger()


def build_populate_pipeline(mode: TriggerMode) -> List[Dict[str, Any]]:
    """Aggregation that sorts blocks by start and joins every slot against users."""
    start_key, end_key, far_key, near_key = config.BLOCK_FIELDS[mode]
    slots = [slot for slot, _ in config.ROLES]

    pipeline: List[Dict[str, Any]] = [{"$sort": {start_key: 1}}]
    for slot in slots:
        pipeline.append({
            "$lookup": {
                "from": config.USERS_COLLECTION,
                "localField": slot,
                "foreignField": "_id",
                "as": slot,
            }
        })

    projection: Dict[str, Any] = {
        start_key: True,
        end_key: True,
        far_key: True,
        near_key: True,
        "createdAt": True,
        "updatedAt": True,
    }
    # Slots hold at most one user; take the first if duplicates exist
    projection.update({slot: {"$first": f"${slot}"} for slot in slots})
    pipeline.append({"$project": projection})
    return pipeline


class ScheduleStore:
    """Reads and updates the scheduleBlocks collection."""

    def __init__(self, collection, mode: TriggerMode):
        self.collection = collection
        self.mode = mode
        self.pipeline = build_populate_pipeline(mode)

    async def find_all(self) -> List[ScheduleBlock]:
        """All blocks, unpopulated, in storage order."""
        try:
            docs = await self.collection.find().to_list(length=None)
        except PyMongoError as e:
            raise QueryError(f"reading schedule blocks failed: {e}") from e
        return [ScheduleBlock.from_document(doc, self.mode) for doc in docs]

    async def find_all_populated(self) -> List[PopulatedScheduleBlock]:
        """
        All blocks with volunteers resolved, sorted by start.

        Raises:
            QueryError: If the aggregation could not be run
            ScheduleShapeError: If a result does not match the block shape
        """
        try:
            cursor = await self.collection.aggregate(self.pipeline)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise QueryError(f"populating schedule blocks failed: {e}") from e
        return [PopulatedScheduleBlock.from_document(doc, self.mode) for doc in docs]

    async def mark_far_warning_sent(self, block: PopulatedScheduleBlock) -> None:
        """Persist the far flag, then mirror it onto `block`."""
        await self._set_flag(block.block_id, config.BLOCK_FIELDS[self.mode][2])
        block.far_sent = True

    async def mark_near_warning_sent(self, block: PopulatedScheduleBlock) -> None:
        """Persist the near flag, then mirror it onto `block`."""
        await self._set_flag(block.block_id, config.BLOCK_FIELDS[self.mode][3])
        block.near_sent = True

    async def _set_flag(self, block_id: ObjectId, flag: str) -> None:
        try:
            result = await self.collection.update_one({"_id": block_id}, {"$set": {flag: True}})
        except PyMongoError as e:
            raise PersistenceError(f"setting {flag} on {block_id} failed: {e}") from e

        if result.matched_count == 0:
            raise PersistenceError(f"setting {flag} on {block_id} matched no block")
        log.debug("Set %s on block %s", flag, block_id)
