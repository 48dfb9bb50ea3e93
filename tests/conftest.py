"""
Shared fakes for the Mongo collection, Discord channel and HTTP session.
"""
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return list(self.docs if length is None else self.docs[:length])


class FakeCollection:
    """Stands in for an async scheduleBlocks collection.

    `aggregated` is what the populate aggregation returns; flag updates are
    applied to those same documents so the next cycle sees them.
    """

    def __init__(self, aggregated: Optional[List[Dict[str, Any]]] = None,
                 raw: Optional[List[Dict[str, Any]]] = None):
        self.aggregated = aggregated or []
        self.raw = raw or []
        self.pipelines: List[Any] = []
        self.updates: List[Any] = []
        self.fail_reads = False
        self.fail_updates = False
        self.match_updates = True

    def find(self, *args, **kwargs) -> FakeCursor:
        if self.fail_reads:
            raise PyMongoError("connection refused")
        return FakeCursor(self.raw)

    async def aggregate(self, pipeline) -> FakeCursor:
        if self.fail_reads:
            raise PyMongoError("connection refused")
        self.pipelines.append(pipeline)
        return FakeCursor(self.aggregated)

    async def update_one(self, filter, update):
        if self.fail_updates:
            raise PyMongoError("not primary")
        self.updates.append((filter, update))
        matched = 0
        if self.match_updates:
            for doc in self.aggregated:
                if doc["_id"] == filter["_id"]:
                    doc.update(update["$set"])
                    matched = 1
        return SimpleNamespace(matched_count=matched, modified_count=matched)


class FakeChannel:
    def __init__(self, error: Optional[Exception] = None):
        self.sent: List[Dict[str, Any]] = []
        self.error = error

    async def send(self, content=None, embed=None):
        if self.error is not None:
            raise self.error
        self.sent.append({"content": content, "embed": embed})
        return SimpleNamespace(content=content, embed=embed)


class FakeClient:
    def __init__(self, channel: FakeChannel):
        self.channel = channel
        self.fetched = 0

    def get_channel(self, channel_id):
        return None

    async def fetch_channel(self, channel_id):
        self.fetched += 1
        return self.channel


def user_doc(first: str, discord_id: str) -> Dict[str, Any]:
    return {
        "_id": ObjectId(),
        "username": first.lower(),
        "firstName": first,
        "lastName": "Scout",
        "discordId": discord_id,
    }


def match_block_doc(start: int, last: int, three_away: bool = False, one_away: bool = False,
                    **slots) -> Dict[str, Any]:
    doc = {"_id": ObjectId(), "startMatch": start, "lastMatch": last,
           "threeAway": three_away, "oneAway": one_away}
    doc.update(slots)
    return doc


def time_block_doc(start: datetime, end: datetime, min30: bool = False, min10: bool = False,
                   **slots) -> Dict[str, Any]:
    doc = {"_id": ObjectId(), "startTime": start, "endTime": end, "min30": min30, "min10": min10}
    doc.update(slots)
    return doc


@pytest.fixture
def now():
    return datetime(2023, 4, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def client(channel):
    return FakeClient(channel)
