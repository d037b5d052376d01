"""
In-process message store.

Keeps documents in dictionaries guarded by a single asyncio lock, so every
operation is atomic with respect to other coroutines on the same event loop.
Useful for tests and single-process deployments.
"""

import asyncio
import copy
import itertools
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from leasequeue.store.base import (
    MessageFilter,
    MessageRecord,
    MessageStore,
    MessageUpdate,
)


def _matches(record: MessageRecord, filter: MessageFilter) -> bool:
    if filter.is_done is not None and (record.done_at is not None) != filter.is_done:
        return False
    if filter.has_lease_token is not None and (
        (record.lease_token is not None) != filter.has_lease_token
    ):
        return False
    if filter.lease_token is not None and record.lease_token != filter.lease_token:
        return False
    # A missing visible_at never satisfies a visibility comparison
    if filter.visible_lte is not None and (
        record.visible_at is None or record.visible_at > filter.visible_lte
    ):
        return False
    if filter.visible_gt is not None and (
        record.visible_at is None or record.visible_at <= filter.visible_gt
    ):
        return False
    if filter.done_before is not None and (
        record.done_at is None or record.done_at > filter.done_before
    ):
        return False
    return True


def _sort_key(record: MessageRecord) -> tuple[bool, datetime, int]:
    visible_at = record.visible_at or datetime.max.replace(tzinfo=timezone.utc)
    return (record.visible_at is None, visible_at, record.seq)


class InMemoryMessageStore(MessageStore):
    """Message store holding documents in process memory."""

    def __init__(self):
        # queue -> id -> record
        self._collections: dict[str, dict[UUID, MessageRecord]] = {}
        self._seq = itertools.count(1)
        self._lock = asyncio.Lock()

    def _collection(self, queue: str) -> dict[UUID, MessageRecord]:
        return self._collections.setdefault(queue, {})

    async def insert_many(
        self,
        queue: str,
        payloads: Sequence[Any],
        visible_at: datetime,
    ) -> list[UUID]:
        async with self._lock:
            collection = self._collection(queue)
            created_at = datetime.now(timezone.utc)
            ids = []
            for payload in payloads:
                record = MessageRecord(
                    id=uuid4(),
                    queue=queue,
                    payload=copy.deepcopy(payload),
                    visible_at=visible_at,
                    lease_token=None,
                    tries=0,
                    done_at=None,
                    created_at=created_at,
                    seq=next(self._seq),
                )
                collection[record.id] = record
                ids.append(record.id)
            return ids

    async def find_one_and_update(
        self,
        queue: str,
        filter: MessageFilter,
        update: MessageUpdate,
    ) -> MessageRecord | None:
        async with self._lock:
            candidates = [
                record
                for record in self._collection(queue).values()
                if _matches(record, filter)
            ]
            if not candidates:
                return None

            record = min(candidates, key=_sort_key)
            for name, value in update.set.items():
                setattr(record, name, value)
            for name, delta in update.increment.items():
                setattr(record, name, getattr(record, name) + delta)

            return replace(record, payload=copy.deepcopy(record.payload))

    async def delete_many(self, queue: str, filter: MessageFilter) -> int:
        async with self._lock:
            collection = self._collection(queue)
            doomed = [
                message_id
                for message_id, record in collection.items()
                if _matches(record, filter)
            ]
            for message_id in doomed:
                del collection[message_id]
            return len(doomed)

    async def count(self, queue: str, filter: MessageFilter | None = None) -> int:
        async with self._lock:
            records = self._collection(queue).values()
            if filter is None:
                return len(records)
            return sum(1 for record in records if _matches(record, filter))

    async def get(self, queue: str, message_id: UUID) -> MessageRecord | None:
        """Get a copy of a stored message by id."""
        async with self._lock:
            record = self._collection(queue).get(message_id)
            if record is None:
                return None
            return replace(record, payload=copy.deepcopy(record.payload))
