"""
Message store interface.

A store is a document collection keyed by queue name. The queue depends on
exactly one concurrency guarantee from it: find_one_and_update selects,
updates and returns a single document indivisibly with respect to other
find_one_and_update calls on the same document.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from leasequeue.constants import MessageState

SETTABLE_FIELDS = frozenset({"visible_at", "lease_token", "tries", "done_at"})
INCREMENTABLE_FIELDS = frozenset({"tries"})


@dataclass
class MessageRecord:
    """A stored message document."""

    id: UUID
    queue: str
    payload: Any
    visible_at: datetime | None
    lease_token: str | None
    tries: int
    done_at: datetime | None
    created_at: datetime
    seq: int

    def state(self, now: datetime) -> MessageState:
        """Derive the lifecycle state of this message at `now`."""
        if self.done_at is not None:
            return MessageState.DONE
        if self.visible_at is not None and self.visible_at <= now:
            return MessageState.PENDING
        if self.lease_token is not None:
            return MessageState.LEASED
        return MessageState.DELAYED


@dataclass(frozen=True)
class MessageFilter:
    """
    Conjunction of predicates over message fields.
    Unset (None) predicates match everything.
    """

    visible_lte: datetime | None = None
    visible_gt: datetime | None = None
    lease_token: str | None = None
    has_lease_token: bool | None = None
    is_done: bool | None = None
    done_before: datetime | None = None

    @classmethod
    def claimable(cls, now: datetime) -> "MessageFilter":
        return cls(is_done=False, visible_lte=now)

    @classmethod
    def live_lease(cls, lease_token: str, now: datetime) -> "MessageFilter":
        return cls(lease_token=lease_token, is_done=False, visible_gt=now)

    @classmethod
    def in_flight(cls, now: datetime) -> "MessageFilter":
        return cls(has_lease_token=True, is_done=False, visible_gt=now)

    @classmethod
    def done(cls) -> "MessageFilter":
        return cls(is_done=True)

    @classmethod
    def expired(cls, cutoff: datetime) -> "MessageFilter":
        return cls(is_done=True, done_before=cutoff)


@dataclass(frozen=True)
class MessageUpdate:
    """
    Field assignments and increments applied by find_one_and_update.
    Assigning None clears the field.
    """

    set: dict[str, Any] = field(default_factory=dict)
    increment: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.set) - SETTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot set fields: {sorted(unknown)}")
        unknown = set(self.increment) - INCREMENTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot increment fields: {sorted(unknown)}")


class MessageStore(ABC):
    """Abstract document collection backing one or more queues."""

    @abstractmethod
    async def insert_many(
        self,
        queue: str,
        payloads: Sequence[Any],
        visible_at: datetime,
    ) -> list[UUID]:
        """Insert one pending message per payload and return ids in order."""

    @abstractmethod
    async def find_one_and_update(
        self,
        queue: str,
        filter: MessageFilter,
        update: MessageUpdate,
    ) -> MessageRecord | None:
        """
        Atomically update the oldest message matching `filter`.

        Matches are ordered by visible_at ascending, then insertion order.
        Returns the updated document, or None if nothing matched.
        """

    @abstractmethod
    async def delete_many(self, queue: str, filter: MessageFilter) -> int:
        """Delete every matching message and return how many were deleted."""

    @abstractmethod
    async def count(self, queue: str, filter: MessageFilter | None = None) -> int:
        """Count matching messages."""

    @abstractmethod
    async def get(self, queue: str, message_id: UUID) -> MessageRecord | None:
        """Get a stored message by id, or None."""

    async def healthcheck(self) -> bool:
        """Check that the store is reachable."""
        return True

    async def close(self) -> None:
        """Release store resources."""
