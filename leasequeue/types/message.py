"""
Message-related type definitions.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from leasequeue.constants import MessageState


@dataclass(frozen=True)
class ClaimedMessage:
    """
    A message handed to a worker by claim.

    The lease_token must be presented to extend or finalize the claim.
    """

    id: UUID
    lease_token: str
    payload: Any
    tries: int


class DeadLetterPayload(BaseModel):
    """
    Payload of a message routed to a dead-letter queue.
    Wraps the original message identity, payload and try count.
    """

    id: UUID
    payload: Any
    tries: int

    @classmethod
    def from_message(cls, message: ClaimedMessage) -> "DeadLetterPayload":
        return cls(id=message.id, payload=message.payload, tries=message.tries)


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time message counts for a queue."""

    total: int
    size: int
    in_flight: int
    done: int


@dataclass(frozen=True)
class MessageInfo:
    """Snapshot of a stored message and its derived state."""

    id: UUID
    state: MessageState
    payload: Any
    tries: int
    visible_at: datetime | None
    done_at: datetime | None
    created_at: datetime
