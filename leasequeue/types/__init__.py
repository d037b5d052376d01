"""
Type definitions for the queue.
Contains input/output type definitions grouped by module.
"""

from leasequeue.types.api import (
    AddMessagesRequest,
    AddMessagesResponse,
    ClaimedMessageResponse,
    ClaimRequest,
    CleanResponse,
    ExtendLeaseRequest,
    HealthResponse,
    LeaseResponse,
    MessageResponse,
    QueueStatsResponse,
)
from leasequeue.types.message import (
    ClaimedMessage,
    DeadLetterPayload,
    MessageInfo,
    QueueStats,
)

__all__ = [
    # API types
    "AddMessagesRequest",
    "AddMessagesResponse",
    "ClaimRequest",
    "ClaimedMessageResponse",
    "ExtendLeaseRequest",
    "LeaseResponse",
    "MessageResponse",
    "CleanResponse",
    "QueueStatsResponse",
    "HealthResponse",
    # Message types
    "ClaimedMessage",
    "DeadLetterPayload",
    "MessageInfo",
    "QueueStats",
]
