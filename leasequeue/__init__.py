"""
Lease-based work queue

Producers add messages, workers claim them under a time-bounded lease, extend
the lease while working and finalize it when done. Messages whose lease runs
out become claimable again, giving at-least-once delivery.
"""

__version__ = "1.0.0"

from leasequeue.errors import (  # noqa: E402
    InvalidArgument,
    InvalidConfiguration,
    QueueError,
    UnknownLease,
)
from leasequeue.queue import Queue  # noqa: E402
from leasequeue.store import InMemoryMessageStore, MessageStore  # noqa: E402
from leasequeue.types.message import ClaimedMessage  # noqa: E402

__all__ = [
    "Queue",
    "MessageStore",
    "InMemoryMessageStore",
    "ClaimedMessage",
    "QueueError",
    "InvalidConfiguration",
    "InvalidArgument",
    "UnknownLease",
]
