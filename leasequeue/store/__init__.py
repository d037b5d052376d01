"""
Message store module.
Contains the store interface and the in-memory implementation.
"""

from leasequeue.store.base import (
    MessageFilter,
    MessageRecord,
    MessageStore,
    MessageUpdate,
)
from leasequeue.store.memory import InMemoryMessageStore

__all__ = [
    "MessageStore",
    "MessageRecord",
    "MessageFilter",
    "MessageUpdate",
    "InMemoryMessageStore",
]
