"""
FastAPI dependencies.
"""

from typing import Annotated

from fastapi import Depends, Path, Request

from leasequeue.queue import Queue
from leasequeue.store.base import MessageStore


def get_store(request: Request) -> MessageStore:
    """
    Get the message store created at application startup.

    Raises:
        RuntimeError: If the application has no store configured.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Message store not initialized")
    return store


def get_queue(
    store: Annotated[MessageStore, Depends(get_store)],
    name: Annotated[str, Path(min_length=1, max_length=200)],
) -> Queue:
    """Build the queue named in the request path."""
    return Queue.from_settings(store, name)


QueueDep = Annotated[Queue, Depends(get_queue)]
StoreDep = Annotated[MessageStore, Depends(get_store)]
