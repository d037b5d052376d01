"""
Unit tests for concurrent queue access.
"""

import asyncio

from leasequeue.errors import UnknownLease
from leasequeue.queue import Queue


class TestConcurrentClaims:
    """Tests for workers racing on the same queue."""

    async def test_concurrent_claims_get_distinct_messages(self, queue: Queue):
        """Test that N concurrent claims on N messages never collide."""
        total = 25
        ids = await queue.add([f"no={i}" for i in range(total)])

        messages = await asyncio.gather(*(queue.claim() for _ in range(total)))

        assert all(message is not None for message in messages)
        assert {message.id for message in messages} == set(ids)
        assert len({message.lease_token for message in messages}) == total
        assert await queue.claim() is None

    async def test_more_workers_than_messages(self, queue: Queue):
        """Test that surplus concurrent claims come back empty."""
        await queue.add(["a", "b", "c"])

        messages = await asyncio.gather(*(queue.claim() for _ in range(10)))
        claimed = [message for message in messages if message is not None]

        assert len(claimed) == 3
        assert len({message.id for message in claimed}) == 3

    async def test_concurrent_finalize_succeeds_once(self, queue: Queue):
        """Test that racing acknowledgements of one lease yield one winner."""
        await queue.add("x")
        message = await queue.claim()

        results = await asyncio.gather(
            *(queue.finalize(message.lease_token) for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for result in results if result == message.id) == 1
        assert sum(1 for result in results if isinstance(result, UnknownLease)) == 4
        assert await queue.done() == 1

    async def test_many_messages_all_processed(self, queue: Queue):
        """Test a batch of workers draining the queue with acknowledgements."""
        total = 250
        await queue.add([f"no={i}" for i in range(total)])

        async def worker(received: list) -> None:
            while (message := await queue.claim()) is not None:
                received.append(message.payload)
                await queue.finalize(message.lease_token)

        buckets: list[list] = [[] for _ in range(5)]
        await asyncio.gather(*(worker(bucket) for bucket in buckets))

        received = [payload for bucket in buckets for payload in bucket]
        assert sorted(received) == sorted(f"no={i}" for i in range(total))
        assert await queue.done() == total
        assert await queue.size() == 0
