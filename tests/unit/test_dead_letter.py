"""
Unit tests for dead-letter routing.
"""

import pytest

from leasequeue.constants import DEFAULT_MAX_RETRIES
from leasequeue.queue import Queue
from leasequeue.store.memory import InMemoryMessageStore
from tests.conftest import ManualClock


class TestDeadLetter:
    """Tests for moving over-retried messages to a dead queue."""

    @pytest.fixture
    def dead_queue(self, store: InMemoryMessageStore, clock: ManualClock) -> Queue:
        """Create the dead-letter queue."""
        return Queue(store, "dead-queue", visibility=3, clock=clock)

    def make_queue(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
        max_retries: int | None,
    ) -> Queue:
        return Queue(
            store,
            "queue",
            visibility=1,
            dead_queue=dead_queue,
            max_retries=max_retries,
            clock=clock,
        )

    async def test_message_over_max_retries_moves_to_dead_queue(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test a message left unacknowledged across 4 claims is dead-lettered."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=3)
        original_id = await queue.add("Hello, World!")

        for attempt in range(1, 4):
            message = await queue.claim()
            assert message.id == original_id
            assert message.tries == attempt
            clock.advance(2)

        assert await queue.claim() is None

        dead = await dead_queue.claim()
        assert dead.payload == {
            "id": str(original_id),
            "payload": "Hello, World!",
            "tries": 4,
        }

        assert await queue.size() == 0
        assert await queue.in_flight() == 0
        assert await queue.done() == 1

    async def test_claim_skips_to_next_message(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test that the caller receives the next message after a dead-letter."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=3)
        first = await queue.add("Hello, World!")
        second = await queue.add("Part II")

        for _ in range(3):
            message = await queue.claim()
            assert message.id == first
            clock.advance(2)

        message = await queue.claim()
        assert message.id == second
        assert message.payload == "Part II"
        assert message.tries == 1

        dead = await dead_queue.claim()
        assert dead.payload["id"] == str(first)
        assert dead.payload["tries"] == 4

    async def test_default_max_retries(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test the default retry limit when only a dead queue is given."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=None)
        assert queue.max_retries == DEFAULT_MAX_RETRIES

        await queue.add("Hello, World!")
        for _ in range(DEFAULT_MAX_RETRIES):
            assert await queue.claim() is not None
            clock.advance(2)

        assert await queue.claim() is None

        dead = await dead_queue.claim()
        assert dead.payload["tries"] == DEFAULT_MAX_RETRIES + 1

    async def test_zero_retries_dead_letters_everything(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test that many exhausted messages are drained in one claim."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=0)
        ids = await queue.add([f"no={i}" for i in range(20)])

        assert await queue.claim() is None

        assert await dead_queue.total() == 20
        assert await queue.done() == 20

        dead_ids = [(await dead_queue.claim()).payload["id"] for _ in range(20)]
        assert dead_ids == [str(message_id) for message_id in ids]

    async def test_acknowledged_message_never_dead_lettered(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test that a message finalized within its retries stays put."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=2)
        await queue.add("x")

        await queue.claim()
        clock.advance(2)
        message = await queue.claim()
        await queue.finalize(message.lease_token)

        assert await queue.claim() is None
        assert await dead_queue.total() == 0

    async def test_reset_tries_postpones_dead_letter(
        self,
        store: InMemoryMessageStore,
        clock: ManualClock,
        dead_queue: Queue,
    ):
        """Test that resetting tries restarts the retry budget."""
        queue = self.make_queue(store, clock, dead_queue, max_retries=1)
        await queue.add("x")

        message = await queue.claim()
        await queue.extend(message.lease_token, reset_tries=True)
        clock.advance(2)

        message = await queue.claim()
        assert message is not None
        assert message.tries == 1
        assert await dead_queue.total() == 0
