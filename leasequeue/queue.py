"""
Lease-based work queue.

Producers add messages; workers claim them, optionally extend their lease
while working, and finalize them when done. A claimed message that is not
finalized before its lease deadline becomes claimable again, because
claimability is a predicate over stored fields rather than a transition
anyone performs:

    claimable  <=>  done_at IS NULL AND visible_at <= now

Every operation is one atomic round trip to the store, except dead-letter
redirection in claim (add to the dead queue, finalize here, claim again).
That sequence is not atomic across the two queues: a crash between the add
and the finalize leaves the message claimable here and already present on the
dead queue, so it may be dead-lettered twice. Delivery is at-least-once.
"""

import logging
from collections.abc import Sequence
from datetime import timedelta
from typing import Any
from uuid import UUID

from leasequeue.clock import Clock, SystemClock
from leasequeue.config import get_settings
from leasequeue.constants import (
    DEFAULT_MAX_RETRIES,
    SPAN_ADD,
    SPAN_CLAIM,
    SPAN_EXTEND,
    SPAN_FINALIZE,
)
from leasequeue.errors import InvalidArgument, InvalidConfiguration, UnknownLease
from leasequeue.observability.metrics import get_metrics
from leasequeue.observability.tracing import get_tracer
from leasequeue.store.base import MessageFilter, MessageStore, MessageUpdate
from leasequeue.tokens import TokenGenerator
from leasequeue.types.message import (
    ClaimedMessage,
    DeadLetterPayload,
    MessageInfo,
    QueueStats,
)

logger = logging.getLogger(__name__)


class Queue:
    """
    A named queue of messages in a MessageStore.

    The queue holds no mutable state of its own and takes no locks. Mutual
    exclusion between workers comes entirely from the store's atomic
    find_one_and_update.
    """

    def __init__(
        self,
        store: MessageStore,
        name: str,
        *,
        visibility: float | None = None,
        delay: float | None = None,
        dead_queue: "Queue | None" = None,
        max_retries: int | None = None,
        expire_after: float | None = None,
        clock: Clock | None = None,
        tokens: TokenGenerator | None = None,
    ):
        """
        Initialize the queue.

        Args:
            store: The message store holding this queue's documents.
            name: Queue name; messages of different queues never mix.
            visibility: Default lease duration in seconds.
            delay: Default delay in seconds before added messages are visible.
            dead_queue: Queue receiving messages claimed more than max_retries times.
            max_retries: Claim limit before dead-lettering. Only used with dead_queue.
            expire_after: Seconds a done message is kept before purge_expired
                deletes it. None keeps done messages until clean().
            clock: Time source. Defaults to the system clock.
            tokens: Lease token generator.

        Raises:
            InvalidConfiguration: If the store or name is missing or a setting is out of range.
        """
        if store is None:
            raise InvalidConfiguration("Queue: provide a message store")
        if not name:
            raise InvalidConfiguration("Queue: provide a queue name")

        settings = get_settings()

        self.name = name
        self.visibility = settings.queue_visibility_seconds if visibility is None else visibility
        self.delay = settings.queue_delay_seconds if delay is None else delay

        if self.visibility <= 0:
            raise InvalidConfiguration(f"Queue {name!r}: visibility must be positive")
        if self.delay < 0:
            raise InvalidConfiguration(f"Queue {name!r}: delay must not be negative")

        self.expire_after = (
            settings.queue_expire_after_seconds if expire_after is None else expire_after
        )
        if self.expire_after is not None and self.expire_after < 0:
            raise InvalidConfiguration(f"Queue {name!r}: expire_after must not be negative")

        self.dead_queue = dead_queue
        self.max_retries: int | None = None
        if dead_queue is not None:
            if dead_queue is self or (dead_queue._store is store and dead_queue.name == name):
                raise InvalidConfiguration(f"Queue {name!r}: cannot be its own dead queue")
            if max_retries is None:
                max_retries = settings.queue_max_retries
            self.max_retries = DEFAULT_MAX_RETRIES if max_retries is None else max_retries
            if self.max_retries < 0:
                raise InvalidConfiguration(f"Queue {name!r}: max_retries must not be negative")

        self._store = store
        self._clock = clock or SystemClock()
        self._tokens = tokens or TokenGenerator()
        self._metrics = get_metrics()

    @classmethod
    def from_settings(cls, store: MessageStore, name: str) -> "Queue":
        """
        Build a queue from application settings.

        When queue_max_retries is configured, the queue dead-letters into
        "<name><dead_letter_suffix>". Dead queues themselves get no dead queue.
        """
        settings = get_settings()
        dead_queue = None
        if settings.queue_max_retries is not None and not name.endswith(settings.dead_letter_suffix):
            dead_queue = cls(store, f"{name}{settings.dead_letter_suffix}")
        return cls(store, name, dead_queue=dead_queue)

    def __repr__(self) -> str:
        return (
            f"Queue(name={self.name!r}, visibility={self.visibility}, "
            f"delay={self.delay}, max_retries={self.max_retries})"
        )

    def _lease_seconds(self, visibility: float | None) -> float:
        if visibility is None:
            return self.visibility
        if visibility <= 0:
            raise InvalidArgument("visibility must be positive")
        return visibility

    async def add(
        self,
        payload: Any | Sequence[Any],
        delay: float | None = None,
    ) -> UUID | list[UUID]:
        """
        Add one message, or one message per element of a list or tuple.

        Args:
            payload: A payload, or a list/tuple of payloads.
            delay: Seconds before the message(s) can be claimed.
                Defaults to the queue delay; 0 means immediately.

        Returns:
            The new message id, or the list of ids in input order.

        Raises:
            InvalidArgument: If the batch is empty or the delay is negative.
        """
        if delay is None:
            delay = self.delay
        elif delay < 0:
            raise InvalidArgument("add: delay must not be negative")

        batch = isinstance(payload, (list, tuple))
        payloads = list(payload) if batch else [payload]
        if not payloads:
            raise InvalidArgument("add: payload list must not be empty")

        visible_at = self._clock.after(delay)

        with get_tracer().start_as_current_span(SPAN_ADD) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("count", len(payloads))
            ids = await self._store.insert_many(self.name, payloads, visible_at)

        self._metrics.record_added(self.name, len(ids))
        logger.debug(
            f"Added {len(ids)} messages",
            extra={"queue": self.name, "delay": delay},
        )

        return ids if batch else ids[0]

    async def claim(self, visibility: float | None = None) -> ClaimedMessage | None:
        """
        Claim the oldest claimable message.

        Increments the message's tries, gives it a fresh lease token and
        hides it for `visibility` seconds. Messages over the retry limit are
        moved to the dead queue and skipped.

        Args:
            visibility: Lease duration in seconds. Defaults to the queue visibility.

        Returns:
            The claimed message, or None if nothing is claimable.
        """
        visibility = self._lease_seconds(visibility)

        while True:
            message = await self._claim_one(visibility)
            if message is None:
                return None

            if self.dead_queue is None or message.tries <= self.max_retries:
                self._metrics.record_claimed(self.name)
                return message

            await self._dead_letter(message)

    async def _claim_one(self, visibility: float) -> ClaimedMessage | None:
        now = self._clock.now()
        update = MessageUpdate(
            set={
                "lease_token": self._tokens.generate(),
                "visible_at": self._clock.after(visibility),
            },
            increment={"tries": 1},
        )

        with get_tracer().start_as_current_span(SPAN_CLAIM) as span:
            span.set_attribute("queue", self.name)
            record = await self._store.find_one_and_update(
                self.name, MessageFilter.claimable(now), update
            )
            if record is None:
                return None
            span.set_attribute("message_id", str(record.id))
            span.set_attribute("tries", record.tries)

        return ClaimedMessage(
            id=record.id,
            lease_token=record.lease_token,
            payload=record.payload,
            tries=record.tries,
        )

    async def _dead_letter(self, message: ClaimedMessage) -> None:
        logger.warning(
            "Moving message to dead queue",
            extra={
                "queue": self.name,
                "dead_queue": self.dead_queue.name,
                "message_id": str(message.id),
                "tries": message.tries,
            },
        )
        wrapped = DeadLetterPayload.from_message(message).model_dump(mode="json")
        await self.dead_queue.add(wrapped)
        await self._finalize(message.lease_token)
        self._metrics.record_dead_lettered(self.name)

    async def extend(
        self,
        lease_token: str,
        visibility: float | None = None,
        reset_tries: bool = False,
        release_lease: bool = False,
    ) -> UUID:
        """
        Extend a live lease (ping).

        Args:
            lease_token: Token returned by claim.
            visibility: New lease duration in seconds from now.
            reset_tries: Set the message's tries back to zero.
            release_lease: Drop the lease and make the message claimable now.

        Returns:
            The message id.

        Raises:
            UnknownLease: If the token does not match a live lease.
        """
        visibility = self._lease_seconds(visibility)
        now = self._clock.now()

        fields: dict[str, Any] = {"visible_at": self._clock.after(visibility)}
        if reset_tries:
            fields["tries"] = 0
        if release_lease:
            fields["lease_token"] = None
            fields["visible_at"] = now

        with get_tracer().start_as_current_span(SPAN_EXTEND) as span:
            span.set_attribute("queue", self.name)
            record = await self._store.find_one_and_update(
                self.name,
                MessageFilter.live_lease(lease_token, now),
                MessageUpdate(set=fields),
            )

        if record is None:
            self._metrics.record_lease_lost(self.name, "extend")
            raise UnknownLease(lease_token, "extend")

        self._metrics.record_lease_extended(self.name)
        return record.id

    async def finalize(self, lease_token: str) -> UUID:
        """
        Finalize a live lease (ack), marking the message done.

        Args:
            lease_token: Token returned by claim.

        Returns:
            The message id.

        Raises:
            UnknownLease: If the token does not match a live lease, including
                when the message was already finalized.
        """
        message_id = await self._finalize(lease_token)
        self._metrics.record_acked(self.name)
        return message_id

    async def _finalize(self, lease_token: str) -> UUID:
        now = self._clock.now()
        update = MessageUpdate(
            set={"done_at": now, "lease_token": None, "visible_at": None},
        )

        with get_tracer().start_as_current_span(SPAN_FINALIZE) as span:
            span.set_attribute("queue", self.name)
            record = await self._store.find_one_and_update(
                self.name, MessageFilter.live_lease(lease_token, now), update
            )

        if record is None:
            self._metrics.record_lease_lost(self.name, "finalize")
            raise UnknownLease(lease_token, "finalize")

        return record.id

    async def clean(self) -> int:
        """
        Delete every done message.

        Returns:
            Number of messages deleted.
        """
        deleted = await self._store.delete_many(self.name, MessageFilter.done())
        logger.info(
            f"Cleaned {deleted} done messages",
            extra={"queue": self.name},
        )
        return deleted

    async def purge_expired(self) -> int:
        """
        Delete done messages finalized more than expire_after seconds ago.

        Returns:
            Number of messages deleted. Always 0 when expire_after is unset.
        """
        if self.expire_after is None:
            return 0

        cutoff = self._clock.now() - timedelta(seconds=self.expire_after)
        deleted = await self._store.delete_many(self.name, MessageFilter.expired(cutoff))
        if deleted:
            logger.info(
                f"Purged {deleted} expired messages",
                extra={"queue": self.name, "expire_after": self.expire_after},
            )
        return deleted

    async def get(self, message_id: UUID) -> MessageInfo | None:
        """
        Look up a message by id.

        Args:
            message_id: The message id returned by add.

        Returns:
            A MessageInfo snapshot, or None if the message does not exist.
        """
        record = await self._store.get(self.name, message_id)
        if record is None:
            return None

        return MessageInfo(
            id=record.id,
            state=record.state(self._clock.now()),
            payload=record.payload,
            tries=record.tries,
            visible_at=record.visible_at,
            done_at=record.done_at,
            created_at=record.created_at,
        )

    async def total(self) -> int:
        """Count all messages, in any state."""
        return await self._store.count(self.name)

    async def size(self) -> int:
        """Count messages that can be claimed now."""
        return await self._store.count(self.name, MessageFilter.claimable(self._clock.now()))

    async def in_flight(self) -> int:
        """Count messages under a live lease."""
        return await self._store.count(self.name, MessageFilter.in_flight(self._clock.now()))

    async def done(self) -> int:
        """Count finalized messages."""
        return await self._store.count(self.name, MessageFilter.done())

    async def stats(self) -> QueueStats:
        """Get all counts for this queue."""
        now = self._clock.now()
        return QueueStats(
            total=await self._store.count(self.name),
            size=await self._store.count(self.name, MessageFilter.claimable(now)),
            in_flight=await self._store.count(self.name, MessageFilter.in_flight(now)),
            done=await self._store.count(self.name, MessageFilter.done()),
        )
