"""
Worker process for consuming a queue.

The worker claims messages, runs a handler on each, pings the lease while
the handler runs and acknowledges the message when it succeeds.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable

from leasequeue.config import get_settings
from leasequeue.constants import SPAN_HANDLE_MESSAGE
from leasequeue.db import SqlMessageStore, close_db, init_db
from leasequeue.errors import UnknownLease
from leasequeue.observability.logging import (
    bind_message_context,
    clear_context,
    setup_logging,
)
from leasequeue.observability.tracing import get_tracer, setup_tracing
from leasequeue.queue import Queue
from leasequeue.types.message import ClaimedMessage

logger = logging.getLogger(__name__)

# Handlers must be idempotent: a message may be delivered more than once
MessageHandler = Callable[[ClaimedMessage], Awaitable[None]]


class Worker:
    """
    Queue consumer that polls for and handles messages.

    Features:
    - Atomic claims, so concurrent workers never share a live lease
    - Heartbeat to extend the lease for long-running handlers
    - Failed messages are hidden for retry_delay, then redelivered
    - Expired done messages are purged while the queue is idle
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        queue: Queue,
        handler: MessageHandler,
        poll_interval: float | None = None,
        heartbeat_interval: float | None = None,
        visibility: float | None = None,
        retry_delay: float | None = None,
        purge_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The queue to consume.
            handler: Coroutine function called with each claimed message.
            poll_interval: Seconds between polls when the queue is empty.
            heartbeat_interval: Seconds between lease extensions. Should be
                well below the lease duration.
            visibility: Lease duration for claims. Defaults to the queue's.
            retry_delay: Seconds a failed message stays hidden before redelivery.
            purge_interval: Seconds between purges of expired done messages.
        """
        settings = get_settings()

        self.queue = queue
        self.handler = handler
        self.poll_interval = poll_interval or settings.worker_poll_interval_seconds
        self.heartbeat_interval = (
            heartbeat_interval or settings.worker_heartbeat_interval_seconds
        )
        self.visibility = visibility
        self.retry_delay = retry_delay or settings.worker_retry_delay_seconds
        self.purge_interval = purge_interval or settings.worker_purge_interval_seconds

        self._running = False
        self._last_purge: float | None = None

    async def start(self) -> None:
        """Start the worker loop."""
        logger.info("Worker starting", extra={"queue": self.queue.name})

        self._running = True

        while self._running:
            try:
                processed = await self.process_one()

                if not processed:
                    await self._purge_if_due()
                    await asyncio.sleep(self.poll_interval)

            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"queue": self.queue.name},
                )
                await asyncio.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"queue": self.queue.name})

    async def stop(self) -> None:
        """Stop the worker after the current message."""
        logger.info("Worker stopping", extra={"queue": self.queue.name})
        self._running = False

    async def process_one(self) -> bool:
        """
        Claim and handle a single message.

        Returns:
            True if a message was claimed, False if the queue was empty.
        """
        message = await self.queue.claim(visibility=self.visibility)
        if message is None:
            return False

        bind_message_context(self.queue.name, message.id, message.tries)
        try:
            succeeded = await self._handle(message)

            if succeeded:
                await self.queue.finalize(message.lease_token)
                logger.info("Message acknowledged")
            else:
                await self.queue.extend(message.lease_token, visibility=self.retry_delay)
                logger.info(
                    "Message scheduled for redelivery",
                    extra={"retry_delay": self.retry_delay},
                )

        except UnknownLease:
            # The lease expired and the message may be with another worker
            logger.warning("Lease lost before the message was settled")

        finally:
            clear_context()

        return True

    async def _purge_if_due(self) -> None:
        """Purge expired done messages at most once per purge interval."""
        if self.queue.expire_after is None:
            return

        now = asyncio.get_running_loop().time()
        if self._last_purge is not None and now - self._last_purge < self.purge_interval:
            return

        self._last_purge = now
        await self.queue.purge_expired()

    async def _handle(self, message: ClaimedMessage) -> bool:
        """Run the handler while a heartbeat keeps the lease alive."""
        heartbeat = asyncio.create_task(self._heartbeat(message.lease_token))

        try:
            with get_tracer().start_as_current_span(SPAN_HANDLE_MESSAGE) as span:
                span.set_attribute("queue", self.queue.name)
                span.set_attribute("message_id", str(message.id))
                span.set_attribute("tries", message.tries)

                await self.handler(message)
            return True

        except Exception as e:
            logger.exception(f"Handler failed: {e}")
            return False

        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass

    async def _heartbeat(self, lease_token: str) -> None:
        """Periodically extend the lease until cancelled or lost."""
        while True:
            await asyncio.sleep(self.heartbeat_interval)

            try:
                await self.queue.extend(lease_token, visibility=self.visibility)
                logger.debug("Extended lease")
            except UnknownLease:
                logger.warning("Lease lost during heartbeat")
                return
            except Exception as e:
                logger.exception(f"Error in heartbeat: {e}")


async def run_async(handler: MessageHandler, queue_name: str | None = None) -> None:
    """
    Run a worker against the SQL message store.

    Args:
        handler: Coroutine function called with each claimed message.
        queue_name: Queue to consume. Defaults to the configured worker queue.
    """
    setup_logging()
    setup_tracing()
    session_factory = await init_db()

    queue = Queue.from_settings(
        SqlMessageStore(session_factory),
        queue_name or get_settings().worker_queue,
    )
    worker = Worker(queue, handler)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run(handler: MessageHandler, queue_name: str | None = None) -> None:
    """Run a worker until SIGTERM or SIGINT."""
    asyncio.run(run_async(handler, queue_name))
