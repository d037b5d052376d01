"""
SQL message store.

Implements the store contract over the messages table. The atomic
find-one-and-update is a single UPDATE whose target row is chosen by a
FOR UPDATE SKIP LOCKED subquery, with the filter repeated on the outer
statement so a row changed by a concurrent transaction is re-checked
before it is updated.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leasequeue.db.models import Message
from leasequeue.store.base import (
    MessageFilter,
    MessageRecord,
    MessageStore,
    MessageUpdate,
)

logger = logging.getLogger(__name__)


def _criteria(queue: str, filter: MessageFilter | None) -> list[sa.ColumnElement[bool]]:
    """Translate a MessageFilter into SQL where clauses."""
    clauses = [Message.queue == queue]
    if filter is None:
        return clauses

    if filter.is_done is not None:
        clauses.append(
            Message.done_at.isnot(None) if filter.is_done else Message.done_at.is_(None)
        )
    if filter.has_lease_token is not None:
        clauses.append(
            Message.lease_token.isnot(None)
            if filter.has_lease_token
            else Message.lease_token.is_(None)
        )
    if filter.lease_token is not None:
        clauses.append(Message.lease_token == filter.lease_token)
    if filter.visible_lte is not None:
        clauses.append(Message.visible_at <= filter.visible_lte)
    if filter.visible_gt is not None:
        clauses.append(Message.visible_at > filter.visible_gt)
    if filter.done_before is not None:
        clauses.append(Message.done_at <= filter.done_before)

    return clauses


class SqlMessageStore(MessageStore):
    """
    Message store backed by a SQL database through SQLAlchemy.

    Each operation runs in its own short transaction, so every queue
    operation is a single round trip.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the store with a session factory.

        Args:
            session_factory: Factory producing async sessions.
        """
        self._session_factory = session_factory

    async def insert_many(
        self,
        queue: str,
        payloads: Sequence[Any],
        visible_at: datetime,
    ) -> list[UUID]:
        messages = [
            Message(
                id=uuid4(),
                queue=queue,
                payload=payload,
                visible_at=visible_at,
                tries=0,
            )
            for payload in payloads
        ]

        async with self._session_factory() as session:
            async with session.begin():
                session.add_all(messages)

        return [message.id for message in messages]

    async def find_one_and_update(
        self,
        queue: str,
        filter: MessageFilter,
        update: MessageUpdate,
    ) -> MessageRecord | None:
        criteria = _criteria(queue, filter)

        candidate = (
            sa.select(Message.seq)
            .where(*criteria)
            .order_by(Message.visible_at.asc(), Message.seq.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )

        values: dict[str, Any] = dict(update.set)
        for name, delta in update.increment.items():
            values[name] = getattr(Message, name) + delta

        stmt = (
            sa.update(Message)
            .where(Message.seq.in_(candidate), *criteria)
            .values(**values)
            .returning(Message)
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                message = result.scalar_one_or_none()
                if message is None:
                    return None
                return message.to_record()

    async def delete_many(self, queue: str, filter: MessageFilter) -> int:
        stmt = (
            sa.delete(Message)
            .where(*_criteria(queue, filter))
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)

        count = result.rowcount
        if count > 0:
            logger.info(
                f"Deleted {count} messages",
                extra={"queue": queue},
            )
        return count

    async def count(self, queue: str, filter: MessageFilter | None = None) -> int:
        stmt = (
            sa.select(sa.func.count())
            .select_from(Message)
            .where(*_criteria(queue, filter))
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar() or 0

    async def healthcheck(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(sa.text("SELECT 1"))
        except sa.exc.SQLAlchemyError:
            logger.exception("Database health check failed")
            return False
        return True

    async def get(self, queue: str, message_id: UUID) -> MessageRecord | None:
        """Get a stored message by id."""
        stmt = sa.select(Message).where(Message.queue == queue, Message.id == message_id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            message = result.scalar_one_or_none()
            return message.to_record() if message else None
