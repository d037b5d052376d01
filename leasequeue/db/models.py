"""
SQLAlchemy database models.
Defines the messages table shared by every queue.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from leasequeue.store.base import MessageRecord


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Message(Base):
    """
    Message model representing a unit of work in a queue.

    Lifecycle state is not stored; it is derived from visible_at,
    lease_token and done_at. Claimability is the predicate
    done_at IS NULL AND visible_at <= now, so lease expiry needs no sweeper.

    Key constraints:
    - id is unique and never changes
    - lease_token is unique across the table
    - seq gives a stable insertion order for claim tie-breaking
    """

    __tablename__ = "messages"

    # Insertion order, used only to break visible_at ties
    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        default=uuid4,
    )

    queue: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    payload: Mapped[Any] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )

    # Availability time while pending, lease deadline while leased
    visible_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    lease_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        unique=True,
    )

    tries: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    done_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        # Index for claim polling and size counts
        Index(
            "ix_messages_claimable",
            "queue",
            "visible_at",
            "seq",
            postgresql_where=(Column("done_at").is_(None)),
        ),
        # Index for in-flight counts
        Index(
            "ix_messages_in_flight",
            "queue",
            "visible_at",
            postgresql_where=(Column("lease_token").isnot(None)),
        ),
        # Index for done counts and clean
        Index(
            "ix_messages_done",
            "queue",
            "done_at",
            postgresql_where=(Column("done_at").isnot(None)),
        ),
    )

    def to_record(self) -> MessageRecord:
        """Convert to a detached store record."""
        return MessageRecord(
            id=self.id,
            queue=self.queue,
            payload=self.payload,
            visible_at=self.visible_at,
            lease_token=self.lease_token,
            tries=self.tries,
            done_at=self.done_at,
            created_at=self.created_at,
            seq=self.seq,
        )

    def __repr__(self) -> str:
        return (
            f"Message(id={self.id}, queue={self.queue}, "
            f"tries={self.tries}, done={self.done_at is not None})"
        )
