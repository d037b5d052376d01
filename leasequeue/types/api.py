"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from leasequeue.constants import MessageState


class AddMessagesRequest(BaseModel):
    """Request body for adding one message or a batch."""

    payload: Any = Field(default=None, description="A single message payload")
    payloads: list[Any] | None = Field(
        default=None, description="A batch of payloads, one message each"
    )
    delay: float | None = Field(
        default=None, ge=0, description="Seconds before the messages can be claimed"
    )

    @model_validator(mode="after")
    def check_one_form(self) -> "AddMessagesRequest":
        if self.payloads is not None and "payload" in self.model_fields_set:
            raise ValueError("Provide either payload or payloads, not both")
        if self.payloads is None and "payload" not in self.model_fields_set:
            raise ValueError("Provide payload or payloads")
        return self


class AddMessagesResponse(BaseModel):
    """Response body after adding messages."""

    ids: list[UUID]


class ClaimRequest(BaseModel):
    """Request body for claiming a message."""

    visibility: float | None = Field(
        default=None, gt=0, description="Lease duration in seconds"
    )


class ClaimedMessageResponse(BaseModel):
    """A claimed message."""

    id: UUID
    lease_token: str
    payload: Any
    tries: int


class ExtendLeaseRequest(BaseModel):
    """Request body for extending a lease."""

    visibility: float | None = Field(
        default=None, gt=0, description="New lease duration in seconds"
    )
    reset_tries: bool = Field(default=False, description="Reset tries to 0")
    release_lease: bool = Field(
        default=False, description="Release the lease and make the message claimable now"
    )


class LeaseResponse(BaseModel):
    """Response body after extending or finalizing a lease."""

    id: UUID


class MessageResponse(BaseModel):
    """Stored message details."""

    id: UUID
    state: MessageState
    payload: Any
    tries: int
    visible_at: datetime | None
    done_at: datetime | None
    created_at: datetime


class CleanResponse(BaseModel):
    """Response body after cleaning done messages."""

    deleted: int


class QueueStatsResponse(BaseModel):
    """Message counts for a queue."""

    queue: str
    total: int
    size: int
    in_flight: int
    done: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    store: str
    timestamp: datetime
