"""
Queue routes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status

from leasequeue.api.dependencies import QueueDep
from leasequeue.constants import API_V1_PREFIX
from leasequeue.errors import InvalidArgument, UnknownLease
from leasequeue.observability.metrics import get_metrics
from leasequeue.types.api import (
    AddMessagesRequest,
    AddMessagesResponse,
    ClaimedMessageResponse,
    ClaimRequest,
    CleanResponse,
    ExtendLeaseRequest,
    LeaseResponse,
    MessageResponse,
    QueueStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/queues/{{name}}", tags=["Queues"])


@router.post(
    "/messages",
    response_model=AddMessagesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add messages",
    description="Add a single message or a batch of messages to the queue.",
)
async def add_messages(
    request: AddMessagesRequest,
    queue: QueueDep,
) -> AddMessagesResponse:
    """
    Add messages.

    A single payload is always stored as one message, even when it is a list.

    Args:
        request: Payload(s) and optional delay.
        queue: The target queue.

    Returns:
        AddMessagesResponse with the new ids in input order.
    """
    payloads = request.payloads if request.payloads is not None else [request.payload]

    try:
        ids = await queue.add(payloads, delay=request.delay)
    except InvalidArgument as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    return AddMessagesResponse(ids=ids)


@router.get(
    "/messages/{message_id}",
    response_model=MessageResponse,
    summary="Get message details",
    description="Get a stored message and its current state.",
)
async def get_message(message_id: UUID, queue: QueueDep) -> MessageResponse:
    """
    Get message details by ID.

    Args:
        message_id: The message UUID.
        queue: The queue holding the message.

    Returns:
        MessageResponse with the message and its derived state.

    Raises:
        HTTPException: If the message is not in this queue.
    """
    info = await queue.get(message_id)

    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found",
        )

    return MessageResponse(
        id=info.id,
        state=info.state,
        payload=info.payload,
        tries=info.tries,
        visible_at=info.visible_at,
        done_at=info.done_at,
        created_at=info.created_at,
    )


@router.post(
    "/claim",
    response_model=ClaimedMessageResponse,
    responses={204: {"description": "No message available"}},
    summary="Claim a message",
    description="Claim the oldest visible message under a new lease.",
)
async def claim_message(
    queue: QueueDep,
    request: ClaimRequest | None = None,
) -> ClaimedMessageResponse | Response:
    """
    Claim a message.

    Args:
        queue: The queue to claim from.
        request: Optional lease duration override.

    Returns:
        The claimed message, or an empty 204 response.
    """
    visibility = request.visibility if request is not None else None
    message = await queue.claim(visibility=visibility)

    if message is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return ClaimedMessageResponse(
        id=message.id,
        lease_token=message.lease_token,
        payload=message.payload,
        tries=message.tries,
    )


@router.post(
    "/leases/{lease_token}/extend",
    response_model=LeaseResponse,
    summary="Extend a lease",
    description="Push a live lease's deadline forward, optionally resetting tries or releasing it.",
)
async def extend_lease(
    lease_token: str,
    queue: QueueDep,
    request: ExtendLeaseRequest | None = None,
) -> LeaseResponse:
    """
    Extend a lease.

    Args:
        lease_token: Token returned by claim.
        queue: The queue owning the lease.
        request: Extension options.

    Returns:
        LeaseResponse with the message id.
    """
    request = request or ExtendLeaseRequest()

    try:
        message_id = await queue.extend(
            lease_token,
            visibility=request.visibility,
            reset_tries=request.reset_tries,
            release_lease=request.release_lease,
        )
    except UnknownLease as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return LeaseResponse(id=message_id)


@router.post(
    "/leases/{lease_token}/ack",
    response_model=LeaseResponse,
    summary="Acknowledge a message",
    description="Finalize a live lease, marking its message done.",
)
async def ack_message(
    lease_token: str,
    queue: QueueDep,
) -> LeaseResponse:
    """
    Finalize a lease.

    Args:
        lease_token: Token returned by claim.
        queue: The queue owning the lease.

    Returns:
        LeaseResponse with the message id.
    """
    try:
        message_id = await queue.finalize(lease_token)
    except UnknownLease as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return LeaseResponse(id=message_id)


@router.delete(
    "/done",
    response_model=CleanResponse,
    summary="Delete done messages",
    description="Permanently delete every finalized message in the queue.",
)
async def clean_queue(queue: QueueDep) -> CleanResponse:
    """Delete done messages."""
    deleted = await queue.clean()
    return CleanResponse(deleted=deleted)


@router.get(
    "/stats",
    response_model=QueueStatsResponse,
    summary="Queue statistics",
    description="Count messages by state.",
)
async def queue_stats(queue: QueueDep) -> QueueStatsResponse:
    """
    Get queue statistics and refresh the depth gauges.

    Args:
        queue: The queue to inspect.

    Returns:
        QueueStatsResponse with counts by state.
    """
    stats = await queue.stats()
    get_metrics().update_queue_depth(queue.name, stats)

    return QueueStatsResponse(
        queue=queue.name,
        total=stats.total,
        size=stats.size,
        in_flight=stats.in_flight,
        done=stats.done,
    )
