"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class MessageState(StrEnum):
    """
    Message lifecycle states.

    States are derived from stored fields, never stored themselves:
    - PENDING: not done, visible_at <= now (includes expired leases)
    - DELAYED: not done, no lease token, visible_at > now
    - LEASED: not done, lease token set, visible_at > now
    - DONE: done_at set

    Transitions:
    - PENDING -> LEASED (claim)
    - LEASED -> LEASED (extend)
    - LEASED -> PENDING (lease expiry, or extend with release)
    - LEASED -> DONE (finalize)
    """

    PENDING = "pending"
    DELAYED = "delayed"
    LEASED = "leased"
    DONE = "done"


# Default values
DEFAULT_VISIBILITY_SECONDS = 30
DEFAULT_DELAY_SECONDS = 0
DEFAULT_MAX_RETRIES = 5

# Lease tokens are LEASE_TOKEN_BYTES random bytes, hex encoded
LEASE_TOKEN_BYTES = 16

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "queue_depth"
METRIC_MESSAGES_ADDED = "messages_added_total"
METRIC_MESSAGES_CLAIMED = "messages_claimed_total"
METRIC_MESSAGES_ACKED = "messages_acked_total"
METRIC_MESSAGES_DEAD_LETTERED = "messages_dead_lettered_total"
METRIC_LEASE_EXTENDED = "lease_extended_total"
METRIC_LEASE_LOST = "lease_lost_total"

# Trace span names
SPAN_ADD = "queue.add"
SPAN_CLAIM = "queue.claim"
SPAN_EXTEND = "queue.extend"
SPAN_FINALIZE = "queue.finalize"
SPAN_HANDLE_MESSAGE = "worker.handle_message"
