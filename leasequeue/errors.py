"""
Queue error types.
"""


class QueueError(Exception):
    """Base class for all queue errors."""


class InvalidConfiguration(QueueError):
    """Raised when a queue is constructed with unusable settings."""


class InvalidArgument(QueueError):
    """Raised when an operation receives an argument it cannot act on."""


class UnknownLease(QueueError):
    """
    Raised when a lease token does not match a live lease.

    The token may be unknown, the message may already be finalized, or the
    lease may have expired and been claimed by another worker. Callers should
    treat this as a lost race, not a fatal condition.
    """

    def __init__(self, lease_token: str, operation: str):
        self.lease_token = lease_token
        self.operation = operation
        super().__init__(f"{operation}: unknown lease token {lease_token!r}")
