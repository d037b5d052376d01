"""
Lease token generation.
"""

import secrets

from leasequeue.constants import LEASE_TOKEN_BYTES


class TokenGenerator:
    """Produces unguessable lease tokens from the OS random source."""

    def __init__(self, nbytes: int = LEASE_TOKEN_BYTES):
        self.nbytes = nbytes

    def generate(self) -> str:
        return secrets.token_hex(self.nbytes)
