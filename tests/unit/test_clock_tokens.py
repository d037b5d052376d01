"""
Unit tests for the clock and lease token generator.
"""

import string
from datetime import timedelta

from leasequeue.clock import SystemClock
from leasequeue.tokens import TokenGenerator


class TestSystemClock:
    """Tests for SystemClock."""

    def test_now_is_timezone_aware(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_after_is_in_the_future(self):
        clock = SystemClock()
        before = clock.now()
        later = clock.after(30)

        assert later - before >= timedelta(seconds=30)


class TestTokenGenerator:
    """Tests for TokenGenerator."""

    def test_token_is_hex(self):
        token = TokenGenerator().generate()

        assert len(token) == 32
        assert set(token) <= set(string.hexdigits)

    def test_tokens_are_unique(self):
        generator = TokenGenerator()
        tokens = {generator.generate() for _ in range(10_000)}
        assert len(tokens) == 10_000

    def test_token_size(self):
        assert len(TokenGenerator(nbytes=32).generate()) == 64
