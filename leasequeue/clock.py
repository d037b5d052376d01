"""
Time source for lease deadlines.
"""

from datetime import datetime, timedelta, timezone


class Clock:
    """Base clock. Subclasses provide now()."""

    def now(self) -> datetime:
        raise NotImplementedError

    def after(self, seconds: float) -> datetime:
        """Get the time `seconds` from now."""
        return self.now() + timedelta(seconds=seconds)


class SystemClock(Clock):
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
