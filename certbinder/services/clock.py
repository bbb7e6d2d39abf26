"""
Clocks supplying the current instant to certificate validity checks.
"""
from datetime import datetime, timezone


class Clock:
    """Interface for obtaining the current instant."""

    def now(self) -> datetime:
        """Get the current instant as a timezone-aware datetime."""
        raise NotImplementedError


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
