"""
Clock -- injectable time source.

Responsibility:
    Step start/stop timestamps and completion timestamps come from an
    injected ``Clock`` so services never call ``datetime.now()`` directly
    and tests can pin time.

Architecture position:
    Kernel > Domain -- zero I/O except ``SystemClock``.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock returning timezone-aware UTC wall time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2025, 1, 1, 8, 0, 0, tzinfo=timezone.utc
        )
        self._advance = timedelta()

    def now(self) -> datetime:
        return self._fixed_time + self._advance

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance = timedelta()

    def advance(self, seconds: int = 0, days: int = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._advance += timedelta(seconds=seconds, days=days)
        return self.now()
