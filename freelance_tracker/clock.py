"""Injectable clock so session timing can be controlled in tests."""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Services that need the current time receive a Clock in their constructor
    instead of calling ``datetime.now()`` themselves.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock(Clock):
    """Production clock returning the actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()`` or
    ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds

    def advance_minutes(self, minutes: int) -> None:
        """Advance the clock by whole minutes."""
        self.advance(minutes * 60)
